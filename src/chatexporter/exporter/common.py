"""Helpers shared by the document assemblers."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timezone

from chatexporter.config import ExportMeta
from chatexporter.constants import DEFAULT_BASE_URL, PRIMARY_RECIPIENT
from chatexporter.images.extractor import count_images_in_message
from chatexporter.models import Author, Conversation, Message


def should_render_message(message: Message) -> bool:
    """Decide whether a message appears in the exported document.

    Skipped: messages without content, messages not addressed to the
    primary recipient (model-to-tool routing) and tool messages, except
    the two image-bearing kinds (multimodal results and execution output
    with at least one image).
    """
    content = message.content
    if content is None:
        return False
    if message.recipient != PRIMARY_RECIPIENT:
        return False
    if message.author.role != "tool":
        return True

    if content.content_type == "multimodal_text":
        return True
    if content.content_type == "execution_output":
        aggregate = message.metadata.aggregate_result
        entries = (aggregate.messages if aggregate else None) or []
        return any(entry.message_type == "image" for entry in entries)
    return False


def iter_rendered_messages(conversation: Conversation) -> Iterator[tuple[Message, int]]:
    """Yield ``(message, image_start_index)`` for every rendered message.

    The running image index advances for every message with content,
    rendered or not, in the same order extraction uses, so filtered
    messages never shift the images of the messages after them.
    """
    image_index = 0
    for node in conversation.nodes:
        message = node.message
        if message is None or message.content is None:
            continue
        start = image_index
        image_index += count_images_in_message(message)
        if should_render_message(message):
            yield message, start


def transform_author(author: Author) -> str:
    if author.role == "assistant":
        return "ChatGPT"
    if author.role == "user":
        return "You"
    if author.role == "tool":
        return f"Plugin ({author.name})" if author.name else "Plugin"
    return author.role


def unix_to_iso(value: float | None) -> str:
    """Unix seconds to ``YYYY-MM-DDTHH:MM:SS.mmmZ``; empty for missing values."""
    if value is None:
        return ""
    dt = datetime.fromtimestamp(value, tz=timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def date_str(now: datetime | None = None) -> str:
    return (now or datetime.now()).strftime("%Y-%m-%d")


def timestamp_str(now: datetime | None = None) -> str:
    return (now or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")


def conversation_source(conversation: Conversation, base_url: str = DEFAULT_BASE_URL) -> str:
    return f"{base_url.rstrip('/')}/c/{conversation.id}"


def substitute_meta(value: str, conversation: Conversation, source: str) -> str:
    """Fill a metadata template.

    Placeholders: ``{title}``, ``{date}``, ``{timestamp}``, ``{source}``,
    ``{model}``, ``{model_name}``, ``{create_time}``, ``{update_time}``.
    """
    replacements = {
        "{title}": conversation.title,
        "{date}": date_str(),
        "{timestamp}": timestamp_str(),
        "{source}": source,
        "{model}": conversation.model,
        "{model_name}": conversation.model_slug,
        "{create_time}": unix_to_iso(conversation.create_time),
        "{update_time}": unix_to_iso(conversation.update_time),
    }
    for placeholder, replacement in replacements.items():
        value = value.replace(placeholder, replacement)
    return value


def render_meta_items(
    items: list[ExportMeta],
    conversation: Conversation,
    source: str,
) -> list[tuple[str, str]]:
    return [
        (item.name, substitute_meta(item.value, conversation, source))
        for item in items
        if item.name
    ]


def format_message_time(create_time: float, use_24h: bool) -> tuple[str, str, str]:
    """Format a message timestamp for display.

    Returns:
        Tuple of (short local time such as ``20:12`` or ``08:12 PM``,
        ISO datetime attribute, full local date-time title).
    """
    local = datetime.fromtimestamp(create_time).astimezone()
    short = local.strftime("%H:%M" if use_24h else "%I:%M %p")
    return short, unix_to_iso(create_time), local.strftime("%Y-%m-%d %H:%M:%S")
