"""Markdown document assembly."""

from __future__ import annotations

from collections.abc import Sequence

from chatexporter.config import ChatExporterConfig
from chatexporter.exporter.common import (
    conversation_source,
    format_message_time,
    iter_rendered_messages,
    render_meta_items,
    transform_author,
)
from chatexporter.exporter.content import MarkdownContentRenderer
from chatexporter.exporter.reformat import build_post_process
from chatexporter.images.types import ImageStrategy, ProcessedImage
from chatexporter.models import Conversation, Message


def _front_matter(conversation: Conversation, config: ChatExporterConfig) -> str:
    source = conversation_source(conversation, config.export.base_url)
    items = render_meta_items(config.active_meta_items(), conversation, source)
    if not items:
        return ""
    lines = "\n".join(f"{name}: {value}" for name, value in items)
    return f"---\n{lines}\n---\n\n"


def _message_time(message: Message, config: ChatExporterConfig) -> str:
    ts = config.timestamp
    if not (ts.enabled and ts.markdown and message.create_time):
        return ""
    short, iso, full = format_message_time(message.create_time, ts.use_24h)
    return f'<time datetime="{iso}" title="{full}">{short}</time>\n\n'


def conversation_to_markdown(
    conversation: Conversation,
    processed_images: Sequence[ProcessedImage] = (),
    strategy: ImageStrategy | str = ImageStrategy.EMBED_BASE64,
    config: ChatExporterConfig | None = None,
) -> str:
    """Assemble a conversation into one Markdown document.

    Layout: optional front matter, ``# <title>``, then one
    ``#### <author>:`` section per rendered message.
    """
    config = config or ChatExporterConfig()
    renderer = MarkdownContentRenderer(strategy)

    sections: list[str] = []
    for message, image_start in iter_rendered_messages(conversation):
        post_process = build_post_process(message.author.role, message.metadata, "markdown")
        body = renderer.render(
            message.content,
            message.metadata,
            post_process,
            processed_images,
            image_start,
        )
        author = transform_author(message.author)
        sections.append(f"#### {author}:\n{_message_time(message, config)}{body}")

    front_matter = _front_matter(conversation, config)
    return f"{front_matter}# {conversation.title}\n\n" + "\n\n".join(sections)
