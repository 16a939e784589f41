"""Discover image references inside a conversation.

Extraction is pure: it walks the conversation's nodes once, in node order,
and yields ``(locator, ImageContext)`` pairs. The renderers rely on the
same per-message discovery order (``iter_message_images``) to address the
processed-image list, so extraction, counting and substitution can never
disagree about which image sits at which global index.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from chatexporter.constants import (
    CONTENT_ORIGIN_IMAGE_URL,
    CONTENT_ORIGIN_MULTIMODAL,
)
from chatexporter.images.types import ContentOrigin, ImageAuthor, ImageContext
from chatexporter.models import ContentPart, Conversation, Message
from chatexporter.utils.mime import guess_mime_type


@dataclass(frozen=True)
class MessageImage:
    """One image reference found in a message, before context is attached."""

    locator: str
    origin: ContentOrigin


def iter_message_images(message: Message) -> Iterator[MessageImage]:
    """Yield the images of one message in their fixed discovery order.

    - ``execution_output``: aggregated-result entries tagged ``image``
    - ``multimodal_text``: parts tagged ``image_asset_pointer``

    Images without a locator are still yielded (with an empty locator) so
    they keep their slot; fetching them fails and they render as the
    failure marker.
    """
    content = message.content
    if content is None:
        return

    if content.content_type == "execution_output":
        aggregate = message.metadata.aggregate_result
        for entry in (aggregate.messages if aggregate else None) or []:
            if entry.message_type == "image":
                yield MessageImage(entry.image_url or "", CONTENT_ORIGIN_IMAGE_URL)

    elif content.content_type == "multimodal_text":
        for part in content.parts or []:
            if isinstance(part, ContentPart) and part.content_type == "image_asset_pointer":
                yield MessageImage(part.asset_pointer or "", CONTENT_ORIGIN_MULTIMODAL)


def count_images_in_message(message: Message | None) -> int:
    if message is None or message.content is None:
        return 0
    return sum(1 for _ in iter_message_images(message))


def extract_images_from_conversation(
    conversation: Conversation,
) -> list[tuple[str, ImageContext]]:
    """Extract every image reference of a conversation in global order.

    Args:
        conversation: Normalized conversation

    Returns:
        List of ``(locator, context)``; list position is the global index.
    """
    results: list[tuple[str, ImageContext]] = []

    for node_index, node in enumerate(conversation.nodes):
        message = node.message
        if message is None or message.content is None:
            continue

        message_id = message.id or node.id or f"node-{node_index}"
        author = ImageAuthor(role=message.author.role, name=message.author.name)
        for image_index, image in enumerate(iter_message_images(message)):
            context = ImageContext(
                conversation_id=conversation.id,
                message_id=message_id,
                image_index=image_index,
                global_index=len(results),
                mime_type=guess_mime_type(image.locator),
                original_url=image.locator,
                content_type=image.origin,
                author=author,
                timestamp=message.create_time,
            )
            results.append((image.locator, context))

    return results
