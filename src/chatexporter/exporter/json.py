"""JSON document assembly."""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import asdict
from typing import Any

from chatexporter.config import ChatExporterConfig
from chatexporter.constants import DEFAULT_JSON_INDENT
from chatexporter.exporter.common import (
    conversation_source,
    iter_rendered_messages,
    transform_author,
    unix_to_iso,
)
from chatexporter.images.extractor import count_images_in_message
from chatexporter.images.types import ProcessedImage
from chatexporter.models import Conversation, Message


def _message_text(message: Message) -> str:
    content = message.content
    if content is None:
        return ""
    if content.parts:
        return "\n".join(part for part in content.parts if isinstance(part, str))
    return content.text or content.title or ""


def _image_record(image: ProcessedImage) -> dict[str, Any]:
    return {
        "id": image.id,
        "content": image.content,
        "file_name": image.file_name,
        "failed": image.failed,
        "metadata": asdict(image.metadata) if image.metadata else None,
    }


def conversation_to_dict(
    conversation: Conversation,
    processed_images: Sequence[ProcessedImage] = (),
    config: ChatExporterConfig | None = None,
) -> dict[str, Any]:
    """Build the JSON export structure: conversation fields plus rendered messages."""
    config = config or ChatExporterConfig()

    messages: list[dict[str, Any]] = []
    for message, image_start in iter_rendered_messages(conversation):
        count = count_images_in_message(message)
        images = processed_images[image_start : image_start + count]
        messages.append(
            {
                "id": message.id,
                "author": transform_author(message.author),
                "role": message.author.role,
                "content_type": message.content.content_type if message.content else "",
                "create_time": unix_to_iso(message.create_time) or None,
                "text": _message_text(message),
                "images": [_image_record(image) for image in images],
            }
        )

    return {
        "id": conversation.id,
        "title": conversation.title,
        "model": conversation.model,
        "model_slug": conversation.model_slug,
        "create_time": unix_to_iso(conversation.create_time) or None,
        "update_time": unix_to_iso(conversation.update_time) or None,
        "source": conversation_source(conversation, config.export.base_url),
        "messages": messages,
    }


def conversation_to_json(
    conversation: Conversation,
    processed_images: Sequence[ProcessedImage] = (),
    config: ChatExporterConfig | None = None,
    indent: int = DEFAULT_JSON_INDENT,
) -> str:
    data = conversation_to_dict(conversation, processed_images, config)
    return json.dumps(data, indent=indent, ensure_ascii=False)
