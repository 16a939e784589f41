"""Helpers for image ids, file names and base64 payloads."""

from __future__ import annotations

import base64
import binascii
import hashlib
import re

from chatexporter.constants import IMAGES_DIR_NAME
from chatexporter.images.types import ImageContext

_INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*]')
_WHITESPACE = re.compile(r"\s+")


def generate_image_id(context: ImageContext) -> str:
    """Generate a stable id for one image occurrence.

    The id is derived from conversation id, message id, per-message image
    index and the message timestamp, so the same context always yields the
    same id regardless of strategy. It is used for traceability only.
    """
    timestamp = "" if context.timestamp is None else f"{context.timestamp:.3f}"
    key = f"{context.conversation_id}-{context.message_id}-{context.image_index}-{timestamp}"
    return hashlib.sha256(key.encode("utf-8")).hexdigest()[:16]


def _role_prefix(context: ImageContext) -> str:
    author = context.author
    if author is None:
        return "image"
    if author.role == "assistant":
        return "chatgpt-response"
    if author.role == "user":
        return "user-upload"
    if author.role == "tool":
        return f"tool-{author.name.lower()}" if author.name else "tool"
    return author.role


def sanitize_file_name(file_name: str) -> str:
    """Sanitize an image file name for cross-platform archives.

    Path-unsafe characters become underscores, whitespace runs become a
    single hyphen and the result is lower-cased.

    Examples:
        >>> sanitize_file_name("Tool-My Plugin/v2-000.PNG")
        'tool-my-plugin_v2-000.png'
    """
    name = _INVALID_FILENAME_CHARS.sub("_", file_name)
    name = _WHITESPACE.sub("-", name)
    return name.lower()


def generate_image_file_name(context: ImageContext, extension: str = "png") -> str:
    """Generate the deterministic file name for an extracted image.

    Format: ``<role-prefix>-<3-digit-index>.<ext>`` where the index is the
    conversation-wide position so names never collide inside one archive.

    Examples:
        assistant image #4 -> ``chatgpt-response-004.png``
        tool "DALL-E" image #0 -> ``tool-dall-e-000.webp``
    """
    extension = extension.lstrip(".")
    return sanitize_file_name(f"{_role_prefix(context)}-{context.global_index:03d}.{extension}")


def create_image_relative_path(file_name: str) -> str:
    """Relative path used both as link target and archive member name."""
    return f"{IMAGES_DIR_NAME}/{file_name}"


def encode_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def decode_base64(payload: str) -> bytes:
    """Decode a bare base64 payload or a full data URI.

    Raises:
        ValueError: If the payload is not valid base64.
    """
    if payload.startswith("data:"):
        payload = payload.split(",", 1)[1] if "," in payload else ""
    try:
        return base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 payload: {e}") from e


def to_data_uri(mime_type: str, payload: str) -> str:
    return f"data:{mime_type};base64,{payload}"

