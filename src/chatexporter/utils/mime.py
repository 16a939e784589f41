"""MIME type utilities for image handling.

This module provides helper functions for MIME type operations,
using the centralized mappings defined in constants.py.
"""

from __future__ import annotations

import io
from urllib.parse import urlparse

from PIL import Image, UnidentifiedImageError

from chatexporter.constants import (
    DEFAULT_IMAGE_MIME_TYPE,
    EXTENSION_TO_MIME,
    MIME_TO_EXTENSION,
    PIL_FORMAT_TO_MIME,
)


def get_mime_type(extension: str, default: str = DEFAULT_IMAGE_MIME_TYPE) -> str:
    """Get MIME type from file extension.

    Args:
        extension: File extension (with or without leading dot), e.g. ".jpg" or "jpg"
        default: Default MIME type if extension is not recognized

    Examples:
        >>> get_mime_type(".jpg")
        'image/jpeg'
        >>> get_mime_type("unknown")
        'image/png'
    """
    ext = extension.lower()
    if not ext.startswith("."):
        ext = f".{ext}"
    return EXTENSION_TO_MIME.get(ext, default)


def get_extension_from_mime(mime_type: str, default: str = ".png") -> str:
    """Get file extension from MIME type.

    Handles content-type values with parameters ("image/jpeg; charset=...").

    Examples:
        >>> get_extension_from_mime("image/jpeg")
        '.jpg'
        >>> get_extension_from_mime("image/unknown")
        '.png'
    """
    clean_mime = mime_type.lower().split(";")[0].strip()
    return MIME_TO_EXTENSION.get(clean_mime, default)


def guess_mime_type(locator: str) -> str:
    """Guess the MIME type of an image from its locator.

    Data URIs carry their own type; URLs and paths are judged by extension
    (query strings ignored). Opaque pointers fall back to PNG.

    Examples:
        >>> guess_mime_type("data:image/webp;base64,AAAA")
        'image/webp'
        >>> guess_mime_type("https://example.com/a/photo.JPG?x=1")
        'image/jpeg'
        >>> guess_mime_type("file-service://file-abc")
        'image/png'
    """
    if locator.startswith("data:"):
        header = locator[5:].split(",", 1)[0]
        mime = header.split(";", 1)[0].strip().lower()
        return mime or DEFAULT_IMAGE_MIME_TYPE

    path = urlparse(locator).path.lower()
    if "." in path.rsplit("/", 1)[-1]:
        return get_mime_type(path.rsplit(".", 1)[-1])
    return DEFAULT_IMAGE_MIME_TYPE


def sniff_image(data: bytes) -> tuple[str | None, int | None, int | None]:
    """Identify an image payload with Pillow.

    Args:
        data: Raw image bytes

    Returns:
        Tuple of (mime_type, width, height); all None when Pillow cannot
        identify the payload (e.g. SVG or corrupt data).
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            mime = PIL_FORMAT_TO_MIME.get(img.format or "")
            width, height = img.size
            return mime, width, height
    except (UnidentifiedImageError, OSError, ValueError):
        return None, None, None
