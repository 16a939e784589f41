"""Centralized constants for chatexporter.

This module contains the hardcoded defaults used throughout the codebase.
Grouping them here makes it easier to:
- Find and modify default values
- Keep marker texts consistent between strategies and renderers
- Maintain consistency across modules
"""

from __future__ import annotations

# =============================================================================
# Image Handling
# =============================================================================

STRATEGY_EMBED_BASE64 = "embed_base64"
STRATEGY_TEXT_MARKER = "text_marker"
STRATEGY_SEPARATE_FILES = "separate_files"

DEFAULT_IMAGE_STRATEGY = STRATEGY_EMBED_BASE64
DEFAULT_CUSTOM_MARKER_TEXT = "[Image Omitted]"
IMAGE_FAILED_MARKER = "[Image Processing Failed]"
DEFAULT_IMAGE_QUALITY = 85
DEFAULT_MAX_IMAGE_SIZE = 2048
DEFAULT_INCLUDE_IMAGE_METADATA = True

DEFAULT_IMAGE_MIME_TYPE = "image/png"
IMAGES_DIR_NAME = "images"
METADATA_FILENAME = "metadata.json"
EXPORT_METADATA_VERSION = "1.0.0"

# Content origin tags carried by ImageContext
CONTENT_ORIGIN_IMAGE_URL = "image_url"
CONTENT_ORIGIN_MULTIMODAL = "multimodal_text"

# =============================================================================
# MIME Mappings
# =============================================================================

EXTENSION_TO_MIME: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
    ".bmp": "image/bmp",
}

MIME_TO_EXTENSION: dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/svg+xml": ".svg",
    "image/bmp": ".bmp",
}

# Pillow format name -> MIME type, used when the payload is sniffed
PIL_FORMAT_TO_MIME: dict[str, str] = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "GIF": "image/gif",
    "WEBP": "image/webp",
    "BMP": "image/bmp",
}

# =============================================================================
# Fetching
# =============================================================================

DEFAULT_FETCH_TIMEOUT = 30  # seconds
DEFAULT_FETCH_CONCURRENCY = 8
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; chatexporter/0.3.0)"

# =============================================================================
# Export
# =============================================================================

DEFAULT_FILENAME_FORMAT = "ChatGPT-{title}"
DEFAULT_BASE_URL = "https://chatgpt.com"
DEFAULT_OUTPUT_DIR = "./output"
DEFAULT_ON_CONFLICT = "rename"
DEFAULT_HTML_LANG = "en"
DEFAULT_HTML_THEME = "light"
PRIMARY_RECIPIENT = "all"

FORMAT_EXTENSIONS: dict[str, str] = {
    "markdown": "md",
    "html": "html",
    "json": "json",
}

FORMAT_MIME_TYPES: dict[str, str] = {
    "markdown": "text/markdown",
    "html": "text/html",
    "json": "application/json",
}

UNSUPPORTED_CONTENT_MARKER = "[Unsupported Content: {content_type}]"
UNSUPPORTED_MULTIMODAL_MARKER = "[Unsupported multimodal content]"
MISSING_IMAGE_PLACEHOLDER = "[IMAGE_{index}]"

# Sentinel wrapping character used to shield math spans from reformatting
MATH_SENTINEL_CHAR = "╬"

# =============================================================================
# Logging
# =============================================================================

DEFAULT_LOG_LEVEL = "DEBUG"
DEFAULT_LOG_DIR = "~/.chatexporter/logs"
DEFAULT_LOG_ROTATION = "10 MB"
DEFAULT_LOG_RETENTION = "7 days"

# =============================================================================
# Paths and Filenames
# =============================================================================

CONFIG_FILENAME = "chatexporter.json"
DEFAULT_JSON_INDENT = 2
