"""chatexporter utilities."""

from chatexporter.utils.mime import (
    get_extension_from_mime,
    get_mime_type,
    guess_mime_type,
    sniff_image,
)
from chatexporter.utils.output import (
    resolve_output_path,
    sanitize_filename,
)

__all__ = [
    # MIME
    "get_extension_from_mime",
    "get_mime_type",
    "guess_mime_type",
    "sniff_image",
    # Output
    "resolve_output_path",
    "sanitize_filename",
]
