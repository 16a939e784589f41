"""Value objects shared by image extraction, strategy processing and rendering."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from chatexporter.constants import (
    EXPORT_METADATA_VERSION,
    STRATEGY_EMBED_BASE64,
    STRATEGY_SEPARATE_FILES,
    STRATEGY_TEXT_MARKER,
)

ExportFormat = Literal["markdown", "html", "json"]
ContentOrigin = Literal["image_url", "multimodal_text", "image_asset_pointer"]


class ImageStrategy(str, Enum):
    """Closed set of image materialization strategies."""

    EMBED_BASE64 = STRATEGY_EMBED_BASE64
    TEXT_MARKER = STRATEGY_TEXT_MARKER
    SEPARATE_FILES = STRATEGY_SEPARATE_FILES


@dataclass(frozen=True)
class ImageAuthor:
    role: str
    name: str | None = None


@dataclass(frozen=True)
class ImageContext:
    """One image occurrence inside a conversation.

    Attributes:
        conversation_id: Owning conversation id
        message_id: Owning message id (``node-<n>`` when the message has none)
        image_index: Position of the image within its own message (0-based)
        global_index: Position of the image in the conversation-wide
            extraction order; the canonical index used for slicing
        mime_type: Inferred or placeholder MIME type
        original_url: URL, data URI or opaque asset pointer
        content_type: Content origin tag
        author: Author of the owning message
        timestamp: Creation time of the owning message (unix seconds)
    """

    conversation_id: str
    message_id: str
    image_index: int
    global_index: int
    mime_type: str
    original_url: str
    content_type: ContentOrigin
    author: ImageAuthor | None = None
    timestamp: float | None = None


@dataclass(frozen=True)
class MessageContext:
    message_id: str
    author: str
    role: str
    timestamp: float | None = None


@dataclass
class ImageMetadata:
    original_url: str
    mime_type: str
    width: int | None = None
    height: int | None = None
    file_size: int | None = None
    timestamp: float | None = None
    message_context: MessageContext | None = None


@dataclass
class ProcessedImage:
    """Result of running one ImageContext through the active strategy.

    ``content`` is strategy dependent: a data URI (embed), the marker text
    (text marker) or a relative path (separate files). Failed images carry
    the failure marker in ``content`` and ``failed=True``.
    """

    id: str
    content: str
    original_data: str | None = None  # base64 payload, strategy dependent
    metadata: ImageMetadata | None = None
    file_name: str | None = None
    failed: bool = False


@dataclass(frozen=True)
class ExportFile:
    """A sibling file to be written next to the exported document."""

    path: str  # Relative path inside the archive
    data: bytes
    mime_type: str


@dataclass
class ImageProcessingResult:
    processed_images: list[ProcessedImage]
    files: list[ExportFile] | None = None
    metadata: ExportMetadata | None = None


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ManifestMessageContext(_CamelModel):
    message_id: str = ""
    author: str = "unknown"
    role: str = "unknown"
    timestamp: float | None = None


class ManifestImage(_CamelModel):
    id: str
    original_url: str
    file_name: str
    mime_type: str
    size: int = 0
    width: int | None = None
    height: int | None = None
    message_context: ManifestMessageContext = Field(default_factory=ManifestMessageContext)


class ManifestSettings(_CamelModel):
    image_quality: int | None = None
    max_image_size: int | None = None
    include_image_metadata: bool | None = None
    custom_marker_text: str | None = None


class ExportMetadata(_CamelModel):
    """Manifest emitted alongside a multi-file export."""

    version: str = EXPORT_METADATA_VERSION
    export_date: str
    conversation_title: str = ""
    image_handling_strategy: ImageStrategy
    total_images: int
    images: list[ManifestImage] = Field(default_factory=list)
    settings: ManifestSettings = Field(default_factory=ManifestSettings)

    def to_json(self, indent: int = 2) -> str:
        """Serialize with the camelCase keys used by the manifest file."""
        return self.model_dump_json(by_alias=True, indent=indent)
