"""Image materialization strategies.

Exactly three strategies exist and the set is closed:

- EmbedBase64Strategy: fetch the image and inline it as a data URI
- TextMarkerStrategy: replace the image with configurable marker text
- SeparateFilesStrategy: fetch the image and emit it as a sibling file,
  linking to it by relative path

Every strategy turns one ``(locator, ImageContext)`` into exactly one
ProcessedImage. Fetch or decode failures never escape: the image degrades
to the failure marker and keeps its slot in the ordering.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar

from loguru import logger

from chatexporter.config import ImageConfig
from chatexporter.constants import DEFAULT_CUSTOM_MARKER_TEXT, IMAGE_FAILED_MARKER
from chatexporter.errors import UnknownStrategyError
from chatexporter.images.fetch import FetchedImage, ImageFetcher
from chatexporter.images.types import (
    ImageContext,
    ImageMetadata,
    ImageStrategy,
    MessageContext,
    ProcessedImage,
)
from chatexporter.images.utils import (
    create_image_relative_path,
    encode_base64,
    generate_image_file_name,
    generate_image_id,
    to_data_uri,
)
from chatexporter.utils.mime import get_extension_from_mime, guess_mime_type


def _message_context(context: ImageContext) -> MessageContext | None:
    if context.author is None:
        return None
    return MessageContext(
        message_id=context.message_id,
        author=context.author.name or context.author.role,
        role=context.author.role,
        timestamp=context.timestamp,
    )


class ImageProcessor(ABC):
    """Base class for image processing strategies."""

    strategy: ClassVar[ImageStrategy]

    def __init__(
        self,
        config: ImageConfig | None = None,
        fetcher: ImageFetcher | None = None,
    ) -> None:
        self.config = config or ImageConfig()
        self._fetcher = fetcher

    @property
    def fetcher(self) -> ImageFetcher:
        if self._fetcher is None:
            self._fetcher = ImageFetcher()
        return self._fetcher

    def get_strategy_name(self) -> ImageStrategy:
        return self.strategy

    @abstractmethod
    async def process_image(self, locator: str, context: ImageContext) -> ProcessedImage:
        """Turn one image reference into a ProcessedImage."""

    def _metadata(
        self,
        locator: str,
        context: ImageContext,
        fetched: FetchedImage | None = None,
    ) -> ImageMetadata:
        return ImageMetadata(
            original_url=locator,
            mime_type=fetched.mime_type if fetched else guess_mime_type(locator),
            width=fetched.width if fetched else None,
            height=fetched.height if fetched else None,
            file_size=len(fetched.data) if fetched else None,
            timestamp=context.timestamp,
            message_context=_message_context(context),
        )

    def failed_image(self, locator: str, context: ImageContext, error: Exception) -> ProcessedImage:
        """Log the failure and return the uniform failure slot for this image."""
        logger.warning(f"Failed to process image {locator[:80]}: {error}")
        return ProcessedImage(
            id=generate_image_id(context),
            content=IMAGE_FAILED_MARKER,
            metadata=self._metadata(locator, context),
            failed=True,
        )


class EmbedBase64Strategy(ImageProcessor):
    """Strategy 1: embed images as base64 data URIs."""

    strategy = ImageStrategy.EMBED_BASE64

    async def process_image(self, locator: str, context: ImageContext) -> ProcessedImage:
        try:
            fetched = await self.fetcher.fetch(locator)
        except Exception as e:
            return self.failed_image(locator, context, e)

        payload = encode_base64(fetched.data)
        return ProcessedImage(
            id=generate_image_id(context),
            content=to_data_uri(fetched.mime_type, payload),
            original_data=payload,
            metadata=self._metadata(locator, context, fetched),
        )


class TextMarkerStrategy(ImageProcessor):
    """Strategy 2: replace images with text markers (no network access)."""

    strategy = ImageStrategy.TEXT_MARKER

    def __init__(
        self,
        config: ImageConfig | None = None,
        fetcher: ImageFetcher | None = None,
    ) -> None:
        super().__init__(config, fetcher)
        self.marker_text = self.config.custom_marker or DEFAULT_CUSTOM_MARKER_TEXT

    async def process_image(self, locator: str, context: ImageContext) -> ProcessedImage:
        return ProcessedImage(
            id=generate_image_id(context),
            content=self.marker_text,
            metadata=self._metadata(locator, context),
        )


class SeparateFilesStrategy(ImageProcessor):
    """Strategy 3: separate images into files referenced by relative path."""

    strategy = ImageStrategy.SEPARATE_FILES

    async def process_image(self, locator: str, context: ImageContext) -> ProcessedImage:
        try:
            fetched = await self.fetcher.fetch(locator)
        except Exception as e:
            return self.failed_image(locator, context, e)

        extension = get_extension_from_mime(fetched.mime_type)
        file_name = generate_image_file_name(context, extension)
        return ProcessedImage(
            id=generate_image_id(context),
            content=create_image_relative_path(file_name),
            original_data=encode_base64(fetched.data),
            metadata=self._metadata(locator, context, fetched),
            file_name=file_name,
        )


_STRATEGY_CLASSES: dict[ImageStrategy, type[ImageProcessor]] = {
    ImageStrategy.EMBED_BASE64: EmbedBase64Strategy,
    ImageStrategy.TEXT_MARKER: TextMarkerStrategy,
    ImageStrategy.SEPARATE_FILES: SeparateFilesStrategy,
}


def parse_strategy(strategy: ImageStrategy | str) -> ImageStrategy:
    """Coerce a strategy name into the closed ImageStrategy set.

    Raises:
        UnknownStrategyError: If the name is not one of the three strategies.
    """
    try:
        return ImageStrategy(strategy)
    except ValueError as e:
        raise UnknownStrategyError(str(strategy)) from e


def create_image_processor(
    strategy: ImageStrategy | str,
    config: ImageConfig | None = None,
    fetcher: ImageFetcher | None = None,
) -> ImageProcessor:
    """Factory function to create image processors.

    Raises:
        UnknownStrategyError: If the strategy name is unknown.
    """
    return _STRATEGY_CLASSES[parse_strategy(strategy)](config, fetcher)


def get_available_strategies() -> list[ImageStrategy]:
    return list(ImageStrategy)
