"""Run extracted images through the active strategy."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from loguru import logger

from chatexporter.config import ImageConfig
from chatexporter.constants import DEFAULT_FETCH_CONCURRENCY
from chatexporter.images.fetch import ImageFetcher
from chatexporter.images.strategies import ImageProcessor, create_image_processor
from chatexporter.images.types import (
    ExportFile,
    ExportFormat,
    ExportMetadata,
    ImageContext,
    ImageProcessingResult,
    ImageStrategy,
    ManifestImage,
    ManifestMessageContext,
    ProcessedImage,
)
from chatexporter.images.utils import create_image_relative_path, decode_base64


class ImageCoordinator:
    """Owns one strategy and fans a conversation's images out to it.

    The strategy is fixed at construction; two coordinators with different
    strategies can run side by side without sharing state.

    Usage:
        coordinator = ImageCoordinator(ImageStrategy.SEPARATE_FILES, image_config, fetcher)
        result = await coordinator.process_conversation_images(images, "markdown")
    """

    def __init__(
        self,
        strategy: ImageStrategy | str,
        config: ImageConfig | None = None,
        fetcher: ImageFetcher | None = None,
        concurrency: int = DEFAULT_FETCH_CONCURRENCY,
    ) -> None:
        self.config = config or ImageConfig()
        self.processor: ImageProcessor = create_image_processor(strategy, self.config, fetcher)
        self.concurrency = max(1, concurrency)

    @property
    def strategy(self) -> ImageStrategy:
        return self.processor.get_strategy_name()

    async def process_conversation_images(
        self,
        images: list[tuple[str, ImageContext]],
        target_format: ExportFormat = "markdown",
    ) -> ImageProcessingResult:
        """Process every image and return results in extraction order.

        ``target_format`` does not change processing; it is logged for
        downstream callers only.

        Args:
            images: Output of ``extract_images_from_conversation``
            target_format: Renderer that will consume the result

        Returns:
            ImageProcessingResult whose ``processed_images`` has the same
            length and order as ``images``. ``files`` and ``metadata`` are
            set only for the separate-files strategy when at least one image
            produced a file.
        """
        logger.debug(
            f"Processing {len(images)} images with {self.strategy.value} for {target_format}"
        )
        if not images:
            return ImageProcessingResult(processed_images=[])

        semaphore = asyncio.Semaphore(self.concurrency)

        async def process_one(locator: str, context: ImageContext) -> ProcessedImage:
            async with semaphore:
                try:
                    return await self.processor.process_image(locator, context)
                except Exception as e:
                    # Strategies handle their own failures; this keeps the slot
                    return self.processor.failed_image(locator, context, e)

        tasks = [process_one(locator, context) for locator, context in images]
        processed = list(await asyncio.gather(*tasks))

        failed = sum(1 for image in processed if image.failed)
        if failed:
            logger.warning(f"{failed}/{len(processed)} images failed to process")

        result = ImageProcessingResult(processed_images=processed)
        if self.strategy is ImageStrategy.SEPARATE_FILES:
            files = self._collect_files(processed)
            if files:
                result.files = files
                result.metadata = self._build_metadata(processed, files)
        return result

    @staticmethod
    def _collect_files(processed: list[ProcessedImage]) -> list[ExportFile]:
        files: list[ExportFile] = []
        for image in processed:
            if image.failed or not image.original_data or not image.file_name:
                continue
            files.append(
                ExportFile(
                    path=create_image_relative_path(image.file_name),
                    data=decode_base64(image.original_data),
                    mime_type=image.metadata.mime_type if image.metadata else "image/png",
                )
            )
        return files

    def _build_metadata(
        self,
        processed: list[ProcessedImage],
        files: list[ExportFile],
    ) -> ExportMetadata:
        """Build the manifest; title and settings are filled in by the caller."""
        sizes = {file.path: len(file.data) for file in files}
        entries: list[ManifestImage] = []
        for image in processed:
            if image.failed or not image.file_name:
                continue
            metadata = image.metadata
            context = metadata.message_context if metadata else None
            entries.append(
                ManifestImage(
                    id=image.id,
                    original_url=metadata.original_url if metadata else "",
                    file_name=image.file_name,
                    mime_type=metadata.mime_type if metadata else "image/png",
                    size=sizes.get(create_image_relative_path(image.file_name), 0),
                    width=metadata.width if metadata else None,
                    height=metadata.height if metadata else None,
                    message_context=ManifestMessageContext(
                        message_id=context.message_id,
                        author=context.author,
                        role=context.role,
                        timestamp=context.timestamp,
                    )
                    if context
                    else ManifestMessageContext(),
                )
            )

        return ExportMetadata(
            export_date=datetime.now(timezone.utc).isoformat(),
            image_handling_strategy=self.strategy,
            total_images=len(processed),
            images=entries,
        )
