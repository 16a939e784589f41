"""Conversation export orchestration.

Data flow for one conversation:

    extract images -> coordinator (strategy) -> render (markdown/html/json)
    -> optional bundle (document + images/ + metadata.json)
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from contextlib import AsyncExitStack
from dataclasses import dataclass, field

from loguru import logger

from chatexporter.config import ChatExporterConfig
from chatexporter.constants import FORMAT_EXTENSIONS, FORMAT_MIME_TYPES
from chatexporter.errors import ConfigurationError, ExportPreconditionError
from chatexporter.exporter.html import conversation_to_html
from chatexporter.exporter.json import conversation_to_json
from chatexporter.exporter.markdown import conversation_to_markdown
from chatexporter.exporter.packager import (
    BatchArchive,
    FileNameRegistry,
    create_export_zip,
    generate_zip_file_name,
    get_file_name_with_format,
)
from chatexporter.images.coordinator import ImageCoordinator
from chatexporter.images.extractor import extract_images_from_conversation
from chatexporter.images.fetch import ImageFetcher
from chatexporter.images.strategies import parse_strategy
from chatexporter.images.types import (
    ExportFile,
    ExportFormat,
    ExportMetadata,
    ImageStrategy,
    ManifestSettings,
    ProcessedImage,
)
from chatexporter.models import Conversation

ProgressCallback = Callable[[int, int, Conversation], None]


@dataclass
class ExportResult:
    """Rendered document for one conversation plus optional sibling files."""

    conversation: Conversation
    format: ExportFormat
    strategy: ImageStrategy
    file_name: str
    document: str
    files: list[ExportFile] = field(default_factory=list)
    metadata: ExportMetadata | None = None

    @property
    def mime_type(self) -> str:
        return FORMAT_MIME_TYPES[self.format]

    @property
    def has_files(self) -> bool:
        return bool(self.files)

    @property
    def archive_name(self) -> str:
        return generate_zip_file_name(self.conversation.title, self.strategy.value)

    def to_archive(self) -> bytes:
        return create_export_zip(self.file_name, self.document, self.files, self.metadata)


@dataclass
class BatchExportResult:
    archive_name: str
    archive: bytes
    file_names: list[str] = field(default_factory=list)
    failures: list[tuple[str, str]] = field(default_factory=list)  # (conversation id, error)

    @property
    def exported(self) -> int:
        return len(self.file_names)


def _render(
    conversation: Conversation,
    fmt: ExportFormat,
    processed_images: Sequence[ProcessedImage],
    strategy: ImageStrategy,
    config: ChatExporterConfig,
) -> str:
    if fmt == "html":
        return conversation_to_html(conversation, processed_images, strategy, config)
    if fmt == "json":
        return conversation_to_json(conversation, processed_images, config)
    return conversation_to_markdown(conversation, processed_images, strategy, config)


async def export_conversation(
    conversation: Conversation,
    fmt: ExportFormat = "markdown",
    config: ChatExporterConfig | None = None,
    fetcher: ImageFetcher | None = None,
    strategy: ImageStrategy | str | None = None,
) -> ExportResult:
    """Export one conversation.

    Args:
        conversation: Normalized conversation
        fmt: Target format ("markdown", "html" or "json")
        config: Export settings; defaults when omitted
        fetcher: Shared image fetcher; a private one is created and closed
            when omitted
        strategy: Image strategy overriding ``config.image.strategy``

    Returns:
        ExportResult with the document and, for the separate-files
        strategy, the image files and manifest.

    Raises:
        ConfigurationError: If the format is not supported.
        ExportPreconditionError: If the conversation has no content yet.
        UnknownStrategyError: If the strategy name is unknown.
    """
    if fmt not in FORMAT_EXTENSIONS:
        raise ConfigurationError(f"Unsupported export format: {fmt}")
    if not conversation.has_content:
        raise ExportPreconditionError()

    config = config or ChatExporterConfig()
    active_strategy = parse_strategy(strategy or config.image.strategy)

    async with AsyncExitStack() as stack:
        if fetcher is None:
            fetcher = await stack.enter_async_context(
                ImageFetcher(config.fetch, base_url=config.export.base_url)
            )

        images = extract_images_from_conversation(conversation)
        coordinator = ImageCoordinator(
            active_strategy, config.image, fetcher, config.fetch.concurrency
        )
        image_result = await coordinator.process_conversation_images(images, fmt)

    document = _render(
        conversation, fmt, image_result.processed_images, active_strategy, config
    )

    metadata = image_result.metadata
    if metadata is not None:
        metadata.conversation_title = conversation.title
        metadata.settings = ManifestSettings(
            image_quality=config.image.quality,
            max_image_size=config.image.max_size,
            include_image_metadata=config.image.include_metadata,
            custom_marker_text=config.image.custom_marker,
        )

    file_name = get_file_name_with_format(
        config.export.filename_format,
        FORMAT_EXTENSIONS[fmt],
        title=conversation.title,
        chat_id=conversation.id,
        create_time=conversation.create_time,
        update_time=conversation.update_time,
    )
    logger.debug(
        f"Exported {conversation.id} as {fmt}: {len(images)} images, "
        f"{len(image_result.files or [])} files"
    )
    return ExportResult(
        conversation=conversation,
        format=fmt,
        strategy=active_strategy,
        file_name=file_name,
        document=document,
        files=image_result.files or [],
        metadata=metadata,
    )


async def export_all(
    conversations: Sequence[Conversation],
    fmt: ExportFormat = "markdown",
    config: ChatExporterConfig | None = None,
    fetcher: ImageFetcher | None = None,
    strategy: ImageStrategy | str | None = None,
    on_progress: ProgressCallback | None = None,
) -> BatchExportResult:
    """Export many conversations into one archive.

    Conversations are processed sequentially, in the given order. A
    failing conversation is logged and recorded in ``failures``; it never
    stops the rest of the batch.
    """
    config = config or ChatExporterConfig()
    strategy = parse_strategy(strategy or config.image.strategy)
    registry = FileNameRegistry()
    archive = BatchArchive()
    result = BatchExportResult(archive_name=f"chatgpt-export-{fmt}.zip", archive=b"")
    total = len(conversations)

    async with AsyncExitStack() as stack:
        if fetcher is None:
            fetcher = await stack.enter_async_context(
                ImageFetcher(config.fetch, base_url=config.export.base_url)
            )

        for index, conversation in enumerate(conversations, start=1):
            try:
                exported = await export_conversation(
                    conversation, fmt, config, fetcher, strategy
                )
            except Exception as e:
                logger.error(f"Failed to export conversation {conversation.id}: {e}")
                result.failures.append((conversation.id, str(e)))
            else:
                file_name = registry.register(exported.file_name)
                if exported.has_files:
                    archive.add_bundle(
                        file_name, exported.document, exported.files, exported.metadata
                    )
                else:
                    archive.add_document(file_name, exported.document)
                result.file_names.append(file_name)

            if on_progress is not None:
                on_progress(index, total, conversation)

    result.archive = archive.close()
    logger.info(
        f"Batch export finished: {result.exported} exported, {len(result.failures)} failed"
    )
    return result
