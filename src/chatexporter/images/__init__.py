"""Image extraction, materialization strategies and coordination."""

from chatexporter.images.coordinator import ImageCoordinator
from chatexporter.images.extractor import (
    count_images_in_message,
    extract_images_from_conversation,
    iter_message_images,
)
from chatexporter.images.fetch import FetchedImage, ImageFetcher
from chatexporter.images.strategies import (
    EmbedBase64Strategy,
    ImageProcessor,
    SeparateFilesStrategy,
    TextMarkerStrategy,
    create_image_processor,
)
from chatexporter.images.types import (
    ExportFile,
    ExportMetadata,
    ImageContext,
    ImageProcessingResult,
    ImageStrategy,
    ProcessedImage,
)

__all__ = [
    "EmbedBase64Strategy",
    "ExportFile",
    "ExportMetadata",
    "FetchedImage",
    "ImageContext",
    "ImageCoordinator",
    "ImageFetcher",
    "ImageProcessingResult",
    "ImageProcessor",
    "ImageStrategy",
    "ProcessedImage",
    "SeparateFilesStrategy",
    "TextMarkerStrategy",
    "count_images_in_message",
    "create_image_processor",
    "extract_images_from_conversation",
    "iter_message_images",
]
