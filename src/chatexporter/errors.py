"""Exception hierarchy for chatexporter.

Error Hierarchy:
    ChatExporterError (base)
    ├── ExportPreconditionError (nothing to export, user-facing refusal)
    ├── ImageFetchError (single image could not be acquired)
    ├── ConfigurationError (invalid settings)
    └── UnknownStrategyError (also a ValueError)

Per-image failures are recovered inside the image strategies and never reach
callers; only ExportPreconditionError and configuration errors are expected
to surface from an export call.
"""

from __future__ import annotations


class ChatExporterError(Exception):
    """Base exception class for chatexporter."""

    pass


class ExportPreconditionError(ChatExporterError):
    """Raised when an export is requested before any content exists."""

    def __init__(self, message: str = "Please start a conversation first") -> None:
        super().__init__(message)


class ImageFetchError(ChatExporterError):
    """Raised when an image payload cannot be acquired or decoded."""

    def __init__(self, locator: str, reason: str) -> None:
        self.locator = locator
        self.reason = reason
        super().__init__(f"Failed to fetch image {locator[:80]}: {reason}")


class ConfigurationError(ChatExporterError):
    """Configuration error."""

    pass


class UnknownStrategyError(ChatExporterError, ValueError):
    """Raised when an image strategy name is outside the supported set."""

    def __init__(self, strategy: str) -> None:
        self.strategy = strategy
        super().__init__(f"Unknown image handling strategy: {strategy}")
