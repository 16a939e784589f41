"""Logging configuration for the chatexporter CLI.

Key features:
- Unified loguru-based logging with consistent formatting
- Intercepts third-party library logs (httpx, markdown-it, PIL, ...)
- Clean console output with level-based formatting
"""

from __future__ import annotations

import logging
import os
import sys
import warnings
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from click import Context
from loguru import logger

from chatexporter import __version__

if TYPE_CHECKING:
    from rich.console import Console


def _get_console() -> Console:
    """Lazy import to avoid circular dependency."""
    from chatexporter.cli.console import get_console

    return get_console()


# Third-party loggers to intercept and route to loguru
INTERCEPTED_LOGGERS = [
    # HTTP clients
    "httpx",
    "httpcore",
    # Markdown parsing / formatting
    "markdown_it",
    "mdformat",
    # Image sniffing
    "PIL",
    "PIL.Image",
    # Async
    "asyncio",
]

# Warning messages to suppress (regex patterns)
SUPPRESSED_WARNINGS = [
    r"Async methods should be used with an async client",
    r"coroutine .* was never awaited",
]

# Console INFO messages shown without --verbose
MILESTONE_KEYWORDS = ["Written", "Saved", "Exported", "finished", "Skipped"]


class InterceptHandler(logging.Handler):
    """Intercept standard logging and forward to loguru.

    Uses the record's built-in location info instead of frame tracing.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        logger.bind(
            name=record.name,
            module=record.module,
            function=record.funcName,
            line=record.lineno,
        ).opt(exception=record.exc_info).log(level, record.getMessage())


def setup_logging(
    verbose: bool,
    log_dir: str | None = None,
    log_level: str = "DEBUG",
    rotation: str = "10 MB",
    retention: str = "7 days",
    quiet: bool = False,
) -> tuple[int | None, Path | None]:
    """Configure logging based on configuration.

    Args:
        verbose: Show all INFO messages on the console, not only milestones.
        log_dir: Directory for log files. Supports ~ expansion.
                 Can be overridden by CHATEXPORTER_LOG_DIR env var.
        log_level: Log level for file output.
        rotation: Log file rotation size.
        retention: Log file retention period.
        quiet: If True, disable console logging entirely.
               Logs will still be written to file if log_dir is configured.

    Returns:
        Tuple of (console_handler_id, log_file_path).
        Log file path is None if file logging is disabled.
    """
    _setup_warning_filters()

    logger.remove()

    # DEBUG goes to file only; console shows INFO+ with filter
    console_handler_id: int | None = None
    if not quiet:
        console_handler_id = logger.add(
            sys.stderr,
            level="INFO",
            format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>",
            filter=lambda record: _should_show_log(record, verbose),
        )

    env_log_dir = os.environ.get("CHATEXPORTER_LOG_DIR")
    if env_log_dir:
        log_dir = env_log_dir

    log_file_path: Path | None = None
    if log_dir:
        log_path = Path(log_dir).expanduser()
        log_path.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        log_file_path = log_path / f"chatexporter_{timestamp}.log"
        logger.add(
            log_file_path,
            level=log_level,
            rotation=rotation,
            retention=retention,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <5} | {module}:{line: <3} | {message}",
        )

    _setup_log_interception()

    return console_handler_id, log_file_path


def _setup_warning_filters() -> None:
    for pattern in SUPPRESSED_WARNINGS:
        warnings.filterwarnings("ignore", message=pattern)


def _setup_log_interception() -> None:
    """Intercept third-party library logs and route to loguru.

    Intercepted loggers only capture WARNING+ to reduce noise.
    """
    intercept_handler = InterceptHandler()

    for logger_name in INTERCEPTED_LOGGERS:
        stdlib_logger = logging.getLogger(logger_name)
        stdlib_logger.handlers.clear()
        stdlib_logger.addHandler(intercept_handler)
        stdlib_logger.propagate = False
        stdlib_logger.setLevel(logging.WARNING)


def _is_third_party_log(name: str, module: str) -> bool:
    """Check if a log comes from a third-party library.

    Uses exact prefix matching ("httpx" matches "httpx.client") instead of
    substring matching.
    """
    name_lower = name.lower()
    module_lower = module.lower()

    for intercepted in INTERCEPTED_LOGGERS:
        intercepted_lower = intercepted.lower()
        if name_lower == intercepted_lower or name_lower.startswith(f"{intercepted_lower}."):
            return True
        if module_lower == intercepted_lower:
            return True

    return False


def _should_show_log(record: Any, verbose: bool) -> bool:
    """Filter function for console logging.

    Console only shows INFO+ (DEBUG goes to file only). Without verbose,
    INFO is limited to milestone messages.
    """
    level = record["level"].name

    if level == "DEBUG":
        return False

    if level in ("WARNING", "ERROR", "CRITICAL"):
        return True

    name = record.get("extra", {}).get("name", "")
    module = record.get("extra", {}).get("module", "")

    if level == "INFO" and _is_third_party_log(name, module):
        return False

    if not verbose and level == "INFO":
        msg = record.get("message", "")
        if not any(kw in msg for kw in MILESTONE_KEYWORDS):
            return False

    return True


def print_version(ctx: Context, param: Any, value: bool) -> None:
    """Print version and exit."""
    if not value or ctx.resilient_parsing:
        return
    _get_console().print(f"chatexporter {__version__}")
    ctx.exit(0)
