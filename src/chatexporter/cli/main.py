"""Command-line interface for chatexporter."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import click
from dotenv import load_dotenv

# Load .env so env: secrets in the config resolve
load_dotenv()

from click import Context
from loguru import logger
from pydantic import ValidationError
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from chatexporter.cli import ui
from chatexporter.cli.commands.config import config
from chatexporter.cli.console import get_stderr_console
from chatexporter.cli.logging_config import print_version, setup_logging
from chatexporter.config import ChatExporterConfig, ConfigManager
from chatexporter.errors import ChatExporterError
from chatexporter.exporter.pipeline import export_all, export_conversation
from chatexporter.images.strategies import get_available_strategies
from chatexporter.models import Conversation, load_conversations
from chatexporter.security import atomic_write_bytes, atomic_write_text
from chatexporter.utils.output import resolve_output_path

# Fix Windows console encoding for Unicode output
if sys.platform == "win32":
    if hasattr(sys.stdout, "reconfigure"):
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    if hasattr(sys.stderr, "reconfigure"):
        sys.stderr.reconfigure(encoding="utf-8", errors="replace")


# =============================================================================
# Main CLI app
# =============================================================================


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to configuration file.",
)
@click.option("--verbose", is_flag=True, help="Enable verbose output.")
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Suppress progress and info messages, only show errors.",
)
@click.option(
    "--version",
    "-v",
    is_flag=True,
    callback=print_version,
    expose_value=False,
    is_eager=True,
    help="Show version and exit.",
)
@click.pass_context
def app(ctx: Context, config_path: Path | None, verbose: bool, quiet: bool) -> None:
    """chatexporter - export ChatGPT conversations to Markdown, HTML or JSON.

    \b
    Examples:
        chatexporter export conversation.json                 # Markdown, inline images
        chatexporter export conversation.json -f html -s separate_files
        chatexporter export conversations.json --all -f json  # Batch archive
        chatexporter config list                              # Show configuration
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet


def _select_conversations(
    conversations: list[Conversation],
    conversation_ids: tuple[str, ...],
) -> list[Conversation]:
    if not conversation_ids:
        return conversations
    by_id = {conversation.id: conversation for conversation in conversations}
    missing = [cid for cid in conversation_ids if cid not in by_id]
    if missing:
        raise click.BadParameter(f"Conversation not found: {', '.join(missing)}", param_hint="--id")
    return [by_id[cid] for cid in conversation_ids]


def _write_output(path: Path, payload: str | bytes, on_conflict: str) -> Path | None:
    target = resolve_output_path(path, on_conflict)
    if target is None:
        logger.info(f"Skipped existing file: {path}")
        return None
    if isinstance(payload, bytes):
        atomic_write_bytes(target, payload)
    else:
        atomic_write_text(target, payload)
    logger.info(f"Written: {target}")
    return target


def _export_single(conversation: Conversation, fmt: str, cfg: ChatExporterConfig) -> Path | None:
    result = asyncio.run(export_conversation(conversation, fmt, cfg))  # type: ignore[arg-type]
    output_dir = Path(cfg.export.output_dir)
    if result.has_files:
        return _write_output(
            output_dir / result.archive_name, result.to_archive(), cfg.export.on_conflict
        )
    return _write_output(output_dir / result.file_name, result.document, cfg.export.on_conflict)


def _export_batch(
    conversations: list[Conversation],
    fmt: str,
    cfg: ChatExporterConfig,
    quiet: bool,
) -> tuple[Path | None, list[tuple[str, str]]]:
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=get_stderr_console(),
        disable=quiet,
    ) as progress:
        task = progress.add_task("[cyan]Exporting conversations...", total=len(conversations))
        result = asyncio.run(
            export_all(
                conversations,
                fmt,  # type: ignore[arg-type]
                cfg,
                on_progress=lambda *_: progress.advance(task),
            )
        )

    output_path = Path(cfg.export.output_dir) / result.archive_name
    written = _write_output(output_path, result.archive, cfg.export.on_conflict)
    return written, result.failures


@app.command("export")
@click.argument(
    "input_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--format",
    "-f",
    "fmt",
    type=click.Choice(["markdown", "html", "json"], case_sensitive=False),
    default="markdown",
    help="Output format.",
)
@click.option(
    "--strategy",
    "-s",
    type=click.Choice([s.value for s in get_available_strategies()], case_sensitive=False),
    default=None,
    help="Image handling strategy (default from config).",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Output directory (default from config).",
)
@click.option(
    "--id",
    "conversation_ids",
    multiple=True,
    help="Only export the conversation with this id (repeatable).",
)
@click.option("--marker", default=None, help="Marker text for the text_marker strategy.")
@click.option(
    "--all",
    "export_everything",
    is_flag=True,
    help="Always produce a batch archive, even for a single conversation.",
)
@click.pass_context
def export_cmd(
    ctx: Context,
    input_path: Path,
    fmt: str,
    strategy: str | None,
    output: Path | None,
    conversation_ids: tuple[str, ...],
    marker: str | None,
    export_everything: bool,
) -> None:
    """Export conversations from a conversation JSON file.

    INPUT_PATH holds one conversation object or a conversations.json list.
    """
    obj = ctx.obj or {}
    manager = ConfigManager()
    try:
        manager.load(config_path=obj.get("config_path"))
        manager.merge_cli_args(
            **{
                "image.strategy": strategy,
                "image.custom_marker": marker,
                "export.output_dir": str(output) if output else None,
            }
        )
    except (ValidationError, json.JSONDecodeError) as e:
        ui.error("Invalid configuration", detail=str(e))
        ctx.exit(2)
    cfg = manager.config

    setup_logging(
        verbose=obj.get("verbose", False),
        log_dir=cfg.log.dir,
        log_level=cfg.log.level,
        rotation=cfg.log.rotation,
        retention=cfg.log.retention,
        quiet=obj.get("quiet", False),
    )
    if manager.config_path:
        logger.debug(f"[Config] Loaded from: {manager.config_path}")

    try:
        conversations = load_conversations(input_path)
    except (ValidationError, json.JSONDecodeError, UnicodeDecodeError) as e:
        ui.error(f"Cannot read conversations from {input_path}", detail=str(e))
        ctx.exit(1)

    selected = _select_conversations(conversations, conversation_ids)
    if not selected:
        ui.warning(f"No conversations found in {input_path}")
        ctx.exit(1)

    fmt = fmt.lower()
    if len(selected) == 1 and not export_everything:
        try:
            written = _export_single(selected[0], fmt, cfg)
        except ChatExporterError as e:
            ui.error("Export failed", detail=str(e))
            ctx.exit(1)
        if written is not None:
            ui.success(f"Written: {written}")
        else:
            ui.warning("Skipped: output file already exists")
        return

    written, failures = _export_batch(selected, fmt, cfg, obj.get("quiet", False))
    for conversation_id, reason in failures:
        ui.error(f"Failed: {conversation_id}", detail=reason)
    if written is not None:
        ui.summary(f"Exported {len(selected) - len(failures)}/{len(selected)} conversations: {written}")
    else:
        ui.warning("Skipped: output archive already exists")
    if failures:
        ctx.exit(1)


app.add_command(config)


# =============================================================================
if __name__ == "__main__":
    app()
