"""Unified UI components for the chatexporter CLI.

Usage:
    from chatexporter.cli import ui

    ui.success("Written: output/chat.md")
    ui.error("Export failed", detail="Please start a conversation first")
"""

from __future__ import annotations

from rich.console import Console

from chatexporter.cli.console import get_console

# Symbol constants for visual markers
MARK_SUCCESS = "✓"  # Checkmark
MARK_ERROR = "✗"  # Cross
MARK_WARNING = "!"  # Exclamation
MARK_TITLE = "◆"  # Diamond
MARK_LINE = "│"  # Vertical line


def title(text: str, *, console: Console | None = None) -> None:
    """Display a title with diamond symbol."""
    c = console or get_console()
    c.print(f"[cyan]{MARK_TITLE}[/] [bold]{text}[/]")
    c.print()


def success(text: str, *, console: Console | None = None) -> None:
    c = console or get_console()
    c.print(f"  [green]{MARK_SUCCESS}[/] {text}")


def error(text: str, *, detail: str | None = None, console: Console | None = None) -> None:
    """Display an error message with cross symbol.

    Args:
        text: The error message to display.
        detail: Optional detail text shown on a separate line.
        console: Optional console for output (defaults to shared console).
    """
    c = console or get_console()
    c.print(f"  [red]{MARK_ERROR}[/] {text}")
    if detail:
        c.print(f"    [dim]{MARK_LINE} {detail}[/]")


def warning(text: str, *, detail: str | None = None, console: Console | None = None) -> None:
    c = console or get_console()
    c.print(f"  [yellow]{MARK_WARNING}[/] {text}")
    if detail:
        c.print(f"    [dim]{MARK_LINE} {detail}[/]")


def summary(text: str, *, console: Console | None = None) -> None:
    """Display a summary message with checkmark and leading blank line."""
    c = console or get_console()
    c.print()
    c.print(f"[green]{MARK_SUCCESS}[/] {text}")
