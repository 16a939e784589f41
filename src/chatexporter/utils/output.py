"""Output path utilities for chatexporter."""

from __future__ import annotations

from pathlib import Path


def resolve_output_path(base_path: Path, on_conflict: str) -> Path | None:
    """Pick where an export is written when the target may already exist.

    Args:
        base_path: The original output file path
        on_conflict: "skip", "overwrite" or "rename"

    Returns:
        Resolved path, or None if the file should be skipped.
        Renames count upward: chat.md -> chat.v2.md -> chat.v3.md
    """
    if not base_path.exists():
        return base_path
    if on_conflict == "skip":
        return None
    if on_conflict == "overwrite":
        return base_path

    seq = 2
    while True:
        candidate = base_path.with_name(f"{base_path.stem}.v{seq}{base_path.suffix}")
        if not candidate.exists():
            return candidate
        seq += 1


def sanitize_filename(name: str) -> str:
    """Sanitize filename for cross-platform compatibility.

    Removes or replaces characters that are invalid on Windows/Linux/macOS.

    Args:
        name: Filename to sanitize

    Returns:
        Sanitized filename
    """
    # Characters invalid on Windows: \ / : * ? " < > |
    invalid_chars = r'<>:"/\|?*'
    for char in invalid_chars:
        name = name.replace(char, "_")
    name = "".join(ch for ch in name if ch >= " ")
    # Remove leading/trailing spaces and dots (Windows issue)
    name = name.strip(". ")
    if len(name) > 200:
        name = name[:200]
    return name or "unnamed"
