"""Atomic file writes for exported documents and archives."""

from __future__ import annotations

import os
import sys
import tempfile
import time
from pathlib import Path

# Windows-specific retry settings for file operations
_WINDOWS_RETRY_COUNT = 5
_WINDOWS_RETRY_DELAY = 0.05  # 50ms


def _replace_with_retry(src: str, dst: Path) -> None:
    """Replace file with retry logic for Windows file locking.

    On Windows, os.replace() can fail with PermissionError when the target
    file is briefly locked by another process (antivirus, indexer).

    Args:
        src: Source file path (temp file)
        dst: Destination file path
    """
    if sys.platform != "win32":
        os.replace(src, dst)
        return

    last_error: OSError | None = None
    for attempt in range(_WINDOWS_RETRY_COUNT):
        try:
            os.replace(src, dst)
            return
        except PermissionError as e:
            last_error = e
            if attempt < _WINDOWS_RETRY_COUNT - 1:
                time.sleep(_WINDOWS_RETRY_DELAY * (attempt + 1))

    if last_error:
        raise last_error


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Write bytes to file atomically using temp file + rename.

    Args:
        path: Target file path
        data: Payload to write
    """
    path = Path(path)
    parent = path.parent
    parent.mkdir(parents=True, exist_ok=True)

    # Temp file in the same directory keeps the rename on one filesystem
    fd, tmp_path = tempfile.mkstemp(suffix=".tmp", prefix=f".{path.name}.", dir=parent)
    fd_closed = False
    try:
        with os.fdopen(fd, "wb") as f:
            fd_closed = True  # fdopen takes ownership of fd
            f.write(data)
        _replace_with_retry(tmp_path, path)
    except Exception:
        if not fd_closed:
            try:
                os.close(fd)
            except OSError:
                pass
        for _ in range(_WINDOWS_RETRY_COUNT if sys.platform == "win32" else 1):
            try:
                os.unlink(tmp_path)
                break
            except OSError:
                if sys.platform == "win32":
                    time.sleep(_WINDOWS_RETRY_DELAY)
        raise


def atomic_write_text(path: Path, content: str, encoding: str = "utf-8") -> None:
    """Write text to file atomically.

    Args:
        path: Target file path
        content: Text content to write
        encoding: Text encoding (default: utf-8)
    """
    atomic_write_bytes(path, content.encode(encoding))
