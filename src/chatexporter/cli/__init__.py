"""CLI package for chatexporter.

Usage:
    from chatexporter.cli import app
"""

from __future__ import annotations

from chatexporter.cli.main import app

__all__ = ["app"]
