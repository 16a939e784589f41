"""Unit tests for file, MIME and image-name utilities."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from unittest.mock import patch

import pytest

from chatexporter.images.types import ImageAuthor, ImageContext
from chatexporter.images.utils import (
    decode_base64,
    generate_image_file_name,
    generate_image_id,
    sanitize_file_name,
)
from chatexporter.security import atomic_write_bytes, atomic_write_text
from chatexporter.utils.mime import (
    get_extension_from_mime,
    get_mime_type,
    guess_mime_type,
    sniff_image,
)
from chatexporter.utils.output import resolve_output_path, sanitize_filename


def make_context(role: str = "user", name: str | None = None, index: int = 0) -> ImageContext:
    return ImageContext(
        conversation_id="c",
        message_id="m",
        image_index=0,
        global_index=index,
        mime_type="image/png",
        original_url="u",
        content_type="multimodal_text",
        author=ImageAuthor(role=role, name=name),
    )


class TestAtomicWrite:
    """Tests for atomic_write_text and atomic_write_bytes."""

    def test_write_creates_parent_dirs(self, tmp_path: Path) -> None:
        """Parent directories are created."""
        target = tmp_path / "a" / "b" / "chat.md"
        atomic_write_text(target, "# Chat")
        assert target.read_text(encoding="utf-8") == "# Chat"

    def test_write_bytes(self, tmp_path: Path) -> None:
        """Binary payloads are written verbatim."""
        target = tmp_path / "export.zip"
        atomic_write_bytes(target, b"PK\x03\x04")
        assert target.read_bytes() == b"PK\x03\x04"

    def test_write_cleans_temp_on_error(self, tmp_path: Path) -> None:
        """Temp files are removed when the write fails."""
        target = tmp_path / "chat.md"
        with (
            patch("os.fdopen", side_effect=OSError("Simulated write error")),
            pytest.raises(OSError, match="Simulated write error"),
        ):
            atomic_write_text(target, "content")

        assert not target.exists()
        assert list(tmp_path.glob(".chat.md.*.tmp")) == []


class TestOutputPaths:
    """Tests for output path helpers."""

    def test_no_conflict(self, tmp_path: Path) -> None:
        """A free path is returned unchanged."""
        assert resolve_output_path(tmp_path / "a.md", "skip") == tmp_path / "a.md"

    def test_conflict_strategies(self, tmp_path: Path) -> None:
        """skip, overwrite and rename behave as named."""
        existing = tmp_path / "a.md"
        existing.write_text("x")
        (tmp_path / "a.v2.md").write_text("x")

        assert resolve_output_path(existing, "skip") is None
        assert resolve_output_path(existing, "overwrite") == existing
        assert resolve_output_path(existing, "rename") == tmp_path / "a.v3.md"

    def test_sanitize_filename(self) -> None:
        """Invalid and control characters are removed."""
        assert sanitize_filename('a<b>:c"d|e?*\tf') == "a_b__c_d_e__f"
        assert sanitize_filename(" . ") == "unnamed"
        assert len(sanitize_filename("x" * 300)) == 200


class TestMime:
    """Tests for MIME helpers."""

    def test_extension_mapping(self) -> None:
        """Extensions and MIME types map both ways."""
        assert get_mime_type("JPG") == "image/jpeg"
        assert get_extension_from_mime("image/webp; q=1") == ".webp"

    def test_guess_mime_type(self) -> None:
        """Data URIs, URLs and opaque pointers are all handled."""
        assert guess_mime_type("data:image/gif;base64,AAAA") == "image/gif"
        assert guess_mime_type("https://x/y/photo.JPG?size=2") == "image/jpeg"
        assert guess_mime_type("sediment://file_123") == "image/png"

    def test_sniff_image(self, png_data_uri: str) -> None:
        """Pillow identifies real images and ignores garbage."""
        assert sniff_image(decode_base64(png_data_uri)) == ("image/png", 1, 1)
        assert sniff_image(b"not an image") == (None, None, None)


class TestImageNames:
    """Tests for image ids and file names."""

    def test_file_name_prefixes(self) -> None:
        """Roles choose the file name prefix."""
        assert generate_image_file_name(make_context("user", index=1)) == "user-upload-001.png"
        assert generate_image_file_name(make_context("assistant"), "jpg") == (
            "chatgpt-response-000.jpg"
        )
        assert generate_image_file_name(make_context("tool", "My Plugin", 12), ".webp") == (
            "tool-my-plugin-012.webp"
        )

    def test_sanitize_file_name(self) -> None:
        """Unsafe characters and spaces are normalized."""
        assert sanitize_file_name("Tool-My Plugin/v2-000.PNG") == "tool-my-plugin_v2-000.png"

    def test_image_id_stable(self) -> None:
        """The same context always yields the same id."""
        assert generate_image_id(make_context()) == generate_image_id(make_context())
        other = replace(make_context(), message_id="other")
        assert generate_image_id(make_context()) != generate_image_id(other)

    def test_decode_invalid(self) -> None:
        """Invalid base64 raises ValueError."""
        with pytest.raises(ValueError):
            decode_base64("%%%")

