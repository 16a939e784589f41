"""Export file naming and archive packaging."""

from __future__ import annotations

import io
import zipfile
from collections.abc import Sequence
from datetime import datetime, timezone

from chatexporter.constants import METADATA_FILENAME
from chatexporter.images.types import ExportFile, ExportMetadata
from chatexporter.utils.output import sanitize_filename


def _file_time(value: float | None) -> str:
    if value is None:
        return ""
    return datetime.fromtimestamp(value, tz=timezone.utc).strftime("%Y-%m-%dT%H-%M-%S")


def get_file_name_with_format(
    template: str,
    ext: str,
    title: str = "",
    chat_id: str = "",
    create_time: float | None = None,
    update_time: float | None = None,
) -> str:
    """Build an export file name from a naming template.

    Placeholders: ``{title}``, ``{chat_id}``, ``{create_time}``,
    ``{update_time}`` and ``{ext}``. Without ``{ext}`` the extension is
    appended.

    Examples:
        >>> get_file_name_with_format("ChatGPT-{title}", "md", title="Hello: World")
        'ChatGPT-Hello_ World.md'
    """
    name = (
        template.replace("{title}", title)
        .replace("{chat_id}", chat_id)
        .replace("{create_time}", _file_time(create_time))
        .replace("{update_time}", _file_time(update_time))
    )
    if "{ext}" in name:
        name = name.replace("{ext}", ext)
    else:
        name = f"{name}.{ext}"
    return sanitize_filename(name)


def split_extension(file_name: str) -> tuple[str, str]:
    """Split ``name.ext`` into ``("name", ".ext")``; no dot gives an empty suffix."""
    stem, dot, ext = file_name.rpartition(".")
    if not dot or not stem:
        return file_name, ""
    return stem, f".{ext}"


class FileNameRegistry:
    """De-duplicate document names inside one batch archive.

    The first occurrence keeps its name; later ones get ``name (1).ext``,
    ``name (2).ext`` and so on. Generated names are registered too, so no
    two documents ever share a name.
    """

    def __init__(self) -> None:
        self._counts: dict[str, int] = {}
        self._taken: set[str] = set()

    def register(self, file_name: str) -> str:
        if file_name not in self._taken:
            self._counts.setdefault(file_name, 1)
            self._taken.add(file_name)
            return file_name

        stem, suffix = split_extension(file_name)
        count = self._counts.get(file_name, 1)
        candidate = f"{stem} ({count}){suffix}"
        while candidate in self._taken:
            count += 1
            candidate = f"{stem} ({count}){suffix}"
        self._counts[file_name] = count + 1
        self._taken.add(candidate)
        return candidate


def generate_zip_file_name(title: str, strategy: str) -> str:
    """Deterministic archive name for a single-conversation bundle."""
    return f"{sanitize_filename(title)}-{strategy}.zip"


def _write_bundle(
    archive: zipfile.ZipFile,
    prefix: str,
    document_name: str,
    document: str,
    files: Sequence[ExportFile],
    metadata: ExportMetadata | None,
) -> None:
    archive.writestr(f"{prefix}{document_name}", document)
    for export_file in files:
        archive.writestr(f"{prefix}{export_file.path}", export_file.data)
    if metadata is not None:
        archive.writestr(f"{prefix}{METADATA_FILENAME}", metadata.to_json())


def create_export_zip(
    document_name: str,
    document: str,
    files: Sequence[ExportFile],
    metadata: ExportMetadata | None = None,
) -> bytes:
    """Bundle a document with its image files and manifest.

    Layout::

        <document_name>
        images/<file>...
        metadata.json
    """
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
        _write_bundle(archive, "", document_name, document, files, metadata)
    return buffer.getvalue()


class BatchArchive:
    """Archive holding one document (or one bundle folder) per conversation.

    Entries are written in insertion order, so the archive layout is
    deterministic for a given conversation order.
    """

    def __init__(self) -> None:
        self._buffer = io.BytesIO()
        self._archive = zipfile.ZipFile(
            self._buffer, "w", zipfile.ZIP_DEFLATED, compresslevel=9
        )
        self.entries: list[str] = []

    def add_document(self, file_name: str, document: str) -> None:
        self._archive.writestr(file_name, document)
        self.entries.append(file_name)

    def add_bundle(
        self,
        file_name: str,
        document: str,
        files: Sequence[ExportFile],
        metadata: ExportMetadata | None,
    ) -> None:
        """Add a document with sibling files under a folder named after it."""
        folder, _ = split_extension(file_name)
        _write_bundle(self._archive, f"{folder}/", file_name, document, files, metadata)
        self.entries.append(f"{folder}/{file_name}")

    def close(self) -> bytes:
        self._archive.close()
        return self._buffer.getvalue()
