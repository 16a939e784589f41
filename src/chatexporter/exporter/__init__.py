"""Conversation document exporters."""

from chatexporter.exporter.html import conversation_to_html
from chatexporter.exporter.json import conversation_to_dict, conversation_to_json
from chatexporter.exporter.markdown import conversation_to_markdown
from chatexporter.exporter.pipeline import (
    BatchExportResult,
    ExportResult,
    export_all,
    export_conversation,
)

__all__ = [
    "BatchExportResult",
    "ExportResult",
    "conversation_to_dict",
    "conversation_to_html",
    "conversation_to_json",
    "conversation_to_markdown",
    "export_all",
    "export_conversation",
]
