"""Pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from chatexporter.config import ChatExporterConfig
from chatexporter.models import Conversation, process_conversation

# 1x1 transparent PNG
PNG_BASE64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)
PNG_DATA_URI = f"data:image/png;base64,{PNG_BASE64}"


# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture
def tmp_output(tmp_path: Path) -> Path:
    """Return a temporary output directory."""
    output = tmp_path / "output"
    output.mkdir()
    return output


# =============================================================================
# Config Fixtures
# =============================================================================


@pytest.fixture
def marker_config() -> ChatExporterConfig:
    """Return a configuration that never touches the network."""
    return ChatExporterConfig.model_validate({"image": {"strategy": "text_marker"}})


@pytest.fixture
def sample_config_dict() -> dict:
    """Return sample configuration dictionary."""
    return {
        "image": {
            "strategy": "separate_files",
            "custom_marker": "[picture]",
        },
        "export": {
            "filename_format": "{title}-{chat_id}",
            "on_conflict": "overwrite",
        },
        "timestamp": {
            "enabled": True,
            "use_24h": True,
        },
    }


# =============================================================================
# Conversation Fixtures
# =============================================================================


def _text_message(
    role: str,
    text: str,
    message_id: str,
    **extra: Any,
) -> dict[str, Any]:
    """Build a raw text message dict."""
    message: dict[str, Any] = {
        "id": message_id,
        "author": {"role": role},
        "content": {"content_type": "text", "parts": [text]},
        "recipient": "all",
        "create_time": 1700000000.0,
    }
    message.update(extra)
    return message


def _image_part(locator: str) -> dict[str, Any]:
    return {"content_type": "image_asset_pointer", "asset_pointer": locator}


def _execution_output(message_id: str, text: str, image_urls: list[str]) -> dict[str, Any]:
    """Build a raw tool execution output carrying image sub-messages."""
    return {
        "id": message_id,
        "author": {"role": "tool", "name": "python"},
        "content": {"content_type": "execution_output", "text": text},
        "recipient": "all",
        "metadata": {
            "aggregate_result": {
                "messages": [{"message_type": "image", "image_url": url} for url in image_urls]
            }
        },
    }


@pytest.fixture
def make_conversation() -> Callable[..., Conversation]:
    """Return a factory turning a list of raw messages into a Conversation."""

    def factory(
        messages: list[dict[str, Any] | None],
        title: str = "Test Chat",
        conversation_id: str = "conv-1",
    ) -> Conversation:
        return Conversation.model_validate(
            {
                "id": conversation_id,
                "title": title,
                "model": "GPT-4o",
                "model_slug": "gpt-4o",
                "create_time": 1700000000.0,
                "update_time": 1700000100.0,
                "nodes": [
                    {"id": f"node-{i}", "message": message} for i, message in enumerate(messages)
                ],
            }
        )

    return factory


@pytest.fixture
def image_conversation(make_conversation: Callable[..., Conversation]) -> Conversation:
    """Conversation with three images spread over user, tool and assistant turns."""
    return make_conversation(
        [
            {
                "id": "m-user",
                "author": {"role": "user"},
                "content": {
                    "content_type": "multimodal_text",
                    "parts": [_image_part(PNG_DATA_URI), "What is in this picture?"],
                },
                "recipient": "all",
            },
            {
                "id": "m-code",
                "author": {"role": "assistant"},
                "content": {"content_type": "code", "text": "plot()"},
                "recipient": "python",
            },
            _execution_output("m-exec", "<Figure>", [PNG_DATA_URI]),
            {
                "id": "m-dalle",
                "author": {"role": "tool", "name": "dalle.text2im"},
                "content": {
                    "content_type": "multimodal_text",
                    "parts": [_image_part(PNG_DATA_URI)],
                },
                "recipient": "all",
            },
            _text_message("assistant", "Here are the results.", "m-answer"),
        ]
    )


@pytest.fixture
def raw_mapping_conversation() -> dict[str, Any]:
    """Return a raw backend conversation with a branched mapping tree."""
    return {
        "id": "raw-1",
        "title": "Branched",
        "create_time": 1700000000.0,
        "update_time": 1700000500.0,
        "current_node": "c",
        "mapping": {
            "root": {"id": "root", "message": None, "parent": None},
            "a": {
                "id": "a",
                "parent": "root",
                "message": _text_message("user", "Hello", "a"),
            },
            "b-old": {
                "id": "b-old",
                "parent": "a",
                "message": _text_message("assistant", "Old answer", "b-old"),
            },
            "b": {
                "id": "b",
                "parent": "a",
                "message": _text_message(
                    "assistant", "New answer", "b", metadata={"model_slug": "gpt-4"}
                ),
            },
            "c": {
                "id": "c",
                "parent": "b",
                "message": _text_message(
                    "system",
                    "hidden context",
                    "c",
                    metadata={"is_visually_hidden_from_conversation": True},
                ),
            },
        },
    }


@pytest.fixture
def normalized_raw(raw_mapping_conversation: dict[str, Any]) -> Conversation:
    """Return the raw mapping conversation after normalization."""
    return process_conversation(raw_mapping_conversation)


# =============================================================================
# Raw Message Builders
# =============================================================================


@pytest.fixture
def png_data_uri() -> str:
    """Return a data URI holding a 1x1 PNG."""
    return PNG_DATA_URI


@pytest.fixture
def text_message() -> Callable[..., dict[str, Any]]:
    """Return the raw text message builder."""
    return _text_message


@pytest.fixture
def image_part() -> Callable[[str], dict[str, Any]]:
    """Return the raw image part builder."""
    return _image_part


@pytest.fixture
def execution_output() -> Callable[..., dict[str, Any]]:
    """Return the raw execution output builder."""
    return _execution_output
