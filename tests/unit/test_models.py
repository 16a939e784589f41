"""Unit tests for the conversation model and normalization."""

from __future__ import annotations

import json
from pathlib import Path

from chatexporter.models import (
    Conversation,
    Message,
    load_conversations,
    process_conversation,
)


class TestProcessConversation:
    """Tests for process_conversation function."""

    def test_follows_current_branch(self, normalized_raw: Conversation) -> None:
        """Only the branch ending at current_node is kept, root first."""
        assert [node.id for node in normalized_raw.nodes] == ["root", "a", "b", "c"]

    def test_abandoned_branch_dropped(self, normalized_raw: Conversation) -> None:
        """Sibling messages outside the current branch are not exported."""
        texts = [
            node.message.content.parts[0]
            for node in normalized_raw.nodes
            if node.message and node.message.content
        ]
        assert "Old answer" not in texts
        assert texts == ["Hello", "New answer"]

    def test_hidden_message_becomes_empty_node(self, normalized_raw: Conversation) -> None:
        """Visually hidden messages keep their node but lose the message."""
        assert normalized_raw.nodes[-1].id == "c"
        assert normalized_raw.nodes[-1].message is None

    def test_model_slug_from_last_assistant(self, normalized_raw: Conversation) -> None:
        """Without default_model_slug the last assistant slug is used."""
        assert normalized_raw.model_slug == "gpt-4"
        assert normalized_raw.model == "GPT-4"

    def test_default_model_slug_preferred(self, raw_mapping_conversation: dict) -> None:
        """default_model_slug wins over message metadata."""
        raw_mapping_conversation["default_model_slug"] = "gpt-4o"
        conversation = process_conversation(raw_mapping_conversation)
        assert conversation.model_slug == "gpt-4o"
        assert conversation.model == "GPT-4o"

    def test_unknown_slug_used_as_display_name(self, raw_mapping_conversation: dict) -> None:
        """Unknown slugs are displayed verbatim."""
        raw_mapping_conversation["default_model_slug"] = "o3-pro"
        assert process_conversation(raw_mapping_conversation).model == "o3-pro"

    def test_missing_current_node_uses_mapping_order(
        self, raw_mapping_conversation: dict
    ) -> None:
        """Without a branch pointer every node is kept in insertion order."""
        del raw_mapping_conversation["current_node"]
        conversation = process_conversation(raw_mapping_conversation)
        assert [node.id for node in conversation.nodes] == ["root", "a", "b-old", "b", "c"]

    def test_normalized_payload_passthrough(self) -> None:
        """Payloads already carrying nodes are validated as-is."""
        conversation = process_conversation(
            {"id": "x", "title": "T", "nodes": [{"id": "n", "message": None}]}
        )
        assert conversation.id == "x"
        assert len(conversation.nodes) == 1

    def test_default_title(self) -> None:
        """Untitled conversations get a default title."""
        conversation = process_conversation({"id": "x", "mapping": {}})
        assert conversation.title == "ChatGPT Conversation"
        assert conversation.nodes == []


class TestConversationModel:
    """Tests for Conversation and Message models."""

    def test_has_content(self, normalized_raw: Conversation) -> None:
        """A conversation with at least one message has content."""
        assert normalized_raw.has_content is True

    def test_has_no_content(self) -> None:
        """Empty nodes do not count as content."""
        conversation = Conversation(id="x", nodes=[{"id": "n", "message": None}])
        assert conversation.has_content is False

    def test_null_metadata_accepted(self) -> None:
        """A null metadata field becomes an empty metadata object."""
        message = Message.model_validate(
            {"author": {"role": "user"}, "content": None, "metadata": None}
        )
        assert message.metadata.citations is None

    def test_recipient_defaults_to_all(self) -> None:
        """Messages without recipient address the primary audience."""
        message = Message.model_validate({"author": {"role": "user"}})
        assert message.recipient == "all"

    def test_cite_metadata_alias(self) -> None:
        """_cite_metadata is read through its alias."""
        message = Message.model_validate(
            {
                "author": {"role": "tool"},
                "metadata": {
                    "_cite_metadata": {"metadata_list": [{"title": "T", "url": "https://a"}]}
                },
            }
        )
        assert message.metadata.cite_metadata is not None
        assert message.metadata.cite_metadata.metadata_list[0].title == "T"

    def test_citation_index(self) -> None:
        """cited_message_idx is read from citation metadata extras."""
        message = Message.model_validate(
            {
                "author": {"role": "assistant"},
                "metadata": {
                    "citations": [
                        {"metadata": {"title": "Src", "extra": {"cited_message_idx": 3}}},
                        {"metadata": {"title": "No index"}},
                    ]
                },
            }
        )
        citations = message.metadata.citations
        assert citations[0].cited_message_idx == 3
        assert citations[1].cited_message_idx is None

    def test_extra_fields_kept(self) -> None:
        """Unknown payload fields do not fail validation."""
        message = Message.model_validate(
            {"author": {"role": "user"}, "weight": 1.0, "status": "finished_successfully"}
        )
        assert message.author.role == "user"


class TestLoadConversations:
    """Tests for load_conversations function."""

    def test_load_list(self, tmp_path: Path, raw_mapping_conversation: dict) -> None:
        """A conversations.json list loads every entry in order."""
        second = dict(raw_mapping_conversation, id="raw-2", title="Second")
        path = tmp_path / "conversations.json"
        path.write_text(json.dumps([raw_mapping_conversation, second]), encoding="utf-8")

        conversations = load_conversations(path)

        assert [c.id for c in conversations] == ["raw-1", "raw-2"]

    def test_load_single_object(self, tmp_path: Path, raw_mapping_conversation: dict) -> None:
        """A single conversation object loads as a one-element list."""
        path = tmp_path / "conversation.json"
        path.write_text(json.dumps(raw_mapping_conversation), encoding="utf-8")

        conversations = load_conversations(path)

        assert len(conversations) == 1
        assert conversations[0].title == "Branched"
