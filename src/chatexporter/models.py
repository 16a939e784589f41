"""Conversation data model consumed by the export pipeline.

The models mirror the normalized conversation shape: an ordered list of
nodes, each optionally holding one message. Unknown fields are kept
(``extra="allow"``) so newer payloads still validate.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, field_validator

from chatexporter.constants import PRIMARY_RECIPIENT

# Slug -> display name for the conversation-level {model} placeholder
MODEL_DISPLAY_NAMES: dict[str, str] = {
    "text-davinci-002-render": "GPT-3.5",
    "text-davinci-002-render-sha": "GPT-3.5",
    "text-davinci-002-render-paid": "GPT-3.5",
    "gpt-4": "GPT-4",
    "gpt-4-browsing": "GPT-4 (Browsing)",
    "gpt-4-plugins": "GPT-4 (Plugins)",
    "gpt-4-code-interpreter": "GPT-4 (Code Interpreter)",
    "gpt-4o": "GPT-4o",
    "gpt-4o-mini": "GPT-4o mini",
}


class _Model(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class Author(_Model):
    role: str
    name: str | None = None


class ContentPart(_Model):
    """A non-string part of a multimodal message."""

    content_type: str = ""
    asset_pointer: str | None = None
    text: str | None = None
    width: int | None = None
    height: int | None = None


class MessageContent(_Model):
    content_type: str
    parts: list[str | ContentPart] | None = None
    text: str | None = None
    title: str | None = None
    url: str | None = None


class CitationMetadata(_Model):
    title: str | None = None
    url: str | None = None
    text: str | None = None
    extra: dict[str, Any] | None = None


class Citation(_Model):
    start_ix: int | None = None
    end_ix: int | None = None
    metadata: CitationMetadata | None = None

    @property
    def cited_message_idx(self) -> int | None:
        """Numeric index used by inline citation markers, if any."""
        if self.metadata is None or not self.metadata.extra:
            return None
        value = self.metadata.extra.get("cited_message_idx")
        return value if isinstance(value, int) else None


class AggregateResultMessage(_Model):
    message_type: str | None = None
    image_url: str | None = None
    text: str | None = None


class AggregateResult(_Model):
    messages: list[AggregateResultMessage] | None = None


class CiteMetadataItem(_Model):
    title: str | None = None
    url: str | None = None
    text: str | None = None


class CiteMetadata(_Model):
    metadata_list: list[CiteMetadataItem] | None = None


class MessageMetadata(_Model):
    citations: list[Citation] | None = None
    aggregate_result: AggregateResult | None = None
    cite_metadata: CiteMetadata | None = Field(default=None, alias="_cite_metadata")
    model_slug: str | None = None
    is_visually_hidden_from_conversation: bool | None = None


class Message(_Model):
    id: str | None = None
    author: Author
    content: MessageContent | None = None
    recipient: str | None = PRIMARY_RECIPIENT
    create_time: float | None = None
    update_time: float | None = None
    metadata: MessageMetadata = Field(default_factory=MessageMetadata)

    @field_validator("metadata", mode="before")
    @classmethod
    def _metadata_not_null(cls, value: Any) -> Any:
        return {} if value is None else value


class ConversationNode(_Model):
    id: str | None = None
    message: Message | None = None


class Conversation(_Model):
    """Normalized conversation: ordered nodes plus conversation-level fields."""

    id: str
    title: str = "ChatGPT Conversation"
    model: str = ""
    model_slug: str = ""
    create_time: float | None = None
    update_time: float | None = None
    nodes: list[ConversationNode] = Field(default_factory=list)

    @property
    def has_content(self) -> bool:
        """Whether at least one node carries a message with content."""
        return any(
            node.message is not None and node.message.content is not None
            for node in self.nodes
        )


def _walk_current_branch(mapping: dict[str, Any], current_node: str | None) -> list[str]:
    """Return node ids from the root to ``current_node`` following parent links."""
    if current_node is None or current_node not in mapping:
        # No branch pointer: fall back to the mapping's insertion order
        return list(mapping.keys())

    chain: list[str] = []
    seen: set[str] = set()
    node_id: str | None = current_node
    while node_id is not None and node_id in mapping and node_id not in seen:
        seen.add(node_id)
        chain.append(node_id)
        node_id = mapping[node_id].get("parent")
    chain.reverse()
    return chain


def _resolve_model_slug(raw: dict[str, Any], nodes: list[ConversationNode]) -> str:
    slug = raw.get("default_model_slug")
    if slug:
        return str(slug)
    for node in reversed(nodes):
        message = node.message
        if message and message.author.role == "assistant" and message.metadata.model_slug:
            return message.metadata.model_slug
    return ""


def process_conversation(raw: dict[str, Any]) -> Conversation:
    """Normalize a raw API / data-export conversation into a Conversation.

    Raw conversations store messages in a ``mapping`` tree; only the branch
    ending at ``current_node`` is exported. Already-normalized payloads (with
    a ``nodes`` list) are validated as-is.

    Args:
        raw: Conversation dict as returned by the backend API or found in
            a data export's ``conversations.json``.

    Returns:
        Normalized Conversation.
    """
    if "nodes" in raw:
        return Conversation.model_validate(raw)

    conversation_id = raw.get("id") or raw.get("conversation_id") or ""
    mapping: dict[str, Any] = raw.get("mapping") or {}

    nodes: list[ConversationNode] = []
    for node_id in _walk_current_branch(mapping, raw.get("current_node")):
        raw_message = mapping[node_id].get("message")
        message = Message.model_validate(raw_message) if raw_message else None
        if message and message.metadata.is_visually_hidden_from_conversation:
            message = None
        nodes.append(ConversationNode(id=node_id, message=message))

    model_slug = _resolve_model_slug(raw, nodes)
    conversation = Conversation(
        id=str(conversation_id),
        title=raw.get("title") or "ChatGPT Conversation",
        model=MODEL_DISPLAY_NAMES.get(model_slug, model_slug),
        model_slug=model_slug,
        create_time=raw.get("create_time"),
        update_time=raw.get("update_time"),
        nodes=nodes,
    )
    logger.debug(
        f"Normalized conversation {conversation.id}: {len(nodes)} nodes, model={model_slug or '-'}"
    )
    return conversation


def load_conversations(path: Path | str) -> list[Conversation]:
    """Load one conversation or a ``conversations.json`` list from disk.

    Args:
        path: JSON file holding a single conversation object or a list.

    Returns:
        List of normalized conversations, in file order.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)

    raw_items = data if isinstance(data, list) else [data]
    return [process_conversation(item) for item in raw_items]
