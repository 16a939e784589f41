"""HTML document assembly."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path

from chatexporter.config import ChatExporterConfig
from chatexporter.exporter.common import (
    conversation_source,
    date_str,
    format_message_time,
    iter_rendered_messages,
    render_meta_items,
    transform_author,
)
from chatexporter.exporter.content import HtmlContentRenderer
from chatexporter.exporter.reformat import build_post_process, escape_html
from chatexporter.images.types import ImageStrategy, ProcessedImage
from chatexporter.models import Conversation, Message

# Built-in page template directory
TEMPLATE_PATH = Path(__file__).parent / "template.html"


@lru_cache(maxsize=1)
def load_template() -> str:
    return TEMPLATE_PATH.read_text(encoding="utf-8")


def _avatar(message: Message, author: str, user_avatar: str) -> str:
    if message.author.role == "user":
        src = f' src="{escape_html(user_avatar)}"' if user_avatar else ""
        return f'<img alt="{escape_html(author)}"{src} />'
    return '<svg width="41" height="41"><use xlink:href="#chatgpt" /></svg>'


def _author_type(message: Message) -> str:
    if message.author.role == "user":
        return "user"
    return "GPT-4" if (message.metadata.model_slug or "").startswith("gpt-4") else "GPT-3"


def _message_time(message: Message, config: ChatExporterConfig) -> str:
    ts = config.timestamp
    if not (ts.enabled and ts.html and message.create_time):
        return ""
    short, iso, full = format_message_time(message.create_time, ts.use_24h)
    return f'<time class="time" datetime="{iso}" title="{full}">{short}</time>'


def _details(items: list[tuple[str, str]]) -> str:
    if not items:
        return ""
    rows = "\n".join(
        f'<div class="metadata_item"><div>{escape_html(name)}</div><div>{escape_html(value)}</div></div>'
        for name, value in items
    )
    return (
        "<details>\n"
        "    <summary>Metadata</summary>\n"
        f'    <div class="metadata_container">\n{rows}\n    </div>\n'
        "</details>"
    )


def conversation_to_html(
    conversation: Conversation,
    processed_images: Sequence[ProcessedImage] = (),
    strategy: ImageStrategy | str = ImageStrategy.EMBED_BASE64,
    config: ChatExporterConfig | None = None,
) -> str:
    """Assemble a conversation into a standalone HTML page."""
    config = config or ChatExporterConfig()
    renderer = HtmlContentRenderer(strategy)

    blocks: list[str] = []
    for message, image_start in iter_rendered_messages(conversation):
        post_process = build_post_process(message.author.role, message.metadata, "html")
        body = renderer.render(
            message.content,
            message.metadata,
            post_process,
            processed_images,
            image_start,
        )
        author = transform_author(message.author)
        blocks.append(
            f"""
<div class="conversation-item">
    <div class="author {_author_type(message)}">
        {_avatar(message, author, config.html.user_avatar)}
    </div>
    <div class="conversation-content-wrapper">
        <div class="conversation-content">
            {body}
        </div>
    </div>
    {_message_time(message, config)}
</div>"""
        )

    source = conversation_source(conversation, config.export.base_url)
    details = _details(render_meta_items(config.active_meta_items(), conversation, source))

    replacements = {
        "{{title}}": escape_html(conversation.title),
        "{{date}}": date_str(),
        "{{time}}": datetime.now(timezone.utc).isoformat(),
        "{{source}}": source,
        "{{lang}}": config.html.lang,
        "{{theme}}": config.html.theme,
        "{{details}}": details,
    }
    page = load_template()
    for placeholder, value in replacements.items():
        page = page.replace(placeholder, value)
    # Content last so message text containing "{{...}}" is never substituted
    return page.replace("{{content}}", "\n\n".join(blocks))
