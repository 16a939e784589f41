"""Per content-type rendering of one message.

``ContentRenderer.render`` dispatches on the message's content type. The
Markdown and HTML subclasses share that dispatch and only override the
syntax hooks (code blocks, quotes, link lists, images, transcripts).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence

from chatexporter.constants import (
    MISSING_IMAGE_PLACEHOLDER,
    UNSUPPORTED_CONTENT_MARKER,
    UNSUPPORTED_MULTIMODAL_MARKER,
)
from chatexporter.exporter.reformat import escape_html
from chatexporter.images.types import ImageStrategy, ProcessedImage
from chatexporter.models import MessageContent, MessageMetadata

PostProcess = Callable[[str], str]

# Multimodal parts that carry no exportable content
SILENT_PART_TYPES = frozenset({"audio_asset_pointer", "real_time_user_audio_video_asset_pointer"})


def _identity(text: str) -> str:
    return text


class ContentRenderer(ABC):
    """Base renderer; subclasses supply the format-specific syntax."""

    def __init__(self, strategy: ImageStrategy | str = ImageStrategy.EMBED_BASE64) -> None:
        self.strategy = ImageStrategy(strategy)

    # -- syntax hooks ---------------------------------------------------------

    @abstractmethod
    def code_block(self, label: str, code: str) -> str:
        """Label plus a fenced or preformatted code block."""

    @abstractmethod
    def quote(self, text: str) -> str:
        """Block quote."""

    @abstractmethod
    def link_list(self, links: Sequence[tuple[str, str]]) -> str:
        """Quoted list of (title, url) links."""

    @abstractmethod
    def image(self, src: str) -> str:
        """Image reference for a successful image."""

    @abstractmethod
    def marker(self, text: str) -> str:
        """Plain-text marker for failed or omitted images."""

    @abstractmethod
    def transcript(self, text: str) -> str:
        """Audio transcription text."""

    # -- images ---------------------------------------------------------------

    def resolve_image(self, processed_images: Sequence[ProcessedImage], global_index: int) -> str:
        """Render the processed image at ``global_index``.

        A missing slot or empty content degrades to ``[IMAGE_<n>]``; failed
        images and text markers render as plain text, never as a link.
        """
        image = processed_images[global_index] if 0 <= global_index < len(processed_images) else None
        if image is None or not image.content:
            return MISSING_IMAGE_PLACEHOLDER.format(index=global_index)
        if image.failed or self.strategy is ImageStrategy.TEXT_MARKER:
            return self.marker(image.content)
        return self.image(image.content)

    # -- dispatch -------------------------------------------------------------

    def render(
        self,
        content: MessageContent,
        metadata: MessageMetadata | None = None,
        post_process: PostProcess | None = None,
        processed_images: Sequence[ProcessedImage] = (),
        image_start_index: int = 0,
    ) -> str:
        """Render one message's content into a document fragment.

        Args:
            content: Message content
            metadata: Message metadata (citations, aggregated results)
            post_process: Text pipeline for prose; never applied to code,
                quotes or links
            processed_images: Conversation-wide processed image list
            image_start_index: Global index of this message's first image
        """
        post = post_process or _identity
        metadata = metadata or MessageMetadata()
        content_type = content.content_type

        if content_type == "text":
            return post("\n".join(p for p in content.parts or [] if isinstance(p, str)))

        if content_type == "code":
            return self.code_block("Code", content.text or "")

        if content_type == "execution_output":
            return self._render_execution_output(
                content, metadata, processed_images, image_start_index
            )

        if content_type == "tether_quote":
            return self.quote(content.title or content.text or "")

        if content_type == "tether_browsing_display":
            cite = metadata.cite_metadata
            items = (cite.metadata_list if cite else None) or []
            if not items:
                return ""
            return self.link_list([(item.title or "", item.url or "") for item in items])

        if content_type == "multimodal_text":
            return self._render_multimodal(content, post, processed_images, image_start_index)

        return post(UNSUPPORTED_CONTENT_MARKER.format(content_type=content_type))

    def _render_execution_output(
        self,
        content: MessageContent,
        metadata: MessageMetadata,
        processed_images: Sequence[ProcessedImage],
        image_start_index: int,
    ) -> str:
        result = self.code_block("Result", content.text or "")
        aggregate = metadata.aggregate_result
        entries = (aggregate.messages if aggregate else None) or []
        image_count = sum(1 for entry in entries if entry.message_type == "image")
        if not image_count:
            return result

        images = [
            self.resolve_image(processed_images, image_start_index + local_index)
            for local_index in range(image_count)
        ]
        return "\n\n".join([result, *images])

    def _render_multimodal(
        self,
        content: MessageContent,
        post: PostProcess,
        processed_images: Sequence[ProcessedImage],
        image_start_index: int,
    ) -> str:
        rendered: list[str] = []
        local_index = 0
        for part in content.parts or []:
            if isinstance(part, str):
                rendered.append(post(part))
                continue

            part_type = part.content_type
            if part_type == "image_asset_pointer":
                rendered.append(
                    self.resolve_image(processed_images, image_start_index + local_index)
                )
                local_index += 1
            elif part_type == "audio_transcription":
                rendered.append(self.transcript(part.text or ""))
            elif part_type in SILENT_PART_TYPES:
                continue
            else:
                rendered.append(post(UNSUPPORTED_MULTIMODAL_MARKER))
        return "\n".join(rendered)


class MarkdownContentRenderer(ContentRenderer):
    def code_block(self, label: str, code: str) -> str:
        return f"{label}:\n```\n{code}\n```"

    def quote(self, text: str) -> str:
        return f"> {text}"

    def link_list(self, links: Sequence[tuple[str, str]]) -> str:
        return "\n".join(f"> [{title}]({url})" for title, url in links)

    def image(self, src: str) -> str:
        return f"![image]({src})"

    def marker(self, text: str) -> str:
        return text

    def transcript(self, text: str) -> str:
        return f"[audio] {text}"


class HtmlContentRenderer(ContentRenderer):
    def code_block(self, label: str, code: str) -> str:
        return f"<p>{label}:</p>\n<pre><code>{escape_html(code)}</code></pre>"

    def quote(self, text: str) -> str:
        return f"<blockquote>{escape_html(text)}</blockquote>"

    def link_list(self, links: Sequence[tuple[str, str]]) -> str:
        anchors = "<br>\n".join(
            f'<a href="{escape_html(url)}" target="_blank" rel="noopener">{escape_html(title)}</a>'
            for title, url in links
        )
        return f"<blockquote>\n{anchors}\n</blockquote>"

    def image(self, src: str) -> str:
        return f'<img src="{escape_html(src)}" />'

    def marker(self, text: str) -> str:
        return f'<p class="image-marker">{escape_html(text)}</p>'

    def transcript(self, text: str) -> str:
        return f'<div style="font-style: italic; opacity: 0.65;">"{escape_html(text)}"</div>'

