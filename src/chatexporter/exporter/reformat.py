"""Math-safe re-serialization of assistant text.

Assistant prose goes through a structural Markdown round trip (parse, then
print) so exports get consistent formatting. The round trip can rewrite
characters inside math notation (``_`` and ``*`` are escaped, ``\\`` is
collapsed), so math spans are swapped for sentinel tokens first and put
back by index afterwards.

Pipeline for one assistant message:
1. Footnote rewrite: ``【11†(PrintWiki)】`` -> ``[^11]`` (Markdown) or removed (HTML)
2. Math protection: normalize ``\\(..\\)`` / ``\\[..\\]`` to dollars, replace spans
3. Round trip through mdformat (Markdown) or markdown-it (HTML)
4. Restore protected spans

Messages containing a fenced code block skip steps 2 and 4, and Markdown
output skips the round trip as well.
"""

from __future__ import annotations

import html
import re
from collections.abc import Callable

import mdformat
from markdown_it import MarkdownIt
from mdit_py_plugins.tasklists import tasklists_plugin

from chatexporter.constants import MATH_SENTINEL_CHAR
from chatexporter.models import MessageMetadata

PostProcess = Callable[[str], str]

# 【11†(PrintWiki)】
FOOTNOTE_MARK_PATTERN = re.compile(r"【(\d+)†\((.+?)\)】")

# Escaped dollars (\$) are recorded too; the round trip would drop the backslash
MATH_PATTERN = re.compile(
    r"\\\$"
    r"|\$\$[\s\S]+?\$\$"
    r"|\\\[[\s\S]+?\\\]"
    r"|\\\(.+?\\\)"
    r"|(?<![\\$\w])\$(?=\S)[^$\n]+?(?<=\S)\$(?!\w)"
)

_DISPLAY_BRACKETS = re.compile(r"\\\[([\s\S]+?)\\\]")
_INLINE_PARENS = re.compile(r"\\\((.+?)\\\)")
_SENTINEL = re.compile(rf"{MATH_SENTINEL_CHAR}(\d+){MATH_SENTINEL_CHAR}")

MARKDOWN_EXTENSIONS = {"gfm", "footnote"}

_md_renderer: MarkdownIt | None = None


def _get_html_renderer() -> MarkdownIt:
    global _md_renderer
    if _md_renderer is None:
        _md_renderer = (
            MarkdownIt("commonmark", {"html": False})
            .enable("table")
            .enable("strikethrough")
            .use(tasklists_plugin)
        )
    return _md_renderer


# =============================================================================
# Footnotes
# =============================================================================


def _citation_titles(metadata: MessageMetadata | None) -> dict[int, str]:
    titles: dict[int, str] = {}
    if metadata is None:
        return titles
    for citation in metadata.citations or []:
        index = citation.cited_message_idx
        if index is not None and index not in titles:
            title = citation.metadata.title if citation.metadata else None
            titles[index] = title or "No title"
    return titles


def transform_footnotes_markdown(text: str, metadata: MessageMetadata | None) -> str:
    """Rewrite matched citation markers as Markdown footnotes.

    Matched markers become ``[^n]``; one ``[^n]: <title>`` definition per
    distinct index is appended after the body. Unmatched markers stay.
    """
    titles = _citation_titles(metadata)
    used: list[int] = []

    def replace(match: re.Match[str]) -> str:
        index = int(match.group(1))
        if index not in titles:
            return match.group(0)
        if index not in used:
            used.append(index)
        return f"[^{index}]"

    output = FOOTNOTE_MARK_PATTERN.sub(replace, text)
    if not used:
        return output
    definitions = "\n".join(f"[^{index}]: {titles[index]}" for index in used)
    return f"{output}\n\n{definitions}"


def transform_footnotes_html(text: str, metadata: MessageMetadata | None) -> str:
    """Delete matched citation markers; HTML output has no footnote target."""
    titles = _citation_titles(metadata)

    def replace(match: re.Match[str]) -> str:
        return "" if int(match.group(1)) in titles else match.group(0)

    return FOOTNOTE_MARK_PATTERN.sub(replace, text)


# =============================================================================
# Math protection
# =============================================================================


def has_fenced_code(text: str) -> bool:
    return "```" in text


def normalize_math_delimiters(text: str) -> str:
    r"""Convert ``\[..\]`` to ``$$..$$`` and ``\(..\)`` to ``$..$``.

    Examples:
        >>> normalize_math_delimiters(r"The result is \(x^2\)")
        'The result is $x^2$'
    """
    text = _DISPLAY_BRACKETS.sub(lambda m: f"$${m.group(1)}$$", text)
    return _INLINE_PARENS.sub(lambda m: f"${m.group(1)}$", text)


def protect_math(text: str) -> tuple[str, list[str]]:
    """Replace every math span with ``╬<n>╬``.

    Returns:
        Tuple of (protected text, recorded spans); span ``n`` is the
        original text of sentinel ``n``.
    """
    spans: list[str] = []

    def replace(match: re.Match[str]) -> str:
        spans.append(match.group(0))
        return f"{MATH_SENTINEL_CHAR}{len(spans) - 1}{MATH_SENTINEL_CHAR}"

    return MATH_PATTERN.sub(replace, text), spans


def restore_math(
    text: str,
    spans: list[str],
    escape: Callable[[str], str] | None = None,
) -> str:
    """Put recorded spans back in place of their sentinels.

    Sentinels whose index was never recorded are left untouched.
    """

    def replace(match: re.Match[str]) -> str:
        index = int(match.group(1))
        if index >= len(spans):
            return match.group(0)
        span = spans[index]
        return escape(span) if escape else span

    return _SENTINEL.sub(replace, text)


# =============================================================================
# Round trips
# =============================================================================


def reformat_markdown(text: str) -> str:
    """Normalize Markdown prose while keeping math spans byte-identical."""
    if has_fenced_code(text):
        return text

    protected, spans = protect_math(normalize_math_delimiters(text))
    formatted = mdformat.text(protected, extensions=MARKDOWN_EXTENSIONS).rstrip()
    return restore_math(formatted, spans)


def reformat_html(text: str) -> str:
    """Render Markdown prose to HTML, keeping math spans for KaTeX."""
    renderer = _get_html_renderer()
    if has_fenced_code(text):
        return renderer.render(text).rstrip()

    protected, spans = protect_math(normalize_math_delimiters(text))
    rendered = renderer.render(protected).rstrip()
    return restore_math(rendered, spans, escape=escape_html)


def escape_html(text: str) -> str:
    return html.escape(text, quote=True)


def build_post_process(
    role: str,
    metadata: MessageMetadata | None,
    fmt: str,
) -> PostProcess:
    """Compose the text post-processing pipeline for one message.

    Markdown: assistant text is footnoted and reformatted; other text is
    kept verbatim. HTML: assistant text is footnoted and rendered; other
    text is escaped into a paragraph excluded from math rendering.
    """
    if fmt == "html":
        if role == "assistant":
            return lambda text: reformat_html(transform_footnotes_html(text, metadata))
        return lambda text: f'<p class="no-katex">{escape_html(text)}</p>'

    if role == "assistant":
        return lambda text: reformat_markdown(transform_footnotes_markdown(text, metadata))
    return lambda text: text
