"""Unit tests for math-safe reformatting and footnote rewriting."""

from __future__ import annotations

import pytest

from chatexporter.exporter.reformat import (
    build_post_process,
    has_fenced_code,
    normalize_math_delimiters,
    protect_math,
    reformat_html,
    reformat_markdown,
    restore_math,
    transform_footnotes_html,
    transform_footnotes_markdown,
)
from chatexporter.models import MessageMetadata


@pytest.fixture
def citation_metadata() -> MessageMetadata:
    """Metadata citing message index 3 as SourceName."""
    return MessageMetadata.model_validate(
        {
            "citations": [
                {"metadata": {"title": "SourceName", "extra": {"cited_message_idx": 3}}},
                {"metadata": {"title": None, "extra": {"cited_message_idx": 5}}},
            ]
        }
    )


class TestMathProtection:
    """Tests for delimiter normalization and sentinel protection."""

    def test_normalize_inline(self) -> None:
        r"""\(..\) becomes single dollars."""
        assert normalize_math_delimiters(r"The result is \(x^2\)") == "The result is $x^2$"

    def test_normalize_display(self) -> None:
        r"""\[..\] becomes double dollars, across lines."""
        assert normalize_math_delimiters("\\[\na+b\n\\]") == "$$\na+b\n$$"

    def test_protect_and_restore(self) -> None:
        """Spans are replaced by indexed sentinels and restored exactly."""
        text = "Let $a_1$ and $$b_*$$ hold"
        protected, spans = protect_math(text)

        assert protected == "Let ╬0╬ and ╬1╬ hold"
        assert spans == ["$a_1$", "$$b_*$$"]
        assert restore_math(protected, spans) == text

    def test_prices_not_math(self) -> None:
        """Dollar amounts separated by words are not a math span."""
        protected, spans = protect_math("It costs $5 and $10 total")
        assert spans == []
        assert protected == "It costs $5 and $10 total"

    def test_escaped_dollar_recorded(self) -> None:
        """Escaped dollars are protected on their own."""
        protected, spans = protect_math("Price is \\$5 and $x_1$ here")
        assert spans == ["\\$", "$x_1$"]
        assert protected == "Price is ╬0╬5 and ╬1╬ here"

    def test_unknown_sentinel_untouched(self) -> None:
        """Sentinels without a recorded span stay as they are."""
        assert restore_math("╬7╬", ["$x$"]) == "╬7╬"

    def test_restore_with_escape(self) -> None:
        """Restored spans can be escaped for HTML."""
        assert restore_math("╬0╬", ["$a<b$"], escape=str.upper) == "$A<B$"

    def test_has_fenced_code(self) -> None:
        """Any triple backtick counts as fenced code."""
        assert has_fenced_code("before\n```py\nx\n```") is True
        assert has_fenced_code("inline `code` only") is False


class TestReformatMarkdown:
    """Tests for reformat_markdown function."""

    def test_inline_math_normalized(self) -> None:
        r"""\(x^2\) comes out as $x^2$."""
        assert reformat_markdown(r"The result is \(x^2\)") == "The result is $x^2$"

    def test_math_survives_round_trip(self) -> None:
        """Underscores and stars inside math are not escaped."""
        text = "Let $a_1 * b_2$ hold and $c_3 * d_4$ too"
        assert reformat_markdown(text) == text

    def test_display_math_survives(self) -> None:
        """Multi-line display math keeps its backslashes."""
        text = "$$\n\\frac{a}{b} \\\\ c_1\n$$"
        assert reformat_markdown(text) == text

    def test_list_normalized(self) -> None:
        """Prose outside math is normalized."""
        assert reformat_markdown("* one\n* two") == "- one\n- two"

    def test_fenced_code_skips_everything(self) -> None:
        """Messages with fenced code are returned untouched."""
        text = "Code:\n```\nx_1 = \\(y\\)\n```\n* item"
        assert reformat_markdown(text) == text

    def test_escaped_dollar_kept(self) -> None:
        """An escaped dollar keeps its backslash and never opens a math span."""
        text = "Price is \\$5 and $x_1$ here"
        assert reformat_markdown(text) == text


class TestReformatHtml:
    """Tests for reformat_html function."""

    def test_inline_math_kept_for_katex(self) -> None:
        """Math spans reach the page intact inside rendered HTML."""
        html = reformat_html(r"The result is \(x^2\)")
        assert html == "<p>The result is $x^2$</p>"

    def test_math_is_escaped(self) -> None:
        """Restored math is HTML-escaped."""
        html = reformat_html("Check $a<b$ now")
        assert "$a&lt;b$" in html

    def test_markdown_rendered(self) -> None:
        """Markdown syntax becomes HTML."""
        html = reformat_html("**bold** and a\n\n| a | b |\n|---|---|\n| 1 | 2 |")
        assert "<strong>bold</strong>" in html
        assert "<table>" in html

    def test_fenced_code_rendered_without_protection(self) -> None:
        """Fenced code is still rendered, math inside it is left alone."""
        html = reformat_html("```\n$x_1$\n```")
        assert "<pre><code>$x_1$" in html

    def test_raw_html_escaped(self) -> None:
        """Raw HTML in assistant text is shown as text, never injected."""
        post = build_post_process("assistant", MessageMetadata(), "html")
        html = post('Hello <img src=x onerror="alert(1)"> world\n\n<script>alert(2)</script>')
        assert "<script>" not in html
        assert "<img" not in html
        assert "&lt;script&gt;alert(2)&lt;/script&gt;" in html


class TestFootnotes:
    """Tests for footnote rewriting."""

    def test_markdown_footnote(self, citation_metadata: MessageMetadata) -> None:
        """Matched markers become footnote references plus definitions."""
        result = transform_footnotes_markdown("Evidence 【3†(SourceName)】", citation_metadata)
        assert result == "Evidence [^3]\n\n[^3]: SourceName"

    def test_markdown_footnote_deduplicated(self, citation_metadata: MessageMetadata) -> None:
        """Repeated indices share a single definition."""
        result = transform_footnotes_markdown(
            "A 【3†(S)】 B 【5†(T)】 C 【3†(S)】", citation_metadata
        )
        assert result == "A [^3] B [^5] C [^3]\n\n[^3]: SourceName\n[^5]: No title"

    def test_unmatched_marker_kept(self, citation_metadata: MessageMetadata) -> None:
        """Markers without a citation are left verbatim."""
        text = "Claim 【9†(Other)】"
        assert transform_footnotes_markdown(text, citation_metadata) == text
        assert transform_footnotes_html(text, citation_metadata) == text

    def test_no_citations(self) -> None:
        """Without metadata nothing changes."""
        assert transform_footnotes_markdown("x 【1†(a)】", None) == "x 【1†(a)】"

    def test_html_marker_removed(self, citation_metadata: MessageMetadata) -> None:
        """HTML output drops matched markers entirely."""
        result = transform_footnotes_html("Evidence 【3†(SourceName)】", citation_metadata)
        assert result == "Evidence "

    def test_markdown_pipeline_keeps_footnote(self, citation_metadata: MessageMetadata) -> None:
        """The full assistant pipeline keeps the footnote syntax."""
        post = build_post_process("assistant", citation_metadata, "markdown")
        result = post("Evidence 【3†(SourceName)】")
        assert "Evidence [^3]" in result
        assert "[^3]: SourceName" in result

    def test_html_pipeline_drops_footnote(self, citation_metadata: MessageMetadata) -> None:
        """The full assistant HTML pipeline leaves no footnote syntax."""
        post = build_post_process("assistant", citation_metadata, "html")
        result = post("Evidence 【3†(SourceName)】")
        assert result == "<p>Evidence</p>"


class TestBuildPostProcess:
    """Tests for build_post_process function."""

    def test_user_markdown_verbatim(self) -> None:
        """User text is not reformatted in Markdown."""
        post = build_post_process("user", None, "markdown")
        assert post("* keep \\(this\\)") == "* keep \\(this\\)"

    def test_user_html_escaped(self) -> None:
        """User text is escaped and excluded from math rendering."""
        post = build_post_process("user", None, "html")
        assert post("a < b & $x$") == '<p class="no-katex">a &lt; b &amp; $x$</p>'

    def test_tool_html_escaped(self) -> None:
        """Every non-assistant role is escaped in HTML."""
        post = build_post_process("tool", None, "html")
        assert post("<b>") == '<p class="no-katex">&lt;b&gt;</p>'
