"""
Tests for tag list parsing and listing markdown rendering.
"""

from __future__ import annotations

from app.core.markdown import render_markdown
from app.services.tags import normalize_tag, parse_tag_list, split_cached_tag_list


class TestTagParsing:
    def test_normalize(self):
        assert normalize_tag("  Ruby-On-Rails ") == "rubyonrails"

    def test_comma_separated(self):
        assert parse_tag_list("go, Rust ,python", 8) == ["go", "rust", "python"]

    def test_list_input(self):
        assert parse_tag_list(["Go", "go", ""], 8) == ["go"]

    def test_cap_keeps_first(self):
        assert parse_tag_list("a, b, c, d", 2) == ["a", "b"]

    def test_none_and_empty(self):
        assert parse_tag_list(None, 8) == []
        assert parse_tag_list(" , ,", 8) == []

    def test_split_cached(self):
        assert split_cached_tag_list("go, rust") == ["go", "rust"]
        assert split_cached_tag_list("") == []


class TestMarkdown:
    def test_paragraphs_and_breaks(self):
        assert render_markdown("one\ntwo\n\nthree") == "<p>one<br>\ntwo</p>\n<p>three</p>"

    def test_inline_formatting(self):
        assert render_markdown("**bold** and *em* and `x*y*`") == (
            "<p><strong>bold</strong> and <em>em</em> and <code>x*y*</code></p>"
        )

    def test_links(self):
        assert render_markdown("[site](https://example.com)") == (
            '<p><a href="https://example.com" rel="nofollow noopener">site</a></p>'
        )

    def test_non_http_links_stay_text(self):
        assert "<a" not in render_markdown("[x](javascript:alert(1))")

    def test_raw_html_is_escaped(self):
        assert render_markdown("<script>alert(1)</script>") == (
            "<p>&lt;script&gt;alert(1)&lt;/script&gt;</p>"
        )

    def test_empty(self):
        assert render_markdown("   ") == ""

    def test_nul_characters_are_dropped(self):
        assert render_markdown("price \x007\x00 only") == "<p>price 7 only</p>"

    def test_nul_cannot_splice_code_spans(self):
        assert render_markdown("`a` and \x000\x00") == "<p><code>a</code> and 0</p>"
