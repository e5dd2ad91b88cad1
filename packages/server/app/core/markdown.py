"""
Minimal markdown → HTML rendering for listing bodies.

Supports paragraphs (blank-line separated), hard line breaks, **bold**,
*emphasis*, `inline code` and [text](http(s)://links). Everything else is
escaped, so raw HTML in the source never reaches the page.
"""

from __future__ import annotations

import html
import re

_CODE = re.compile(r"`([^`\n]+)`")
_BOLD = re.compile(r"\*\*(?=\S)(.+?)(?<=\S)\*\*")
_EM = re.compile(r"(?<!\*)\*(?=\S)([^*\n]+?)(?<=\S)\*(?!\*)")
_LINK = re.compile(r"\[([^\]\n]+)\]\((https?://[^)\s]+)\)")
_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


def _render_inline(text: str) -> str:
    # Code spans are pulled out first so their contents are not formatted.
    spans: list[str] = []

    def _stash(match: re.Match) -> str:
        spans.append(f"<code>{match.group(1)}</code>")
        return f"\x00{len(spans) - 1}\x00"

    text = _CODE.sub(_stash, html.escape(text, quote=True))
    text = _LINK.sub(r'<a href="\2" rel="nofollow noopener">\1</a>', text)
    text = _BOLD.sub(r"<strong>\1</strong>", text)
    text = _EM.sub(r"<em>\1</em>", text)
    return re.sub(r"\x00(\d+)\x00", lambda m: spans[int(m.group(1))], text)


def render_markdown(source: str) -> str:
    """Render listing markdown to sanitized HTML."""
    # NUL delimits code-span placeholders in _render_inline
    source = source.replace("\x00", "").replace("\r\n", "\n").strip()
    if not source:
        return ""
    paragraphs = []
    for block in _PARAGRAPH_BREAK.split(source):
        lines = [_render_inline(line.strip()) for line in block.split("\n")]
        paragraphs.append("<p>" + "<br>\n".join(lines) + "</p>")
    return "\n".join(paragraphs)
