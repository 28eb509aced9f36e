"""Convert Markdown and plain text into HTML for text-like notes."""

from __future__ import annotations

import html

from markdown_it import MarkdownIt

from trilium_mcp.core.format_detection import detect_format
from trilium_mcp.data_models import ContentFormat

# Raw HTML is disabled: anything that already contains tags is detected as
# HTML and never reaches the Markdown renderer.
_markdown = MarkdownIt("commonmark", {"html": False})


def markdown_to_html(content: str) -> str:
    """Render Markdown headers, emphasis, lists and links to HTML."""
    return _markdown.render(content).rstrip("\n")


def plain_text_to_html(content: str) -> str:
    """Escape plain text and wrap it in a single paragraph.

    Line breaks are kept as ``<br>`` elements. Entity-like text such as
    ``&amp;`` is escaped again (``&amp;amp;``): only tags mark content as HTML.
    """
    escaped = html.escape(content.strip(), quote=False)
    lines = escaped.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    return f"<p>{'<br>'.join(lines)}</p>"


def to_html(content: str) -> str:
    """Return ``content`` as HTML.

    HTML and empty content are returned unchanged, so ``to_html`` applied to
    its own output is a no-op.
    """
    detected = detect_format(content)
    if detected is ContentFormat.MARKDOWN:
        return markdown_to_html(content)
    if detected is ContentFormat.PLAIN_TEXT:
        return plain_text_to_html(content)
    return content
