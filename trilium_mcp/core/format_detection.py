"""Classify raw note content as HTML, Markdown, plain text or empty."""

from __future__ import annotations

import re

from trilium_mcp.data_models import ContentFormat

# Opening or self-closing tag, e.g. <p>, <a href="x">, <br/>.
_HTML_TAG = re.compile(r"<[A-Za-z][A-Za-z0-9-]*(?:\s[^<>]*)?/?>")

_MARKDOWN_SIGNALS = (
    re.compile(r"^#{1,6}\s+\S", re.MULTILINE),  # heading
    re.compile(r"\*\*[^*\n]+\*\*"),  # bold
    re.compile(r"^\s*[-*+]\s+\S", re.MULTILINE),  # list item
    re.compile(r"\[[^\]\n]+\]\([^)\s]+\)"),  # link
)


def is_html(content: str) -> bool:
    """Return ``True`` when ``content`` contains an HTML opening tag."""
    return _HTML_TAG.search(content) is not None


def is_markdown(content: str) -> bool:
    """Return ``True`` when ``content`` shows at least one Markdown signal."""
    return any(pattern.search(content) for pattern in _MARKDOWN_SIGNALS)


def detect_format(content: str) -> ContentFormat:
    """Classify ``content``.

    HTML is checked before Markdown so that content which already carries
    markup is never wrapped a second time. Never raises.

    Args:
        content: Raw content submitted by the caller.

    Returns:
        The detected :class:`ContentFormat`.
    """
    if not content or not content.strip():
        return ContentFormat.EMPTY
    if is_html(content):
        return ContentFormat.HTML
    if is_markdown(content):
        return ContentFormat.MARKDOWN
    return ContentFormat.PLAIN_TEXT
