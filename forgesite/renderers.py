"""Body renderers for forgesite content files.

Each renderer turns the body of one content format into HTML:
- MarkdownRenderer: mistune with tables, strikethrough, task lists, bare URL
  autolinks and Pygments-highlighted fenced code.
- HTMLRenderer: passes markup through and flags complete documents.

RendererRegistry decides which files count as content at all: a file is
content exactly when some registered renderer accepts it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

import mistune
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .protocols import ContentRenderer

STANDALONE_RE = re.compile(r"<!DOCTYPE|<html", re.IGNORECASE)

MARKDOWN_PLUGINS = ["table", "strikethrough", "task_lists", "url"]


@dataclass
class RenderedBody:
    """Body HTML produced by a renderer.

    Attributes:
        html: Rendered HTML.
        standalone: True if the body is already a complete HTML document.
    """

    html: str
    standalone: bool = False


class _CodeBlockRenderer(mistune.HTMLRenderer):
    """mistune HTML output with raw HTML kept and code blocks highlighted."""

    def __init__(self):
        super().__init__(escape=False)
        self._formatter = HtmlFormatter(cssclass="highlight")

    def block_code(self, code: str, info: str | None = None) -> str:
        lang = info.split(None, 1)[0] if info and info.strip() else None
        if lang is None:
            return super().block_code(code, info)
        try:
            lexer = get_lexer_by_name(lang, stripall=True)
        except ClassNotFound:
            # Unknown fence languages still render as a plain code block.
            return super().block_code(code, info)
        return highlight(code, lexer, self._formatter)


class MarkdownRenderer:
    """Converts Markdown bodies (``.md``) to HTML."""

    source_type = "markdown"
    suffixes = (".md",)

    def __init__(self):
        self._markdown = mistune.create_markdown(
            renderer=_CodeBlockRenderer(), plugins=MARKDOWN_PLUGINS
        )

    def can_render(self, path: Path) -> bool:
        return path.suffix.lower() in self.suffixes

    def render(self, content: str) -> RenderedBody:
        return RenderedBody(html=self._markdown(content))


class HTMLRenderer:
    """Passes ``.html`` bodies through.

    A body containing a doctype or an ``<html`` tag is a standalone document
    and bypasses template wrapping.
    """

    source_type = "html"
    suffixes = (".html",)

    def can_render(self, path: Path) -> bool:
        return path.suffix.lower() in self.suffixes

    def render(self, content: str) -> RenderedBody:
        return RenderedBody(html=content, standalone=is_standalone_document(content))


def is_standalone_document(html: str) -> bool:
    """Return True if the HTML already contains a full document.

    Examples:
        >>> is_standalone_document("<!DOCTYPE html><html></html>")
        True

        >>> is_standalone_document("<p>fragment</p>")
        False
    """
    return STANDALONE_RE.search(html) is not None


class RendererRegistry:
    """Ordered set of content renderers; the first that accepts a file wins.

    Attributes:
        renderers: Registered renderers in lookup order.
    """

    def __init__(self):
        self.renderers: list[ContentRenderer] = [MarkdownRenderer(), HTMLRenderer()]

    def register(self, renderer: ContentRenderer) -> None:
        """Add a renderer for another content format."""
        self.renderers.append(renderer)

    def get_renderer(self, path: Path) -> ContentRenderer | None:
        return next((r for r in self.renderers if r.can_render(path)), None)

    def recognises(self, path: Path) -> bool:
        return self.get_renderer(path) is not None


default_renderer_registry = RendererRegistry()
