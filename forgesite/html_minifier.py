"""Single-pass HTML minifier.

The scanner walks the document once, left to right, keeping an explicit
stack of open elements and one of five scanner states. Whitespace between
text runs collapses to at most one space, kept only inside an inline element
or between two alphanumeric characters. The content of ``<script>`` and
``<style>`` elements is handed to the CSS/JS minifiers without being
re-scanned as HTML.

Key members:
- HtmlMinifierOptions: Feature toggles.
- minify_html: Minify a document.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from .code_minifiers import minify_css, minify_js

VOID_ELEMENTS = frozenset(
    {
        "area", "base", "br", "col", "embed", "hr", "img", "input",
        "link", "meta", "param", "source", "track", "wbr",
    }
)

INLINE_ELEMENTS = frozenset(
    {
        "a", "span", "strong", "em", "b", "i", "u", "small", "code", "abbr",
        "cite", "kbd", "mark", "q", "s", "sub", "sup", "time", "var",
        "button", "label",
    }
)

WHITESPACE_PRESERVING = frozenset({"pre", "textarea"})
RAW_TEXT_ELEMENTS = frozenset({"script", "style"})

JS_SCRIPT_TYPES = frozenset(
    {
        "", "text/javascript", "application/javascript", "module",
        "text/ecmascript", "application/ecmascript", "application/x-javascript",
        "application/json", "application/ld+json", "importmap",
    }
)

HTML_WHITESPACE = " \t\n\r\f"

_TAG_NAME_RE = re.compile(r"[A-Za-z][^\s/>]*")
_SCRIPT_TYPE_RE = re.compile(r"""\btype\s*=\s*["']?([^"'\s>]*)""", re.IGNORECASE)

CONDITIONAL_OPEN = "<!--[if"
CONDITIONAL_CLOSE = "<![endif]"


class State(Enum):
    DEFAULT = "default"
    IN_TAG = "in-tag"
    IN_ATTRIBUTE_VALUE = "in-attribute-value"
    COMMENT_SKIP = "comment-skip"
    DOCTYPE_PASSTHROUGH = "doctype-passthrough"


@dataclass
class HtmlMinifierOptions:
    """Toggles for minify_html.

    Attributes:
        remove_comments: Drop ``<!-- -->`` comments (conditional comments
            are always kept).
        collapse_whitespace: Collapse whitespace runs outside pre/textarea.
        minify_inline_css: Minify ``<style>`` element content.
        minify_inline_js: Minify ``<script>`` element content.
    """

    remove_comments: bool = True
    collapse_whitespace: bool = True
    minify_inline_css: bool = True
    minify_inline_js: bool = True


class _Scanner:
    """Scanner state for one minify_html call."""

    def __init__(
        self,
        html: str,
        options: HtmlMinifierOptions,
        css: Callable[[str], str],
        js: Callable[[str], str],
    ):
        self.html = html
        self.length = len(html)
        self.options = options
        self.css = css
        self.js = js
        self.pos = 0
        self.state = State.DEFAULT
        self.out: list[str] = []
        self.stack: list[str] = []
        self.pending_space = False
        # Last text character emitted; None after any tag or at the start of
        # the document.
        self.prev_text: str | None = None
        self.tag = ""
        self.tag_closing = False
        self.tag_start = 0
        self.quote = ""
        self._handlers = {
            State.DEFAULT: self._scan_default,
            State.IN_TAG: self._scan_tag,
            State.IN_ATTRIBUTE_VALUE: self._scan_attribute_value,
            State.COMMENT_SKIP: self._scan_comment,
            State.DOCTYPE_PASSTHROUGH: self._scan_passthrough,
        }

    def run(self) -> str:
        while self.pos < self.length:
            self._handlers[self.state]()
        return "".join(self.out)

    # -- helpers -------------------------------------------------------

    def _preserving(self) -> bool:
        return any(tag in WHITESPACE_PRESERVING for tag in self.stack)

    def _trim_trailing_space(self) -> None:
        if self.out and self.out[-1] == " ":
            self.out.pop()

    def _flush_pending(self, next_char: str | None) -> None:
        """Emit or drop the pending collapsed space before ``next_char``."""
        if not self.pending_space:
            return
        self.pending_space = False
        if not self.out:
            return
        nearest = self.stack[-1] if self.stack else None
        if nearest in INLINE_ELEMENTS:
            self.out.append(" ")
        elif (
            self.prev_text is not None
            and next_char is not None
            and self.prev_text.isalnum()
            and next_char.isalnum()
        ):
            self.out.append(" ")

    # -- DEFAULT -------------------------------------------------------

    def _scan_default(self) -> None:
        html, pos = self.html, self.pos
        ch = html[pos]

        if ch == "<":
            if html.startswith("<!--", pos):
                self._start_comment()
                return
            if html.startswith("<!", pos) or html.startswith("<?", pos):
                self._flush_pending(None)
                self.state = State.DOCTYPE_PASSTHROUGH
                return
            closing = html.startswith("</", pos)
            match = _TAG_NAME_RE.match(html, pos + (2 if closing else 1))
            if match is not None:
                self._start_tag(closing, match)
                return

        if self._preserving():
            self.out.append(ch)
            if ch not in HTML_WHITESPACE:
                self.prev_text = ch
        elif ch in HTML_WHITESPACE and self.options.collapse_whitespace:
            self.pending_space = True
        else:
            self._flush_pending(ch)
            self.out.append(ch)
            self.prev_text = None if ch in HTML_WHITESPACE else ch
        self.pos += 1

    def _start_comment(self) -> None:
        html, pos = self.html, self.pos
        if html.startswith(CONDITIONAL_OPEN, pos):
            endif = html.find(CONDITIONAL_CLOSE, pos)
            close = html.find("-->", endif if endif != -1 else pos + 4)
            stop = self.length if close == -1 else close + 3
            self._flush_pending(None)
            self.out.append(html[pos:stop])
            self.prev_text = None
            self.pos = stop
        elif self.options.remove_comments:
            self.state = State.COMMENT_SKIP
            self.pos += 4
        else:
            close = html.find("-->", pos + 4)
            stop = self.length if close == -1 else close + 3
            self._flush_pending(None)
            self.out.append(html[pos:stop])
            self.prev_text = None
            self.pos = stop

    def _start_tag(self, closing: bool, match: re.Match) -> None:
        name = match.group(0)
        tag = name.lower()
        self._flush_pending("<")

        self.out.append("</" if closing else "<")
        self.out.append(name)
        if closing:
            if tag in self.stack:
                while self.stack.pop() != tag:
                    pass
        elif tag not in VOID_ELEMENTS:
            self.stack.append(tag)

        self.tag = tag
        self.tag_closing = closing
        self.tag_start = self.pos
        self.pos = match.end()
        self.state = State.IN_TAG

    # -- IN_TAG --------------------------------------------------------

    def _scan_tag(self) -> None:
        html, pos = self.html, self.pos
        ch = html[pos]

        if ch == "/" and html.startswith("/>", pos):
            self._trim_trailing_space()
            self.out.append("/>")
            if not self.tag_closing and self.stack and self.stack[-1] == self.tag:
                self.stack.pop()
            self.pos += 2
            self._end_tag(raw_text=False)
        elif ch == ">":
            self._trim_trailing_space()
            self.out.append(">")
            self.pos += 1
            self._end_tag(raw_text=not self.tag_closing)
        elif ch in "\"'":
            self.out.append(ch)
            self.quote = ch
            self.pos += 1
            self.state = State.IN_ATTRIBUTE_VALUE
        elif ch in HTML_WHITESPACE and self.options.collapse_whitespace:
            if self.out[-1] != " ":
                self.out.append(" ")
            self.pos += 1
        else:
            self.out.append(ch)
            self.pos += 1

    def _end_tag(self, raw_text: bool) -> None:
        self.state = State.DEFAULT
        self.prev_text = None
        if raw_text and self.tag in RAW_TEXT_ELEMENTS:
            self._capture_raw_text()

    def _capture_raw_text(self) -> None:
        """Copy script/style content up to its closing tag, minified."""
        closing = re.compile(rf"</{self.tag}\s*>", re.IGNORECASE)
        match = closing.search(self.html, self.pos)
        end = self.length if match is None else match.start()
        content = self.html[self.pos : end].strip(HTML_WHITESPACE)
        if content:
            content = self._minify_raw_text(content)
        if content:
            self.out.append(content)
        self.pos = end

    def _minify_raw_text(self, content: str) -> str:
        if self.tag == "style":
            return self.css(content) if self.options.minify_inline_css else content
        if not self.options.minify_inline_js:
            return content
        opening = self.html[self.tag_start : self.pos]
        match = _SCRIPT_TYPE_RE.search(opening)
        script_type = match.group(1).lower() if match else ""
        if script_type not in JS_SCRIPT_TYPES:
            return content
        return self.js(content)

    # -- IN_ATTRIBUTE_VALUE --------------------------------------------

    def _scan_attribute_value(self) -> None:
        end = self.html.find(self.quote, self.pos)
        stop = self.length if end == -1 else end + 1
        self.out.append(self.html[self.pos : stop])
        self.pos = stop
        self.state = State.IN_TAG

    # -- COMMENT_SKIP --------------------------------------------------

    def _scan_comment(self) -> None:
        end = self.html.find("-->", self.pos)
        self.pos = self.length if end == -1 else end + 3
        self.state = State.DEFAULT

    # -- DOCTYPE_PASSTHROUGH -------------------------------------------

    def _scan_passthrough(self) -> None:
        end = self.html.find(">", self.pos)
        stop = self.length if end == -1 else end + 1
        self.out.append(self.html[self.pos : stop])
        self.prev_text = None
        self.pos = stop
        self.state = State.DEFAULT


def minify_html(
    html: str,
    options: HtmlMinifierOptions | None = None,
    css: Callable[[str], str] = minify_css,
    js: Callable[[str], str] = minify_js,
) -> str:
    """Minify an HTML document.

    Args:
        html: Document text.
        options: Feature toggles; defaults enable everything.
        css: Minifier applied to ``<style>`` content.
        js: Minifier applied to ``<script>`` content.

    Returns:
        Minified document.

    Examples:
        >>> minify_html("<div>\\n  <p>Hello   world</p>\\n</div>")
        '<div><p>Hello world</p></div>'

        >>> minify_html("<p>a <!-- note --> b</p>")
        '<p>a b</p>'

        >>> minify_html("<p>Hello <strong>world</strong></p>")
        '<p>Hello<strong>world</strong></p>'
    """
    return _Scanner(html, options or HtmlMinifierOptions(), css, js).run()
