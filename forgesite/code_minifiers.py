"""Handwritten CSS and JavaScript minifiers.

Both are conservative text transforms: they drop comments and whitespace but
never rewrite identifiers or string contents.

Functions:
    minify_css: Pattern-based CSS minifier.
    minify_js: Tokenizing JavaScript whitespace and comment stripper.
"""

from __future__ import annotations

import re

_CSS_PASSES = [
    (re.compile(r"/\*[^*]*\*+(?:[^/*][^*]*\*+)*/"), ""),
    (re.compile(r"\s*([{}:;,>+~()])\s*"), r"\1"),
    (re.compile(r"\s+([>+~])\s+"), r"\1"),
    (re.compile(r"\s+"), " "),
    (re.compile(r":\s+"), ":"),
    (re.compile(r"\s+\{"), "{"),
    (re.compile(r"\}\s+"), "}"),
]

JS_WHITESPACE = " \t\n\r\f\v\u00a0\ufeff"

# A "/" after one of these starts a regular expression literal.
_REGEX_PRECEDERS = set("(,=:[!&|?{};+-*%<>~^")
_REGEX_KEYWORDS = frozenset(
    {
        "return", "typeof", "case", "do", "else", "in", "of", "void",
        "new", "delete", "throw", "instanceof", "yield", "await",
    }
)

# Line breaks between these characters may end a statement.
_KEEP_NEWLINE_AFTER = set("}])+-\"'`")
_KEEP_NEWLINE_BEFORE = set("{[(+-!~\"'`")


def minify_css(css: str) -> str:
    """Minify a stylesheet.

    Examples:
        >>> minify_css("a  >  b { color : red ; }  /* x */")
        'a>b{color:red;}'
    """
    result = css
    for pattern, replacement in _CSS_PASSES:
        result = pattern.sub(replacement, result)
    return result.strip()


def _is_ident(ch: str) -> bool:
    return ch.isalnum() or ch in "_$" or ord(ch) > 127


def _needs_separator(last: str, nxt: str) -> bool:
    if _is_ident(last) and _is_ident(nxt):
        return True
    return (last == "+" and nxt == "+") or (last == "-" and nxt == "-")


def _keeps_newline(last: str, nxt: str) -> bool:
    return (_is_ident(last) or last in _KEEP_NEWLINE_AFTER) and (
        _is_ident(nxt) or nxt in _KEEP_NEWLINE_BEFORE
    )


def _scan_quoted(js: str, start: int, quote: str) -> int:
    """Return the index just past the string or template literal at ``start``."""
    i = start + 1
    length = len(js)
    while i < length:
        ch = js[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i + 1
        if ch == "\n" and quote != "`":
            return i
        i += 1
    return length


def _scan_regex(js: str, start: int) -> int:
    """Return the index just past the regex literal body at ``start``."""
    i = start + 1
    length = len(js)
    in_class = False
    while i < length:
        ch = js[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "\n":
            return i
        if in_class:
            if ch == "]":
                in_class = False
        elif ch == "[":
            in_class = True
        elif ch == "/":
            return i + 1
        i += 1
    return length


def minify_js(js: str) -> str:
    """Strip comments and insignificant whitespace from JavaScript.

    String, template and regular expression literals are copied verbatim.
    Whitespace survives only where removing it would join two identifier
    characters (or ``+ +``/``- -``) into one token, or where a line break
    may terminate a statement.

    Args:
        js: JavaScript source.

    Returns:
        Minified source.

    Examples:
        >>> minify_js("var  a = 1;  // one\\nvar b = 'x  y';")
        "var a=1;var b='x  y';"
    """
    out: list[str] = []
    last = ""
    word = ""
    gap = False
    gap_newline = False
    i = 0
    length = len(js)

    def emit(token: str) -> None:
        nonlocal last, word, gap, gap_newline
        had_gap = gap
        if gap and last:
            first = token[0]
            if gap_newline and _keeps_newline(last, first):
                out.append("\n")
            elif _needs_separator(last, first):
                out.append(" ")
        gap = gap_newline = False
        out.append(token)
        last = token[-1]
        if len(token) == 1 and _is_ident(token):
            word = token if had_gap else word + token
        else:
            word = ""

    while i < length:
        ch = js[i]
        nxt = js[i + 1] if i + 1 < length else ""

        if ch in JS_WHITESPACE:
            gap = True
            if ch in "\n\r":
                gap_newline = True
            i += 1
        elif ch == "/" and nxt == "/":
            end = js.find("\n", i)
            i = length if end == -1 else end
            gap = True
        elif ch == "/" and nxt == "*":
            end = js.find("*/", i + 2)
            stop = length if end == -1 else end + 2
            if "\n" in js[i:stop]:
                gap_newline = True
            gap = True
            i = stop
        elif ch in "'\"`":
            end = _scan_quoted(js, i, ch)
            emit(js[i:end])
            i = end
        elif ch == "/" and (not last or last in _REGEX_PRECEDERS or word in _REGEX_KEYWORDS):
            end = _scan_regex(js, i)
            emit(js[i:end])
            i = end
        else:
            emit(ch)
            i += 1

    return "".join(out)
