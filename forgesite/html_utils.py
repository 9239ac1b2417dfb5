"""HTML utility functions for forgesite.

This module provides HTML string helpers shared by the site builder and
the HTTP servers.

Functions:
    escape_html: Escape special HTML characters in a string.
    inject_reload_script: Insert the live-reload client tag into a page.
    not_found_body: Inline fallback body for missing pages.
"""

from __future__ import annotations

RELOAD_SCRIPT_TAG = '\n<script defer src="/livereload.js"></script>\n'


def escape_html(text: str) -> str:
    """Escape special HTML characters in a string.

    Args:
        text: The string to escape.

    Returns:
        The escaped string, safe for inclusion in HTML.

    Examples:
        >>> escape_html('<script>alert("XSS")</script>')
        '&lt;script&gt;alert(&quot;XSS&quot;)&lt;/script&gt;'

        >>> escape_html('Tom & Jerry')
        'Tom &amp; Jerry'
    """
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def inject_reload_script(html: str, snippet: str = RELOAD_SCRIPT_TAG) -> str:
    """Insert a script snippet immediately before ``</head>``.

    Documents without a ``</head>`` get the snippet appended.

    Examples:
        >>> inject_reload_script("<head></head>", "<s>")
        '<head><s></head>'

        >>> inject_reload_script("<p>x</p>", "<s>")
        '<p>x</p><s>'
    """
    index = html.find("</head>")
    if index == -1:
        return html + snippet
    return html[:index] + snippet + html[index:]


def not_found_body(url: str | None = None) -> str:
    """Return the inline 404 body used when the site has no /404 page."""
    if url is None:
        return (
            "<h1>404 - Page Not Found</h1>"
            "<p>The page you're looking for doesn't exist.</p>"
        )
    return f"<h1>404 - Page Not Found</h1><p>URL: {escape_html(url)}</p>"
