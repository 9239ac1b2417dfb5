"""Error types for forgesite.

Every error raised deliberately by the package derives from ForgeError so the
CLI can report it uniformly. How each one is handled:

- ConfigError: fatal at startup.
- ContentError / FrontMatterError: raised out of discovery for an unreadable
  content file; the last-good site stays published. A missing content root
  is not an error: it is logged and an empty site is published.
- TemplateRenderError: fatal to the render of one page.
- MinificationError: never escapes a minifier; the unminified text is used.
- PageNotFoundError: answered with a 404 by the dev and preview servers.
"""

from __future__ import annotations

from pathlib import Path


class ForgeError(Exception):
    """Base class for all forgesite errors."""


class ConfigError(ForgeError):
    """The site configuration file is missing or cannot be parsed."""


class ContentError(ForgeError):
    """The content tree cannot be read."""


class FrontMatterError(ContentError):
    """Error while parsing the metadata block of a content file.

    Attributes:
        source_path: Path of the offending file, when known.
        message: Human-readable error message.
    """

    def __init__(self, message: str, source_path: Path | None = None):
        self.source_path = source_path
        self.message = message
        prefix = f"{source_path}: " if source_path is not None else ""
        super().__init__(f"{prefix}{message}")


class TemplateRenderError(ForgeError):
    """Error during template rendering with template context.

    Attributes:
        template_name: Name of the template (or source file) being rendered.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        template_name: str,
        message: str,
        original_error: Exception | None = None,
    ):
        self.template_name = template_name
        self.message = message
        self.original_error = original_error
        super().__init__(f"{template_name}: {message}")


class MinificationError(ForgeError):
    """A minifier failed to produce output."""


class PageNotFoundError(ForgeError):
    """No page is registered for the requested URL."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Page not found: {url}")
