"""Protocol definitions for forgesite.

These protocols are the seams between the pipeline and its pluggable parts:
content renderers and minifiers. Tests substitute fakes through them.
"""

from __future__ import annotations

from abc import abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .renderers import RenderedBody


@runtime_checkable
class ContentRenderer(Protocol):
    """Protocol for rendering the body of a content file to HTML.

    Each implementation handles one content format.
    """

    @abstractmethod
    def can_render(self, path: Path) -> bool:
        """Check if this renderer can handle the given file.

        Args:
            path: Path to the source file.

        Returns:
            True if this renderer can process the file.
        """
        ...

    @abstractmethod
    def render(self, content: str) -> RenderedBody:
        """Render a document body to HTML.

        Args:
            content: Body text with the front matter already removed.

        Returns:
            RenderedBody holding the HTML and the standalone flag.
        """
        ...

    @property
    @abstractmethod
    def source_type(self) -> str:
        """Return the source type identifier (e.g., 'markdown', 'html')."""
        ...


@runtime_checkable
class Minifier(Protocol):
    """Protocol for the minification capability.

    Implementations must never raise and never return an empty string for
    non-empty input: on any failure the input is returned unchanged.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier shown in console output."""
        ...

    @abstractmethod
    def minify(self, kind: str, text: str) -> str:
        """Minify text of the given kind.

        Args:
            kind: One of "html", "css" or "js".
            text: Source text.

        Returns:
            Minified text, or ``text`` unchanged on failure.
        """
        ...
