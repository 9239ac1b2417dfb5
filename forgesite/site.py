"""Site builder for forgesite.

The SiteBuilder owns the current site snapshot: every discovered page keyed
by URL plus the collections built from them. Rendering reads the snapshot
under the shared side of a ReadWriteLock; discovery assembles a complete
new snapshot and publishes it under the exclusive side, so a render never
observes a half-built site.

Key classes:
- SiteSnapshot: Immutable {pages, collections} pair.
- SiteBuilder: Discovery and rendering entry point shared by build and dev.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

from . import console
from .collections import PageCollection, build_collections
from .config import SiteConfig
from .content import Page, discover_pages
from .errors import PageNotFoundError
from .html_utils import inject_reload_script, not_found_body
from .templates import TemplateEngine, serialize_page
from .utils import BuildInfo, ReadWriteLock

BASE_TEMPLATE_NAME = "base.html"
ERROR_PAGE_URL = "/404"


@dataclass(frozen=True)
class SiteSnapshot:
    """One complete discovery result.

    Attributes:
        pages: Mapping of URL to Page, in discovery order.
        collections: Mapping of content-type to sorted PageCollection.
        collections_context: Collections serialized for templates.
        has_error_page: True if a page is registered at ``/404``.
    """

    pages: Mapping[str, Page] = field(default_factory=dict)
    collections: Mapping[str, PageCollection] = field(default_factory=dict)
    collections_context: Mapping[str, list[dict[str, Any]]] = field(
        default_factory=dict
    )
    has_error_page: bool = False


EMPTY_SNAPSHOT = SiteSnapshot()


def normalize_url(url: str) -> str:
    """Strip the query string and any trailing slash from a request path.

    Examples:
        >>> normalize_url("/blog/")
        '/blog'

        >>> normalize_url("/?x=1")
        '/'
    """
    path = url.split("?", 1)[0].split("#", 1)[0] or "/"
    if len(path) > 1 and path.endswith("/"):
        path = path.rstrip("/") or "/"
    return path


class SiteBuilder:
    """Discovers and renders the pages of a site.

    Attributes:
        project_root: Root directory of the project.
        config: Site configuration.
        build_info: Build-version service shared with the live-reload path.
        dev_mode: Inject the live-reload client into rendered pages.
        engine: Template engine.
    """

    def __init__(
        self,
        project_root: Path,
        config: SiteConfig,
        build_info: BuildInfo | None = None,
        dev_mode: bool = False,
        engine: TemplateEngine | None = None,
    ):
        self.project_root = project_root
        self.config = config
        self.build_info = build_info or BuildInfo()
        self.dev_mode = dev_mode
        self.engine = engine or TemplateEngine(config.templates_path)
        self._lock = ReadWriteLock()
        self._snapshot = EMPTY_SNAPSHOT
        self._base_template: str | None = None
        self.reload_base_template()

    # -- base template -------------------------------------------------

    def reload_base_template(self) -> None:
        """Re-read ``base.html`` from the templates directory.

        A missing or unreadable base template is a warning; pages are then
        rendered without the outer wrapper.
        """
        path = self.config.templates_path / BASE_TEMPLATE_NAME
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            console.warning(f"{BASE_TEMPLATE_NAME} not found")
            text = None
        except OSError as exc:
            console.warning(f"Cannot read {path}: {exc}")
            text = None
        self._base_template = text

    @property
    def base_template(self) -> str | None:
        return self._base_template

    # -- discovery -----------------------------------------------------

    def discover(self) -> SiteSnapshot:
        """Rescan the content root and replace the snapshot.

        The new snapshot is assembled before the exclusive lock is released;
        if the scan raises, the previous snapshot stays published.

        Returns:
            The newly published snapshot.
        """
        start = time.perf_counter()
        with self._lock.write_locked():
            content_path = self.config.content_path
            if not content_path.is_dir():
                console.error(f"Content directory not found: {content_path}")
                self._snapshot = EMPTY_SNAPSHOT
                return self._snapshot

            pages = discover_pages(self.config)
            collections = build_collections(pages.values(), self.config)
            # Configured collections with no pages yet still loop as empty.
            collections_context: dict[str, list] = {
                name: [] for name in self.config.collections
            }
            collections_context.update(
                (name, [serialize_page(p) for p in items])
                for name, items in collections.items()
            )
            snapshot = SiteSnapshot(
                pages=MappingProxyType(pages),
                collections=MappingProxyType(collections),
                collections_context=MappingProxyType(collections_context),
                has_error_page=ERROR_PAGE_URL in pages,
            )
            self._snapshot = snapshot

        elapsed = (time.perf_counter() - start) * 1000
        console.success(
            f"Discovered {len(snapshot.pages)} pages in "
            f"{len(snapshot.collections)} collections ({elapsed:.0f}ms)"
        )
        return snapshot

    @property
    def snapshot(self) -> SiteSnapshot:
        with self._lock.read_locked():
            return self._snapshot

    @property
    def pages(self) -> Mapping[str, Page]:
        return self.snapshot.pages

    @property
    def collections(self) -> Mapping[str, PageCollection]:
        return self.snapshot.collections

    @property
    def has_error_page(self) -> bool:
        return self.snapshot.has_error_page

    def get_page(self, url: str) -> Page | None:
        return self.snapshot.pages.get(normalize_url(url))

    # -- rendering -----------------------------------------------------

    def render(self, page: Page) -> str:
        """Render a page to a complete HTML document.

        Args:
            page: Page to render.

        Returns:
            Rendered HTML.

        Raises:
            TemplateRenderError: If a template cannot be rendered.
            OSError: If the content template cannot be read.
        """
        with self._lock.read_locked():
            return self._render(page, self._snapshot)

    def render_url(self, url: str) -> str:
        """Look up a URL in the current snapshot and render it.

        Raises:
            PageNotFoundError: If no page is registered for the URL.
        """
        with self._lock.read_locked():
            snapshot = self._snapshot
            page = snapshot.pages.get(normalize_url(url))
            if page is None:
                raise PageNotFoundError(url)
            return self._render(page, snapshot)

    def render_not_found(self, url: str) -> str:
        """Render the ``/404`` page, or the inline fallback body."""
        with self._lock.read_locked():
            snapshot = self._snapshot
            page = snapshot.pages.get(ERROR_PAGE_URL)
            if page is None:
                return not_found_body(url)
            return self._render(page, snapshot)

    def _render(self, page: Page, snapshot: SiteSnapshot) -> str:
        if page.standalone:
            return page.html

        name = str(page.source_path)
        context: dict[str, Any] = {
            "site": self.config.data,
            "page": serialize_page(page),
            "collections": dict(snapshot.collections_context),
        }
        content = self.engine.render(page.html, context, name)

        if page.template_path is not None and page.template_path.is_file():
            template_text = page.template_path.read_text(encoding="utf-8")
            content = self.engine.render(
                template_text, {**context, "content": content}, str(page.template_path)
            )

        html = content
        base = self._base_template
        if base is not None:
            html = self.engine.render(
                base,
                {**context, "content": content, "version": self.build_info.version},
                BASE_TEMPLATE_NAME,
            )
        if self.dev_mode:
            html = inject_reload_script(html)
        return html
