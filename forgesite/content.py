"""Content discovery for forgesite.

This module walks the content root and turns each recognised file into a Page.
The first directory under the content root is the page's content-type; the
reserved "pages" type maps to root-level URLs.

Key classes:
- Page: Dataclass representing one discovered content file.
- ContentLoader: Lists the content files under the content root.
- UrlDeriver: Derives the content-type and URL of a content file.
- ContentTemplateResolver: Picks the content template for a content-type.
- PageBuilder: Builds Page objects from source files.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from . import console
from .config import SiteConfig
from .errors import ContentError
from .frontmatter import FrontMatter, split_front_matter
from .renderers import RendererRegistry, default_renderer_registry

PAGES_TYPE = "pages"
BASE_TEMPLATE = "base.html"


@dataclass
class Page:
    """Represents a site page.

    Attributes:
        source_path: Path to the source file.
        template_path: Content template wrapping the body, if any.
        url: URL path for the page.
        content_type: First directory under the content root.
        front_matter: Metadata parsed from the head of the file.
        html: Body HTML (Markdown already converted).
        standalone: True if the body is a full document and skips templates.
    """

    source_path: Path
    template_path: Path | None
    url: str
    content_type: str
    front_matter: FrontMatter = field(default_factory=FrontMatter)
    html: str = ""
    standalone: bool = False


class ContentLoader:
    """Loads content files from a directory.

    Attributes:
        content_dir: Root of the content tree.
        renderer_registry: Decides which extensions are recognised.
    """

    def __init__(
        self, content_dir: Path, renderer_registry: RendererRegistry | None = None
    ):
        self.content_dir = content_dir
        self.renderer_registry = renderer_registry or default_renderer_registry

    def iter_files(self) -> list[Path]:
        """Return every recognised content file, sorted by path.

        Returns:
            List of paths to content files.
        """
        files: list[Path] = []
        for path in sorted(self.content_dir.rglob("*")):
            if not path.is_file():
                continue
            if self.renderer_registry.recognises(path):
                files.append(path)
        return files


class UrlDeriver:
    """Derives content-types and URLs for pages.

    ``index`` stems are flattened into their directory, and the "pages"
    content-type contributes no URL prefix.

    Examples:
        >>> UrlDeriver().derive(Path("pages/index.md"))
        ('pages', '/')

        >>> UrlDeriver().derive(Path("blog/post1.md"))
        ('blog', '/blog/post1')
    """

    def derive(self, rel: Path) -> tuple[str, str]:
        """Derive the content-type and URL of a content file.

        Args:
            rel: Path relative to the content root.

        Returns:
            Tuple of (content_type, url).
        """
        parts = list(rel.with_suffix("").parts)
        if len(parts) == 1:
            content_type, rest = PAGES_TYPE, parts
        else:
            content_type, rest = parts[0], parts[1:]

        if rest and rest[-1] == "index":
            rest = rest[:-1]
        segments = rest if content_type == PAGES_TYPE else [content_type, *rest]
        return content_type, "/" + "/".join(segments)


class ContentTemplateResolver:
    """Resolves the content template for a content-type.

    A collection may name its template in the configuration; otherwise the
    ``{content_type}.html`` convention applies. The base template is never a
    content template.

    Attributes:
        config: Site configuration.
    """

    def __init__(self, config: SiteConfig):
        self.config = config

    def resolve(self, content_type: str) -> Path | None:
        """Resolve the content template for a content-type.

        Args:
            content_type: Content-type of the page.

        Returns:
            Path to the template, or None if the page has no content template.
        """
        templates_dir = self.config.templates_path
        collection = self.config.collections.get(content_type)
        if collection is not None and collection.template:
            path = templates_dir / collection.template
            if path.name == BASE_TEMPLATE or not path.is_file():
                console.warning(
                    f"Template '{collection.template}' not found for "
                    f"collection '{content_type}'"
                )
                return None
            return path

        path = templates_dir / f"{content_type}.html"
        if path.name == BASE_TEMPLATE or not path.is_file():
            return None
        return path


class PageBuilder:
    """Builds Page objects from source files.

    Attributes:
        config: Site configuration.
        renderer_registry: Registry of content renderers.
        url_deriver: URL deriver instance.
        template_resolver: Content template resolver instance.
    """

    def __init__(
        self,
        config: SiteConfig,
        renderer_registry: RendererRegistry | None = None,
    ):
        self.config = config
        self.renderer_registry = renderer_registry or default_renderer_registry
        self.url_deriver = UrlDeriver()
        self.template_resolver = ContentTemplateResolver(config)

    def build(self, path: Path) -> Page:
        """Build a Page object from a source file.

        Args:
            path: Path to the source file under the content root.

        Returns:
            Page object.

        Raises:
            FrontMatterError: If the metadata block cannot be parsed.
            ContentError: If the file is not valid UTF-8.
            OSError: If the file cannot be read.
        """
        rel = path.relative_to(self.config.content_path)
        content_type, url = self.url_deriver.derive(rel)
        try:
            raw = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise ContentError(f"{path}: not valid UTF-8 ({exc.reason})") from exc
        front_matter, body = split_front_matter(raw, path)

        renderer = self.renderer_registry.get_renderer(path)
        if renderer is not None:
            rendered = renderer.render(body)
            html, standalone = rendered.html, rendered.standalone
        else:
            html, standalone = body, False

        template_path = None
        if not standalone:
            template_path = self.template_resolver.resolve(content_type)

        return Page(
            source_path=path,
            template_path=template_path,
            url=url,
            content_type=content_type,
            front_matter=front_matter,
            html=html,
            standalone=standalone,
        )


def discover_pages(
    config: SiteConfig,
    loader: ContentLoader | None = None,
    builder: PageBuilder | None = None,
) -> dict[str, Page]:
    """Discover every page under the content root.

    Later files win URL collisions; each collision is reported as a warning.

    Args:
        config: Site configuration.
        loader: Optional custom content loader.
        builder: Optional custom page builder.

    Returns:
        Mapping of URL to Page, in discovery order.
    """
    loader = loader or ContentLoader(config.content_path)
    builder = builder or PageBuilder(config)
    pages: dict[str, Page] = {}
    for path in loader.iter_files():
        page = builder.build(path)
        previous = pages.pop(page.url, None)
        if previous is not None:
            console.warning(
                f"URL {page.url} produced by both {previous.source_path} and "
                f"{page.source_path}; using the latter"
            )
        pages[page.url] = page
    return pages
