"""Static export for forgesite.

Renders every discovered page into the output directory and mirrors the
static assets. A page that fails to render or write is reported and counted;
the remaining pages are still exported.

Key members:
- BuildResult: Summary of an export.
- export_site: Export the current snapshot of a SiteBuilder.
- build_site: Load, discover and export a project.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path

from . import console
from .assets import AssetPipeline
from .config import load_config
from .minifiers import select_minifier
from .protocols import Minifier
from .site import SiteBuilder
from .utils import ensure_clean_dir


@dataclass
class BuildResult:
    """Result of a site export.

    Attributes:
        output_dir: Directory the site was written to.
        written: URLs of the pages written, in export order.
        errors: Mapping of URL to error message for pages that failed.
        static_files: Number of static files processed.
    """

    output_dir: Path
    written: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)
    static_files: int = 0

    @property
    def ok(self) -> bool:
        return not self.errors


def page_output_path(output_dir: Path, url: str) -> Path:
    """Return the file a page URL is exported to.

    Examples:
        >>> page_output_path(Path("dist"), "/").as_posix()
        'dist/index.html'

        >>> page_output_path(Path("dist"), "/blog/post1").as_posix()
        'dist/blog/post1/index.html'
    """
    trimmed = url.strip("/")
    if not trimmed:
        return output_dir / "index.html"
    return output_dir / trimmed / "index.html"


def export_site(builder: SiteBuilder, minifier: Minifier | None = None) -> BuildResult:
    """Export the builder's current snapshot to the output directory.

    The output directory is wiped first. HTML pages are minified when a
    minifier is given and HTML minification is enabled.

    Args:
        builder: SiteBuilder whose snapshot has been discovered.
        minifier: Minifier for pages and static assets.

    Returns:
        BuildResult describing what was written.
    """
    config = builder.config
    output_dir = config.output_path
    result = BuildResult(output_dir=output_dir)
    minify_pages = minifier is not None and config.minify_enabled("html")

    ensure_clean_dir(output_dir)
    console.heading("Building pages")
    start = time.perf_counter()

    pages = builder.pages
    for url in sorted(pages):
        page = pages[url]
        try:
            html = builder.render(page)
            if minify_pages:
                html = minifier.minify("html", html)
            out_path = page_output_path(output_dir, url)
            out_path.parent.mkdir(parents=True, exist_ok=True)
            out_path.write_text(html, encoding="utf-8")
        except Exception as exc:
            result.errors[url] = str(exc)
            console.error(f"{url}: {exc}")
            continue
        result.written.append(url)
        console.success(url)

    elapsed = (time.perf_counter() - start) * 1000
    summary = f"Built {len(result.written)} pages"
    if result.errors:
        summary += f" ({len(result.errors)} errors)"
    console.success(f"{summary} in {elapsed:.0f}ms")

    result.static_files = AssetPipeline(config, minifier).run()
    return result


def build_site(project_root: Path) -> BuildResult:
    """Load the project configuration, discover content and export the site.

    Args:
        project_root: Root directory of the project.

    Returns:
        BuildResult describing what was written.

    Raises:
        ConfigError: If forge.yaml is missing or invalid.
    """
    start = time.perf_counter()
    config = load_config(project_root)
    builder = SiteBuilder(project_root, config)
    builder.discover()

    minifier = select_minifier(config) if config.minify_output else None
    try:
        result = export_site(builder, minifier)
    finally:
        if minifier is not None:
            minifier.close()

    elapsed = (time.perf_counter() - start) * 1000
    console.success(f"Site written to {result.output_dir} in {elapsed:.0f}ms")
    return result
