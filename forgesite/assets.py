"""Static asset export for forgesite.

Everything under the static root is mirrored into ``{output}/static``.
Stylesheets, scripts and HTML files go through the matching minifier when
minification of their kind is enabled; any other file is copied byte for
byte.

Key classes:
- AssetProcessor: One way of writing an asset.
- MinifyingProcessor / CopyProcessor: The two built-in processors.
- AssetProcessorRegistry: Picks the processor for a file, highest rank first.
- AssetPipeline: Walks the static root.
"""

from __future__ import annotations

import shutil
from abc import ABC, abstractmethod
from pathlib import Path

from . import console
from .config import SiteConfig
from .protocols import Minifier

STATIC_MOUNT = "static"

KIND_BY_SUFFIX = {
    ".css": "css",
    ".js": "js",
    ".html": "html",
}


class AssetProcessor(ABC):
    """Writes one static asset into the output tree.

    Attributes:
        rank: Lookup order in the registry; higher ranks are tried first.
    """

    rank = 0

    @abstractmethod
    def handles(self, path: Path) -> bool:
        ...

    @abstractmethod
    def write(self, source: Path, dest: Path) -> str:
        """Write ``source`` to ``dest``.

        Returns:
            Short note for the console line ("minified", "copied").
        """
        ...


class CopyProcessor(AssetProcessor):
    """Copies any file unchanged; the fallback for every other type."""

    def handles(self, path: Path) -> bool:
        return True

    def write(self, source: Path, dest: Path) -> str:
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, dest)
        return "copied"


class MinifyingProcessor(CopyProcessor):
    """Minifies text assets of one kind, or copies them when disabled.

    Attributes:
        kind: Minifier kind ("css", "js" or "html").
        minifier: Minifier used when enabled.
        enabled: Whether output of this kind is minified.
    """

    rank = 10

    def __init__(self, kind: str, minifier: Minifier | None, enabled: bool):
        self.kind = kind
        self.minifier = minifier
        self.enabled = enabled and minifier is not None

    def handles(self, path: Path) -> bool:
        return KIND_BY_SUFFIX.get(path.suffix.lower()) == self.kind

    def write(self, source: Path, dest: Path) -> str:
        if not self.enabled:
            return super().write(source, dest)
        try:
            text = source.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            super().write(source, dest)
            return "copied, not UTF-8"
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(self.minifier.minify(self.kind, text), encoding="utf-8")
        return "minified"


class AssetProcessorRegistry:
    """Processors kept in rank order."""

    def __init__(self, processors: list[AssetProcessor] | None = None):
        self.processors: list[AssetProcessor] = []
        for processor in processors or []:
            self.register(processor)

    def register(self, processor: AssetProcessor) -> None:
        self.processors.append(processor)
        self.processors.sort(key=lambda p: p.rank, reverse=True)

    def find(self, path: Path) -> AssetProcessor | None:
        return next((p for p in self.processors if p.handles(path)), None)


def default_registry(config: SiteConfig, minifier: Minifier | None) -> AssetProcessorRegistry:
    """Build the registry used by ``forge build``.

    Args:
        config: Site configuration (per-kind minification toggles).
        minifier: Minifier for text assets, or None to copy everything.
    """
    processors: list[AssetProcessor] = [
        MinifyingProcessor(kind, minifier, config.minify_enabled(kind))
        for kind in sorted(set(KIND_BY_SUFFIX.values()))
    ]
    processors.append(CopyProcessor())
    return AssetProcessorRegistry(processors)


class AssetPipeline:
    """Mirrors the static root into the output directory.

    Attributes:
        static_dir: Source static root.
        target_dir: ``{output}/static``.
        registry: Processors used for each file.
    """

    def __init__(
        self,
        config: SiteConfig,
        minifier: Minifier | None = None,
        registry: AssetProcessorRegistry | None = None,
    ):
        self.static_dir = config.static_path
        self.target_dir = config.output_path / STATIC_MOUNT
        self.registry = registry or default_registry(config, minifier)

    def run(self) -> int:
        """Export every file under the static root.

        Returns:
            Number of files written.
        """
        if not self.static_dir.is_dir():
            return 0

        console.heading("Processing static files")
        written = 0
        for source in sorted(p for p in self.static_dir.rglob("*") if p.is_file()):
            rel = source.relative_to(self.static_dir)
            processor = self.registry.find(source)
            if processor is None:
                continue
            note = processor.write(source, self.target_dir / rel)
            written += 1
            console.success(f"{rel.as_posix()} ({note})")
        return written
