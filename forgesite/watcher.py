"""Filesystem watching and rebuild coordination for the dev server.

watchdog delivers events on its own thread; ChangeHandler filters them and
puts the changed paths on a queue. A single RebuildCoordinator thread takes
them off one at a time, so rebuilds never overlap. Events are neither
coalesced nor dropped: each accepted event triggers its own full
rediscovery, version bump and broadcast.

Key members:
- should_handle: Filter out hidden, backup and unrecognised files.
- classify_change: Map a changed path to a live-reload change type.
- ChangeHandler: watchdog handler feeding the coordinator queue.
- RebuildCoordinator: Serialised rebuild loop.
- start_observer: Schedule recursive watches on the source roots.
"""

from __future__ import annotations

import queue
import threading
import time
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

import click
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from . import console
from .config import SiteConfig
from .site import SiteBuilder
from .utils import BuildInfo, timestamp

WATCHED_EXTENSIONS = frozenset({".md", ".yaml", ".yml", ".html", ".css", ".js"})

_KIND_LABELS = {
    ".md": "markdown",
    ".html": "html",
    ".css": "css",
    ".js": "javascript",
    ".yaml": "config",
    ".yml": "config",
}


class Broadcaster(Protocol):
    def broadcast(self, change_type: str, version: int) -> int:
        ...


def should_handle(path: Path) -> bool:
    """Return True for files whose changes trigger a rebuild.

    Examples:
        >>> should_handle(Path("content/blog/post.md"))
        True

        >>> should_handle(Path("content/.post.md.swp"))
        False

        >>> should_handle(Path("content/~post.md"))
        False
    """
    name = path.name
    if not name or name.startswith((".", "~")):
        return False
    return path.suffix in WATCHED_EXTENSIONS


def _is_under(path: Path, root: Path) -> bool:
    try:
        path.resolve().relative_to(root.resolve())
    except ValueError:
        return False
    return True


def classify_change(path: Path, config: SiteConfig) -> str:
    """Return the live-reload change type for a changed file.

    Templates win over the extension checks, so a stylesheet kept in the
    templates root is still a template change.

    Args:
        path: Changed file.
        config: Site configuration (source roots).

    Returns:
        One of "template", "css", "js", "config", "content" or "reload".
    """
    if _is_under(path, config.templates_path):
        return "template"
    suffix = path.suffix
    if suffix == ".css":
        return "css"
    if suffix == ".js":
        return "js"
    if suffix in (".yaml", ".yml"):
        return "config"
    if _is_under(path, config.content_path):
        return "content"
    return "reload"


class ChangeHandler(FileSystemEventHandler):
    """watchdog handler that forwards created and modified files.

    Attributes:
        submit: Callable receiving each accepted path.
    """

    def __init__(self, submit):
        super().__init__()
        self.submit = submit

    def on_created(self, event):
        self._forward(event, event.src_path)

    def on_modified(self, event):
        self._forward(event, event.src_path)

    def on_moved(self, event):
        # Editors that save via rename show up as a move onto the real file.
        self._forward(event, event.dest_path)

    def _forward(self, event, raw_path) -> None:
        if event.is_directory:
            return
        path = Path(raw_path if isinstance(raw_path, str) else raw_path.decode())
        if should_handle(path):
            self.submit(path)


class RebuildCoordinator:
    """Consumes change events and runs one rebuild per event, in order.

    Attributes:
        builder: SiteBuilder whose snapshot is rebuilt.
        build_info: Build-version service bumped after each rediscovery.
        reload_server: Live-reload broadcaster, or None.
    """

    def __init__(
        self,
        builder: SiteBuilder,
        build_info: BuildInfo,
        reload_server: Broadcaster | None = None,
    ):
        self.builder = builder
        self.build_info = build_info
        self.reload_server = reload_server
        self._queue: queue.Queue[Path | None] = queue.Queue()
        self._thread: threading.Thread | None = None

    def submit(self, path: Path) -> None:
        self._queue.put(path)

    def start(self) -> None:
        self._thread = threading.Thread(
            target=self._run, name="forge-rebuild", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        """Finish queued events, then stop the consumer thread."""
        if self._thread is None:
            return
        self._queue.put(None)
        self._thread.join()
        self._thread = None

    def join_queue(self) -> None:
        """Block until every submitted event has been handled."""
        self._queue.join()

    def _run(self) -> None:
        while True:
            path = self._queue.get()
            try:
                if path is None:
                    return
                self.handle(path)
            finally:
                self._queue.task_done()

    def handle(self, path: Path) -> str | None:
        """Rebuild the site for one changed file and notify clients.

        A failing rebuild is logged; the previous snapshot stays published.

        Args:
            path: Changed file.

        Returns:
            The change type broadcast, or None if the rebuild failed.
        """
        start = time.perf_counter()
        config = self.builder.config
        change_type = classify_change(path, config)
        self._log_change(path)

        try:
            if change_type == "template":
                click.echo("  Reloading templates...")
                self.builder.reload_base_template()
            click.echo("  Rebuilding site...")
            self.builder.discover()
            version = self.build_info.bump()
        except Exception as exc:
            click.echo(
                click.style("  ✗ Rebuild failed: ", fg="red", bold=True) + str(exc),
                err=True,
            )
            return None

        elapsed = (time.perf_counter() - start) * 1000
        console.success(f"Rebuild complete in {elapsed:.0f}ms (v{version})")
        self._notify(change_type, version)
        return change_type

    def _notify(self, change_type: str, version: int) -> None:
        if self.reload_server is None:
            return
        try:
            count = self.reload_server.broadcast(change_type, version)
        except Exception as exc:
            console.warning(f"Live-reload broadcast failed: {exc}")
            return
        if count:
            noun = "client" if count == 1 else "clients"
            click.echo(f"  Notified {count} {noun}")
        else:
            click.echo("  No clients connected")

    def _log_change(self, path: Path) -> None:
        try:
            shown = path.resolve().relative_to(self.builder.project_root.resolve())
        except ValueError:
            shown = path
        label = _KIND_LABELS.get(path.suffix, "file")
        click.echo()
        click.echo(
            click.style(timestamp(), fg="blue")
            + " Changed "
            + click.style(shown.as_posix(), bold=True)
            + click.style(f" [{label}]", fg="cyan")
        )


def start_observer(handler: FileSystemEventHandler, paths: Iterable[Path]):
    """Schedule recursive watches and start a watchdog observer.

    Roots that do not exist are reported and skipped.

    Args:
        handler: Event handler receiving every event.
        paths: Directories to watch.

    Returns:
        Tuple of (started observer, list of watched roots).
    """
    observer = Observer()
    watched: list[Path] = []
    for folder in paths:
        if folder.is_dir():
            observer.schedule(handler, str(folder), recursive=True)
            console.success(f"Watching {folder.name}")
            watched.append(folder)
        else:
            console.warning(f"Skipping {folder.name} (not found)")
    observer.start()
    return observer, watched
