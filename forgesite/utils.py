"""Utility functions and small services for forgesite.

Key members:
    ReadWriteLock: Multiple-reader/single-writer lock guarding the site snapshot.
    BuildInfo: Build-version counter shared by the render and broadcast paths.
    ensure_clean_dir: Ensure a directory exists and is empty.
    format_size: Human-readable byte counts for console output.
    timestamp: Wall-clock prefix for console log lines.
"""

from __future__ import annotations

import shutil
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path


class ReadWriteLock:
    """Writer-preferring multiple-reader/single-writer lock.

    Any number of readers may hold the lock together. A writer waits until
    every reader has left and excludes readers while it holds the lock.
    Readers arriving while a writer is waiting queue behind it, so a steady
    stream of renders cannot starve a rebuild.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @property
    def readers(self) -> int:
        return self._readers

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


class BuildInfo:
    """Build-version service.

    The version starts at the current epoch time in milliseconds so that it
    doubles as a cache-busting token, and every bump returns a strictly
    larger value. It is only bumped from the serialized rebuild path.

    Attributes:
        version: Current build version.
    """

    def __init__(self, version: int | None = None):
        self._version = _now_ms() if version is None else int(version)

    @property
    def version(self) -> int:
        return self._version

    def bump(self) -> int:
        """Advance the version and return the new value."""
        self._version = max(self._version + 1, _now_ms())
        return self._version


def _now_ms() -> int:
    return int(time.time() * 1000)


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty.

    If the directory exists, removes all contents. Creates the
    directory if it doesn't exist.

    Args:
        path: Directory path to clean or create.
    """
    if path.exists():
        shutil.rmtree(str(path))
    path.mkdir(parents=True, exist_ok=True)


def format_size(size: float) -> str:
    """Format a byte count as a short human-readable string.

    Examples:
        >>> format_size(512)
        '512.0 B'

        >>> format_size(2048)
        '2.0 KB'
    """
    units = ["B", "KB", "MB", "GB"]
    unit = 0
    while size >= 1024 and unit < len(units) - 1:
        size /= 1024
        unit += 1
    return f"{size:.1f} {units[unit]}"


def timestamp() -> str:
    """Return the current wall-clock time as HH:MM:SS."""
    return datetime.now().strftime("%H:%M:%S")
