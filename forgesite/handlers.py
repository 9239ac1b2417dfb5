"""HTTP plumbing shared by the dev and preview servers.

Key classes:
- PooledHTTPServer: ThreadingHTTPServer whose requests run on a worker pool.
- SiteRequestHandler: Request handler base with response and logging helpers.
"""

from __future__ import annotations

import mimetypes
from concurrent.futures import ThreadPoolExecutor
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from urllib.parse import unquote, urlsplit

import click

from .utils import timestamp

DEFAULT_WORKERS = 8
STATIC_PREFIX = "/static/"


class PooledHTTPServer(ThreadingHTTPServer):
    """HTTP server that hands each accepted connection to a thread pool.

    Attributes:
        executor: Worker pool running the request handlers.
    """

    daemon_threads = True
    allow_reuse_address = True

    def __init__(self, server_address, handler_class, workers: int = DEFAULT_WORKERS):
        super().__init__(server_address, handler_class)
        self.executor = ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="forge-http"
        )

    def process_request(self, request, client_address):
        self.executor.submit(self.process_request_thread, request, client_address)

    def server_close(self):
        super().server_close()
        self.executor.shutdown(wait=True)


def _status_colour(status: int) -> str:
    if status < 300:
        return "green"
    if status < 400:
        return "blue"
    if status < 500:
        return "yellow"
    return "red"


class SiteRequestHandler(BaseHTTPRequestHandler):
    """Request handler base for the forgesite servers.

    Subclasses implement do_GET using the send_* helpers. Every response is
    logged as ``HH:MM:SS METHOD PATH STATUS SIZE``.
    """

    server_version = "Forge"

    _status = 0
    _size = 0

    @property
    def request_path(self) -> str:
        """URL-decoded request path without query string or fragment."""
        return unquote(urlsplit(self.path).path) or "/"

    def send_body(
        self, body: str | bytes, content_type: str = "text/html; charset=utf-8", status: int = 200
    ) -> None:
        data = body.encode("utf-8") if isinstance(body, str) else body
        self._status = status
        self._size = len(data)
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(data)))
        self.send_header("Cache-Control", "no-cache, no-store, must-revalidate")
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(data)

    def send_file(self, path: Path, status: int = 200) -> None:
        content_type, _ = mimetypes.guess_type(path.name)
        content_type = content_type or "application/octet-stream"
        if content_type.startswith("text/") or content_type in (
            "application/javascript",
            "application/json",
        ):
            content_type += "; charset=utf-8"
        self.send_body(path.read_bytes(), content_type, status)

    def send_not_found(self, body: str) -> None:
        self.send_body(body, status=404)

    def serve_mount(self, mount_dir: Path, prefix: str = STATIC_PREFIX) -> bool:
        """Serve a file from ``mount_dir`` if the request path is under ``prefix``.

        Returns:
            True if a response was sent.
        """
        path = self.request_path
        if not path.startswith(prefix):
            return False
        target = safe_join(mount_dir, path[len(prefix) :])
        if target is None or not target.is_file():
            self.send_body("Not Found", "text/plain; charset=utf-8", 404)
            return True
        self.send_file(target)
        return True

    def do_HEAD(self):
        self.do_GET()

    def log_request(self, code="-", size="-"):
        status = code if isinstance(code, int) else self._status
        line = (
            click.style(timestamp(), fg="blue")
            + " "
            + click.style(self.command or "-", fg="cyan")
            + f" {self.path:<30} "
            + click.style(str(status), fg=_status_colour(int(status or 0)))
            + f" {self._size}B"
        )
        click.echo(line)

    def log_message(self, format, *args):
        """Silence the default stderr logging; see log_request."""


def safe_join(root: Path, relative: str) -> Path | None:
    """Join a URL path onto a directory without escaping it.

    Examples:
        >>> safe_join(Path("/srv"), "css/site.css").as_posix()
        '/srv/css/site.css'

        >>> safe_join(Path("/srv"), "../etc/passwd") is None
        True
    """
    root = root.resolve()
    candidate = (root / relative.lstrip("/")).resolve()
    try:
        candidate.relative_to(root)
    except ValueError:
        return None
    return candidate
