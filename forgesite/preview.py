"""Preview server for an exported forgesite build.

Serves the output directory exactly as a static host would, with no
rendering and no live reload.

Key classes:
- PreviewServer: Serves ``{output_dir}`` over HTTP.
- PreviewRequestHandler: Resolves request paths to exported files.
"""

from __future__ import annotations

import functools
import threading
import time
from pathlib import Path

import click

from . import console
from .config import CONFIG_FILENAME, DEFAULT_CONFIG, load_config
from .errors import ForgeError
from .handlers import PooledHTTPServer, SiteRequestHandler, safe_join
from .html_utils import not_found_body
from .utils import format_size

ERROR_BODY = "<h1>500 - Error loading page</h1>"


def resolve_output_dir(project_root: Path) -> Path:
    """Return the output directory configured for a project.

    Projects without a forge.yaml use the default ``dist``.
    """
    if (project_root / CONFIG_FILENAME).exists():
        return load_config(project_root).output_path
    return project_root / DEFAULT_CONFIG["output_dir"]


def page_file(output_dir: Path, url: str) -> Path | None:
    """Map a request path onto an exported file.

    Examples:
        >>> page_file(Path("/srv"), "/blog/").as_posix()
        '/srv/blog/index.html'

        >>> page_file(Path("/srv"), "/about.html").as_posix()
        '/srv/about.html'
    """
    if len(url) > 1 and url.endswith("/"):
        url = url[:-1]
    if url.endswith(".html"):
        return safe_join(output_dir, url)
    return safe_join(output_dir, url.rstrip("/") + "/index.html")


class PreviewRequestHandler(SiteRequestHandler):
    """HTTP handler serving files from the output directory.

    Attributes:
        output_dir: Exported site root.
    """

    def __init__(self, *args, output_dir: Path, **kwargs):
        self.output_dir = output_dir
        super().__init__(*args, **kwargs)

    def do_GET(self):
        if self.serve_mount(self.output_dir / "static"):
            return
        url = self.request_path
        if url == "/":
            self._serve_index()
            return
        target = page_file(self.output_dir, url)
        if target is not None:
            try:
                self.send_body(target.read_bytes())
                return
            except OSError:
                pass
        self._serve_not_found()

    def _serve_index(self) -> None:
        try:
            body = (self.output_dir / "index.html").read_bytes()
        except OSError:
            self.send_body(ERROR_BODY, status=500)
            return
        self.send_body(body)

    def _serve_not_found(self) -> None:
        try:
            body = (self.output_dir / "404" / "index.html").read_bytes()
        except OSError:
            self.send_not_found(not_found_body())
            return
        self.send_body(body, status=404)


class PreviewServer:
    """Static HTTP server for a previously exported site.

    Attributes:
        project_root: Root directory of the project.
        output_dir: Directory being served.
        port: HTTP port.
    """

    def __init__(self, project_root: Path, port: int | None = None, host: str = "0.0.0.0"):
        self.project_root = project_root
        self.output_dir = resolve_output_dir(project_root)
        self.port = DEFAULT_CONFIG["port"] if port is None else port
        self.host = host
        self._httpd: PooledHTTPServer | None = None
        self._thread: threading.Thread | None = None

    def check_output(self) -> tuple[int, int]:
        """Return (file count, total bytes) of the output directory.

        Raises:
            ForgeError: If the output directory does not exist.
        """
        if not self.output_dir.is_dir():
            raise ForgeError(
                f"Build directory not found\n  Path: {self.output_dir}\n"
                "  → Run the build command first"
            )
        count = 0
        total = 0
        for item in self.output_dir.rglob("*"):
            if item.is_file():
                count += 1
                total += item.stat().st_size
        return count, total

    def start(self) -> None:  # pragma: no cover - integration path
        """Serve until interrupted with Ctrl+C."""
        count, total = self.start_background()
        console.heading("Preview Server")
        console.success("Ready to serve")
        click.echo(f"    Directory: {self.output_dir}")
        click.echo(f"    Files: {count} ({format_size(total)})")
        console.success("Server started")
        click.echo("    Local:   " + click.style(f"http://localhost:{self.port}", fg="cyan"))
        click.echo("    Network: " + click.style(f"http://{self.host}:{self.port}", fg="cyan"))
        click.echo()
        click.secho("Press Ctrl+C to stop server...", fg="blue")
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            click.secho("\nShutting down...", fg="yellow")
        finally:
            self.stop()
        console.success("Server stopped cleanly")

    def start_background(self) -> tuple[int, int]:
        """Bind the HTTP server and serve on a background thread.

        Returns:
            (file count, total bytes) of the output directory.
        """
        stats = self.check_output()
        handler = functools.partial(PreviewRequestHandler, output_dir=self.output_dir)
        self._httpd = PooledHTTPServer((self.host, self.port), handler)
        self.port = self._httpd.server_address[1]
        self._thread = threading.Thread(
            target=self._httpd.serve_forever, name="forge-preview", daemon=True
        )
        self._thread.start()
        return stats

    def stop(self) -> None:
        if self._httpd is not None:
            self._httpd.shutdown()
            self._httpd.server_close()
            self._httpd = None
        if self._thread is not None:
            self._thread.join()
            self._thread = None
