"""Development server for forgesite.

Renders pages on demand from the in-memory site snapshot and keeps browsers
in sync while content is edited:
- Serves static assets, the build version and the live-reload client.
- Renders every other path through the SiteBuilder, falling back to the
  ``/404`` page (or an inline body) for unknown URLs.
- Watches the source roots and rebuilds plus notifies clients on change.

Key classes:
- DevServer: Main class for running the development server.
- DevRequestHandler: HTTP request handler for the dev routes.
"""

from __future__ import annotations

import functools
import json
import re
import threading
import time
from importlib import resources
from pathlib import Path

import click

from . import console
from .config import load_config
from .errors import PageNotFoundError
from .handlers import PooledHTTPServer, SiteRequestHandler
from .livereload import LiveReloadServer
from .site import SiteBuilder
from .utils import BuildInfo
from .watcher import ChangeHandler, RebuildCoordinator, start_observer

WS_URL_PLACEHOLDER = re.compile(r"\{\{\s*livereload_ws_url\s*\}\}")


@functools.lru_cache(maxsize=1)
def livereload_client() -> str:
    """Return the packaged live-reload client script."""
    return (
        (resources.files("forgesite") / "assets" / "livereload.js")
        .read_text(encoding="utf-8")
    )


def client_script(ws_url: str) -> str:
    """Return the live-reload client with its WebSocket URL filled in."""
    return WS_URL_PLACEHOLDER.sub(ws_url, livereload_client())


class DevRequestHandler(SiteRequestHandler):
    """HTTP handler for the dev server routes.

    Attributes:
        builder: SiteBuilder rendering pages.
        static_dir: Directory mounted at ``/static/``.
        ws_port: Port of the live-reload server.
    """

    def __init__(self, *args, builder: SiteBuilder, static_dir: Path, ws_port: int, **kwargs):
        self.builder = builder
        self.static_dir = static_dir
        self.ws_port = ws_port
        super().__init__(*args, **kwargs)

    def do_GET(self):
        path = self.request_path
        if self.serve_mount(self.static_dir):
            return
        if path == "/version":
            body = json.dumps({"version": self.builder.build_info.version})
            self.send_body(body, "application/json")
            return
        if path == "/livereload.js":
            self.send_body(
                client_script(self._ws_url()), "text/javascript; charset=utf-8"
            )
            return
        self._render(path)

    def _ws_url(self) -> str:
        host = self.headers.get("Host") or "localhost"
        hostname = host.rsplit(":", 1)[0] if not host.endswith("]") else host
        return f"ws://{hostname}:{self.ws_port}"

    def _render(self, path: str) -> None:
        try:
            html = self.builder.render_url(path)
        except PageNotFoundError:
            self._render_not_found(path)
            return
        except Exception as exc:
            self.send_body(
                f"Error rendering page: {exc}", "text/plain; charset=utf-8", 500
            )
            return
        self.send_body(html)

    def _render_not_found(self, path: str) -> None:
        try:
            body = self.builder.render_not_found(path)
        except Exception as exc:
            self.send_body(
                f"Error rendering page: {exc}", "text/plain; charset=utf-8", 500
            )
            return
        self.send_not_found(body)


class DevServer:
    """Development server with live reload functionality.

    Attributes:
        project_root: Root directory of the project.
        config: Site configuration.
        http_port: Port for the HTTP server.
        ws_port: Port for WebSocket connections.
        build_info: Build-version service shared by renders and broadcasts.
        builder: Dev-mode SiteBuilder.
    """

    def __init__(
        self,
        project_root: Path,
        http_port: int | None = None,
        ws_port: int | None = None,
        host: str = "0.0.0.0",
    ):
        """Initialize the development server.

        Args:
            project_root: Root directory of the project.
            http_port: Optional override for the HTTP port.
            ws_port: Optional override for the WebSocket port.
            host: Interface both servers bind to.

        Raises:
            ConfigError: If forge.yaml is missing or invalid.
        """
        self.project_root = project_root
        self.config = load_config(project_root)
        self.host = host
        self.http_port = self.config.port if http_port is None else http_port
        self.ws_port = self.config.ws_port if ws_port is None else ws_port
        self.build_info = BuildInfo()
        self.builder = SiteBuilder(
            project_root, self.config, build_info=self.build_info, dev_mode=True
        )
        self.reload_server = LiveReloadServer(host, self.ws_port)
        self.coordinator = RebuildCoordinator(
            self.builder, self.build_info, self.reload_server
        )
        self.watched: list[Path] = []
        self._httpd: PooledHTTPServer | None = None
        self._http_thread: threading.Thread | None = None
        self._observer = None
        self._started_at = 0.0

    def start(self) -> None:  # pragma: no cover - integration path
        """Start everything and block until interrupted with Ctrl+C."""
        self.start_background()
        self._print_ready()
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            click.echo()
            click.secho("Shutting down servers...", fg="yellow")
        finally:
            self.stop()
        console.success("Server stopped cleanly")

    def start_background(self) -> None:
        """Discover the site and start every server thread without blocking.

        Raises:
            OSError: If the WebSocket or HTTP port cannot be bound.
        """
        self._started_at = time.perf_counter()
        click.echo()
        click.secho("Starting dev server", fg="cyan", bold=True)
        self.builder.discover()

        self.reload_server.start()
        self.ws_port = self.reload_server.port
        console.success(
            f"WebSocket server running on ws://localhost:{self.ws_port}"
        )

        self._start_http()
        console.success("Static files mounted at /static")

        console.heading("Setting up file watchers")
        self.coordinator.start()
        handler = ChangeHandler(self.coordinator.submit)
        self._observer, self.watched = start_observer(
            handler,
            [
                self.config.content_path,
                self.config.templates_path,
                self.config.static_path,
            ],
        )

    def _start_http(self) -> None:
        handler = functools.partial(
            DevRequestHandler,
            builder=self.builder,
            static_dir=self.config.static_path,
            ws_port=self.ws_port,
        )
        try:
            httpd = PooledHTTPServer((self.host, self.http_port), handler)
        except OSError:
            self.reload_server.stop()
            raise
        self._httpd = httpd
        self.http_port = httpd.server_address[1]
        self._http_thread = threading.Thread(
            target=httpd.serve_forever, name="forge-http", daemon=True
        )
        self._http_thread.start()

    def _print_ready(self) -> None:  # pragma: no cover - console output
        console.heading("Available routes")
        for url, page in self.builder.pages.items():
            click.echo(
                click.style("  → ", fg="blue")
                + click.style(f"{url:<30}", fg="cyan")
                + click.style(f"({page.content_type})", fg="blue")
            )
        elapsed = (time.perf_counter() - self._started_at) * 1000
        click.echo()
        click.secho("Server ready", fg="green", bold=True)
        rows = [
            ("HTTP", f"http://localhost:{self.http_port}"),
            ("WebSocket", f"ws://localhost:{self.ws_port}"),
            ("Pages", str(len(self.builder.pages))),
            ("Watching", f"{len(self.watched)} folders"),
            ("Started in", f"{elapsed:.0f}ms"),
        ]
        for label, value in rows:
            click.echo(f"  {label + ':':<12}" + click.style(value, bold=True))
        click.echo()
        click.secho("Press Ctrl+C to stop server...", fg="blue")

    def stop(self) -> None:
        """Stop the watcher, the rebuild loop and both servers."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None
        self.coordinator.stop()
        self.reload_server.stop()
        if self._httpd is not None:
            self._httpd.shutdown()
            self._httpd.server_close()
            self._httpd = None
        if self._http_thread is not None:
            self._http_thread.join()
            self._http_thread = None
