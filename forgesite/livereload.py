"""Live-reload message channel for forgesite.

A websockets server runs on its own asyncio event loop in a background
thread. Browsers connect from the livereload.js client; after every rebuild
the watcher calls broadcast() from its own thread.

Key class:
- LiveReloadServer: Session registry and broadcast over websockets.
"""

from __future__ import annotations

import asyncio
import json
import threading

import websockets
from websockets.exceptions import ConnectionClosed

from . import console
from .utils import timestamp

BROADCAST_TIMEOUT = 5.0
STARTUP_TIMEOUT = 5.0


def reload_message(change_type: str, version: int) -> str:
    """Encode a live-reload message.

    Examples:
        >>> reload_message("content", 7)
        '{"type": "content", "version": 7}'
    """
    return json.dumps({"type": change_type, "version": version})


class LiveReloadServer:
    """WebSocket server pushing reload notifications to browsers.

    Each connection is a session: added once the handshake completes and
    removed when it closes or a send to it fails.

    Attributes:
        host: Interface to bind.
        port: Port to bind; 0 picks a free port, resolved by start().
        sessions: Currently connected sessions.
    """

    def __init__(self, host: str = "0.0.0.0", port: int = 8081):
        self.host = host
        self.port = port
        self.sessions: set = set()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._stop_event: asyncio.Event | None = None
        self._ready = threading.Event()
        self._startup_error: BaseException | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def client_count(self) -> int:
        return len(self.sessions)

    def start(self) -> None:
        """Start the server thread and wait until it is listening.

        Raises:
            OSError: If the port cannot be bound.
        """
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._run, name="forge-livereload", daemon=True
        )
        self._thread.start()
        if not self._ready.wait(STARTUP_TIMEOUT):
            raise OSError(f"WebSocket server did not start on port {self.port}")
        if self._startup_error is not None:
            self._thread.join()
            raise OSError(
                f"WebSocket server failed to start (port {self.port}): "
                f"{self._startup_error}"
            ) from self._startup_error

    def _run(self) -> None:
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_until_complete(self._serve())
        finally:
            self._loop.close()

    async def _serve(self) -> None:
        self._stop_event = asyncio.Event()
        try:
            server = await websockets.serve(self._handler, self.host, self.port)
        except OSError as exc:
            self._startup_error = exc
            self._ready.set()
            return
        self.port = server.sockets[0].getsockname()[1]
        self._ready.set()
        try:
            await self._stop_event.wait()
        finally:
            server.close()
            await server.wait_closed()

    async def _handler(self, websocket) -> None:
        address = _remote_address(websocket)
        self.sessions.add(websocket)
        console.info(f"{timestamp()} WebSocket client connected from {address}")
        try:
            async for _ in websocket:
                pass
        except ConnectionClosed:
            pass
        finally:
            console.info(f"{timestamp()} WebSocket connection closed by {address}")
            self.sessions.discard(websocket)

    def broadcast(self, change_type: str, version: int) -> int:
        """Send a reload message to every connected session.

        Safe to call from any thread. Sessions that fail are logged and
        dropped; the others still receive the message.

        Args:
            change_type: Change classification ("content", "css", ...).
            version: Build version after the rebuild.

        Returns:
            Number of sessions notified.
        """
        if not self.running or self._loop is None:
            return 0
        future = asyncio.run_coroutine_threadsafe(
            self._broadcast(reload_message(change_type, version)), self._loop
        )
        return future.result(timeout=BROADCAST_TIMEOUT)

    async def _broadcast(self, message: str) -> int:
        sent = 0
        for websocket in list(self.sessions):
            try:
                await websocket.send(message)
            except (ConnectionClosed, OSError) as exc:
                console.warning(
                    f"Failed to notify {_remote_address(websocket)}: {exc}"
                )
                self.sessions.discard(websocket)
            else:
                sent += 1
        return sent

    def stop(self) -> None:
        """Stop accepting connections, drop all sessions and join the thread."""
        if self._loop is not None and self.running and self._stop_event is not None:
            self._loop.call_soon_threadsafe(self._stop_event.set)
        if self._thread is not None:
            self._thread.join()
        self.sessions.clear()
        self._thread = None


def _remote_address(websocket) -> str:
    address = getattr(websocket, "remote_address", None)
    if not address:
        return "unknown"
    return str(address[0])
