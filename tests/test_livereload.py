import json
import time

import pytest
from websockets.exceptions import ConnectionClosed
from websockets.sync.client import connect

from forgesite.livereload import LiveReloadServer, reload_message


def wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


class BrokenSession:
    remote_address = ("10.0.0.9", 1234)

    async def send(self, message):
        raise ConnectionResetError("peer went away")


@pytest.fixture
def reload_server():
    server = LiveReloadServer("127.0.0.1", 0)
    server.start()
    yield server
    server.stop()


def test_reload_message():
    assert json.loads(reload_message("css", 42)) == {"type": "css", "version": 42}


def test_start_resolves_port(reload_server):
    assert reload_server.running
    assert reload_server.port > 0
    assert reload_server.client_count == 0


def test_broadcast_reaches_connected_clients(reload_server, capsys):
    url = f"ws://127.0.0.1:{reload_server.port}"
    with connect(url) as first, connect(url) as second:
        assert wait_for(lambda: reload_server.client_count == 2)
        assert reload_server.broadcast("content", 7) == 2
        for client in (first, second):
            assert json.loads(client.recv(timeout=5)) == {"type": "content", "version": 7}

    assert wait_for(lambda: reload_server.client_count == 0)
    out = capsys.readouterr().out
    assert "WebSocket client connected from 127.0.0.1" in out
    assert "WebSocket connection closed by 127.0.0.1" in out


def test_failed_sessions_are_dropped(reload_server, capsys):
    broken = BrokenSession()
    reload_server.sessions.add(broken)
    with connect(f"ws://127.0.0.1:{reload_server.port}") as client:
        assert wait_for(lambda: reload_server.client_count == 2)
        assert reload_server.broadcast("css", 3) == 1
        assert json.loads(client.recv(timeout=5))["type"] == "css"
    assert broken not in reload_server.sessions
    assert "Failed to notify 10.0.0.9: peer went away" in capsys.readouterr().err


def test_broadcast_without_server_is_a_no_op():
    assert LiveReloadServer("127.0.0.1", 0).broadcast("content", 1) == 0


def test_stop_closes_client_connections(reload_server):
    client = connect(f"ws://127.0.0.1:{reload_server.port}")
    assert wait_for(lambda: reload_server.client_count == 1)
    reload_server.stop()
    assert not reload_server.running
    assert reload_server.client_count == 0
    with pytest.raises(ConnectionClosed):
        client.recv(timeout=5)
    client.close()


def test_port_in_use_raises(reload_server):
    clash = LiveReloadServer("127.0.0.1", reload_server.port)
    with pytest.raises(OSError, match="failed to start"):
        clash.start()
