import json

import pytest

from forgesite.html_utils import RELOAD_SCRIPT_TAG
from forgesite.server import DevServer, client_script, livereload_client

from conftest import fetch, write


@pytest.fixture
def dev_server(project):
    server = DevServer(project, http_port=0, ws_port=0, host="127.0.0.1")
    server.start_background()
    yield server
    server.stop()


def test_client_script_substitutes_ws_url():
    assert "{{ livereload_ws_url }}" in livereload_client()
    script = client_script("ws://example.test:9000")
    assert '"ws://example.test:9000"' in script
    assert "livereload_ws_url" not in script


def test_serves_rendered_pages(dev_server):
    base = f"http://127.0.0.1:{dev_server.http_port}"
    status, content_type, body = fetch(base + "/about")
    assert status == 200
    assert content_type == "text/html; charset=utf-8"
    assert "<title>About | Test Site</title>" in body
    assert RELOAD_SCRIPT_TAG + "</head>" in body

    status, _, body = fetch(base + "/blog/first/")
    assert status == 200
    assert "<h1>First</h1>" in body


def test_version_and_client_routes(dev_server):
    base = f"http://127.0.0.1:{dev_server.http_port}"
    status, content_type, body = fetch(base + "/version")
    assert status == 200
    assert content_type == "application/json"
    assert json.loads(body) == {"version": dev_server.build_info.version}

    status, content_type, body = fetch(base + "/livereload.js")
    assert status == 200
    assert content_type.startswith("text/javascript")
    assert f"ws://127.0.0.1:{dev_server.ws_port}" in body


def test_static_mount_and_not_found(dev_server):
    base = f"http://127.0.0.1:{dev_server.http_port}"
    status, content_type, body = fetch(base + "/static/css/site.css")
    assert status == 200
    assert content_type.startswith("text/css")
    assert body == "body {  color : red ; }\n"

    status, _, _ = fetch(base + "/static/missing.css")
    assert status == 404

    status, _, body = fetch(base + "/nowhere")
    assert status == 404
    assert "<p>Nothing here</p>" in body


def test_render_errors_return_500(dev_server, project):
    write(project / "content" / "pages" / "bad.md", "{% for %}")
    dev_server.builder.discover()
    status, content_type, body = fetch(f"http://127.0.0.1:{dev_server.http_port}/bad")
    assert status == 500
    assert content_type.startswith("text/plain")
    assert body.startswith("Error rendering page:")


def test_rebuild_bumps_version_and_serves_new_content(dev_server, project):
    base = f"http://127.0.0.1:{dev_server.http_port}"
    before = dev_server.build_info.version
    source = write(project / "content" / "pages" / "fresh.md", "---\ntitle: Fresh\n---\nNew page\n")

    dev_server.coordinator.submit(source)
    dev_server.coordinator.join_queue()

    assert dev_server.build_info.version > before
    status, _, body = fetch(base + "/fresh")
    assert status == 200
    assert "New page" in body
    _, _, version = fetch(base + "/version")
    assert json.loads(version)["version"] > before
