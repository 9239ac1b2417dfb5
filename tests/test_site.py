import threading

import pytest

from forgesite.config import load_config
from forgesite.errors import (
    ContentError,
    FrontMatterError,
    PageNotFoundError,
    TemplateRenderError,
)
from forgesite.html_utils import RELOAD_SCRIPT_TAG
from forgesite.site import SiteBuilder, normalize_url
from forgesite.utils import BuildInfo

from conftest import write


def make_builder(root, **kwargs):
    return SiteBuilder(root, load_config(root), **kwargs)


def test_normalize_url():
    assert normalize_url("/") == "/"
    assert normalize_url("/blog/") == "/blog"
    assert normalize_url("/blog/post?x=1#top") == "/blog/post"
    assert normalize_url("") == "/"


def test_discover_builds_snapshot(project, capsys):
    builder = make_builder(project)
    snapshot = builder.discover()
    assert set(snapshot.pages) == {"/", "/about", "/404", "/blog/first", "/blog/second"}
    assert list(snapshot.collections) == ["blog"]
    assert snapshot.collections["blog"].urls() == ["/blog/second", "/blog/first"]
    assert snapshot.has_error_page
    assert builder.get_page("/blog/first/").front_matter.get("title") == "First"
    assert builder.get_page("/nope") is None
    assert "Discovered 5 pages in 1 collections" in capsys.readouterr().out


def test_render_wraps_in_content_and_base_templates(project):
    info = BuildInfo(1234)
    builder = make_builder(project, build_info=info)
    builder.discover()

    html = builder.render_url("/blog/first")
    assert html.startswith("<!DOCTYPE html>")
    assert "<title>First | Test Site</title>" in html
    assert "<article><h1>First</h1><p>First post</p>" in html
    assert "<footer>v1234</footer>" in html
    assert RELOAD_SCRIPT_TAG not in html

    home = builder.render_url("/")
    assert '<a href="/blog/second">Second</a><a href="/blog/first">First</a>' in home


def test_render_is_idempotent(project):
    builder = make_builder(project)
    builder.discover()
    page = builder.pages["/about"]
    assert builder.render(page) == builder.render(page)


def test_dev_mode_injects_reload_script(project):
    builder = make_builder(project, dev_mode=True)
    builder.discover()
    html = builder.render_url("/about")
    assert RELOAD_SCRIPT_TAG + "</head>" in html


def test_standalone_pages_are_returned_verbatim(project):
    document = "<!DOCTYPE html><html><head></head><body>{{ not_rendered }}</body></html>"
    write(project / "content" / "pages" / "raw.html", document)
    builder = make_builder(project, dev_mode=True)
    builder.discover()
    assert builder.render_url("/raw") == document


def test_not_found_handling(project):
    builder = make_builder(project)
    builder.discover()
    with pytest.raises(PageNotFoundError):
        builder.render_url("/missing")
    assert "<p>Nothing here</p>" in builder.render_not_found("/missing")

    (project / "content" / "pages" / "404.html").unlink()
    builder.discover()
    assert not builder.has_error_page
    assert builder.render_not_found("/missing") == (
        "<h1>404 - Page Not Found</h1><p>URL: /missing</p>"
    )


def test_missing_content_dir_gives_empty_site(tmp_path, capsys):
    write(tmp_path / "forge.yaml", "site_name: Empty\n")
    builder = make_builder(tmp_path)
    snapshot = builder.discover()
    assert dict(snapshot.pages) == {}
    captured = capsys.readouterr()
    assert "Content directory not found" in captured.err
    assert "base.html not found" in captured.err


def test_missing_base_template_renders_content_only(project):
    (project / "templates" / "base.html").unlink()
    builder = make_builder(project, dev_mode=True)
    builder.discover()
    html = builder.render_url("/about")
    assert html.startswith("<p>About <strong>us</strong>.</p>")
    assert html.endswith(RELOAD_SCRIPT_TAG)


def test_reload_base_template_picks_up_changes(project):
    builder = make_builder(project)
    builder.discover()
    write(project / "templates" / "base.html", "<main>{{ content }}</main>")
    assert "<title>" in builder.render_url("/about")
    builder.reload_base_template()
    assert builder.render_url("/about").startswith("<main><p>About")


def test_failed_rediscovery_keeps_last_good_snapshot(project):
    builder = make_builder(project)
    good = builder.discover()
    write(project / "content" / "blog" / "broken.md", "---\ntitle: [x\n---\nbody")
    with pytest.raises(FrontMatterError):
        builder.discover()
    assert builder.snapshot is good
    assert "/blog/first" in builder.pages


def test_template_errors_surface_as_render_errors(project):
    write(project / "content" / "pages" / "bad.md", "{% for %}")
    builder = make_builder(project)
    builder.discover()
    with pytest.raises(TemplateRenderError):
        builder.render_url("/bad")


def test_renders_never_see_a_partial_snapshot(project):
    builder = make_builder(project)
    builder.discover()
    expected = builder.render_url("/")
    failures = []
    stop = threading.Event()

    def render_loop():
        while not stop.is_set():
            try:
                html = builder.render_url("/")
            except Exception as exc:  # pragma: no cover - reported below
                failures.append(repr(exc))
                return
            if html != expected:
                failures.append(html)
                return

    readers = [threading.Thread(target=render_loop) for _ in range(4)]
    for t in readers:
        t.start()
    for _ in range(15):
        builder.discover()
    stop.set()
    for t in readers:
        t.join()
    assert failures == []


def test_undecodable_content_keeps_last_good_snapshot(project):
    builder = make_builder(project)
    good = builder.discover()
    (project / "content" / "pages" / "latin.md").write_bytes(b"caf\xe9\n")
    with pytest.raises(ContentError):
        builder.discover()
    assert builder.snapshot is good


def test_removed_content_dir_publishes_empty_site(project, capsys):
    builder = make_builder(project)
    builder.discover()
    (project / "content").rename(project / "moved")
    snapshot = builder.discover()
    assert dict(snapshot.pages) == {}
    assert builder.get_page("/about") is None
    assert "Content directory not found" in capsys.readouterr().err


def test_loop_over_collection_without_pages(tmp_path, capsys):
    write(tmp_path / "forge.yaml", "site_name: New\n")
    write(
        tmp_path / "content" / "pages" / "index.md",
        "{% for post in collections.posts %}{{ post.title }}{% endfor %}ok",
    )
    builder = make_builder(tmp_path)
    builder.discover()
    assert builder.render_url("/").strip() == "<p>ok</p>"
    assert "Missing variable 'collections.posts'" in capsys.readouterr().err


def test_configured_collection_without_pages_is_an_empty_list(tmp_path, capsys):
    write(tmp_path / "forge.yaml", "site_name: New\ncollections:\n  posts: {}\n")
    write(
        tmp_path / "content" / "pages" / "index.md",
        "{% for post in collections.posts %}{{ post.title }}{% else %}none{% endfor %}",
    )
    builder = make_builder(tmp_path)
    snapshot = builder.discover()
    assert snapshot.collections_context["posts"] == []
    assert builder.render_url("/").strip() == "<p>none</p>"
    assert "Missing variable" not in capsys.readouterr().err
