import urllib.error
import urllib.request
from pathlib import Path

import pytest

BASE_TEMPLATE = """<!DOCTYPE html>
<html>
<head><title>{{ page.title }} | {{ site.site_name }}</title></head>
<body>{{ content }}<footer>v{{ version }}</footer></body>
</html>
"""

CONFIG = """site_name: Test Site
author: Tester
collections:
  blog:
    sort_by: date
    sort_order: desc
"""


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def fetch(url: str) -> tuple[int, str, str]:
    """Return (status, content type, body) for a GET request."""
    try:
        with urllib.request.urlopen(url, timeout=5) as response:
            return response.status, response.headers["Content-Type"], response.read().decode()
    except urllib.error.HTTPError as exc:
        return exc.code, exc.headers["Content-Type"], exc.read().decode()


@pytest.fixture
def project(tmp_path):
    """A small site: home page, about page, two blog posts and a 404 page."""
    write(tmp_path / "forge.yaml", CONFIG)
    write(tmp_path / "templates" / "base.html", BASE_TEMPLATE)
    write(
        tmp_path / "templates" / "blog.html",
        "<article><h1>{{ page.title }}</h1>{{ content }}</article>",
    )
    write(
        tmp_path / "content" / "pages" / "index.md",
        "---\ntitle: Home\n---\n# Welcome\n\n{% for post in collections.blog %}"
        "<a href=\"{{ post.url }}\">{{ post.title }}</a>{% endfor %}\n",
    )
    write(
        tmp_path / "content" / "pages" / "about.md",
        "---\ntitle: About\n---\nAbout **us**.\n",
    )
    write(
        tmp_path / "content" / "pages" / "404.html",
        "---\ntitle: Missing\n---\n<p>Nothing here</p>\n",
    )
    write(
        tmp_path / "content" / "blog" / "first.md",
        "---\ntitle: First\ndate: 2023-05-05\ntags: [a, b]\n---\nFirst post\n",
    )
    write(
        tmp_path / "content" / "blog" / "second.md",
        "---\ntitle: Second\ndate: 2024-01-01\n---\nSecond post\n",
    )
    write(tmp_path / "static" / "css" / "site.css", "body {  color : red ; }\n")
    write(tmp_path / "static" / "img.bin", "\x00\x01")
    return tmp_path
