from pathlib import Path

from forgesite.collections import PageCollection, build_collections
from forgesite.config import CollectionConfig, SiteConfig
from forgesite.content import Page
from forgesite.frontmatter import FrontMatter


def make_page(url, content_type="blog", **fields):
    return Page(
        source_path=Path(f"content{url}.md"),
        template_path=None,
        url=url,
        content_type=content_type,
        front_matter=FrontMatter(data={k: str(v) for k, v in fields.items()}),
    )


def test_sorted_by_is_lexicographic_and_stable():
    pages = [
        make_page("/blog/a", date="2023-05-05"),
        make_page("/blog/b", date="2024-01-01"),
        make_page("/blog/c"),
        make_page("/blog/d", date="2024-01-01"),
    ]
    collection = PageCollection("blog", pages)
    assert collection.sorted_by("date", descending=True).urls() == [
        "/blog/b",
        "/blog/d",
        "/blog/a",
        "/blog/c",
    ]
    assert collection.sorted_by("date").urls() == ["/blog/c", "/blog/a", "/blog/b", "/blog/d"]


def test_numeric_strings_sort_as_text():
    pages = [make_page("/n/9", order="9"), make_page("/n/10", order="10")]
    assert PageCollection("n", pages).sorted_by("order").urls() == ["/n/10", "/n/9"]


def test_sequence_behaviour():
    pages = [make_page("/blog/a"), make_page("/blog/b")]
    collection = PageCollection("blog", pages)
    assert len(collection) == 2
    assert collection[0].url == "/blog/a"
    assert [p.url for p in collection] == ["/blog/a", "/blog/b"]
    assert collection.name == "blog"


def test_build_collections_groups_and_sorts(tmp_path):
    config = SiteConfig(
        project_root=tmp_path,
        collections={"blog": CollectionConfig(name="blog", sort_by="date", sort_order="desc")},
    )
    pages = [
        make_page("/", content_type="pages"),
        make_page("/blog/old", date="2023-05-05"),
        make_page("/blog/new", date="2024-01-01"),
        make_page("/notes/z", content_type="notes", date="2020-01-01"),
        make_page("/notes/a", content_type="notes", date="2021-01-01"),
    ]
    collections = build_collections(pages, config)
    assert set(collections) == {"blog", "notes"}
    assert collections["blog"].urls() == ["/blog/new", "/blog/old"]
    # unconfigured collections keep discovery order
    assert collections["notes"].urls() == ["/notes/z", "/notes/a"]
