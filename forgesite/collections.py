from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence

from .config import SiteConfig
from .content import PAGES_TYPE, Page


class PageCollection(Sequence[Page]):
    """Lightweight helper for working with lists of Pages in code and tests."""

    def __init__(self, name: str, pages: Iterable[Page]):
        self.name = name
        self._pages = list(pages)

    def __iter__(self) -> Iterator[Page]:
        return iter(self._pages)

    def __len__(self) -> int:
        return len(self._pages)

    def __getitem__(self, item):
        return self._pages[item]

    def urls(self) -> list[str]:
        return [p.url for p in self._pages]

    def sorted_by(self, field: str, descending: bool = False) -> PageCollection:
        """Sort pages by a front matter field.

        Values are compared as plain strings, so "10" sorts before "9" and
        dates only order correctly when written as YYYY-MM-DD. Pages without
        the field sort as the empty string. The sort is stable.

        Args:
            field: Front matter field name.
            descending: If True, largest value first.

        Returns:
            A new PageCollection with sorted pages.
        """
        ordered = sorted(
            self._pages,
            key=lambda p: p.front_matter.get(field, ""),
            reverse=descending,
        )
        return PageCollection(self.name, ordered)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"PageCollection({self.name!r}, {len(self._pages)} pages)"


def build_collections(
    pages: Iterable[Page], config: SiteConfig
) -> Mapping[str, PageCollection]:
    """Group pages into collections by content-type.

    Pages of the "pages" type never form a collection. Collections with
    settings in the configuration are sorted by their ``sort_by`` field;
    the others keep discovery order.

    Args:
        pages: Discovered pages, in discovery order.
        config: Site configuration.

    Returns:
        Mapping of content-type name to PageCollection.
    """
    grouped: dict[str, list[Page]] = {}
    for page in pages:
        if page.content_type == PAGES_TYPE:
            continue
        grouped.setdefault(page.content_type, []).append(page)

    collections: dict[str, PageCollection] = {}
    for name, items in grouped.items():
        collection = PageCollection(name, items)
        settings = config.collections.get(name)
        if settings is not None:
            collection = collection.sorted_by(settings.sort_by, settings.descending)
        collections[name] = collection
    return collections
