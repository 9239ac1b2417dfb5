"""Front matter splitting for forgesite.

A content document may start with a YAML metadata block delimited by ``---``
lines. The block is parsed with PyYAML's base loader, so every scalar stays a
string; typed values are only decided when a page is serialized for a
template (see templates.coerce_scalar).

Key members:
- FrontMatter: Scalar fields, list fields and the distinguished tags list.
- split_front_matter: Separate the metadata block from the document body.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .errors import FrontMatterError

DELIMITER = "---"


@dataclass
class FrontMatter:
    """Metadata parsed from the head of a content document.

    Attributes:
        data: Scalar fields, kept as strings.
        arrays: List fields, each a list of strings.
        tags: The ``tags`` list (also present in ``arrays``).
    """

    data: dict[str, str] = field(default_factory=dict)
    arrays: dict[str, list[str]] = field(default_factory=dict)
    tags: list[str] = field(default_factory=list)

    def get(self, key: str, default: str = "") -> str:
        return self.data.get(key, default)

    def has(self, key: str) -> bool:
        return key in self.data

    def __bool__(self) -> bool:
        return bool(self.data or self.arrays)


def split_front_matter(
    text: str, source_path: Path | None = None
) -> tuple[FrontMatter, str]:
    """Split a document into its front matter and body.

    The block opens with ``---`` at the very start of the text and closes at
    the first ``\\n---\\n`` (or, failing that, the first ``\\n---``).

    Args:
        text: Raw document text.
        source_path: Path used in error messages.

    Returns:
        Tuple of (FrontMatter, body). Without delimiters the FrontMatter is
        empty and the body is the whole text.

    Raises:
        FrontMatterError: If the block is not valid YAML or holds values
            other than scalars and lists of scalars.
    """
    if not text.startswith(DELIMITER):
        return FrontMatter(), text

    end = text.find("\n---\n", 3)
    if end == -1:
        end = text.find("\n---", 3)
        if end == -1:
            return FrontMatter(), text

    block = text[3:end]
    body = text[end + 5 :]
    return _parse_block(block, source_path), body


def _parse_block(block: str, source_path: Path | None) -> FrontMatter:
    try:
        loaded = yaml.load(block, Loader=yaml.BaseLoader)
    except yaml.YAMLError as exc:
        raise FrontMatterError(f"YAML parsing error: {exc}", source_path) from exc

    fm = FrontMatter()
    if loaded is None or loaded == "":
        return fm
    if not isinstance(loaded, dict):
        raise FrontMatterError("front matter must be a mapping", source_path)

    for key, value in loaded.items():
        if isinstance(value, list):
            items = []
            for item in value:
                if isinstance(item, (dict, list)):
                    raise FrontMatterError(
                        f"list field '{key}' may only contain scalars", source_path
                    )
                items.append(item)
            fm.arrays[key] = items
            if key == "tags":
                fm.tags = items
        elif isinstance(value, dict):
            raise FrontMatterError(
                f"field '{key}' must be a scalar or a list", source_path
            )
        else:
            fm.data[key] = value
    return fm
