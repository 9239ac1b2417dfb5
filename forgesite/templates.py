"""Template rendering engine for forgesite.

This module uses Jinja2 to render page bodies, content templates and the base
template. A template that reads a variable missing from its context is
retried a bounded number of times with an empty placeholder inserted at
the missing path, so optional front matter fields render as empty text and
loops over missing lists render nothing.

Key members:
- TemplateEngine: Renders template text against a JSON-like context.
- RenderOutcome: Result of one render attempt.
- serialize_page: Convert a Page into its template context value.
- coerce_scalar: Decide the type of a front matter string value.
"""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateError,
    Undefined,
    UndefinedError,
    nodes,
)

from . import console
from .errors import TemplateRenderError

if TYPE_CHECKING:
    from .content import Page

MAX_RENDER_ATTEMPTS = 3

DATE_PATTERN = re.compile(r"\d{2,4}[-/]\d{1,2}[-/]\d{1,4}")
NUMBER_CHARS = frozenset("0123456789.-")

DATE_INPUT_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%d-%m-%Y", "%m/%d/%Y")
DATE_PRESETS = {
    "long": "MMMM d, yyyy",
    "short": "MMM d, yyyy",
    "iso": "yyyy-MM-dd",
}
MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

_UNDEFINED_NAME_RE = re.compile(r"^'([^']+)' is undefined")
_MISSING_ATTR_RE = re.compile(r"has no attribute '([^']+)'")

# Names Jinja binds inside a template that never come from the context.
_RUNTIME_NAMES = frozenset({"loop", "self", "super", "caller", "varargs", "kwargs"})


@dataclass
class RenderOutcome:
    """Result of a single render attempt.

    Exactly one attribute is set: the rendered text, the dotted path of a
    variable the template read but the context lacks, or the error that
    ended the attempt.
    """

    text: str | None = None
    missing_path: str | None = None
    error: Exception | None = None


def coerce_scalar(value: str) -> Any:
    """Decide the template type of a front matter value.

    Args:
        value: Raw string from the front matter block.

    Returns:
        A bool for "true"/"false", the string itself for anything that
        looks like a date, an int or float for plain numbers, else the
        string.

    Examples:
        >>> coerce_scalar("true")
        True

        >>> coerce_scalar("2024-01-05")
        '2024-01-05'

        >>> coerce_scalar("-4.5")
        -4.5
    """
    if value in ("true", "false"):
        return value == "true"
    if DATE_PATTERN.search(value):
        return value
    if value and all(c in NUMBER_CHARS for c in value):
        hyphens = value.count("-")
        if value.count(".") <= 1 and hyphens <= 1 and (hyphens == 0 or value[0] == "-"):
            try:
                return float(value) if "." in value else int(value)
            except ValueError:
                return value
    return value


def serialize_page(page: Page) -> dict[str, Any]:
    """Convert a Page into the value templates see as ``page``.

    Args:
        page: Page to serialize.

    Returns:
        Dict with ``url``, ``content_type`` and ``html_content``, the tags
        list when non-empty, other list fields as lists, and every scalar
        front matter field coerced with coerce_scalar.
    """
    data: dict[str, Any] = {
        "url": page.url,
        "content_type": page.content_type,
        "html_content": page.html,
    }
    fm = page.front_matter
    if fm.tags:
        data["tags"] = list(fm.tags)
    for key, items in fm.arrays.items():
        if key != "tags":
            data[key] = list(items)
    for key, value in fm.data.items():
        if key == "tags":
            continue
        data[key] = coerce_scalar(value)
    return data


class MissingValue:
    """Placeholder for a variable the context lacks.

    It prints as empty text, is falsy, and iterates as an empty sequence.
    """

    __slots__ = ()

    def __str__(self) -> str:
        return ""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False

    def __len__(self) -> int:
        return 0

    def __iter__(self):
        return iter(())

    def __eq__(self, other: object) -> bool:
        return isinstance(other, MissingValue)

    def __hash__(self) -> int:
        return 0

    def __deepcopy__(self, memo: dict) -> MissingValue:
        return self


MISSING = MissingValue()


def _is_placeholder(value: Any) -> bool:
    return value is None or isinstance(value, MissingValue)


def add_missing_path(context: dict[str, Any], path: str) -> bool:
    """Insert the ``MISSING`` placeholder at a dotted path.

    Missing intermediate segments, and intermediate placeholders or ``None``
    values from earlier attempts, become empty mappings.

    Args:
        context: Context to modify in place.
        path: Dotted path such as ``page.author.name``.

    Returns:
        False if an existing non-mapping value blocks the path.
    """
    parts = path.split(".")
    current = context
    for i, part in enumerate(parts):
        last = i == len(parts) - 1
        if part not in current:
            current[part] = MISSING if last else {}
        elif not last and _is_placeholder(current[part]):
            current[part] = {}
        if last:
            return True
        current = current[part]
        if not isinstance(current, dict):
            return False
    return True


def _parse_date(value: str) -> datetime | None:
    for candidate in (value, value[:10]):
        for fmt in DATE_INPUT_FORMATS:
            try:
                return datetime.strptime(candidate, fmt)
            except ValueError:
                continue
    return None


def format_date(value: Any, fmt: str = "long") -> str:
    """Format a date string with a preset or a token pattern.

    Presets are ``long``, ``short`` and ``iso``. Patterns use ``yyyy``/``yy``,
    ``MMMM``/``MMM``/``MM``/``M`` and ``dd``/``d``; the first occurrence of
    one year, one month and one day token is replaced.

    Args:
        value: Date string such as ``2024-01-05``.
        fmt: Preset name or token pattern.

    Returns:
        Formatted date, or the input unchanged when it is not a date.

    Examples:
        >>> format_date("2024-01-05", "long")
        'January 5, 2024'

        >>> format_date("2024-01-05", "dd/MM/yy")
        '05/01/24'
    """
    text = "" if value is None else str(value)
    parsed = _parse_date(text)
    if parsed is None:
        return text

    result = DATE_PRESETS.get(fmt, fmt)
    if "yyyy" in result:
        result = result.replace("yyyy", str(parsed.year), 1)
    elif "yy" in result:
        result = result.replace("yy", f"{parsed.year % 100:02d}", 1)

    if "MMMM" in result:
        result = result.replace("MMMM", MONTH_NAMES[parsed.month - 1], 1)
    elif "MMM" in result:
        result = result.replace("MMM", MONTH_NAMES[parsed.month - 1][:3], 1)
    elif "MM" in result:
        result = result.replace("MM", f"{parsed.month:02d}", 1)
    elif "M" in result:
        result = result.replace("M", str(parsed.month), 1)

    if "dd" in result:
        result = result.replace("dd", f"{parsed.day:02d}", 1)
    elif "d" in result:
        result = result.replace("d", str(parsed.day), 1)
    return result


def truncate(value: Any, length: int) -> str:
    text = "" if value is None else str(value)
    if len(text) > length:
        return text[:length] + "..."
    return text


def substring(value: Any, start: int, length: int) -> str:
    text = "" if value is None else str(value)
    if start < 0 or start >= len(text):
        return ""
    return text[start : start + length]


def slice_list(items: Any, start: int, end: int) -> list:
    if not isinstance(items, (list, tuple)):
        return []
    start = max(start, 0)
    end = min(end, len(items))
    if start >= end:
        return []
    return list(items[start:end])


def limit(items: Any, count: int) -> list:
    if not isinstance(items, (list, tuple)):
        return []
    return list(items[: max(count, 0)])


def prefix_separator(value: Any, separator: str) -> str:
    text = "" if value is None else str(value)
    return separator + text if text else ""


def suffix_separator(value: Any, separator: str) -> str:
    text = "" if value is None else str(value)
    return text + separator if text else ""


def exists(value: Any) -> bool:
    """Return True if a value is defined and not ``None`` or a placeholder."""
    return not isinstance(value, Undefined) and not _is_placeholder(value)


TEMPLATE_FUNCTIONS = {
    "date": format_date,
    "truncate": truncate,
    "substring": substring,
    "slice": slice_list,
    "limit": limit,
    "prefix_separator": prefix_separator,
    "suffix_separator": suffix_separator,
}


def _finalize(value: Any) -> Any:
    return "" if _is_placeholder(value) else value


class TemplateEngine:
    """Template rendering engine using Jinja2.

    The helper functions are installed both as filters
    (``{{ page.date | date("long") }}``) and as globals
    (``{{ date(page.date, "long") }}``). Templates may include partials from
    the templates directory.

    Attributes:
        templates_dir: Directory containing templates.
        env: Jinja2 environment.
    """

    def __init__(self, templates_dir: Path):
        """Initialize the template engine.

        Args:
            templates_dir: Directory with templates and partials.
        """
        self.templates_dir = templates_dir
        self.env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
            finalize=_finalize,
        )
        self._install_functions()

    def _install_functions(self) -> None:
        """Install filters and global functions in the Jinja environment."""
        for name, func in TEMPLATE_FUNCTIONS.items():
            self.env.filters[name] = func
            self.env.globals[name] = func
        self.env.globals["exists"] = exists

    def render(self, source: str, context: dict[str, Any], name: str = "<string>") -> str:
        """Render template text.

        Args:
            source: Template text.
            context: Variables available to the template. Never modified.
            name: Template name used in diagnostics.

        Returns:
            Rendered string.

        Raises:
            TemplateRenderError: If the template cannot be rendered within
                MAX_RENDER_ATTEMPTS attempts.
        """
        working = context
        patched = False
        for _ in range(MAX_RENDER_ATTEMPTS):
            outcome = self._attempt(source, working)
            if outcome.text is not None:
                return outcome.text
            if outcome.missing_path is None:
                raise TemplateRenderError(
                    name, str(outcome.error), outcome.error
                ) from outcome.error

            console.warning(
                f"Missing variable '{outcome.missing_path}' in {name}. "
                "Adding null value and retrying..."
            )
            if not patched:
                working = copy.deepcopy(context)
                patched = True
            if not add_missing_path(working, outcome.missing_path):
                raise TemplateRenderError(
                    name, f"cannot add missing variable '{outcome.missing_path}'"
                )
        raise TemplateRenderError(
            name, "Template render failed after multiple recovery attempts"
        )

    def _attempt(self, source: str, context: dict[str, Any]) -> RenderOutcome:
        try:
            return RenderOutcome(text=self.env.from_string(source).render(context))
        except UndefinedError as exc:
            path = self._missing_path(source, context, str(exc))
            if path is None:
                return RenderOutcome(error=exc)
            return RenderOutcome(missing_path=path)
        except TemplateError as exc:
            return RenderOutcome(error=exc)
        except (TypeError, ValueError, KeyError, AttributeError) as exc:
            return RenderOutcome(error=exc)

    def _missing_path(
        self, source: str, context: dict[str, Any], message: str
    ) -> str | None:
        """Work out which context path an undefined-variable error refers to.

        Jinja only reports the last name of the failing lookup, so the
        template's variable references are searched for the shortest one
        whose first unresolved segment carries that name.
        """
        match = _UNDEFINED_NAME_RE.search(message) or _MISSING_ATTR_RE.search(message)
        if match is None:
            return None
        name = match.group(1)

        candidates = sorted(_context_paths(self.env, source), key=len)
        for path in candidates:
            index = _first_unresolved(context, path)
            if index is not None and path[index] == name:
                return ".".join(path)
        if _UNDEFINED_NAME_RE.search(message) and name not in self.env.globals:
            return name
        return None


def _context_paths(env: Environment, source: str) -> set[tuple[str, ...]]:
    """Collect the dotted context paths a template reads."""
    ast = env.parse(source)
    local_names = {
        n.name for n in ast.find_all(nodes.Name) if n.ctx in ("store", "param")
    }
    excluded = local_names | _RUNTIME_NAMES | set(env.globals)
    paths: set[tuple[str, ...]] = set()
    _collect(ast, paths, chained=False)
    return {p for p in paths if p[0] not in excluded}


def _collect(node: nodes.Node, paths: set[tuple[str, ...]], chained: bool) -> None:
    path = _chain(node)
    if path is not None and not chained:
        paths.add(path)
    for child in node.iter_child_nodes():
        is_link = (
            path is not None
            and isinstance(node, (nodes.Getattr, nodes.Getitem))
            and child is node.node
        )
        _collect(child, paths, chained=is_link)


def _chain(node: nodes.Node) -> tuple[str, ...] | None:
    if isinstance(node, nodes.Name):
        return (node.name,) if node.ctx == "load" else None
    if isinstance(node, nodes.Getattr):
        base = _chain(node.node)
        return None if base is None else base + (node.attr,)
    if isinstance(node, nodes.Getitem):
        if isinstance(node.arg, nodes.Const) and isinstance(node.arg.value, str):
            base = _chain(node.node)
            return None if base is None else base + (node.arg.value,)
    return None


def _first_unresolved(context: dict[str, Any], path: tuple[str, ...]) -> int | None:
    current: Any = context
    for index, segment in enumerate(path):
        if not isinstance(current, dict) or segment not in current:
            return index
        current = current[segment]
    return None
