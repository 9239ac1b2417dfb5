"""Minifier implementations for forgesite.

Two interchangeable implementations sit behind the Minifier protocol:

- BuiltinMinifier: the handwritten HTML/CSS/JS minifiers.
- DelegatedMinifier: the third-party rjsmin and rcssmin minifiers, run on a
  dedicated worker thread with a time limit.

select_minifier picks one of them once, at startup. Whichever is chosen,
minify() never raises: any failure returns the original text.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError

import rcssmin
import rjsmin

from . import console
from .code_minifiers import minify_css, minify_js
from .config import SiteConfig
from .errors import MinificationError
from .html_minifier import minify_html

KINDS = ("html", "css", "js")

TIME_LIMIT_SECONDS = 30

# Checked once at selection time; the delegated path is only used if it
# shortens these samples.
PROBES = {
    "css": "a { color : red ; }",
    "js": "var  a = 1 ;  // one",
}


class BaseMinifier(ABC):
    """Base class for minifiers.

    Subclasses implement _minify; minify() wraps it with the fallback
    contract shared by every implementation.
    """

    name = "base"

    def minify(self, kind: str, text: str) -> str:
        """Minify text of the given kind.

        Args:
            kind: One of "html", "css" or "js".
            text: Source text.

        Returns:
            Minified text, or ``text`` unchanged if minification fails,
            times out, or produces nothing.
        """
        if kind not in KINDS:
            console.warning(f"Unknown minification kind '{kind}'")
            return text
        if not text.strip():
            return text
        try:
            result = self._minify(kind, text)
        except Exception as exc:
            console.warning(f"{kind.upper()} minification failed ({self.name}): {exc}")
            return text
        if not result:
            console.warning(
                f"{kind.upper()} minification produced no output ({self.name})"
            )
            return text
        return result

    @abstractmethod
    def _minify(self, kind: str, text: str) -> str | None:
        ...

    def close(self) -> None:
        """Release any resources held by the minifier."""


class BuiltinMinifier(BaseMinifier):
    """Handwritten minifiers; always available."""

    name = "builtin"

    def __init__(self):
        self._functions: dict[str, Callable[[str], str]] = {
            "html": minify_html,
            "css": minify_css,
            "js": minify_js,
        }

    def _minify(self, kind: str, text: str) -> str:
        return self._functions[kind](text)


def _library_html(text: str) -> str:
    return minify_html(text, css=rcssmin.cssmin, js=rjsmin.jsmin)


class DelegatedMinifier(BaseMinifier):
    """Third-party minifiers run on a single worker thread.

    Every call is submitted to the worker and waited on for at most
    ``time_limit`` seconds; a call that overruns is reported as a failure
    and its result discarded. The single worker also serialises concurrent
    callers.

    Attributes:
        time_limit: Seconds to wait for one minification.
    """

    name = "library"

    def __init__(self, time_limit: float = TIME_LIMIT_SECONDS):
        self.time_limit = time_limit
        self._functions: dict[str, Callable[[str], str]] = {
            "html": _library_html,
            "css": rcssmin.cssmin,
            "js": rjsmin.jsmin,
        }
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="forge-minifier"
        )

    def _minify(self, kind: str, text: str) -> str | None:
        future = self._executor.submit(self._functions[kind], text)
        try:
            return future.result(timeout=self.time_limit)
        except FutureTimeoutError:
            future.cancel()
            raise MinificationError(
                f"timed out after {self.time_limit:g}s"
            ) from None

    def check(self) -> None:
        """Run the probe samples through the worker.

        Raises:
            MinificationError: If a probe fails or gives unexpected output.
        """
        for kind, source in PROBES.items():
            try:
                result = self._minify(kind, source)
            except MinificationError:
                raise
            except Exception as exc:
                raise MinificationError(f"{kind} minifier unusable: {exc}") from exc
            if not result or len(result) >= len(source):
                raise MinificationError(f"{kind} minifier returned {result!r}")

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)


def select_minifier(config: SiteConfig) -> BaseMinifier:
    """Choose the minifier implementation for this process.

    The delegated implementation is used unless the configuration asks for
    the builtin one or the delegated probes fail.

    Args:
        config: Site configuration.

    Returns:
        A minifier.
    """
    if config.minify.engine != "builtin":
        minifier = DelegatedMinifier()
        try:
            minifier.check()
        except MinificationError as exc:
            minifier.close()
            console.warning(f"{exc}; using builtin minifiers")
        else:
            console.success("JS/CSS/HTML minification enabled (rjsmin/rcssmin)")
            return minifier
    console.success("JS/CSS/HTML minification enabled (builtin minifiers)")
    return BuiltinMinifier()
