import threading

import pytest

from forgesite.config import MinifyConfig, SiteConfig
from forgesite.errors import MinificationError
from forgesite.minifiers import (
    BaseMinifier,
    BuiltinMinifier,
    DelegatedMinifier,
    select_minifier,
)


class ExplodingMinifier(BaseMinifier):
    name = "exploding"

    def _minify(self, kind, text):
        raise RuntimeError("boom")


class EmptyMinifier(BaseMinifier):
    name = "empty"

    def _minify(self, kind, text):
        return ""


def test_builtin_minifier():
    minifier = BuiltinMinifier()
    assert minifier.minify("css", "a { color : red ; }") == "a{color:red;}"
    assert minifier.minify("js", "var  a = 1;") == "var a=1;"
    assert minifier.minify("html", "<p>a   b</p>\n") == "<p>a b</p>"


def test_unknown_kind_and_blank_text_are_returned_unchanged(capsys):
    minifier = BuiltinMinifier()
    assert minifier.minify("xml", "<a> </a>") == "<a> </a>"
    assert "Unknown minification kind 'xml'" in capsys.readouterr().err
    assert minifier.minify("css", "  \n") == "  \n"


def test_failures_fall_back_to_original_text(capsys):
    assert ExplodingMinifier().minify("js", "var  a;") == "var  a;"
    assert "JS minification failed (exploding): boom" in capsys.readouterr().err

    assert EmptyMinifier().minify("css", "a {}") == "a {}"
    assert "CSS minification produced no output (empty)" in capsys.readouterr().err


def test_delegated_minifier_uses_libraries():
    minifier = DelegatedMinifier()
    try:
        minifier.check()
        assert minifier.minify("js", "var  a = 1 ;  // one") == "var a=1;"
        html = minifier.minify("html", "<p>a   b</p>\n<style> a { color : red ; } </style>")
        assert html.startswith("<p>a b</p><style>a{color:red")
    finally:
        minifier.close()


def test_delegated_minifier_time_limit(capsys):
    release = threading.Event()

    def slow(text):
        release.wait(5)
        return "late"

    minifier = DelegatedMinifier(time_limit=0.05)
    minifier._functions["js"] = slow
    try:
        assert minifier.minify("js", "var  a;") == "var  a;"
        assert "timed out after 0.05s" in capsys.readouterr().err
    finally:
        release.set()
        minifier.close()


def test_delegated_check_rejects_unhelpful_output():
    minifier = DelegatedMinifier()
    minifier._functions["css"] = lambda text: text
    try:
        with pytest.raises(MinificationError, match="css minifier returned"):
            minifier.check()
    finally:
        minifier.close()


def test_select_minifier(tmp_path, capsys):
    builtin = select_minifier(SiteConfig(tmp_path, minify=MinifyConfig(engine="builtin")))
    assert isinstance(builtin, BuiltinMinifier)
    assert "(builtin minifiers)" in capsys.readouterr().out

    library = select_minifier(SiteConfig(tmp_path))
    try:
        assert isinstance(library, DelegatedMinifier)
        assert "(rjsmin/rcssmin)" in capsys.readouterr().out
    finally:
        library.close()


def test_select_minifier_falls_back_when_probe_fails(tmp_path, monkeypatch, capsys):
    def failing_check(self):
        raise MinificationError("js minifier unusable: broken")

    monkeypatch.setattr(DelegatedMinifier, "check", failing_check)
    minifier = select_minifier(SiteConfig(tmp_path))
    assert isinstance(minifier, BuiltinMinifier)
    captured = capsys.readouterr()
    assert "js minifier unusable: broken; using builtin minifiers" in captured.err
    assert "(builtin minifiers)" in captured.out
