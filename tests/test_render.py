from __future__ import annotations

import re
from collections.abc import Iterator
from pathlib import Path

import pytest

from highlight_ez import paths
from highlight_ez.cache import check_for_parser
from highlight_ez.config import default_config
from highlight_ez.errors import (
    HighlightConfigMissing,
    LanguageNotSupported,
    SharedLibUnavailable,
    ToolchainError,
)
from highlight_ez.highlighter import (
    HighlightConfiguration,
    HighlightEvent,
    Highlighter,
    Span,
    events_from_spans,
)
from highlight_ez.languages import TargetLanguage
from highlight_ez.render import render_html
from highlight_ez.theme import Theme, TreeSitterConfig
from highlight_ez.toolchain import Compiler, GrammarGenerator, Toolchain, VersionControl

_KEYWORDS = re.compile(rb"\b(def|return)\b")


class KeywordHighlighter(Highlighter):
    def highlight(self, config, source, injection_callback=None) -> Iterator[HighlightEvent]:
        idx = config.highlight_index("keyword")
        spans = [Span(m.start(), m.end(), idx) for m in _KEYWORDS.finditer(source)]
        return events_from_spans(spans, len(source))


class FakeLanguageConfig:
    def __init__(self, *, has_queries: bool = True) -> None:
        self.has_queries = has_queries

    def highlight_config(self, language, names):
        if not self.has_queries:
            return None
        hc = HighlightConfiguration(language, "python", '"def" @keyword')
        hc.configure(names)
        return hc


class FakeLoader:
    def __init__(self, extensions: tuple[str, ...] = (".py",), *, has_queries: bool = True):
        self.extensions = extensions
        self.has_queries = has_queries
        self.highlight_names: list[str] = []
        self.searched: list[list[Path]] = []

    def configure_highlights(self, names):
        self.highlight_names = list(names)

    def find_all_languages(self, parser_directories):
        self.searched.append(list(parser_directories))

    def language_configuration_for_file_name(self, file_path):
        if file_path.suffix in self.extensions:
            return object(), FakeLanguageConfig(has_queries=self.has_queries)
        return None

    def highlight_config_for_injection_string(self, text):
        return None


class OfflineVcs(VersionControl):
    def clone(self, url: str, destination: Path) -> None:
        destination.mkdir(parents=True)
        raise ToolchainError("git failed: Could not resolve host: github.com", cmd=["git"])


class StubGenerator(GrammarGenerator):
    def generate(self, repo_path: Path, grammar_path: Path, abi_version: int) -> None:
        (repo_path / "src").mkdir(exist_ok=True)
        (repo_path / "src" / "parser.c").write_text("", encoding="utf-8")


class StubCompiler(Compiler):
    def compile(self, repo_path: Path, output_path: Path) -> None:
        output_path.write_bytes(b"fake parser")


class GrammarVcs(VersionControl):
    def __init__(self) -> None:
        self.urls: list[str] = []

    def clone(self, url: str, destination: Path) -> None:
        self.urls.append(url)
        destination.mkdir(parents=True)
        (destination / "grammar.js").write_text("", encoding="utf-8")


def _install_artifact(home: Path, lang: TargetLanguage) -> Path:
    p = paths.artifact_path(lang.soname(), home)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_bytes(b"fake parser")
    return p


def _render(code: str, lang: TargetLanguage, home: Path, **kwargs) -> str:
    kwargs.setdefault("loader", FakeLoader())
    return render_html(
        code,
        lang,
        config=default_config(),
        ts_config=TreeSitterConfig(theme=Theme.default()),
        highlighter=KeywordHighlighter(),
        home=home,
        **kwargs,
    )


def test_renders_python_rows_with_keyword_spans(tmp_path: Path) -> None:
    _install_artifact(tmp_path, TargetLanguage.PYTHON)

    html = _render("def f(a):\n    return a", TargetLanguage.PYTHON, tmp_path)

    assert html.startswith("<table>\n") and html.endswith("</table>\n")
    assert html.count("<tr>") == 2
    assert "<td class=line-number>1</td>" in html
    assert "<td class=line-number>2</td>" in html
    assert "<span style='color: #5f00d7'>def</span>" in html
    assert "<span style='color: #5f00d7'>return</span>" in html
    assert html.splitlines()[1] == (
        "<tr><td class=line-number>1</td><td class=line>"
        "<span style='color: #5f00d7'>def</span> f(a):</td></tr>"
    )


def test_empty_source_renders_empty_table(tmp_path: Path) -> None:
    _install_artifact(tmp_path, TargetLanguage.PYTHON)
    assert _render("", TargetLanguage.PYTHON, tmp_path) == "<table>\n</table>\n"


def test_rendering_is_deterministic(tmp_path: Path) -> None:
    _install_artifact(tmp_path, TargetLanguage.PYTHON)
    code = "def f():\n    return '<x>'\n\n"
    first = _render(code, TargetLanguage.PYTHON, tmp_path)
    assert first == _render(code, TargetLanguage.PYTHON, tmp_path)
    assert first.count("<tr>") == 3
    assert "&#39;&lt;x&gt;&#39;" in first


def test_search_includes_cache_parsers_dir(tmp_path: Path) -> None:
    _install_artifact(tmp_path, TargetLanguage.PYTHON)
    loader = FakeLoader()
    extra = tmp_path / "grammars"
    render_html(
        "x",
        TargetLanguage.PYTHON,
        config=default_config(),
        ts_config=TreeSitterConfig(theme=Theme.default(), parser_directories=[extra]),
        highlighter=KeywordHighlighter(),
        loader=loader,
        home=tmp_path,
    )
    assert loader.searched == [[paths.parsers_dir(tmp_path), extra]]
    assert loader.highlight_names == Theme.default().highlight_names


def test_provisions_parser_on_first_use(tmp_path: Path) -> None:
    vcs = GrammarVcs()
    tc = Toolchain(vcs=vcs, generator=StubGenerator(), compiler=StubCompiler())

    html = _render("def f(): pass", TargetLanguage.PYTHON, tmp_path, toolchain=tc)

    assert vcs.urls == [TargetLanguage.PYTHON.git_repo()]
    assert check_for_parser(TargetLanguage.PYTHON, home=tmp_path).is_file()
    assert html.count("<tr>") == 1

    # A cached artifact is used as-is.
    _render("def f(): pass", TargetLanguage.PYTHON, tmp_path, toolchain=tc)
    assert len(vcs.urls) == 1


def test_plaintext_is_not_supported(tmp_path: Path) -> None:
    with pytest.raises(LanguageNotSupported):
        _render("hello", TargetLanguage.PLAINTEXT, tmp_path)
    assert list(tmp_path.iterdir()) == []


def test_network_failure_leaves_no_artifact(tmp_path: Path) -> None:
    tc = Toolchain(vcs=OfflineVcs(), generator=StubGenerator(), compiler=StubCompiler())

    with pytest.raises(ToolchainError):
        _render("fn main() {}", TargetLanguage.RUST, tmp_path, toolchain=tc)

    assert not paths.artifact_path("rust.so", tmp_path).exists()
    with pytest.raises(SharedLibUnavailable):
        check_for_parser(TargetLanguage.RUST, home=tmp_path)


def test_no_matching_grammar_returns_empty_string(tmp_path: Path) -> None:
    _install_artifact(tmp_path, TargetLanguage.GO)
    assert _render("package main", TargetLanguage.GO, tmp_path) == ""


def test_grammar_without_highlights_raises(tmp_path: Path) -> None:
    _install_artifact(tmp_path, TargetLanguage.PYTHON)
    with pytest.raises(HighlightConfigMissing):
        _render("x", TargetLanguage.PYTHON, tmp_path, loader=FakeLoader(has_queries=False))
