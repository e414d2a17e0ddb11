"""Tests for the `highlight-ez` command line."""

from __future__ import annotations

from pathlib import Path

import pytest

import highlight_ez.cache
import highlight_ez.cli
import highlight_ez.provision
import highlight_ez.render
from highlight_ez.errors import SharedLibUnavailable, ToolchainError
from highlight_ez.languages import TargetLanguage


@pytest.fixture(autouse=True)
def _isolated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))


def test_parse_render_defaults() -> None:
    ns = highlight_ez.cli.parse_args(["render", "main.rs"])
    assert ns.command == "render"
    assert ns.path == "main.rs"
    assert ns.lang is None
    assert ns.output is None
    assert ns.verbose is False


def test_parse_global_flags() -> None:
    ns = highlight_ez.cli.parse_args(["-v", "--config", "x.toml", "fetch", "rust", "go"])
    assert ns.verbose is True
    assert ns.config == "x.toml"
    assert ns.languages == ["rust", "go"]


def test_main_requires_a_command() -> None:
    assert highlight_ez.cli.main([]) == highlight_ez.cli.EXIT_LANGUAGE_OR_CONFIG


def test_main_dispatches_languages(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(highlight_ez.cli, "cmd_languages", lambda args: 0)
    assert highlight_ez.cli.main(["languages"]) == 0


def test_render_detects_language_from_suffix(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    seen: list[tuple[str, TargetLanguage]] = []

    def fake_render(code, lang, **kwargs):
        seen.append((code, lang))
        return "<table>\n</table>\n"

    monkeypatch.setattr(highlight_ez.render, "render_html", fake_render)
    (tmp_path / "lib.rs").write_text("fn main() {}\n", encoding="utf-8")

    rc = highlight_ez.cli.main(["render", "lib.rs"])
    assert rc == highlight_ez.cli.EXIT_OK
    assert seen == [("fn main() {}\n", TargetLanguage.RUST)]
    assert capsys.readouterr().out == "<table>\n</table>\n"


def test_render_lang_flag_and_output_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[TargetLanguage] = []

    def fake_render(code, lang, **kwargs):
        seen.append(lang)
        return "<table>\n</table>\n"

    monkeypatch.setattr(highlight_ez.render, "render_html", fake_render)
    (tmp_path / "script").write_text("echo hi\n", encoding="utf-8")

    rc = highlight_ez.cli.main(["render", "script", "--lang", "bash", "-o", "out.html"])
    assert rc == highlight_ez.cli.EXIT_OK
    assert seen == [TargetLanguage.SHELL]
    assert (tmp_path / "out.html").read_text(encoding="utf-8") == "<table>\n</table>\n"


def test_render_unknown_lang_flag(capsys: pytest.CaptureFixture[str]) -> None:
    Path("a.txt").write_text("x", encoding="utf-8")
    rc = highlight_ez.cli.main(["render", "a.txt", "--lang", "cobol"])
    assert rc == highlight_ez.cli.EXIT_LANGUAGE_OR_CONFIG
    err = capsys.readouterr().err
    assert "error: Unknown language: 'cobol'" in err
    assert "hint: supported languages:" in err


def test_render_missing_file() -> None:
    assert highlight_ez.cli.main(["render", "nope.py"]) == highlight_ez.cli.EXIT_LANGUAGE_OR_CONFIG


def test_render_provision_error(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    def fake_render(code, lang, **kwargs):
        raise ToolchainError("git failed: offline", cmd=["git", "clone"])

    monkeypatch.setattr(highlight_ez.render, "render_html", fake_render)
    Path("m.go").write_text("package main\n", encoding="utf-8")

    assert highlight_ez.cli.main(["render", "m.go"]) == highlight_ez.cli.EXIT_PROVISION_ERROR
    assert "hint: check that `git` is installed" in capsys.readouterr().err


def test_render_invalid_config(capsys: pytest.CaptureFixture[str]) -> None:
    Path("highlight-ez.toml").write_text("version = 2\n", encoding="utf-8")
    Path("m.go").write_text("package main\n", encoding="utf-8")
    assert highlight_ez.cli.main(["render", "m.go"]) == highlight_ez.cli.EXIT_LANGUAGE_OR_CONFIG
    assert "error:" in capsys.readouterr().err


def test_fetch_reports_each_language(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    def fake_generate(lang, **kwargs):
        if lang is TargetLanguage.GO:
            raise ToolchainError("tree-sitter failed: abi mismatch")
        return tmp_path / str(lang.soname())

    monkeypatch.setattr(highlight_ez.provision, "generate_parser", fake_generate)

    rc = highlight_ez.cli.main(["fetch", "rust", "go"])
    assert rc == highlight_ez.cli.EXIT_PROVISION_ERROR
    captured = capsys.readouterr()
    assert f"rust: {tmp_path / 'rust.so'}" in captured.out
    assert "Fetch failed for 1 language(s)" in captured.err
    assert "go: tree-sitter failed: abi mismatch" in captured.err


def test_fetch_unknown_language_does_nothing(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[TargetLanguage] = []
    monkeypatch.setattr(
        highlight_ez.provision, "generate_parser", lambda lang, **kw: calls.append(lang)
    )
    assert highlight_ez.cli.main(["fetch", "rust", "cobol"]) == 2
    assert calls == []


def test_check_reports_missing_and_present(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    def fake_check(lang, **kwargs):
        if lang is TargetLanguage.RUST:
            return tmp_path / "rust.so"
        raise SharedLibUnavailable(f"no artifact for {lang}")

    monkeypatch.setattr(highlight_ez.cache, "check_for_parser", fake_check)

    rc = highlight_ez.cli.main(["check", "rs", "python"])
    assert rc == highlight_ez.cli.EXIT_PROVISION_ERROR
    captured = capsys.readouterr()
    assert f"rust: {tmp_path / 'rust.so'}" in captured.out
    assert "python: missing (no artifact for python)" in captured.err


def test_check_unknown_language() -> None:
    assert highlight_ez.cli.main(["check", "cobol"]) == highlight_ez.cli.EXIT_LANGUAGE_OR_CONFIG


def test_languages_lists_provisionable(capsys: pytest.CaptureFixture[str]) -> None:
    assert highlight_ez.cli.main(["languages"]) == 0
    out = capsys.readouterr().out.splitlines()
    assert len(out) == len(TargetLanguage) - 1
    assert out[0].split() == ["rust", ".rs", "https://github.com/tree-sitter/tree-sitter-rust.git"]
    assert not any(line.startswith("plaintext") for line in out)
