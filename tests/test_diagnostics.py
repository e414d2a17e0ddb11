from __future__ import annotations

import pytest

from highlight_ez.diagnostics import format_error_with_hint, format_fetch_failures, format_hint
from highlight_ez.errors import (
    ConfigError,
    GrammarDefinitionMissing,
    HighlightConfigMissing,
    HighlightError,
    LanguageNotSupported,
    SharedLibUnavailable,
    ToolchainError,
)


def test_fetch_failures_sorted() -> None:
    out = format_fetch_failures({"rust": "boom", "go": "offline"})
    assert out == "Fetch failed for 2 language(s):\n\n  go: offline\n  rust: boom\n"
    assert format_fetch_failures({}) == ""


def test_language_hint_lists_supported_languages() -> None:
    hint = format_hint(LanguageNotSupported("nope"))
    assert hint is not None
    assert "python" in hint
    assert "plaintext" not in hint


@pytest.mark.parametrize(
    ("exc", "needle"),
    [
        (SharedLibUnavailable("x"), "highlight-ez fetch"),
        (GrammarDefinitionMissing("x"), "fetch again"),
        (HighlightConfigMissing("x"), "highlights.scm"),
        (ToolchainError("x", cmd=["cc", "-shared"]), "`cc`"),
        (ToolchainError("x"), "C compiler"),
        (ConfigError("x"), "highlight-ez.toml"),
    ],
)
def test_hints(exc: HighlightError, needle: str) -> None:
    hint = format_hint(exc)
    assert hint is not None and needle in hint


def test_unknown_errors_have_no_hint() -> None:
    assert format_hint(RuntimeError("x")) is None
    assert format_error_with_hint(RuntimeError("bad")) == "error: bad"


def test_error_with_hint() -> None:
    out = format_error_with_hint(SharedLibUnavailable("no parser at /x/rust.so"))
    assert out.splitlines() == [
        "error: no parser at /x/rust.so",
        "hint: run `highlight-ez fetch <language>` to build the parser",
    ]
