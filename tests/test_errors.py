import pytest

from highlight_ez.errors import (
    ConfigError,
    GrammarDefinitionMissing,
    HighlightConfigMissing,
    HighlightError,
    LanguageNotSupported,
    SharedLibUnavailable,
    ToolchainError,
)


def test_all_errors_are_subclasses_of_highlight_error() -> None:
    assert issubclass(ConfigError, HighlightError)
    assert issubclass(LanguageNotSupported, HighlightError)
    assert issubclass(SharedLibUnavailable, HighlightError)
    assert issubclass(GrammarDefinitionMissing, HighlightError)
    assert issubclass(HighlightConfigMissing, HighlightError)
    assert issubclass(ToolchainError, HighlightError)


def test_error_message_is_preserved() -> None:
    msg = "boom"
    err = LanguageNotSupported(msg)
    assert str(err) == msg


def test_toolchain_error_carries_command_and_stderr() -> None:
    err = ToolchainError("git failed", cmd=("git", "clone"), stderr="fatal: nope")
    assert err.cmd == ["git", "clone"]
    assert err.stderr == "fatal: nope"
    assert str(err) == "git failed"


def test_can_catch_any_highlight_error() -> None:
    def raise_one() -> None:
        raise SharedLibUnavailable("nope")

    with pytest.raises(HighlightError):
        raise_one()
