"""Error formatting and actionable hints for highlight-ez CLI output.

Keep this module small and dependency-light: it is imported by the CLI layer
and only depends on the error hierarchy and the language catalog.
"""

from __future__ import annotations

from highlight_ez.errors import (
    ConfigError,
    GrammarDefinitionMissing,
    HighlightConfigMissing,
    LanguageNotSupported,
    SharedLibUnavailable,
    ToolchainError,
)
from highlight_ez.languages import supported_languages


def format_fetch_failures(failed: dict[str, str]) -> str:
    """Format parser provisioning failures into a human-readable stderr summary."""
    if not failed:
        return ""
    lines = [f"Fetch failed for {len(failed)} language(s):\n"]
    for lang in sorted(failed):
        lines.append(f"  {lang}: {failed[lang]}")
    return "\n".join(lines).rstrip() + "\n"


def format_hint(exc: BaseException) -> str | None:
    """Return an actionable hint for a known error, or None."""

    if isinstance(exc, LanguageNotSupported):
        names = ", ".join(str(lang) for lang in supported_languages())
        return f"supported languages: {names}"

    if isinstance(exc, SharedLibUnavailable):
        return "run `highlight-ez fetch <language>` to build the parser"

    if isinstance(exc, GrammarDefinitionMissing):
        return "remove the clone under ~/.cache/tree-sitter/parsers and fetch again"

    if isinstance(exc, HighlightConfigMissing):
        return "the grammar ships no queries/highlights.scm"

    if isinstance(exc, ToolchainError):
        if exc.cmd:
            return f"check that `{exc.cmd[0]}` is installed and on PATH"
        return "check that git, the tree-sitter CLI and a C compiler are installed"

    if isinstance(exc, ConfigError):
        return "check highlight-ez.toml and tree-sitter's config.json"

    return None


def format_error_with_hint(exc: BaseException) -> str:
    """Format error message + optional hint for stderr output."""
    msg = (str(exc) or repr(exc)).strip()

    result = f"error: {msg}"
    hint = format_hint(exc)
    if hint:
        result += f"\nhint: {hint}"
    return result
