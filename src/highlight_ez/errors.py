"""highlight-ez exception hierarchy.

Keep this module small and dependency-free: it is imported broadly across the
project and by tests.
"""

from __future__ import annotations

from collections.abc import Sequence


class HighlightError(Exception):
    """Base exception for all highlight-ez errors."""


class ConfigError(HighlightError):
    """Raised for invalid user configuration."""


class LanguageNotSupported(HighlightError):
    """Raised when a language has no extension, artifact or repository mapping."""


class SharedLibUnavailable(HighlightError):
    """Raised when a compiled parser artifact (or the home directory) cannot be found."""


class GrammarDefinitionMissing(HighlightError):
    """Raised when a grammar clone does not contain its grammar definition."""


class HighlightConfigMissing(HighlightError):
    """Raised when a grammar was found but carries no highlight queries."""


class ToolchainError(HighlightError):
    """Raised when an external tool (git, tree-sitter, cc) fails."""

    def __init__(self, message: str, *, cmd: Sequence[str] = (), stderr: str = "") -> None:
        super().__init__(message)
        self.cmd = list(cmd)
        self.stderr = stderr
