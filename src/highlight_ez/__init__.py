"""Create HTML renderings of code with tree-sitter highlighting.

>>> from highlight_ez import TargetLanguage, render_html
>>> html = render_html("def fib(a):\\n    return a", TargetLanguage.PYTHON)  # doctest: +SKIP
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from highlight_ez.errors import (
    ConfigError,
    GrammarDefinitionMissing,
    HighlightConfigMissing,
    HighlightError,
    LanguageNotSupported,
    SharedLibUnavailable,
    ToolchainError,
)
from highlight_ez.languages import TargetLanguage, supported_languages
from highlight_ez.provision import generate_parser
from highlight_ez.render import render_html


def _package_version() -> str:
    try:
        return version("highlight-ez")
    except PackageNotFoundError:
        # Running from a source checkout, or otherwise not installed.
        return "0.0.0"


__version__ = _package_version()

__all__ = [
    "ConfigError",
    "GrammarDefinitionMissing",
    "HighlightConfigMissing",
    "HighlightError",
    "LanguageNotSupported",
    "SharedLibUnavailable",
    "TargetLanguage",
    "ToolchainError",
    "__version__",
    "generate_parser",
    "render_html",
    "supported_languages",
]
