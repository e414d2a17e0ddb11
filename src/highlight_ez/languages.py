"""Catalog of languages highlight-ez knows how to provision and render.

Pure data and string parsing; nothing in here touches the filesystem.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import PurePath


@dataclass(frozen=True, slots=True)
class LanguageEntry:
    extension: str
    soname: str | None
    git_repo: str | None
    aliases: tuple[str, ...] = ()


class TargetLanguage(enum.Enum):
    RUST = "rust"
    PYTHON = "python"
    JSON = "json"
    YAML = "yaml"
    TOML = "toml"
    HTML = "html"
    JAVASCRIPT = "javascript"
    SHELL = "shell"
    C = "c"
    CSS = "css"
    GO = "go"
    JAVA = "java"
    PLAINTEXT = "plaintext"

    @property
    def _entry(self) -> LanguageEntry:
        return _REGISTRY[self]

    def extension(self) -> str | None:
        """Canonical file extension, with its leading dot."""

        return self._entry.extension or None

    def soname(self) -> str | None:
        """Filename of the compiled parser inside the artifact cache."""

        return self._entry.soname

    def git_repo(self) -> str | None:
        """Grammar repository URL, or None when provisioning is not implemented."""

        return self._entry.git_repo

    @classmethod
    def parse(cls, text: str | None, default: TargetLanguage) -> TargetLanguage:
        """Parse a name, alias or extension (case-insensitive, dot optional).

        Unrecognized input returns `default`; this never raises.
        """

        found = cls.lookup(text)
        return default if found is None else found

    @classmethod
    def lookup(cls, text: str | None) -> TargetLanguage | None:
        """Like `parse`, but None for unrecognized input."""

        key = _normalize_alias(text)
        return _ALIASES.get(key) if key else None

    @classmethod
    def from_path(cls, path: str | PurePath, default: TargetLanguage) -> TargetLanguage:
        suffix = PurePath(path).suffix
        return cls.parse(suffix, default) if suffix else default

    def __str__(self) -> str:
        return self.value


_REGISTRY: dict[TargetLanguage, LanguageEntry] = {
    TargetLanguage.RUST: LanguageEntry(
        extension=".rs",
        soname="rust.so",
        git_repo="https://github.com/tree-sitter/tree-sitter-rust.git",
        aliases=("rs",),
    ),
    TargetLanguage.PYTHON: LanguageEntry(
        extension=".py",
        soname="python.so",
        git_repo="https://github.com/tree-sitter/tree-sitter-python.git",
        aliases=("py", "python3", "py3", "pyi"),
    ),
    TargetLanguage.JSON: LanguageEntry(
        extension=".json",
        soname="json.so",
        git_repo="https://github.com/tree-sitter/tree-sitter-json.git",
    ),
    TargetLanguage.YAML: LanguageEntry(
        extension=".yml",
        soname="yaml.so",
        git_repo="https://github.com/tree-sitter-grammars/tree-sitter-yaml.git",
        aliases=("yml",),
    ),
    TargetLanguage.TOML: LanguageEntry(
        extension=".toml",
        soname="toml.so",
        git_repo="https://github.com/ikatyang/tree-sitter-toml.git",
    ),
    TargetLanguage.HTML: LanguageEntry(
        extension=".html",
        soname="html.so",
        git_repo="https://github.com/tree-sitter/tree-sitter-html.git",
        aliases=("htm", "xhtml"),
    ),
    TargetLanguage.JAVASCRIPT: LanguageEntry(
        extension=".js",
        soname="javascript.so",
        git_repo="https://github.com/tree-sitter/tree-sitter-javascript.git",
        aliases=("js", "mjs", "cjs", "jsx", "node"),
    ),
    # The artifact is named after the grammar (tree_sitter_bash symbol).
    TargetLanguage.SHELL: LanguageEntry(
        extension=".sh",
        soname="bash.so",
        git_repo="https://github.com/tree-sitter/tree-sitter-bash.git",
        aliases=("sh", "bash", "zsh", "console"),
    ),
    TargetLanguage.C: LanguageEntry(
        extension=".c",
        soname="c.so",
        git_repo="https://github.com/tree-sitter/tree-sitter-c.git",
        aliases=("h",),
    ),
    TargetLanguage.CSS: LanguageEntry(
        extension=".css",
        soname="css.so",
        git_repo="https://github.com/tree-sitter/tree-sitter-css.git",
    ),
    TargetLanguage.GO: LanguageEntry(
        extension=".go",
        soname="go.so",
        git_repo="https://github.com/tree-sitter/tree-sitter-go.git",
        aliases=("golang",),
    ),
    TargetLanguage.JAVA: LanguageEntry(
        extension=".java",
        soname="java.so",
        git_repo="https://github.com/tree-sitter/tree-sitter-java.git",
    ),
    TargetLanguage.PLAINTEXT: LanguageEntry(
        extension=".txt",
        soname=None,
        git_repo=None,
        aliases=("text", "txt", "plain"),
    ),
}


def _normalize_alias(text: str | None) -> str:
    if not isinstance(text, str):
        return ""
    key = text.strip().lower()
    if key.startswith("."):
        key = key[1:]
    return key


def _build_aliases() -> dict[str, TargetLanguage]:
    out: dict[str, TargetLanguage] = {}
    for lang, entry in _REGISTRY.items():
        out[lang.value] = lang
        out[_normalize_alias(entry.extension)] = lang
        for alias in entry.aliases:
            out[_normalize_alias(alias)] = lang
    return out


_ALIASES = _build_aliases()


def supported_languages() -> list[TargetLanguage]:
    """Languages whose parser can be provisioned (stable, declaration order)."""

    return [lang for lang in TargetLanguage if lang.git_repo() is not None]
