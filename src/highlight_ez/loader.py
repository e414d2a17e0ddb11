"""Discover grammars on disk and load their compiled parsers.

A grammar directory is recognized by a `tree-sitter.json` (current layout) or a
`package.json` with a `"tree-sitter"` section (older grammars). Compiled
parsers are looked up in the artifact cache as `<lib_dir>/<grammar-name>.so`.
"""

from __future__ import annotations

import ctypes
import json
import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from highlight_ez import paths
from highlight_ez.errors import SharedLibUnavailable
from highlight_ez.highlighter import HighlightConfiguration

if TYPE_CHECKING:  # pragma: no cover
    from tree_sitter import Language

logger = logging.getLogger("highlight_ez.loader")

_CAPSULE_NAME = b"tree_sitter.Language"

_PyCapsule_New = ctypes.pythonapi.PyCapsule_New
_PyCapsule_New.restype = ctypes.py_object
_PyCapsule_New.argtypes = (ctypes.c_void_p, ctypes.c_char_p, ctypes.c_void_p)


@dataclass
class LanguageConfiguration:
    name: str
    root_path: Path
    scope: str | None = None
    file_types: list[str] = field(default_factory=list)
    injection_regex: re.Pattern[str] | None = None
    highlights_paths: list[Path] = field(default_factory=list)
    injections_paths: list[Path] = field(default_factory=list)
    _highlight_config: HighlightConfiguration | None = field(default=None, repr=False)

    def matches_file_name(self, file_name: str) -> bool:
        if file_name in self.file_types:
            return True
        suffix = Path(file_name).suffix
        return bool(suffix) and suffix[1:] in self.file_types

    def matches_injection(self, text: str) -> bool:
        if self.injection_regex is not None:
            return self.injection_regex.search(text) is not None
        lowered = text.lower()
        if lowered == self.name:
            return True
        return bool(self.scope) and self.scope.split(".")[-1] == lowered

    def highlight_config(
        self, language: Language, recognized_names: Sequence[str]
    ) -> HighlightConfiguration | None:
        """Build (once) the highlight configuration; None when the grammar has no queries."""

        if self._highlight_config is None:
            highlights = _read_queries(self.highlights_paths)
            if not highlights.strip():
                return None
            self._highlight_config = HighlightConfiguration(
                language,
                self.name,
                highlights,
                _read_queries(self.injections_paths),
            )
        self._highlight_config.configure(recognized_names)
        return self._highlight_config


def _read_queries(query_paths: Iterable[Path]) -> str:
    chunks: list[str] = []
    for p in query_paths:
        try:
            chunks.append(p.read_text(encoding="utf-8"))
        except OSError:
            logger.debug("query file not readable: %s", p)
    return "\n".join(chunks)


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [v for v in value if isinstance(v, str)]
    return []


def _compile_regex(pattern: Any) -> re.Pattern[str] | None:
    if not isinstance(pattern, str) or not pattern:
        return None
    try:
        return re.compile(pattern)
    except re.error:
        logger.debug("ignoring invalid injection-regex %r", pattern)
        return None


def _query_paths(root: Path, value: Any, default: str) -> list[Path]:
    listed = _as_list(value)
    if listed:
        return [root / p for p in listed]
    fallback = root / default
    return [fallback] if fallback.is_file() else []


def _grammar_name_from_repo(repo_path: Path) -> str:
    grammar_json = repo_path / "src" / "grammar.json"
    try:
        data = json.loads(grammar_json.read_text(encoding="utf-8"))
        name = data.get("name")
        if isinstance(name, str) and name:
            return name
    except (OSError, json.JSONDecodeError):
        pass
    name = repo_path.name
    return name[len("tree-sitter-") :] if name.startswith("tree-sitter-") else name


def _configuration(repo_path: Path, entry: dict[str, Any], name: str) -> LanguageConfiguration:
    root = (repo_path / entry["path"]) if isinstance(entry.get("path"), str) else repo_path
    return LanguageConfiguration(
        name=name.replace("-", "_"),
        root_path=root,
        scope=entry.get("scope") if isinstance(entry.get("scope"), str) else None,
        file_types=_as_list(entry.get("file-types")),
        injection_regex=_compile_regex(entry.get("injection-regex")),
        highlights_paths=_query_paths(root, entry.get("highlights"), "queries/highlights.scm"),
        injections_paths=_query_paths(root, entry.get("injections"), "queries/injections.scm"),
    )


class Loader:
    def __init__(self, *, lib_dir: Path | None = None, home: Path | None = None) -> None:
        self.lib_dir = lib_dir if lib_dir is not None else paths.lib_dir(home)
        self._configs: list[LanguageConfiguration] = []
        self._seen_roots: set[Path] = set()
        self._languages: dict[str, Language] = {}
        self._libs: dict[str, ctypes.CDLL] = {}
        self._highlight_names: list[str] = []

    @property
    def language_configurations(self) -> list[LanguageConfiguration]:
        return list(self._configs)

    def configure_highlights(self, names: Sequence[str]) -> None:
        self._highlight_names = list(names)

    @property
    def highlight_names(self) -> list[str]:
        return list(self._highlight_names)

    def find_all_languages(self, parser_directories: Iterable[Path]) -> None:
        """Register every grammar found in (or directly below) each directory."""

        for directory in parser_directories:
            if not directory.is_dir():
                continue
            if self.languages_at_path(directory):
                continue
            for child in sorted(directory.iterdir()):
                if child.is_dir() and child.name.startswith("tree-sitter-"):
                    self.languages_at_path(child)

    def languages_at_path(self, repo_path: Path) -> list[LanguageConfiguration]:
        resolved = repo_path.resolve()
        if resolved in self._seen_roots:
            return [c for c in self._configs if c.root_path.resolve().is_relative_to(resolved)]

        found = self._read_repo(repo_path)
        if found:
            self._seen_roots.add(resolved)
            self._configs.extend(found)
            logger.debug("found %d grammar(s) at %s", len(found), repo_path)
        return found

    def _read_repo(self, repo_path: Path) -> list[LanguageConfiguration]:
        ts_json = repo_path / "tree-sitter.json"
        if ts_json.is_file():
            try:
                data = json.loads(ts_json.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as e:
                logger.warning("skipping %s: %s", ts_json, e)
                return []
            grammars = data.get("grammars") if isinstance(data, dict) else None
            out: list[LanguageConfiguration] = []
            for entry in grammars if isinstance(grammars, list) else []:
                if isinstance(entry, dict) and isinstance(entry.get("name"), str):
                    out.append(_configuration(repo_path, entry, entry["name"]))
            return out

        package_json = repo_path / "package.json"
        if package_json.is_file():
            try:
                data = json.loads(package_json.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as e:
                logger.warning("skipping %s: %s", package_json, e)
                return []
            entries = data.get("tree-sitter") if isinstance(data, dict) else None
            if not isinstance(entries, list):
                return []
            name = _grammar_name_from_repo(repo_path)
            return [_configuration(repo_path, e, name) for e in entries if isinstance(e, dict)]

        return []

    def language_for_configuration(self, config: LanguageConfiguration) -> Language:
        if config.name in self._languages:
            return self._languages[config.name]

        from tree_sitter import Language

        sopath = self.lib_dir / f"{config.name}.so"
        if not sopath.is_file():
            raise SharedLibUnavailable(f"Parser artifact for {config.name} not found at {sopath}")

        try:
            lib = ctypes.CDLL(str(sopath))
            entry = getattr(lib, f"tree_sitter_{config.name}")
        except (OSError, AttributeError) as e:
            raise SharedLibUnavailable(f"Could not load parser from {sopath}: {e}") from e

        entry.restype = ctypes.c_void_p
        language = Language(_PyCapsule_New(entry(), _CAPSULE_NAME, None))
        self._libs[config.name] = lib
        self._languages[config.name] = language
        return language

    def language_configuration_for_file_name(
        self, file_path: Path
    ) -> tuple[Language, LanguageConfiguration] | None:
        for config in self._configs:
            if config.matches_file_name(file_path.name):
                return self.language_for_configuration(config), config
        return None

    def highlight_config_for_injection_string(self, text: str) -> HighlightConfiguration | None:
        for config in self._configs:
            if not config.matches_injection(text):
                continue
            try:
                language = self.language_for_configuration(config)
            except SharedLibUnavailable as e:
                logger.debug("injected language %r unavailable: %s", text, e)
                return None
            return config.highlight_config(language, self._highlight_names)
        return None
