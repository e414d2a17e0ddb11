"""Pure helpers for mapping languages and grammar repositories to cache paths."""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from urllib.parse import urlparse

from highlight_ez.errors import SharedLibUnavailable

CACHE_TOOL_DIR = "tree-sitter"


def home_dir() -> Path:
    try:
        return Path.home()
    except (RuntimeError, KeyError) as e:
        raise SharedLibUnavailable("Could not resolve the home directory.") from e


def cache_root(home: Path | None = None) -> Path:
    base = home if home is not None else home_dir()
    return base / ".cache" / CACHE_TOOL_DIR


def lib_dir(home: Path | None = None) -> Path:
    return cache_root(home) / "lib"


def parsers_dir(home: Path | None = None) -> Path:
    return cache_root(home) / "parsers"


def repo_name(git_url: str) -> str:
    """Last path segment of a repository URL, cut at its first dot.

    >>> repo_name("https://github.com/tree-sitter/tree-sitter-rust.git")
    'tree-sitter-rust'
    """

    path = urlparse(git_url).path or git_url
    name = PurePosixPath(path.rstrip("/")).name
    name = name.split(".", 1)[0]
    if not name:
        raise ValueError(f"Cannot derive a repository name from {git_url!r}")
    return name


def clone_path(git_url: str, home: Path | None = None) -> Path:
    return parsers_dir(home) / repo_name(git_url)


def artifact_path(soname: str, home: Path | None = None) -> Path:
    return lib_dir(home) / soname
