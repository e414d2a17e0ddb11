"""Project configuration loading for highlight-ez.

This module is intentionally small and deterministic: it only reads
`highlight-ez.toml` and performs light validation. The file is optional; every
setting has a default.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from highlight_ez.errors import ConfigError

CONFIG_FILENAME = "highlight-ez.toml"

# Source for ABI version: tree-sitter CLI's default at the time grammars in the
# registry were last verified.
DEFAULT_ABI_VERSION = 14


@dataclass(frozen=True)
class ToolchainConfig:
    git: str
    tree_sitter: str
    cc: str
    abi_version: int
    debug: bool
    timeout: float | None


@dataclass(frozen=True)
class GitConfig:
    depth: int


@dataclass(frozen=True)
class ThemeConfig:
    config_path: str


@dataclass(frozen=True)
class HighlightEzConfig:
    version: int
    toolchain: ToolchainConfig
    git: GitConfig
    theme: ThemeConfig


def find_config_file(start: Path) -> Path | None:
    """Walk upward from `start` (file or directory) looking for `highlight-ez.toml`."""

    cur = start
    try:
        if cur.is_file():
            cur = cur.parent
    except OSError:
        cur = cur.parent

    cur = cur.resolve()
    while True:
        candidate = cur / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        if cur.parent == cur:
            return None
        cur = cur.parent


def _as_table(value: Any, *, name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"Expected [{name}] to be a table.")
    return value


def _as_bool(value: Any, *, name: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"Expected {name} to be a boolean.")
    return value


def _as_int(value: Any, *, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ConfigError(f"Expected {name} to be an integer.")
    return value


def _as_number(value: Any, *, name: str) -> float:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise ConfigError(f"Expected {name} to be a number.")
    return float(value)


def _as_str(value: Any, *, name: str) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"Expected {name} to be a string.")
    return value


def default_config() -> HighlightEzConfig:
    return _from_data({})


def load_config(*, config_path: Path | None = None, start: Path | None = None) -> HighlightEzConfig:
    """Load and validate `highlight-ez.toml`.

    Without `config_path` the file is discovered by walking upward from `start`
    (default: the current working directory). No file means default settings.
    An explicit `config_path` must exist.
    """

    if config_path is None:
        config_path = find_config_file(start if start is not None else Path.cwd())
        if config_path is None:
            return default_config()

    try:
        raw = config_path.read_bytes()
    except FileNotFoundError as e:
        raise ConfigError(f"Missing {CONFIG_FILENAME} at: {config_path}") from e
    except OSError as e:
        raise ConfigError(f"Failed reading config file: {config_path}") from e

    try:
        data = tomllib.loads(raw.decode("utf-8"))
    except UnicodeDecodeError as e:
        raise ConfigError(f"Config is not valid UTF-8: {config_path}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {config_path}: {e}") from e

    version = data.get("version", None)
    if version is None:
        raise ConfigError(f"Missing required `version = 1` in {CONFIG_FILENAME}.")
    version_i = _as_int(version, name="version")
    if version_i != 1:
        raise ConfigError(f"Unsupported config version: {version_i} (expected 1).")

    return _from_data(data)


def _from_data(data: dict[str, Any]) -> HighlightEzConfig:
    toolchain_tbl = _as_table(data.get("toolchain"), name="toolchain")
    git_tbl = _as_table(data.get("git"), name="git")
    theme_tbl = _as_table(data.get("theme"), name="theme")

    if "git" in toolchain_tbl:
        git = _as_str(toolchain_tbl["git"], name="toolchain.git")
    else:
        git = "git"

    if "tree_sitter" in toolchain_tbl:
        tree_sitter = _as_str(toolchain_tbl["tree_sitter"], name="toolchain.tree_sitter")
    else:
        tree_sitter = "tree-sitter"

    if "cc" in toolchain_tbl:
        cc = _as_str(toolchain_tbl["cc"], name="toolchain.cc")
    else:
        cc = os.environ.get("CC") or "cc"

    if "abi_version" in toolchain_tbl:
        abi_version = _as_int(toolchain_tbl["abi_version"], name="toolchain.abi_version")
    else:
        abi_version = DEFAULT_ABI_VERSION

    if "debug" in toolchain_tbl:
        debug = _as_bool(toolchain_tbl["debug"], name="toolchain.debug")
    else:
        debug = False

    if "timeout" in toolchain_tbl:
        timeout_f = _as_number(toolchain_tbl["timeout"], name="toolchain.timeout")
    else:
        timeout_f = 0.0

    if "depth" in git_tbl:
        depth = _as_int(git_tbl["depth"], name="git.depth")
    else:
        depth = 1

    if "config_path" in theme_tbl:
        theme_path = _as_str(theme_tbl["config_path"], name="theme.config_path")
    else:
        theme_path = ""

    # Validation
    if not git.strip() or not tree_sitter.strip() or not cc.strip():
        raise ConfigError("Invalid config: toolchain commands must be non-empty.")

    if abi_version < 1:
        raise ConfigError("Invalid config: toolchain.abi_version must be >= 1.")

    if timeout_f < 0:
        raise ConfigError("Invalid config: toolchain.timeout must be >= 0.")

    if depth < 0:
        raise ConfigError("Invalid config: git.depth must be >= 0.")

    return HighlightEzConfig(
        version=1,
        toolchain=ToolchainConfig(
            git=git,
            tree_sitter=tree_sitter,
            cc=cc,
            abi_version=abi_version,
            debug=debug,
            timeout=timeout_f or None,
        ),
        git=GitConfig(depth=depth),
        theme=ThemeConfig(config_path=theme_path),
    )
