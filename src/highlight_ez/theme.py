"""Themes and tree-sitter's `config.json`.

A theme maps highlight names (``keyword``, ``string.special``, ...) to a
`Style`. Each style carries the HTML attribute used when rendering spans, e.g.
``style='font-weight: bold;color: #875f00'``.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from highlight_ez.errors import ConfigError

_NAMED_COLORS = ("black", "blue", "cyan", "green", "purple", "red", "white", "yellow")

# tree-sitter CLI default theme.
DEFAULT_THEME: dict[str, Any] = {
    "attribute": {"color": 124, "italic": True},
    "comment": {"color": 245, "italic": True},
    "constant": 94,
    "constant.builtin": {"bold": True, "color": 94},
    "constructor": 136,
    "embedded": None,
    "function": 26,
    "function.builtin": {"bold": True, "color": 26},
    "keyword": 56,
    "module": 136,
    "number": {"bold": True, "color": 94},
    "operator": {"bold": True, "color": 239},
    "property": 124,
    "property.builtin": {"bold": True, "color": 124},
    "punctuation": 239,
    "punctuation.bracket": 239,
    "punctuation.delimiter": 239,
    "punctuation.special": 239,
    "string": 28,
    "string.special": 30,
    "tag": 18,
    "type": 23,
    "type.builtin": {"bold": True, "color": 23},
    "variable": 252,
    "variable.builtin": {"bold": True, "color": 252},
    "variable.parameter": {"color": 252, "underline": True},
}


def ansi256_to_hex(n: int) -> str:
    """Hex color for an xterm 256-color palette index."""

    if not 0 <= n <= 255:
        raise ValueError(f"ANSI color out of range: {n}")
    if n < 16:
        base = (
            (0, 0, 0), (128, 0, 0), (0, 128, 0), (128, 128, 0),
            (0, 0, 128), (128, 0, 128), (0, 128, 128), (192, 192, 192),
            (128, 128, 128), (255, 0, 0), (0, 255, 0), (255, 255, 0),
            (0, 0, 255), (255, 0, 255), (0, 255, 255), (255, 255, 255),
        )  # fmt: skip
        r, g, b = base[n]
    elif n < 232:
        levels = (0, 95, 135, 175, 215, 255)
        i = n - 16
        r, g, b = levels[i // 36], levels[(i // 6) % 6], levels[i % 6]
    else:
        v = 8 + (n - 232) * 10
        r = g = b = v
    return f"#{r:02x}{g:02x}{b:02x}"


def _css_color(value: Any, *, name: str) -> str:
    if isinstance(value, int) and not isinstance(value, bool):
        try:
            return ansi256_to_hex(value)
        except ValueError as e:
            raise ConfigError(f"Invalid color for theme entry {name!r}: {value}") from e
    if isinstance(value, str):
        v = value.strip().lower()
        if v in _NAMED_COLORS:
            return v
        if len(v) == 7 and v.startswith("#"):
            try:
                int(v[1:], 16)
            except ValueError:
                pass
            else:
                return v
    raise ConfigError(f"Invalid color for theme entry {name!r}: {value!r}")


@dataclass(frozen=True, slots=True)
class Style:
    css: str | None = None


def style_from_value(value: Any, *, name: str) -> Style:
    """Build a Style from a theme entry (color int/str, table, or null)."""

    if value is None:
        return Style()

    if isinstance(value, dict):
        color = value.get("color")
        bold = bool(value.get("bold", False))
        italic = bool(value.get("italic", False))
        underline = bool(value.get("underline", False))
    else:
        color, bold, italic, underline = value, False, False, False

    parts: list[str] = []
    if underline:
        parts.append("text-decoration: underline;")
    if bold:
        parts.append("font-weight: bold;")
    if italic:
        parts.append("font-style: italic;")
    if color is not None:
        parts.append(f"color: {_css_color(color, name=name)}")
    if not parts:
        return Style()
    return Style(css="style='" + "".join(parts) + "'")


@dataclass(frozen=True)
class Theme:
    highlight_names: list[str]
    styles: list[Style]

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> Theme:
        if not isinstance(data, dict):
            raise ConfigError("Expected theme to be an object.")
        names: list[str] = []
        styles: list[Style] = []
        for name, value in data.items():
            names.append(str(name))
            styles.append(style_from_value(value, name=str(name)))
        return cls(highlight_names=names, styles=styles)

    @classmethod
    def default(cls) -> Theme:
        return cls.from_mapping(DEFAULT_THEME)

    def css_for(self, highlight: int) -> str:
        """Attribute text for a highlight index; empty when the style has none."""

        return self.styles[highlight].css or ""


@dataclass(frozen=True)
class TreeSitterConfig:
    theme: Theme
    parser_directories: list[Path] = field(default_factory=list)
    path: Path | None = None


def tree_sitter_config_path() -> Path | None:
    """Locate tree-sitter's config.json the way the tree-sitter CLI does."""

    env_dir = os.environ.get("TREE_SITTER_DIR")
    if env_dir:
        return Path(env_dir) / "config.json"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    try:
        config_home = Path(xdg) if xdg else Path.home() / ".config"
        legacy = Path.home() / ".tree-sitter" / "config.json"
    except RuntimeError:
        return None

    candidate = config_home / "tree-sitter" / "config.json"
    if candidate.is_file():
        return candidate
    if legacy.is_file():
        return legacy
    return None


def load_tree_sitter_config(path: Path | None = None) -> TreeSitterConfig:
    """Load the theme and parser directories; defaults when no config exists."""

    if path is None:
        path = tree_sitter_config_path()
    if path is None or not path.is_file():
        return TreeSitterConfig(theme=Theme.default())

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Failed reading tree-sitter config: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected {path} to contain an object.")

    theme_data = data.get("theme")
    theme = Theme.from_mapping(theme_data) if theme_data is not None else Theme.default()

    dirs = data.get("parser-directories") or []
    if not isinstance(dirs, list) or any(not isinstance(d, str) for d in dirs):
        raise ConfigError(f"Expected parser-directories in {path} to be a list of strings.")

    return TreeSitterConfig(
        theme=theme,
        parser_directories=[Path(os.path.expanduser(d)) for d in dirs],
        path=path,
    )
