"""Render code blocks to highlighted HTML tables."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Protocol

from highlight_ez import paths
from highlight_ez.cache import check_for_parser
from highlight_ez.config import HighlightEzConfig, load_config
from highlight_ez.errors import HighlightConfigMissing, LanguageNotSupported, SharedLibUnavailable
from highlight_ez.highlighter import (
    HighlightConfiguration,
    Highlighter,
    TreeSitterHighlighter,
)
from highlight_ez.html import HtmlRenderer, render_table
from highlight_ez.languages import TargetLanguage
from highlight_ez.provision import generate_parser
from highlight_ez.theme import Theme, TreeSitterConfig, load_tree_sitter_config
from highlight_ez.toolchain import Toolchain

logger = logging.getLogger("highlight_ez.render")


class GrammarLoader(Protocol):
    def configure_highlights(self, names: list[str]) -> None: ...

    def find_all_languages(self, parser_directories: list[Path]) -> None: ...

    def language_configuration_for_file_name(self, file_path: Path) -> tuple[Any, Any] | None: ...

    def highlight_config_for_injection_string(
        self, text: str
    ) -> HighlightConfiguration | None: ...


def string_html(
    loader: GrammarLoader,
    theme: Theme,
    source: bytes,
    config: HighlightConfiguration,
    *,
    highlighter: Highlighter | None = None,
) -> str:
    """Highlight `source` and wrap the result in a line-numbered table."""

    highlighter = highlighter or TreeSitterHighlighter()
    events = highlighter.highlight(config, source, loader.highlight_config_for_injection_string)

    renderer = HtmlRenderer()
    renderer.render(events, source, theme.css_for)
    return render_table(renderer.lines())


def resolve_highlight_config(
    lang: TargetLanguage,
    *,
    loader: GrammarLoader,
    theme: Theme,
    parser_directories: list[Path],
) -> HighlightConfiguration | None:
    """Find the grammar for `lang` and its highlight configuration.

    Returns None when no grammar on disk handles the language's extension.
    """

    extension = lang.extension()
    if extension is None:
        raise LanguageNotSupported(f"No file extension is defined for {lang}.")

    loader.configure_highlights(theme.highlight_names)
    loader.find_all_languages(parser_directories)

    found = loader.language_configuration_for_file_name(
        Path("dummy-name").with_suffix("." + extension.lstrip("."))
    )
    if found is None:
        logger.debug("no grammar on disk for %s files", extension)
        return None

    language, language_config = found
    highlight_config = language_config.highlight_config(language, theme.highlight_names)
    if highlight_config is None:
        raise HighlightConfigMissing(f"Grammar for {lang} has no highlight queries.")
    return highlight_config


def render_html(
    code_block: str,
    lang: TargetLanguage,
    *,
    config: HighlightEzConfig | None = None,
    toolchain: Toolchain | None = None,
    loader: GrammarLoader | None = None,
    ts_config: TreeSitterConfig | None = None,
    highlighter: Highlighter | None = None,
    home: Path | None = None,
    log: logging.Logger | None = None,
) -> str:
    """Render the code block into HTML, provisioning the parser on first use.

    Returns an empty string when no grammar matches the language's extension.
    """

    log = log or logger
    cfg = config or load_config()

    try:
        check_for_parser(lang, home=home, log=log)
    except SharedLibUnavailable:
        generate_parser(lang, toolchain=toolchain, config=cfg, home=home, log=log)

    if ts_config is None:
        theme_path = Path(cfg.theme.config_path).expanduser() if cfg.theme.config_path else None
        ts_config = load_tree_sitter_config(theme_path)

    if loader is None:
        from highlight_ez.loader import Loader

        loader = Loader(home=home)

    highlight_config = resolve_highlight_config(
        lang,
        loader=loader,
        theme=ts_config.theme,
        parser_directories=[paths.parsers_dir(home), *ts_config.parser_directories],
    )
    if highlight_config is None:
        return ""

    return string_html(
        loader,
        ts_config.theme,
        code_block.encode("utf-8"),
        highlight_config,
        highlighter=highlighter,
    )
