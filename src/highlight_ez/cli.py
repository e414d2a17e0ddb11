from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from highlight_ez import __version__
from highlight_ez.diagnostics import format_error_with_hint, format_fetch_failures
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

EXIT_OK = 0
EXIT_LANGUAGE_OR_CONFIG = 2
EXIT_PROVISION_ERROR = 3


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="highlight-ez")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to highlight-ez.toml (defaults to searching upward from cwd).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr.")

    subparsers = parser.add_subparsers(dest="command", required=True)

    render_p = subparsers.add_parser("render", help="Render a source file as an HTML table.")
    render_p.add_argument("path", help="Source file, or `-` for stdin.")
    render_p.add_argument(
        "--lang",
        type=str,
        default=None,
        help="Language name or extension (defaults to the file suffix).",
    )
    render_p.add_argument(
        "-o",
        "--output",
        type=str,
        default=None,
        help="Write HTML here instead of stdout.",
    )

    fetch_p = subparsers.add_parser("fetch", help="Clone, generate and compile parsers.")
    fetch_p.add_argument("languages", nargs="+", help="Languages to provision.")

    check_p = subparsers.add_parser("check", help="Report cached parser artifacts.")
    check_p.add_argument("languages", nargs="+", help="Languages to look up.")

    subparsers.add_parser("languages", help="List supported languages.")

    return parser


def parse_args(argv: list[str]) -> argparse.Namespace:
    return _build_parser().parse_args(argv)


def _eprint(msg: str) -> None:
    print(msg, file=sys.stderr)


def _load_config(args: argparse.Namespace):
    from highlight_ez.config import load_config

    config_path = Path(args.config).resolve() if args.config else None
    return load_config(config_path=config_path)


def _parse_language(text: str) -> TargetLanguage:
    lang = TargetLanguage.lookup(text)
    if lang is None:
        raise LanguageNotSupported(f"Unknown language: {text!r}")
    return lang


def cmd_render(args: argparse.Namespace) -> int:
    from highlight_ez.render import render_html

    try:
        cfg = _load_config(args)
        if args.path == "-":
            code = sys.stdin.read()
            lang = _parse_language(args.lang) if args.lang else TargetLanguage.PLAINTEXT
        else:
            path = Path(args.path)
            code = path.read_text(encoding="utf-8")
            if args.lang:
                lang = _parse_language(args.lang)
            else:
                lang = TargetLanguage.from_path(path, TargetLanguage.PLAINTEXT)

        html = render_html(code, lang, config=cfg)
        if args.output:
            Path(args.output).write_text(html, encoding="utf-8")
        else:
            sys.stdout.write(html)
        return EXIT_OK
    except (ConfigError, LanguageNotSupported, HighlightConfigMissing, OSError) as e:
        _eprint(format_error_with_hint(e))
        return EXIT_LANGUAGE_OR_CONFIG
    except (SharedLibUnavailable, GrammarDefinitionMissing, ToolchainError) as e:
        _eprint(format_error_with_hint(e))
        return EXIT_PROVISION_ERROR


def cmd_fetch(args: argparse.Namespace) -> int:
    from highlight_ez.provision import generate_parser

    try:
        cfg = _load_config(args)
        langs = [_parse_language(text) for text in args.languages]
    except (ConfigError, LanguageNotSupported) as e:
        _eprint(format_error_with_hint(e))
        return EXIT_LANGUAGE_OR_CONFIG

    failed: dict[str, str] = {}
    for lang in langs:
        try:
            sopath = generate_parser(lang, config=cfg)
        except HighlightError as e:
            failed[str(lang)] = str(e)
            continue
        print(f"{lang}: {sopath}")

    if failed:
        _eprint(format_fetch_failures(failed).rstrip())
        return EXIT_PROVISION_ERROR
    return EXIT_OK


def cmd_check(args: argparse.Namespace) -> int:
    from highlight_ez.cache import check_for_parser

    rc = EXIT_OK
    for text in args.languages:
        try:
            lang = _parse_language(text)
            sopath = check_for_parser(lang)
        except LanguageNotSupported as e:
            _eprint(format_error_with_hint(e))
            rc = EXIT_LANGUAGE_OR_CONFIG
            continue
        except SharedLibUnavailable as e:
            _eprint(f"{text}: missing ({e})")
            if rc == EXIT_OK:
                rc = EXIT_PROVISION_ERROR
            continue
        print(f"{lang}: {sopath}")
    return rc


def cmd_languages(args: argparse.Namespace) -> int:
    for lang in supported_languages():
        print(f"{lang.value:<12} {lang.extension():<7} {lang.git_repo()}")
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    try:
        args = parse_args(list(sys.argv[1:] if argv is None else argv))
    except SystemExit as e:
        # argparse uses SystemExit for --help/--version and parse errors.
        code = e.code
        return int(code) if isinstance(code, int) else EXIT_LANGUAGE_OR_CONFIG

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    if args.command == "render":
        return cmd_render(args)
    if args.command == "fetch":
        return cmd_fetch(args)
    if args.command == "check":
        return cmd_check(args)
    if args.command == "languages":
        return cmd_languages(args)

    return EXIT_LANGUAGE_OR_CONFIG


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
