"""Probe the on-disk artifact cache for compiled parsers."""

from __future__ import annotations

import logging
from pathlib import Path

from highlight_ez import paths
from highlight_ez.errors import SharedLibUnavailable
from highlight_ez.languages import TargetLanguage

logger = logging.getLogger("highlight_ez.cache")


def check_for_parser(
    lang: TargetLanguage,
    *,
    home: Path | None = None,
    log: logging.Logger | None = None,
) -> Path:
    """Return the cached parser artifact for `lang`.

    Raises SharedLibUnavailable when the home directory cannot be resolved, the
    language has no artifact filename, or the artifact is not on disk.
    """

    log = log or logger
    home_path = home if home is not None else paths.home_dir()
    log.debug("found home path %s", home_path)

    soname = lang.soname()
    if soname is None:
        raise SharedLibUnavailable(f"No parser artifact is defined for {lang}.")

    sopath = paths.artifact_path(soname, home_path)
    log.debug("looking for parser artifact %s", sopath)

    if not sopath.is_file():
        log.error("Unable to find parser artifact for %s at %s", lang, sopath)
        raise SharedLibUnavailable(f"Parser artifact for {lang} not found at {sopath}")

    log.debug("found parser artifact for %s", lang)
    return sopath
