"""Fetch, generate and compile tree-sitter parsers into the artifact cache."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path

import filelock

from highlight_ez import paths
from highlight_ez.config import HighlightEzConfig, default_config
from highlight_ez.errors import GrammarDefinitionMissing, LanguageNotSupported, SharedLibUnavailable
from highlight_ez.languages import TargetLanguage
from highlight_ez.toolchain import Toolchain, default_toolchain

logger = logging.getLogger("highlight_ez.provision")

GRAMMAR_FILENAME = "grammar.js"


def _clone_once(toolchain: Toolchain, git_url: str, repo_path: Path, log: logging.Logger) -> None:
    if repo_path.exists():
        log.debug("Reusing existing clone at %s", repo_path)
        return

    log.debug("Cloning git repo %s to path %s", git_url, repo_path)
    repo_path.parent.mkdir(parents=True, exist_ok=True)
    # A failed clone must not leave a partial repo at repo_path.
    tmp = Path(tempfile.mkdtemp(dir=str(repo_path.parent), prefix=f".{repo_path.name}-"))
    try:
        toolchain.vcs.clone(git_url, tmp / "repo")
        os.replace(tmp / "repo", repo_path)
    finally:
        shutil.rmtree(tmp, ignore_errors=True)


def _compile_into_place(toolchain: Toolchain, repo_path: Path, sopath: Path) -> None:
    sopath.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=str(sopath.parent), prefix=".hlez-tmp-", suffix=".so")
    os.close(fd)
    try:
        toolchain.compiler.compile(repo_path, Path(tmp))
        os.replace(tmp, sopath)
    finally:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass


def generate_parser(
    lang: TargetLanguage,
    *,
    toolchain: Toolchain | None = None,
    config: HighlightEzConfig | None = None,
    home: Path | None = None,
    log: logging.Logger | None = None,
) -> Path:
    """Make sure a compiled parser for `lang` exists in the cache; return its path.

    An existing clone is reused, but generation and compilation always run
    again. Concurrent calls for the same language are serialized by a lock file
    next to the artifact.
    """

    log = log or logger
    cfg = config or default_config()

    home_path = home if home is not None else paths.home_dir()
    log.debug("found home path %s", home_path)

    git_url = lang.git_repo()
    if git_url is None:
        raise LanguageNotSupported(f"No grammar repository is defined for {lang}.")

    soname = lang.soname()
    if soname is None:
        raise SharedLibUnavailable(f"No parser artifact is defined for {lang}.")

    sopath = paths.artifact_path(soname, home_path)
    repo_path = paths.clone_path(git_url, home_path)
    log.debug("parser artifact for %s goes to %s", lang, sopath)

    if toolchain is None:
        toolchain = default_toolchain(cfg)

    sopath.parent.mkdir(parents=True, exist_ok=True)
    lock = filelock.FileLock(str(sopath.with_name(soname + ".lock")))
    with lock:
        _clone_once(toolchain, git_url, repo_path, log)

        grammar_path = repo_path / GRAMMAR_FILENAME
        log.debug("Grammar path is %s", grammar_path)
        if not grammar_path.is_file():
            log.error("Grammar definition missing for %s: %s", lang, grammar_path)
            raise GrammarDefinitionMissing(f"No {GRAMMAR_FILENAME} in {repo_path}")

        toolchain.generator.generate(repo_path, grammar_path, cfg.toolchain.abi_version)
        log.debug("generated parser for %s", lang)

        _compile_into_place(toolchain, repo_path, sopath)
        log.debug("compiled parser for %s", lang)

    return sopath
