"""External tools used to provision a parser: git, the tree-sitter CLI and a C compiler.

Each capability is an ABC so provisioning can run against in-memory fakes; the
default implementations shell out with `subprocess.run`.
"""

from __future__ import annotations

import logging
import subprocess
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from highlight_ez.config import HighlightEzConfig, default_config
from highlight_ez.errors import ToolchainError

logger = logging.getLogger("highlight_ez.toolchain")


class VersionControl(ABC):
    @abstractmethod
    def clone(self, url: str, destination: Path) -> None:
        """Clone `url` into `destination` (which must not exist yet)."""


class GrammarGenerator(ABC):
    @abstractmethod
    def generate(self, repo_path: Path, grammar_path: Path, abi_version: int) -> None:
        """Generate parser sources (src/parser.c, ...) inside `repo_path`."""


class Compiler(ABC):
    @abstractmethod
    def compile(self, repo_path: Path, output_path: Path) -> None:
        """Compile the generated parser in `repo_path` into a shared library at `output_path`."""


def run_tool(
    args: Sequence[str],
    *,
    cwd: Path | None = None,
    timeout: float | None = None,
) -> subprocess.CompletedProcess[str]:
    """Run an external tool, raising ToolchainError on any failure."""

    cmd = [str(a) for a in args]
    logger.debug("running %s (cwd=%s)", " ".join(cmd), cwd)
    try:
        proc = subprocess.run(
            cmd,
            check=False,
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise ToolchainError(f"Command not found: {cmd[0]}", cmd=cmd) from e
    except subprocess.TimeoutExpired as e:
        raise ToolchainError(f"Command timed out after {timeout}s: {cmd[0]}", cmd=cmd) from e

    if proc.returncode != 0:
        stderr = (proc.stderr or "").strip()
        detail = stderr.splitlines()[-1] if stderr else f"exit status {proc.returncode}"
        raise ToolchainError(f"{cmd[0]} failed: {detail}", cmd=cmd, stderr=stderr)
    return proc


class GitClient(VersionControl):
    def __init__(self, git: str = "git", *, depth: int = 1, timeout: float | None = None) -> None:
        self._git = git
        self._depth = depth
        self._timeout = timeout

    def clone(self, url: str, destination: Path) -> None:
        args = [self._git, "clone", "--quiet"]
        if self._depth > 0:
            args += ["--depth", str(self._depth)]
        run_tool([*args, url, str(destination)], timeout=self._timeout)


class TreeSitterGenerator(GrammarGenerator):
    def __init__(self, tree_sitter: str = "tree-sitter", *, timeout: float | None = None) -> None:
        self._tree_sitter = tree_sitter
        self._timeout = timeout

    def generate(self, repo_path: Path, grammar_path: Path, abi_version: int) -> None:
        run_tool(
            [self._tree_sitter, "generate", "--abi", str(abi_version), str(grammar_path)],
            cwd=repo_path,
            timeout=self._timeout,
        )


def parser_sources(repo_path: Path) -> list[Path]:
    """Generated parser plus the optional external scanner."""

    src = repo_path / "src"
    sources = [src / "parser.c"]
    for name in ("scanner.c", "scanner.cc"):
        scanner = src / name
        if scanner.is_file():
            sources.append(scanner)
    return sources


class CCompiler(Compiler):
    def __init__(
        self,
        cc: str = "cc",
        *,
        debug: bool = False,
        timeout: float | None = None,
    ) -> None:
        self._cc = cc
        self._debug = debug
        self._timeout = timeout

    def command(self, repo_path: Path, output_path: Path) -> list[str]:
        sources = parser_sources(repo_path)
        flags = ["-g", "-O0"] if self._debug else ["-O2"]
        args = [self._cc, "-shared", "-fPIC", *flags, "-I", str(repo_path / "src")]
        args += [str(s) for s in sources]
        if any(s.suffix == ".cc" for s in sources):
            # Legacy C++ scanners need the C++ runtime.
            args.append("-lstdc++")
        return [*args, "-o", str(output_path)]

    def compile(self, repo_path: Path, output_path: Path) -> None:
        parser_c = repo_path / "src" / "parser.c"
        if not parser_c.is_file():
            raise ToolchainError(f"Generated parser source missing: {parser_c}")
        run_tool(self.command(repo_path, output_path), cwd=repo_path, timeout=self._timeout)


@dataclass(frozen=True, slots=True)
class Toolchain:
    vcs: VersionControl
    generator: GrammarGenerator
    compiler: Compiler


def default_toolchain(config: HighlightEzConfig | None = None) -> Toolchain:
    cfg = config or default_config()
    tc = cfg.toolchain
    return Toolchain(
        vcs=GitClient(tc.git, depth=cfg.git.depth, timeout=tc.timeout),
        generator=TreeSitterGenerator(tc.tree_sitter, timeout=tc.timeout),
        compiler=CCompiler(tc.cc, debug=tc.debug, timeout=tc.timeout),
    )
