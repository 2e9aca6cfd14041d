"""Utility functions for virshle."""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
from pathlib import Path
from typing import List, Optional, TextIO

from virshle.constants import LOG_COLOURS, LOG_LEVELS, MAX_VERBOSITY
from virshle.exceptions import VirshleError
from virshle.models import CommandResult


class Logger:
    """Coloured, verbosity-gated logging handle.

    Built once at process start and passed to whatever needs to report
    progress. ``ERROR`` is always printed; the other levels need the
    verbosity listed in ``LOG_LEVELS``.
    """

    def __init__(self, verbosity: int = 0, stream: Optional[TextIO] = None) -> None:
        self.verbosity = max(0, min(verbosity, MAX_VERBOSITY))
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        return self._stream or sys.stderr

    def enabled(self, level: str) -> bool:
        return self.verbosity >= LOG_LEVELS.get(level, 0)

    def log(self, level: str, message: str) -> None:
        if not self.enabled(level):
            return
        colour = LOG_COLOURS.get(level, "")
        reset = "\033[0m" if colour else ""
        print(f"{colour}[{level}]{reset} {message}", file=self.stream, flush=True)

    def block(self, level: str, title: str, body: str) -> None:
        """Print ``body`` between two rulers, the first one carrying ``title``."""
        if not self.enabled(level):
            return
        width = max(shutil.get_terminal_size().columns // 3, 10)
        ruler = "-" * width
        self.log(level, f"{ruler}{title}{ruler}")
        print(body.rstrip("\n"), file=self.stream, flush=True)
        self.log(level, ruler * 2)


def get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(name, default)


def parse_int_env(name: str, default: str, min_val: int = 0, max_val: Optional[int] = None) -> int:
    raw = get_env(name, default)
    assert raw is not None
    try:
        value = int(raw)
    except ValueError:
        raise VirshleError(f"{name} must be an integer (got '{raw}')")
    if value < min_val:
        raise VirshleError(f"{name} must be >= {min_val} (got {value})")
    if max_val is not None and value > max_val:
        raise VirshleError(f"{name} must be <= {max_val} (got {value})")
    return value


def home_directory() -> str:
    """Return the caller's home directory, preferring ``$HOME``."""
    return os.environ.get("HOME") or os.path.expanduser("~")


def ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def run(cmd: List[str], capture: bool = True, logger: Optional[Logger] = None) -> CommandResult:
    """Run a command to completion and report whether it succeeded."""
    if logger is not None:
        logger.log("DEBUG", f"Running: {' '.join(cmd)}")
    try:
        result = subprocess.run(cmd, check=False, text=True, capture_output=capture)
    except FileNotFoundError as exc:
        raise VirshleError(f"Command not found: {cmd[0]}") from exc
    return CommandResult(
        success=result.returncode == 0,
        stdout=result.stdout or "",
        stderr=result.stderr or "",
    )


def pipe(cmd: List[str], logger: Optional[Logger] = None) -> CommandResult:
    """Run with captured output, leaving the caller to print it."""
    return run(cmd, capture=True, logger=logger)


def simple(cmd: List[str], logger: Optional[Logger] = None) -> CommandResult:
    """Run attached to the terminal (editors, interactive tools)."""
    return run(cmd, capture=False, logger=logger)


def raw(cmd: List[str], logger: Optional[Logger] = None) -> CommandResult:
    """Run with captured output and echo stdout, or stderr on failure."""
    result = pipe(cmd, logger=logger)
    if result.success:
        print(result.stdout, end="", flush=True)
    else:
        print(result.stderr, end="", file=sys.stderr, flush=True)
    return result
