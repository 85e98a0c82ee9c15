"""Exceptions raised by gostage. Every phase aborts on the first one."""

from __future__ import annotations

from collections.abc import Sequence


class GostageError(Exception):
    """Base class for all fatal gostage errors."""


class ConfigError(GostageError):
    """Invalid or missing configuration, including unknown phase options."""


class StagingError(GostageError):
    """A copy, symlink or mkdir failed while populating a directory tree."""


class CommandError(GostageError):
    """An external command (go, dpkg-query) exited with a non-zero status."""

    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = "") -> None:
        self.argv: list[str] = list(argv)
        self.returncode: int = returncode
        self.stderr: str = stderr
        message = f"Command failed with exit status {returncode}: {' '.join(self.argv)}"
        if stderr.strip():
            message += f"\n{stderr.strip()}"
        super().__init__(message)
