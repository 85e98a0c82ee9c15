"""
Blocking execution of external toolchain commands.

All `go` and `dpkg-query` invocations go through `CommandRunner`, so tests can
substitute any object satisfying the `Runner` protocol.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Protocol

from gostage.errors import CommandError

logger = logging.getLogger(__name__)


class Runner(Protocol):
    def run(
        self,
        argv: Sequence[str],
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> str: ...

    def call(
        self,
        argv: Sequence[str],
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None: ...


class CommandRunner:
    """
    Runs commands synchronously and returns their stdout. A non-zero exit
    status raises `CommandError`; there are no retries and no timeouts.

    `base_env` is the environment every command starts from. Per-call `env`
    entries are layered on top of it.
    """

    def __init__(self, base_env: Mapping[str, str] | None = None) -> None:
        self._base_env: dict[str, str] = dict(base_env or {})

    def run(
        self,
        argv: Sequence[str],
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> str:
        full_env = {**self._base_env, **(env or {})}
        logger.debug("Running %s (cwd=%s)", " ".join(argv), cwd or ".")
        try:
            result = subprocess.run(
                list(argv),
                cwd=cwd,
                env=full_env,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            raise CommandError(argv, 127, str(e)) from e
        if result.returncode != 0:
            raise CommandError(argv, result.returncode, result.stderr)
        return result.stdout

    def call(
        self,
        argv: Sequence[str],
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        """Run a command whose output should reach the build log directly."""
        full_env = {**self._base_env, **(env or {})}
        logger.info("%s", " ".join(argv))
        try:
            returncode = subprocess.call(list(argv), cwd=cwd, env=full_env)
        except OSError as e:
            raise CommandError(argv, 127, str(e)) from e
        if returncode != 0:
            raise CommandError(argv, returncode)
