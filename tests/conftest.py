"""Shared fixtures: a recording stand-in for CommandRunner."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from gostage.errors import CommandError


@dataclass
class FakeRunner:
    """Answers `run()` via `handler(argv)`; records every command."""

    handler: Callable[[list[str]], str] = lambda argv: ""
    calls: list[list[str]] = field(default_factory=list)
    envs: list[dict[str, str]] = field(default_factory=list)
    failing: set[str] = field(default_factory=set)

    def run(
        self,
        argv: Sequence[str],
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> str:
        self._record(argv, env)
        return self.handler(list(argv))

    def call(
        self,
        argv: Sequence[str],
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._record(argv, env)

    def _record(self, argv: Sequence[str], env: Mapping[str, str] | None) -> None:
        self.calls.append(list(argv))
        self.envs.append(dict(env or {}))
        if argv[0] in self.failing:
            raise CommandError(argv, 1, "boom")


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


def write_control(root: Path, import_path: str = "github.com/example/hello") -> None:
    debian = root / "debian"
    debian.mkdir(exist_ok=True)
    (debian / "control").write_text(
        "Source: golang-github-example-hello\n"
        "Build-Depends: debhelper-compat (= 13), dh-golang\n"
        f"XS-Go-Import-Path: {import_path},\n"
        " example.org/hello\n"
        "\n"
        "Package: golang-github-example-hello-dev\n"
        "Architecture: all\n"
        "\n"
        "Package: hello\n"
        "Architecture: any\n"
    )
