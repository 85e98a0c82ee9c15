"""
Build target resolution.

The base package patterns are expanded by `go list` inside the workspace,
then every target matching any exclusion regex is dropped. The same
exclusions can also filter which staged sources get installed.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence

from gostage.config import BuildConfig
from gostage.errors import ConfigError
from gostage.runner import Runner

logger = logging.getLogger(__name__)


def compile_excludes(patterns: Iterable[str]) -> list[re.Pattern[str]]:
    compiled: list[re.Pattern[str]] = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as e:
            raise ConfigError(f"Invalid exclude pattern {pattern!r}: {e}") from e
    return compiled


def is_excluded(name: str, excludes: Sequence[re.Pattern[str]]) -> bool:
    return any(rx.search(name) for rx in excludes)


def filter_targets(targets: Iterable[str], excludes: Sequence[re.Pattern[str]]) -> list[str]:
    """
    Drop targets matched by any exclusion, and duplicates. Order of first
    appearance is kept so builds stay reproducible. Targets are packages, so
    each is also tried with a trailing slash: `examples/` excludes `X/examples`.
    """
    seen: set[str] = set()
    result: list[str] = []
    for target in targets:
        if not target or target in seen:
            continue
        if is_excluded(target, excludes) or is_excluded(target + "/", excludes):
            continue
        seen.add(target)
        result.append(target)
    return result


class TargetResolver:
    """Expands the configured build patterns into concrete Go package targets."""

    def __init__(self, config: BuildConfig, runner: Runner) -> None:
        self._config: BuildConfig = config
        self._runner: Runner = runner
        self._excludes: list[re.Pattern[str]] = compile_excludes(config.excludes)

    def resolve(self, patterns: Sequence[str] | None = None) -> list[str]:
        patterns = list(patterns) if patterns else self._config.build_targets
        output = self._runner.run(
            ["go", "list", *patterns],
            cwd=self._config.builddir_path,
            env=self._config.go_environment(),
        )
        targets = filter_targets(output.splitlines(), self._excludes)
        logger.debug("Resolved %d targets from %s", len(targets), " ".join(patterns))
        return targets

    def excluded_for_install(self, rel_path: str) -> bool:
        """Whether a staged source path is kept out of the installed payload."""
        if not self._config.excludes_all:
            return False
        if is_excluded(rel_path, self._excludes):
            logger.debug("%s matches DH_GOLANG_EXCLUDES, skipping", rel_path)
            return True
        return False
