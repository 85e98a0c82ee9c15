"""Decides which source tree entries belong in the staged workspace."""

from __future__ import annotations

from pathlib import Path, PurePosixPath

import pathspec

from gostage.workspace.defaults import FIXTURE_PATTERNS, extension_patterns
from gostage.workspace.types import Decision, WorkspaceConfig


class FileClassifier:
    """
    Classifies relative paths as INCLUDE or EXCLUDE. The decision depends only
    on the path and the configuration, never on file contents or the
    filesystem, in this order:

    1. `install_all` includes everything.
    2. Anything below a directory named `testdata` is included.
    3. Anything whose extension is in the allow-list is included.
    4. Everything else is excluded.
    """

    def __init__(self, config: WorkspaceConfig) -> None:
        self._install_all: bool = config.install_all
        self._fixture_spec: pathspec.PathSpec = pathspec.PathSpec.from_lines(
            "gitignore", FIXTURE_PATTERNS
        )
        self._extension_spec: pathspec.PathSpec = pathspec.PathSpec.from_lines(
            "gitignore", extension_patterns(list(config.extensions))
        )

    def classify(self, rel_path: str | Path) -> Decision:
        if self._install_all:
            return Decision.INCLUDE
        rel = Path(rel_path).as_posix()
        if self._fixture_spec.match_file(rel):
            return Decision.INCLUDE
        # Extensions belong to the final component; `x.go/README.md` is not Go.
        if self._extension_spec.match_file(PurePosixPath(rel).name):
            return Decision.INCLUDE
        return Decision.EXCLUDE

    def includes(self, rel_path: str | Path) -> bool:
        return self.classify(rel_path) is Decision.INCLUDE
