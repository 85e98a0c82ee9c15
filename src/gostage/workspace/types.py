"""Value types shared by the workspace classifier and builder."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from gostage.workspace.defaults import (
    DEFAULT_BUILDDIR,
    DEFAULT_EXTENSIONS,
    DEFAULT_LIBRARY_ROOT,
)


class EntryKind(Enum):
    FILE = "file"
    SYMLINK = "symlink"
    DIRECTORY = "directory"

    @classmethod
    def of(cls, path: str | Path) -> EntryKind:
        """Kind of an existing path, without following a final symlink."""
        if os.path.islink(path):
            return cls.SYMLINK
        if os.path.isdir(path):
            return cls.DIRECTORY
        return cls.FILE


class Decision(Enum):
    INCLUDE = "include"
    EXCLUDE = "exclude"


@dataclass(frozen=True)
class FileEntry:
    """A path relative to the source tree root, and what kind of entry it is."""

    rel_path: Path
    kind: EntryKind


class OverlayAction(Enum):
    LINKED = "linked"
    RECURSED = "recursed"
    SKIPPED_SELF = "skipped-self-reference"
    SKIPPED_LEAF = "skipped-leaf-package"


@dataclass(frozen=True)
class OverlayResult:
    action: OverlayAction
    source: Path
    destination: Path


@dataclass(frozen=True)
class WorkspaceConfig:
    """
    Inputs to workspace staging.

    `import_path` selects the `src/<import_path>` subtree. `install_extra`
    paths are force-included regardless of extension; `install_all` disables
    extension filtering entirely.
    """

    import_path: str
    builddir: str = DEFAULT_BUILDDIR
    extensions: tuple[str, ...] = tuple(DEFAULT_EXTENSIONS)
    install_extra: tuple[str, ...] = ()
    install_all: bool = False
    library_root: str = DEFAULT_LIBRARY_ROOT


@dataclass
class StagingReport:
    """Relative paths staged by one run, and those left alone because they existed."""

    staged: list[Path] = field(default_factory=list)
    existing: list[Path] = field(default_factory=list)
