"""
WorkspaceBuilder: materializes a GOPATH-style workspace for one build.

Sources are copied into `<builddir>/src/<import-path>/`, preserving their
paths relative to the source tree. Previously installed libraries are then
exposed next to them by symlinking into `<builddir>/src/`.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Iterable, Iterator
from pathlib import Path

from gostage.errors import ConfigError, StagingError
from gostage.workspace.classifier import FileClassifier
from gostage.workspace.defaults import PRUNED_ROOT_DIRS
from gostage.workspace.types import (
    EntryKind,
    FileEntry,
    OverlayAction,
    OverlayResult,
    StagingReport,
    WorkspaceConfig,
)

logger = logging.getLogger(__name__)


class WorkspaceBuilder:
    """
    Stages a source tree into a build directory. Staging never overwrites an
    existing destination, so running it again over an unchanged tree leaves
    every staged file (and its modification time) untouched and go(1) does not
    recompile anything.
    """

    def __init__(self, config: WorkspaceConfig, source_dir: str | Path = ".") -> None:
        self._config: WorkspaceConfig = config
        self._source_dir: Path = Path(source_dir)
        self._classifier: FileClassifier = FileClassifier(config)

    @property
    def builddir(self) -> Path:
        return self._source_dir / self._config.builddir

    @property
    def src_root(self) -> Path:
        return self.builddir / "src"

    @property
    def package_root(self) -> Path:
        return self.src_root / self._config.import_path

    def collect(self) -> list[FileEntry]:
        """All entries to stage: classified tree entries, then install-extra entries."""
        entries = [e for e in self._walk_source_tree() if self._classifier.includes(e.rel_path)]
        seen = {e.rel_path for e in entries}
        for entry in self._walk_extra_paths():
            if entry.rel_path not in seen:
                seen.add(entry.rel_path)
                entries.append(entry)
        return entries

    def stage(self) -> StagingReport:
        """Copy every collected entry into `<builddir>/src/<import-path>/`."""
        report = StagingReport()
        for entry in self.collect():
            dest = self.package_root / entry.rel_path
            if os.path.lexists(dest):
                report.existing.append(entry.rel_path)
                continue
            self._stage_entry(self._source_dir / entry.rel_path, dest, entry.kind)
            report.staged.append(entry.rel_path)
        logger.info(
            "Staged %d entries into %s (%d already present)",
            len(report.staged),
            self.package_root,
            len(report.existing),
        )
        return report

    def overlay(self) -> list[OverlayResult]:
        """
        Merge the installed library tree into `<builddir>/src/` using symlinks.

        Directories missing from the workspace are linked; directories present
        on both sides are merged one level further down. A directory that
        directly contains `.go` files is a library package of its own and is
        never descended into. Nothing that already exists is replaced.
        """
        library_root = Path(self._config.library_root)
        own_package = library_root / self._config.import_path
        results: list[OverlayResult] = []
        if not library_root.is_dir():
            logger.debug("No installed libraries at %s", library_root)
            return results
        self._makedirs(self.src_root)

        # Explicit stack, since installed trees can be deeply nested.
        stack: list[tuple[Path, Path]] = [(library_root, self.src_root)]
        while stack:
            src, dst = stack.pop()
            contents = sorted(p for p in src.iterdir() if not p.name.startswith("."))
            if any(p.name.endswith(".go") for p in contents):
                results.append(OverlayResult(OverlayAction.SKIPPED_LEAF, src, dst))
                continue

            pending: list[tuple[Path, Path]] = []
            for lib_dir in (p for p in contents if p.is_dir()):
                dest = dst / lib_dir.name
                if dest.is_dir() and not dest.is_symlink():
                    if lib_dir == own_package or lib_dir.is_relative_to(own_package):
                        logger.warning(
                            '"%s" is already installed. Please check for circular dependencies.',
                            self._config.import_path,
                        )
                        results.append(OverlayResult(OverlayAction.SKIPPED_SELF, lib_dir, dest))
                    else:
                        results.append(OverlayResult(OverlayAction.RECURSED, lib_dir, dest))
                        pending.append((lib_dir, dest))
                elif os.path.lexists(dest):
                    logger.debug("Not replacing existing %s", dest)
                else:
                    logger.debug("Symlink %s -> %s", lib_dir, dest)
                    self._symlink(str(lib_dir), dest)
                    results.append(OverlayResult(OverlayAction.LINKED, lib_dir, dest))
            stack.extend(reversed(pending))
        return results

    def clean(self) -> None:
        """Remove the build directory and everything staged or built in it."""
        if os.path.lexists(self.builddir):
            logger.info("Removing %s", self.builddir)
            try:
                shutil.rmtree(self.builddir)
            except OSError as e:
                raise StagingError(f"Could not remove {self.builddir}: {e}") from e

    def _is_pruned_at_root(self, name: str) -> bool:
        if name in PRUNED_ROOT_DIRS:
            return True
        builddir = os.path.normpath(self._config.builddir)
        return name == builddir

    def _walk_source_tree(self) -> Iterator[FileEntry]:
        """
        Walk the source tree in sorted order, yielding directories before their
        contents. Special directories are pruned at the root only. Dangling
        symlinks are skipped.
        """
        root = self._source_dir
        for dirpath, dirnames, filenames in os.walk(root):
            current = Path(dirpath)
            rel_dir = current.relative_to(root)
            if current == root:
                dirnames[:] = [d for d in dirnames if not self._is_pruned_at_root(d)]
            dirnames.sort()

            for name in dirnames + sorted(filenames):
                path = current / name
                if not path.exists():
                    continue
                yield FileEntry(rel_dir / name, EntryKind.of(path))

    def _walk_extra_paths(self) -> Iterable[FileEntry]:
        """Files (and links) under each install-extra path, bypassing the classifier."""
        root = self._source_dir
        for raw in self._config.install_extra:
            rel = Path(os.path.normpath(raw))
            path = root / rel
            if not path.exists():
                raise ConfigError(f"Extra install path not found: {raw}")
            if not path.is_dir():
                yield FileEntry(rel, EntryKind.of(path))
                continue
            for dirpath, dirnames, filenames in os.walk(path, followlinks=True):
                dirnames.sort()
                current = Path(dirpath)
                for name in sorted(filenames):
                    file_path = current / name
                    if file_path.is_file():
                        yield FileEntry(file_path.relative_to(root), EntryKind.of(file_path))

    def _stage_entry(self, source: Path, dest: Path, kind: EntryKind) -> None:
        if kind is EntryKind.DIRECTORY:
            self._makedirs(dest)
            return
        self._makedirs(dest.parent)
        if kind is EntryKind.SYMLINK:
            target = os.readlink(source)
            logger.debug("Symlink %s -> %s", dest, target)
            self._symlink(target, dest)
            return
        logger.debug("Copy %s -> %s", source, dest)
        try:
            shutil.copy(source, dest)
        except OSError as e:
            raise StagingError(f"Could not copy {source} to {dest}: {e}") from e

    @staticmethod
    def _makedirs(path: Path) -> None:
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StagingError(f"Could not create directory {path}: {e}") from e

    @staticmethod
    def _symlink(target: str, dest: Path) -> None:
        try:
            os.symlink(target, dest)
        except OSError as e:
            raise StagingError(f"Could not symlink {dest}: {e}") from e
