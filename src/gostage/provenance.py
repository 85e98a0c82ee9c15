"""
Built-Using provenance for compiled Go dependencies.

Go binaries are statically linked, so a binary package must record which
source packages it was built from. The chain resolved here is:

    imported Go package -> representative source file -> owning binary package
    -> "source-name (= source-version)"

Every external lookup is a `BatchQuery` run over fixed-size chunks, so long
dependency lists never exceed command-line limits.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable, Iterator, Mapping, Sequence
from pathlib import Path
from typing import Any, Protocol

from gostage.config import BuildConfig
from gostage.control import BinaryPackage
from gostage.runner import Runner

logger = logging.getLogger(__name__)

# File lists of `go list -json`, in order of preference for picking the one
# file that stands for a package: regular sources, cgo sources, tests,
# external tests, then files excluded by build constraints.
SOURCE_FILE_CATEGORIES: tuple[str, ...] = (
    "GoFiles",
    "CgoFiles",
    "TestGoFiles",
    "XTestGoFiles",
    "IgnoredGoFiles",
)

DPKG_SOURCE_FORMAT = "${source:Package} (= ${source:Version})\n"

# The cgo pseudo-package has no sources of its own.
_PSEUDO_PACKAGES = frozenset({"C"})


class BatchQuery(Protocol):
    """An external lookup taking a list of items and returning a list of results."""

    def __call__(self, items: Sequence[str]) -> list[str]: ...


def chunked(items: Sequence[str], size: int) -> Iterator[Sequence[str]]:
    if size < 1:
        raise ValueError(f"Chunk size must be positive, got {size}")
    for start in range(0, len(items), size):
        yield items[start : start + size]


def run_chunked(query: BatchQuery, items: Sequence[str], chunk_size: int) -> list[str]:
    """Run `query` once per chunk and concatenate the results in order."""
    results: list[str] = []
    for chunk in chunked(items, chunk_size):
        results.extend(query(chunk))
    return results


def unique(items: Iterable[str]) -> list[str]:
    """Drop duplicates and empty strings, keeping first-seen order."""
    return list(dict.fromkeys(item for item in items if item))


def representative_file(package: Mapping[str, Any]) -> str | None:
    """
    Absolute path of the first file in the first non-empty category of
    `SOURCE_FILE_CATEGORIES`, or `None` if the package lists no files.
    """
    for category in SOURCE_FILE_CATEGORIES:
        files = package.get(category) or []
        if files:
            return os.path.join(package.get("Dir", ""), files[0])
    return None


def iter_json_stream(text: str) -> Iterator[dict[str, Any]]:
    """Decode the concatenated JSON objects printed by `go list -json`."""
    decoder = json.JSONDecoder()
    pos = 0
    while True:
        while pos < len(text) and text[pos].isspace():
            pos += 1
        if pos >= len(text):
            return
        obj, pos = decoder.raw_decode(text, pos)
        yield obj


def parse_dpkg_search(output: str) -> list[str]:
    """
    Package names from `dpkg-query --search` output. A line such as
    `libfoo-dev:amd64, libbar-dev: /usr/share/gocode/src/x/y.go` yields both
    packages, without architecture qualifiers. Diversion lines are ignored.
    """
    packages: list[str] = []
    for line in output.splitlines():
        if line.startswith(("diversion by", "local diversion")):
            continue
        names, sep, _path = line.partition(": ")
        if not sep:
            continue
        for name in names.split(","):
            name = name.strip().split(":", 1)[0]
            if name:
                packages.append(name)
    return packages


class GoDepsQuery:
    """Transitive imports of a set of targets."""

    def __init__(self, runner: Runner, cwd: Path, env: Mapping[str, str]) -> None:
        self._runner = runner
        self._cwd = cwd
        self._env = env

    def __call__(self, items: Sequence[str]) -> list[str]:
        output = self._runner.run(
            ["go", "list", "-f", '{{join .Deps "\\n"}}', *items], cwd=self._cwd, env=self._env
        )
        return output.splitlines()


class GoSourceFileQuery:
    """One representative source file per imported package."""

    def __init__(self, runner: Runner, cwd: Path, env: Mapping[str, str]) -> None:
        self._runner = runner
        self._cwd = cwd
        self._env = env

    def __call__(self, items: Sequence[str]) -> list[str]:
        output = self._runner.run(["go", "list", "-json", *items], cwd=self._cwd, env=self._env)
        files: list[str] = []
        for package in iter_json_stream(output):
            path = representative_file(package)
            if path is None:
                logger.debug("No source files listed for %s", package.get("ImportPath"))
                continue
            files.append(path)
        return files


class DpkgSearchQuery:
    """Installed packages owning a set of files."""

    def __init__(self, runner: Runner) -> None:
        self._runner = runner

    def __call__(self, items: Sequence[str]) -> list[str]:
        return parse_dpkg_search(self._runner.run(["dpkg-query", "--search", *items]))


class DpkgSourceQuery:
    """Source package name and version of a set of installed binary packages."""

    def __init__(self, runner: Runner) -> None:
        self._runner = runner

    def __call__(self, items: Sequence[str]) -> list[str]:
        output = self._runner.run(["dpkg-query", "-f", DPKG_SOURCE_FORMAT, "-W", *items])
        return [line.strip() for line in output.splitlines()]


class ProvenanceResolver:
    """
    Computes the deduplicated, sorted `Built-Using` list for a set of targets.

    Queries default to the real `go`/`dpkg-query` implementations and can be
    replaced individually.
    """

    def __init__(
        self,
        config: BuildConfig,
        runner: Runner,
        deps_query: BatchQuery | None = None,
        file_query: BatchQuery | None = None,
        owner_query: BatchQuery | None = None,
        source_query: BatchQuery | None = None,
    ) -> None:
        cwd = config.builddir_path
        env = config.go_environment()
        self._config = config
        self._deps_query: BatchQuery = deps_query or GoDepsQuery(runner, cwd, env)
        self._file_query: BatchQuery = file_query or GoSourceFileQuery(runner, cwd, env)
        self._owner_query: BatchQuery = owner_query or DpkgSearchQuery(runner)
        self._source_query: BatchQuery = source_query or DpkgSourceQuery(runner)

    @property
    def own_source_root(self) -> str:
        return os.path.realpath(self._config.builddir_path / "src" / self._config.import_path)

    def imported_packages(self, targets: Sequence[str]) -> list[str]:
        deps = run_chunked(self._deps_query, targets, self._config.chunk_size)
        return sorted(set(d for d in deps if d and d not in _PSEUDO_PACKAGES))

    def external_files(self, packages: Sequence[str]) -> list[str]:
        """Canonical representative files, minus those inside this build's own sources."""
        own_root = self.own_source_root
        files: list[str] = []
        for path in run_chunked(self._file_query, packages, self._config.chunk_size):
            real = os.path.realpath(path)
            if real == own_root or real.startswith(own_root + os.sep):
                continue
            files.append(real)
        return unique(files)

    def resolve(self, targets: Sequence[str]) -> list[str]:
        if not targets:
            return []
        packages = self.imported_packages(targets)
        files = self.external_files(packages)
        if not files:
            return []
        owners = unique(run_chunked(self._owner_query, files, self._config.chunk_size))
        sources = run_chunked(self._source_query, owners, self._config.chunk_size)
        built_using = sorted(set(s for s in sources if s))
        logger.debug(
            "%d imports, %d external files, %d owning packages, %d sources",
            len(packages),
            len(files),
            len(owners),
            len(built_using),
        )
        return built_using


def attach_to_packages(
    packages: Iterable[BinaryPackage], built_using: Sequence[str]
) -> dict[str, list[str]]:
    """
    Map each binary package to its Built-Using list. Architecture-independent
    packages contain no compiled code and get nothing.
    """
    return {pkg.name: list(built_using) for pkg in packages if not pkg.arch_independent}
