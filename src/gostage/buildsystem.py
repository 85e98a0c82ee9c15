"""
The Go build system: one method per packaging lifecycle phase.

configure   stage sources into `<builddir>/src/<import-path>` and overlay
            installed libraries
build       resolve targets, optionally `go generate`, then `go install`
test        `go test` on the same targets
install     copy `bin/` and the staged sources into the package payload
clean       remove the build directory
built-using record the Built-Using provenance in each package's substvars
"""

from __future__ import annotations

import logging
import os
import re
import shutil
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from gostage.config import BuildConfig
from gostage.errors import ConfigError, StagingError
from gostage.provenance import ProvenanceResolver, attach_to_packages
from gostage.runner import Runner
from gostage.substvars import BUILT_USING_VAR, add_substvar, substvars_path
from gostage.targets import TargetResolver
from gostage.workspace import WorkspaceBuilder
from gostage.workspace.defaults import SHARED_BINARY_PARENT, SHARED_SOURCE_DIR

logger = logging.getLogger(__name__)

_GO_VERSION = re.compile(r"go version go1\.(\d+)")

# First Go minor version whose `go test` runs vet by default.
_VET_BY_DEFAULT_MINOR = 10


@dataclass(frozen=True)
class InstallOptions:
    install_source: bool = True
    install_binaries: bool = True


@dataclass
class InstallReport:
    """Paths written into the payload, relative to the destination directory."""

    binaries: list[Path] = field(default_factory=list)
    sources: list[Path] = field(default_factory=list)


def parse_install_args(args: Sequence[str]) -> InstallOptions:
    """Accept only `--no-source` and `--no-binaries`; anything else is fatal."""
    install_source = True
    install_binaries = True
    for arg in args:
        if arg == "--no-source":
            install_source = False
        elif arg == "--no-binaries":
            install_binaries = False
        else:
            raise ConfigError(f"Unknown option {arg}")
    return InstallOptions(install_source=install_source, install_binaries=install_binaries)


class GolangBuildSystem:
    def __init__(
        self,
        config: BuildConfig,
        runner: Runner,
        parallel: int = 1,
    ) -> None:
        self.config: BuildConfig = config
        self.runner: Runner = runner
        self.parallel: int = parallel
        self.workspace: WorkspaceBuilder = WorkspaceBuilder(
            config.workspace_config(), config.source_dir
        )
        self.targets: TargetResolver = TargetResolver(config, runner)

    def configure(self) -> None:
        logger.info("Configuring Go workspace in %s", self.workspace.builddir)
        try:
            self.workspace.builddir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StagingError(f"Could not create {self.workspace.builddir}: {e}") from e
        self.workspace.stage()
        self.workspace.overlay()

    def build(self, extra_args: Sequence[str] = ()) -> list[str]:
        targets = self.targets.resolve()
        if not targets:
            logger.warning("No build targets left after applying excludes")
            return targets
        cwd = self.config.builddir_path
        env = self.config.go_environment()
        if self.config.go_generate:
            self.runner.call(["go", "generate", "-v", *extra_args, *targets], cwd=cwd, env=env)
        trimpath = f'all="-trimpath={env["GOPATH"]}/src"'
        self.runner.call(
            [
                "go",
                "install",
                "-p",
                str(self.parallel),
                f"-gcflags={trimpath}",
                f"-asmflags={trimpath}",
                "-v",
                *extra_args,
                *targets,
            ],
            cwd=cwd,
            env=env,
        )
        return targets

    def go_minor_version(self) -> int | None:
        output = self.runner.run(["go", "version"], env=self.config.go_environment())
        match = _GO_VERSION.search(output)
        return int(match.group(1)) if match else None

    def test(self, extra_args: Sequence[str] = ()) -> list[str]:
        targets = self.targets.resolve()
        if not targets:
            logger.warning("No test targets left after applying excludes")
            return targets
        argv = ["go", "test"]
        minor = self.go_minor_version()
        # Older toolchains take -vet=off for a package name.
        if minor is None or minor >= _VET_BY_DEFAULT_MINOR:
            argv.append("-vet=off")
        argv += ["-v", "-p", str(self.parallel), *extra_args, *targets]
        self.runner.call(argv, cwd=self.config.builddir_path, env=self.config.go_environment())
        return targets

    def install(self, destdir: str | Path, args: Sequence[str] = ()) -> InstallReport:
        options = parse_install_args(args)
        dest = Path(destdir)
        report = InstallReport()
        if options.install_binaries:
            report.binaries = self._install_binaries(dest)
        if options.install_source:
            report.sources = self._install_sources(dest)
        logger.info(
            "Installed %d binaries and %d source files into %s",
            len(report.binaries),
            len(report.sources),
            dest,
        )
        return report

    def clean(self) -> None:
        self.workspace.clean()

    def built_using(self, targets: Sequence[str] | None = None) -> dict[str, list[str]]:
        """Compute Built-Using and add it to the substvars of every arch-dependent package."""
        if targets is None:
            targets = self.targets.resolve()
        resolver = ProvenanceResolver(self.config, self.runner)
        built_using = resolver.resolve(targets)
        attached = attach_to_packages(self.config.packages, built_using)
        for package, values in attached.items():
            if values:
                add_substvar(
                    substvars_path(self.config.source_dir, package), BUILT_USING_VAR, values
                )
        return attached

    def _install_binaries(self, dest: Path) -> list[Path]:
        bindir = self.config.builddir_path / "bin"
        if not bindir.is_dir() or not any(bindir.iterdir()):
            return []
        target = dest / SHARED_BINARY_PARENT / "bin"
        logger.debug("Copy %s -> %s", bindir, target)
        try:
            shutil.copytree(bindir, target, symlinks=True, dirs_exist_ok=True)
        except OSError as e:
            raise StagingError(f"Could not copy {bindir} to {target}: {e}") from e
        return sorted(p.relative_to(dest) for p in target.rglob("*") if not p.is_dir())

    def _install_sources(self, dest: Path) -> list[Path]:
        """
        Copy staged sources to the shared source tree. Existing destinations
        are left alone, symlinks are re-created, and symlinked directories
        are not followed.
        """
        package_root = self.workspace.package_root
        dest_src = dest / SHARED_SOURCE_DIR / self.config.import_path
        installed: list[Path] = []
        for dirpath, dirnames, filenames in os.walk(package_root):
            dirnames.sort()
            current = Path(dirpath)
            for name in sorted(filenames):
                source = current / name
                rel = source.relative_to(package_root)
                if self.targets.excluded_for_install(rel.as_posix()):
                    continue
                target = dest_src / rel
                if os.path.lexists(target):
                    continue
                try:
                    target.parent.mkdir(parents=True, exist_ok=True)
                    if source.is_symlink():
                        link = os.readlink(source)
                        logger.debug("Create symlink %s -> %s", target, link)
                        os.symlink(link, target)
                    else:
                        logger.debug("Copy %s -> %s", source, target)
                        shutil.copy(source, target)
                except OSError as e:
                    raise StagingError(f"Could not install {source} to {target}: {e}") from e
                installed.append(target.relative_to(dest))
        return installed
