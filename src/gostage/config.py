"""
Build configuration for gostage.

A single immutable `BuildConfig` is assembled once per invocation from three
sources, with precedence: environment variables > config file > built-in
defaults. The config file is `debian/gostage.toml`, or `[tool.gostage]` in the
source tree's `pyproject.toml`. After `BuildConfig.load()` returns, nothing
else reads the process environment.
"""

from __future__ import annotations

import os
import re
import sys
from collections.abc import Mapping
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, cast

from gostage.control import BinaryPackage, ControlInfo, load_control
from gostage.errors import ConfigError
from gostage.workspace.defaults import DEFAULT_BUILDDIR, DEFAULT_EXTENSIONS, DEFAULT_LIBRARY_ROOT
from gostage.workspace.types import WorkspaceConfig

if sys.version_info >= (3, 11):
    import tomllib  # pyright: ignore[reportUnreachable]
else:
    import tomli as tomllib  # type: ignore[no-redef]  # pyright: ignore[reportUnreachable]

DEFAULT_CHUNK_SIZE = 200

# debhelper compat level from which excludes also apply to installed sources
EXCLUDES_ALL_COMPAT = 12

DEFAULT_COMPAT = 13


@dataclass
class FileConfig:
    """
    Settings read from a TOML config file. Fields are `None` when the file
    does not set them.
    """

    import_path: str | None = None
    builddir: str | None = None
    install_extra: list[str] | None = None
    install_all: bool | None = None
    buildpkg: list[str] | None = None
    excludes: list[str] | None = None
    excludes_all: bool | None = None
    go_generate: bool | None = None
    library_root: str | None = None
    chunk_size: int | None = None


# Config file search order within the source tree (first match wins)
_CONFIG_FILENAMES = ["debian/gostage.toml", "pyproject.toml"]

_VALID_FIELDS = {f.name for f in fields(FileConfig)}

# Environment variable -> FileConfig field
_ENV_FIELDS: dict[str, str] = {
    "DH_GOPKG": "import_path",
    "DH_GOLANG_INSTALL_EXTRA": "install_extra",
    "DH_GOLANG_INSTALL_ALL": "install_all",
    "DH_GOLANG_BUILDPKG": "buildpkg",
    "DH_GOLANG_EXCLUDES": "excludes",
    "DH_GOLANG_EXCLUDES_ALL": "excludes_all",
    "DH_GOLANG_GO_GENERATE": "go_generate",
}

_LIST_FIELDS = {"install_extra", "buildpkg", "excludes"}
_BOOL_FIELDS = {"install_all", "excludes_all", "go_generate"}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}

_COMPAT_BUILD_DEP = re.compile(r"debhelper-compat\s*\(\s*=\s*(\d+)\s*\)")


def find_config_file(source_dir: Path) -> Path | None:
    """
    Look for a config file in `source_dir`: `debian/gostage.toml`, then
    `pyproject.toml` (only if it has a `[tool.gostage]` table).
    """
    for filename in _CONFIG_FILENAMES:
        candidate = source_dir / filename
        if not candidate.is_file():
            continue
        if filename == "pyproject.toml":
            if _pyproject_has_gostage_section(candidate):
                return candidate
        else:
            return candidate
    return None


def _pyproject_has_gostage_section(path: Path) -> bool:
    try:
        data = tomllib.loads(path.read_text())
        return "gostage" in data.get("tool", {})
    except (tomllib.TOMLDecodeError, OSError):
        return False


def load_config_file(config_path: Path) -> FileConfig:
    """Load a `FileConfig`, mapping TOML kebab-case keys to snake_case fields."""
    try:
        data = tomllib.loads(config_path.read_text())
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid config file {config_path}: {e}") from e

    if config_path.name == "pyproject.toml":
        data = data.get("tool", {}).get("gostage", {})

    mapped: dict[str, Any] = {}
    for key, value in cast(dict[str, Any], data).items():
        snake_key = key.replace("-", "_")
        if snake_key in _VALID_FIELDS:
            mapped[snake_key] = value
    return FileConfig(**mapped)


def parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean (0/1), got: {value!r}")


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """Fields explicitly set in the environment. Empty strings count as unset for strings."""
    overrides: dict[str, Any] = {}
    for var, field_name in _ENV_FIELDS.items():
        if var not in environ:
            continue
        value = environ[var]
        if field_name in _LIST_FIELDS:
            overrides[field_name] = value.split()
        elif field_name in _BOOL_FIELDS:
            overrides[field_name] = parse_bool(var, value)
        elif value:
            overrides[field_name] = value
    return overrides


def detect_compat(environ: Mapping[str, str], source_dir: Path, control: ControlInfo) -> int:
    """
    debhelper compat level: `DH_COMPAT`, then `debian/compat`, then a
    `debhelper-compat (= N)` build dependency.
    """
    raw = environ.get("DH_COMPAT", "").strip()
    if not raw:
        compat_file = source_dir / "debian" / "compat"
        if compat_file.is_file():
            raw = compat_file.read_text().strip()
    if not raw:
        match = _COMPAT_BUILD_DEP.search(control.source.get("build-depends", ""))
        if match:
            raw = match.group(1)
    if not raw:
        return DEFAULT_COMPAT
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"Invalid debhelper compat level: {raw!r}") from e


@dataclass(frozen=True)
class BuildConfig:
    """Everything one build needs to know, resolved once at startup."""

    source_dir: Path
    import_path: str
    builddir: str = DEFAULT_BUILDDIR
    install_extra: tuple[str, ...] = ()
    install_all: bool = False
    buildpkg: tuple[str, ...] = ()
    excludes: tuple[str, ...] = ()
    excludes_all: bool = True
    go_generate: bool = False
    gocache: str = "off"
    go111module: str = "off"
    library_root: str = DEFAULT_LIBRARY_ROOT
    chunk_size: int = DEFAULT_CHUNK_SIZE
    compat: int = DEFAULT_COMPAT
    packages: tuple[BinaryPackage, ...] = ()

    @classmethod
    def load(
        cls,
        environ: Mapping[str, str],
        source_dir: str | Path = ".",
        builddir: str | None = None,
    ) -> BuildConfig:
        """
        Resolve the configuration for a source tree. `builddir` (from the
        command line) wins over the config file.
        """
        root = Path(source_dir)
        control_path = root / "debian" / "control"
        control = load_control(control_path) if control_path.is_file() else ControlInfo()

        config_path = find_config_file(root)
        file_config = load_config_file(config_path) if config_path else FileConfig()

        merged: dict[str, Any] = {
            f.name: getattr(file_config, f.name)
            for f in fields(FileConfig)
            if getattr(file_config, f.name) is not None
        }
        for name in _LIST_FIELDS & merged.keys():
            if isinstance(merged[name], str):
                merged[name] = merged[name].split()
        merged.update(_env_overrides(environ))
        if builddir:
            merged["builddir"] = builddir

        import_path = merged.get("import_path") or next(iter(control.import_paths), None)
        if not import_path:
            raise ConfigError(
                "Cannot determine the Go import path: set DH_GOPKG or the "
                "XS-Go-Import-Path field in debian/control"
            )

        compat = detect_compat(environ, root, control)
        excludes_all = merged.get("excludes_all")
        if excludes_all is None:
            excludes_all = compat >= EXCLUDES_ALL_COMPAT

        chunk_size = int(merged.get("chunk_size", DEFAULT_CHUNK_SIZE))
        if chunk_size < 1:
            raise ConfigError(f"chunk-size must be positive, got {chunk_size}")

        return cls(
            source_dir=root,
            import_path=import_path,
            builddir=merged.get("builddir", DEFAULT_BUILDDIR),
            install_extra=tuple(merged.get("install_extra", ())),
            install_all=bool(merged.get("install_all", False)),
            buildpkg=tuple(merged.get("buildpkg", ())),
            excludes=tuple(merged.get("excludes", ())),
            excludes_all=bool(excludes_all),
            go_generate=bool(merged.get("go_generate", False)),
            gocache=environ.get("GOCACHE") or "off",
            go111module=environ.get("GO111MODULE") or "off",
            library_root=merged.get("library_root", DEFAULT_LIBRARY_ROOT),
            chunk_size=chunk_size,
            compat=compat,
            packages=tuple(control.packages),
        )

    @property
    def builddir_path(self) -> Path:
        return self.source_dir / self.builddir

    @property
    def build_targets(self) -> list[str]:
        """Base package patterns handed to `go list`; defaults to everything under the import path."""
        return list(self.buildpkg) or [f"{self.import_path}/..."]

    def go_environment(self) -> dict[str, str]:
        """Environment for go(1): a single-component GOPATH rooted at the build directory."""
        return {
            "GOPATH": os.path.abspath(self.builddir_path),
            "GOCACHE": self.gocache,
            "GO111MODULE": self.go111module,
        }

    def workspace_config(self) -> WorkspaceConfig:
        return WorkspaceConfig(
            import_path=self.import_path,
            builddir=self.builddir,
            extensions=tuple(DEFAULT_EXTENSIONS),
            install_extra=self.install_extra,
            install_all=self.install_all,
            library_root=self.library_root,
        )
