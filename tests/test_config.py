"""Tests for configuration loading and precedence."""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import write_control
from gostage.config import BuildConfig, find_config_file, load_config_file
from gostage.errors import ConfigError


def test_import_path_from_control(tmp_path: Path) -> None:
    write_control(tmp_path)
    config = BuildConfig.load({}, tmp_path)
    assert config.import_path == "github.com/example/hello"
    assert config.build_targets == ["github.com/example/hello/..."]


def test_import_path_env_override(tmp_path: Path) -> None:
    write_control(tmp_path)
    config = BuildConfig.load({"DH_GOPKG": "example.org/override"}, tmp_path)
    assert config.import_path == "example.org/override"


def test_empty_env_override_falls_back_to_control(tmp_path: Path) -> None:
    write_control(tmp_path)
    config = BuildConfig.load({"DH_GOPKG": ""}, tmp_path)
    assert config.import_path == "github.com/example/hello"


def test_missing_import_path_is_fatal(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        BuildConfig.load({}, tmp_path)


def test_env_lists_and_booleans(tmp_path: Path) -> None:
    write_control(tmp_path)
    config = BuildConfig.load(
        {
            "DH_GOLANG_INSTALL_EXTRA": "example.toml  testdata2/",
            "DH_GOLANG_INSTALL_ALL": "1",
            "DH_GOLANG_BUILDPKG": "github.com/example/hello/cmd/...",
            "DH_GOLANG_EXCLUDES": "examples/ internal/fuzz",
            "DH_GOLANG_GO_GENERATE": "1",
        },
        tmp_path,
    )
    assert config.install_extra == ("example.toml", "testdata2/")
    assert config.install_all is True
    assert config.build_targets == ["github.com/example/hello/cmd/..."]
    assert config.excludes == ("examples/", "internal/fuzz")
    assert config.go_generate is True


def test_invalid_boolean(tmp_path: Path) -> None:
    write_control(tmp_path)
    with pytest.raises(ConfigError):
        BuildConfig.load({"DH_GOLANG_INSTALL_ALL": "maybe"}, tmp_path)


def test_excludes_all_default_follows_compat(tmp_path: Path) -> None:
    write_control(tmp_path)
    assert BuildConfig.load({}, tmp_path).excludes_all is True
    assert BuildConfig.load({"DH_COMPAT": "11"}, tmp_path).excludes_all is False
    assert BuildConfig.load({"DH_COMPAT": "12"}, tmp_path).excludes_all is True
    explicit = BuildConfig.load({"DH_COMPAT": "11", "DH_GOLANG_EXCLUDES_ALL": "1"}, tmp_path)
    assert explicit.excludes_all is True


def test_compat_from_debian_compat_file(tmp_path: Path) -> None:
    write_control(tmp_path)
    (tmp_path / "debian" / "compat").write_text("10\n")
    config = BuildConfig.load({}, tmp_path)
    assert config.compat == 10
    assert config.excludes_all is False


def test_go_environment_defaults_and_overrides(tmp_path: Path) -> None:
    write_control(tmp_path)
    env = BuildConfig.load({}, tmp_path).go_environment()
    assert env["GOPATH"] == str((tmp_path / "_build").absolute())
    assert env["GOCACHE"] == "off"
    assert env["GO111MODULE"] == "off"

    env = BuildConfig.load({"GOCACHE": "/tmp/cache", "GO111MODULE": "auto"}, tmp_path).go_environment()
    assert env["GOCACHE"] == "/tmp/cache"
    assert env["GO111MODULE"] == "auto"


def test_config_file_and_precedence(tmp_path: Path) -> None:
    write_control(tmp_path)
    (tmp_path / "debian" / "gostage.toml").write_text(
        'builddir = "obj"\n'
        'install-extra = ["example.toml"]\n'
        'excludes = ["examples/"]\n'
        "chunk-size = 50\n"
    )
    config = BuildConfig.load({"DH_GOLANG_EXCLUDES": "cmd/"}, tmp_path)
    assert config.builddir == "obj"
    assert config.install_extra == ("example.toml",)
    assert config.excludes == ("cmd/",)
    assert config.chunk_size == 50

    config = BuildConfig.load({}, tmp_path, builddir="_other")
    assert config.builddir == "_other"


def test_find_config_pyproject_requires_section(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text("[tool.ruff]\nline-length = 100\n")
    assert find_config_file(tmp_path) is None
    (tmp_path / "pyproject.toml").write_text('[tool.gostage]\nbuilddir = "b"\n')
    assert find_config_file(tmp_path) == tmp_path / "pyproject.toml"
    assert load_config_file(tmp_path / "pyproject.toml").builddir == "b"


def test_invalid_config_file(tmp_path: Path) -> None:
    debian = tmp_path / "debian"
    debian.mkdir()
    (debian / "gostage.toml").write_text("builddir = \n")
    with pytest.raises(ConfigError):
        load_config_file(debian / "gostage.toml")


def test_config_is_immutable(tmp_path: Path) -> None:
    write_control(tmp_path)
    config = BuildConfig.load({}, tmp_path)
    with pytest.raises(AttributeError):
        config.import_path = "other"  # type: ignore[misc]


def test_binary_packages_loaded(tmp_path: Path) -> None:
    write_control(tmp_path)
    config = BuildConfig.load({}, tmp_path)
    assert [(p.name, p.arch_independent) for p in config.packages] == [
        ("golang-github-example-hello-dev", True),
        ("hello", False),
    ]
