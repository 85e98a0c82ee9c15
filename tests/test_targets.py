"""Tests for build target resolution and exclusions."""

from __future__ import annotations

from pathlib import Path

import pytest

from gostage.config import BuildConfig
from gostage.errors import ConfigError
from gostage.targets import TargetResolver, compile_excludes, filter_targets


def _config(tmp_path: Path, **kwargs: object) -> BuildConfig:
    return BuildConfig(source_dir=tmp_path, import_path="X", **kwargs)  # type: ignore[arg-type]


def test_resolve_scenario(tmp_path: Path, fake_runner):
    fake_runner.handler = lambda argv: "X/a\nX/a/cmd\nX/examples\n"
    resolver = TargetResolver(_config(tmp_path, excludes=("examples/",)), fake_runner)
    assert resolver.resolve() == ["X/a", "X/a/cmd"]


def test_anchored_pattern_matches_exact_target(tmp_path: Path, fake_runner):
    fake_runner.handler = lambda argv: "X/a\nX/a/cmd\n"
    resolver = TargetResolver(_config(tmp_path, excludes=("^X/a$",)), fake_runner)
    assert resolver.resolve() == ["X/a/cmd"]


def test_resolve_default_pattern_and_environment(tmp_path: Path, fake_runner):
    fake_runner.handler = lambda argv: "X\n"
    TargetResolver(_config(tmp_path), fake_runner).resolve()
    assert fake_runner.calls == [["go", "list", "X/..."]]
    env = fake_runner.envs[0]
    assert env["GOPATH"].endswith("_build")
    assert env["GO111MODULE"] == "off"


def test_resolve_custom_buildpkg(tmp_path: Path, fake_runner):
    fake_runner.handler = lambda argv: "X/cmd/a\nX/cmd/b\n"
    config = _config(tmp_path, buildpkg=("X/cmd/...", "X/tools"))
    TargetResolver(config, fake_runner).resolve()
    assert fake_runner.calls == [["go", "list", "X/cmd/...", "X/tools"]]


def test_exclusion_is_subtractive():
    targets = ["X/a", "X/a/cmd", "X/examples", "X/examples/demo"]
    everything = filter_targets(targets, [])
    for patterns in (["cmd"], ["examples"], ["cmd", "examples"], ["^X/a$"]):
        subset = filter_targets(targets, compile_excludes(patterns))
        assert set(subset) <= set(everything)
    fewer = filter_targets(targets, compile_excludes(["cmd"]))
    fewest = filter_targets(targets, compile_excludes(["cmd", "demo"]))
    assert set(fewest) <= set(fewer)


def test_filter_drops_blank_and_duplicate_lines():
    assert filter_targets(["X/b", "", "X/a", "X/b"], []) == ["X/b", "X/a"]


def test_invalid_exclude_pattern():
    with pytest.raises(ConfigError):
        compile_excludes(["("])


def test_excluded_for_install_follows_policy(tmp_path: Path, fake_runner):
    keep = TargetResolver(_config(tmp_path, excludes=("examples/",), excludes_all=False), fake_runner)
    assert not keep.excluded_for_install("examples/demo.go")

    drop = TargetResolver(_config(tmp_path, excludes=("examples/",), excludes_all=True), fake_runner)
    assert drop.excluded_for_install("examples/demo.go")
    assert not drop.excluded_for_install("lib.go")
