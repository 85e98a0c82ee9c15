"""Tests for CommandRunner against real processes."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from gostage.errors import CommandError
from gostage.runner import CommandRunner


def test_run_returns_stdout():
    assert CommandRunner(os.environ).run(["sh", "-c", "echo out"]) == "out\n"


def test_run_uses_cwd_and_layered_env(tmp_path: Path):
    runner = CommandRunner({**os.environ, "GOSTAGE_A": "base", "GOSTAGE_B": "base"})
    output = runner.run(
        ["sh", "-c", 'echo "$GOSTAGE_A $GOSTAGE_B $(pwd -P)"'],
        cwd=tmp_path,
        env={"GOSTAGE_B": "call"},
    )
    assert output.split() == ["base", "call", str(tmp_path.resolve())]


def test_non_zero_exit_raises_command_error():
    with pytest.raises(CommandError) as excinfo:
        CommandRunner(os.environ).run(["false"])
    assert excinfo.value.returncode == 1
    assert excinfo.value.argv == ["false"]


def test_command_error_carries_stderr():
    with pytest.raises(CommandError) as excinfo:
        CommandRunner(os.environ).run(["sh", "-c", "echo oops >&2; exit 3"])
    assert excinfo.value.returncode == 3
    assert excinfo.value.stderr == "oops\n"
    assert "exit status 3" in str(excinfo.value)
    assert "oops" in str(excinfo.value)


def test_missing_executable_raises_command_error():
    with pytest.raises(CommandError) as excinfo:
        CommandRunner(os.environ).run(["gostage-no-such-command"])
    assert excinfo.value.returncode == 127
    assert isinstance(excinfo.value.__cause__, OSError)


def test_call_raises_on_failure():
    runner = CommandRunner(os.environ)
    runner.call(["true"])
    with pytest.raises(CommandError) as excinfo:
        runner.call(["sh", "-c", "exit 2"])
    assert excinfo.value.returncode == 2
