"""Reading and updating `debian/<package>.substvars` files."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from strif import atomic_output_file

logger = logging.getLogger(__name__)

BUILT_USING_VAR = "misc:Built-Using"


def substvars_path(source_dir: Path, package: str) -> Path:
    return source_dir / "debian" / f"{package}.substvars"


def read_substvars(path: Path) -> dict[str, str]:
    """Parse `name=value` lines, keeping file order. Comments and junk lines are dropped."""
    variables: dict[str, str] = {}
    if not path.is_file():
        return variables
    for line in path.read_text(encoding="utf-8").splitlines():
        if not line.strip() or line.startswith("#"):
            continue
        name, sep, value = line.partition("=")
        if sep:
            variables[name.strip()] = value.strip()
    return variables


def add_substvar(path: Path, name: str, values: Sequence[str]) -> None:
    """
    Add `values` to the comma-separated variable `name`, keeping any values
    already present, and rewrite the file atomically.
    """
    variables = read_substvars(path)
    existing = [v.strip() for v in variables.get(name, "").split(",") if v.strip()]
    merged = list(dict.fromkeys([*existing, *values]))
    variables[name] = ", ".join(merged)
    logger.debug("%s: %s=%s", path, name, variables[name])
    with atomic_output_file(path, make_parents=True) as temp_path:
        Path(temp_path).write_text(
            "".join(f"{key}={value}\n" for key, value in variables.items()), encoding="utf-8"
        )
