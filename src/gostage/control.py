"""
Minimal reader for `debian/control`.

Only what the build needs is extracted: the source stanza's
`XS-Go-Import-Path` field and each binary package's name and architecture.
Field names are matched case-insensitively, as deb822 requires.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

IMPORT_PATH_FIELD = "xs-go-import-path"


@dataclass(frozen=True)
class BinaryPackage:
    name: str
    architecture: str

    @property
    def arch_independent(self) -> bool:
        return self.architecture.strip() == "all"


@dataclass
class ControlInfo:
    source: dict[str, str] = field(default_factory=dict)
    packages: list[BinaryPackage] = field(default_factory=list)

    @property
    def import_paths(self) -> list[str]:
        """All import paths of the comma-separated `XS-Go-Import-Path` field."""
        raw = self.source.get(IMPORT_PATH_FIELD, "")
        return [p.strip() for p in raw.split(",") if p.strip()]


def parse_paragraphs(text: str) -> list[dict[str, str]]:
    """
    Split deb822 text into paragraphs of `{lowercased-field: value}`.
    Continuation lines are joined with newlines.
    """
    paragraphs: list[dict[str, str]] = []
    current: dict[str, str] = {}
    last_key: str | None = None
    for line in text.splitlines():
        if line.startswith("#"):
            continue
        if not line.strip():
            if current:
                paragraphs.append(current)
            current = {}
            last_key = None
            continue
        if line[0] in " \t":
            if last_key is not None:
                current[last_key] += "\n" + line.strip()
            continue
        key, sep, value = line.partition(":")
        if not sep:
            continue
        last_key = key.strip().lower()
        current[last_key] = value.strip()
    if current:
        paragraphs.append(current)
    return paragraphs


def load_control(path: Path) -> ControlInfo:
    paragraphs = parse_paragraphs(path.read_text(encoding="utf-8"))
    if not paragraphs:
        return ControlInfo()
    packages = [
        BinaryPackage(name=p["package"], architecture=p.get("architecture", "any"))
        for p in paragraphs[1:]
        if "package" in p
    ]
    return ControlInfo(source=paragraphs[0], packages=packages)
