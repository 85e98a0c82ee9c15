"""
Default patterns and locations for workspace staging.

Extension and fixture patterns use gitignore syntax and are compiled with
`pathspec`.
"""

from __future__ import annotations

# Source files, headers, interface definitions and assembly.
DEFAULT_EXTENSIONS: list[str] = [
    ".go",
    ".c",
    ".cc",
    ".cpp",
    ".h",
    ".hh",
    ".hpp",
    ".proto",
    ".s",
]

# The go tool treats testdata directories as fixtures, so their contents
# are always staged.
FIXTURE_PATTERNS: list[str] = ["**/testdata/**"]

# Pruned at the top of the source tree only; `foo/debian/` is kept.
PRUNED_ROOT_DIRS: frozenset[str] = frozenset({"debian", ".pc", ".git"})

DEFAULT_BUILDDIR = "_build"

# Where previously installed Go library sources live.
DEFAULT_LIBRARY_ROOT = "/usr/share/gocode/src"

# Destinations inside the package payload.
SHARED_SOURCE_DIR = "usr/share/gocode/src"
SHARED_BINARY_PARENT = "usr"


def extension_patterns(extensions: list[str]) -> list[str]:
    """Turn `[".go", ".c"]` into gitignore patterns `["*.go", "*.c"]`."""
    return [f"*{ext}" for ext in extensions]
