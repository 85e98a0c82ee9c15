#!/usr/bin/env python3
"""
gostage: Go workspace staging and Built-Using provenance for Debian packages

Common usage:
  gostage configure
  gostage build -- -tags netgo
  gostage test
  gostage install debian/tmp --no-source
  gostage built-using
  gostage clean

Run from the top of the unpacked source package. Settings come from the
DH_GOPKG and DH_GOLANG_* environment variables, debian/gostage.toml, and
the XS-Go-Import-Path field of debian/control.
"""

from __future__ import annotations

import argparse
import importlib.metadata
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path

from gostage.buildsystem import GolangBuildSystem
from gostage.config import BuildConfig, parse_bool
from gostage.errors import GostageError
from gostage.runner import CommandRunner

PHASES = [
    "configure",
    "build",
    "test",
    "install",
    "clean",
    "built-using",
    "targets",
    "list-files",
]


@dataclass
class Options:
    """Command-line options for the gostage tool."""

    phase: str | None
    args: list[str]
    directory: str
    builddir: str | None
    parallel: int
    verbose: bool
    quiet: bool
    version: bool


def _parse_args(args: list[str] | None = None) -> Options:
    # Use the module's docstring as the description
    module_doc = __doc__ or ""
    doc_parts = module_doc.split("\n\n")
    description = doc_parts[0]
    epilog = "\n\n".join(doc_parts[1:])

    parser = argparse.ArgumentParser(
        prog="gostage",
        description=description,
        epilog=epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "phase",
        nargs="?",
        choices=PHASES,
        help="Lifecycle phase to run",
    )
    parser.add_argument(
        "args",
        nargs=argparse.REMAINDER,
        help="Phase arguments: DESTDIR and --no-source/--no-binaries for install, "
        "extra go flags after `--` for build and test",
    )
    parser.add_argument(
        "-C",
        "--directory",
        type=str,
        default=".",
        help="Source package directory (default: current directory)",
    )
    parser.add_argument(
        "--builddir",
        type=str,
        default=None,
        metavar="DIR",
        help="Build directory relative to the source directory (default: _build)",
    )
    parser.add_argument(
        "-p",
        "--parallel",
        type=int,
        default=1,
        metavar="N",
        help="Number of packages go(1) builds in parallel (default: %(default)s)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every file and command")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")
    parser.add_argument(
        "--version",
        action="store_true",
        help="Show version information and exit",
    )
    opts = parser.parse_args(args)

    phase_args = list(opts.args)
    if phase_args and phase_args[0] == "--":
        phase_args = phase_args[1:]

    return Options(
        phase=opts.phase,
        args=phase_args,
        directory=opts.directory,
        builddir=opts.builddir,
        parallel=max(1, opts.parallel),
        verbose=opts.verbose,
        quiet=opts.quiet,
        version=opts.version,
    )


def _setup_logging(options: Options) -> None:
    level = logging.INFO
    if options.verbose or parse_bool("DH_VERBOSE", os.environ.get("DH_VERBOSE", "0")):
        level = logging.DEBUG
    elif options.quiet:
        level = logging.WARNING
    logging.basicConfig(level=level, format="gostage: %(levelname)s: %(message)s", force=True)


def _run_phase(system: GolangBuildSystem, options: Options) -> int:
    phase = options.phase
    if phase == "configure":
        system.configure()
    elif phase == "build":
        system.build(options.args)
    elif phase == "test":
        system.test(options.args)
    elif phase == "install":
        if not options.args or options.args[0].startswith("-"):
            print("Error: install requires a destination directory", file=sys.stderr)
            return 1
        system.install(options.args[0], options.args[1:])
    elif phase == "clean":
        system.clean()
    elif phase == "built-using":
        for package, values in system.built_using().items():
            print(f"{package}: {', '.join(values)}")
    elif phase == "targets":
        for target in system.targets.resolve():
            print(target)
    elif phase == "list-files":
        for entry in system.workspace.collect():
            print(entry.rel_path.as_posix())
    return 0


def main(args: list[str] | None = None) -> int:
    """
    Main entry point for the gostage CLI.

    Args:
        args: Command-line arguments (uses sys.argv if None)

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    options = _parse_args(args)

    if options.version:
        try:
            version = importlib.metadata.version("gostage")
            print(f"v{version}")
        except importlib.metadata.PackageNotFoundError:
            print("unknown (package not installed)")
        return 0

    if options.phase is None:
        print(
            "Error: No phase specified. Use one of: " + ", ".join(PHASES) + ".",
            file=sys.stderr,
        )
        return 1

    try:
        _setup_logging(options)
        environ = dict(os.environ)
        config = BuildConfig.load(environ, Path(options.directory), builddir=options.builddir)
        system = GolangBuildSystem(config, CommandRunner(environ), parallel=options.parallel)
        return _run_phase(system, options)
    except GostageError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
