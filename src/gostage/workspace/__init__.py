"""
Workspace staging for Go builds.

Usage::

    from gostage.workspace import WorkspaceBuilder, WorkspaceConfig

    config = WorkspaceConfig(import_path="github.com/example/project")
    builder = WorkspaceBuilder(config, source_dir=".")
    builder.stage()
    builder.overlay()
"""

from gostage.workspace.builder import WorkspaceBuilder
from gostage.workspace.classifier import FileClassifier
from gostage.workspace.defaults import DEFAULT_EXTENSIONS, DEFAULT_LIBRARY_ROOT
from gostage.workspace.types import (
    Decision,
    EntryKind,
    FileEntry,
    OverlayAction,
    OverlayResult,
    StagingReport,
    WorkspaceConfig,
)

__all__ = [
    "DEFAULT_EXTENSIONS",
    "DEFAULT_LIBRARY_ROOT",
    "Decision",
    "EntryKind",
    "FileClassifier",
    "FileEntry",
    "OverlayAction",
    "OverlayResult",
    "StagingReport",
    "WorkspaceBuilder",
    "WorkspaceConfig",
]
