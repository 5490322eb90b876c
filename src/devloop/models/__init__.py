"""
Data models for the development loop.

Configuration Models:
- Project descriptor settings and runtime launch settings

Runtime Models:
- Watch events, build requests and the worker slot

Result Models:
- Build outcomes and dependency resolution outcomes
"""

from .config import DEFAULT_PORT, DESCRIPTOR_FILE_NAME, ProjectConfig, RuntimeConfig

from .runtime import BuildRequest, ChangeKind, WatchEvent, WorkerHandle, WorkerState

from .results import (
    BuildFailure,
    BuildResult,
    BuildSuccess,
    DependencyResolution,
    DependencySpec,
    FailureReason,
    ResolutionReport,
)

__all__ = [
    # Configuration
    "DEFAULT_PORT",
    "DESCRIPTOR_FILE_NAME",
    "ProjectConfig",
    "RuntimeConfig",
    # Runtime
    "BuildRequest",
    "ChangeKind",
    "WatchEvent",
    "WorkerHandle",
    "WorkerState",
    # Results
    "BuildFailure",
    "BuildResult",
    "BuildSuccess",
    "DependencyResolution",
    "DependencySpec",
    "FailureReason",
    "ResolutionReport",
]
