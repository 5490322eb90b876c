"""
Runtime data models.

This module contains the data structures used while the development loop
runs: watch events, build requests, and the worker slot.
"""

import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Tuple


class ChangeKind(Enum):
    """Kinds of filesystem change that trigger a rebuild."""
    MODIFIED = "modified"


@dataclass(frozen=True)
class WatchEvent:
    """A single relevant change under the source root."""

    path: Path
    kind: ChangeKind = ChangeKind.MODIFIED


@dataclass(frozen=True)
class BuildRequest:
    """
    Everything the build pipeline needs for one full compilation.
    """

    source_root: Path
    output_dir: Path
    # Compile-time classpath, in order.
    classpath_entries: Tuple[Path, ...] = ()


class WorkerState(Enum):
    """States of the single worker slot."""
    ABSENT = "absent"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


@dataclass
class WorkerHandle:
    """
    A live worker process owned by the process supervisor.
    """

    pid: int
    started_at: float
    # The asyncio subprocess object.
    process: Any

    @property
    def returncode(self):
        return self.process.returncode

    def uptime(self) -> float:
        return time.monotonic() - self.started_at
