"""
Shared data structures for the orchestration module.

This module defines the state owned by the development loop and the
timeouts used across orchestration components.
"""

import asyncio
from dataclasses import dataclass, field
from typing import List, Optional

from ..models.results import DependencyResolution
from ..models.runtime import WorkerHandle


@dataclass
class OrchestratorState:
    """
    State owned by one development loop.

    `restarting` is the single-flight guard: set when a change is accepted,
    cleared only once the whole stop/build/start cycle has finished.
    """
    restarting: bool = False
    worker: Optional[WorkerHandle] = None
    current_cycle: Optional[asyncio.Task] = None
    shutdown_requested: asyncio.Event = field(default_factory=asyncio.Event)

    # Counters reported at shutdown
    cycles_completed: int = 0
    events_dropped: int = 0

    # Dependencies that failed to resolve at startup
    unresolved_dependencies: List[DependencyResolution] = field(default_factory=list)


class TimeoutConstants:
    """
    Centralized timeout configuration, in seconds.
    """
    # Wait for a forced termination to be observed
    FORCED_EXIT_REAP_TIMEOUT = 0.5

    # Pause between a successful build and the worker launch, so the
    # previous worker's port has been released.
    PORT_RELEASE_DELAY = 0.5
