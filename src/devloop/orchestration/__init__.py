"""
Orchestration module for the development loop.

Components:
- DevLoop: Watch -> build -> restart orchestrator
- ProcessSupervisor: Worker process lifecycle management
- SourceWatcher: Filesystem watch subscription on the source tree
- SignalHandler: Signal handling management
"""

from .dev_loop import DevLoop
from .process_manager import ProcessSupervisor
from .shared_state import OrchestratorState, TimeoutConstants
from .signal_handler import SignalHandler
from .watcher import SourceChangeFilter, SourceWatcher

__all__ = [
    "DevLoop",
    "OrchestratorState",
    "ProcessSupervisor",
    "SignalHandler",
    "SourceChangeFilter",
    "SourceWatcher",
    "TimeoutConstants",
]
