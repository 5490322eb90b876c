"""
System interaction utilities.

- Runtime artifact discovery on disk
- Worker termination strategies (signal or process tree)
- Command line helpers for the compiler and worker runtime
"""

from .artifacts import (
    RUNTIME_PATH_ENV,
    default_search_paths,
    is_runtime_artifact,
    locate_artifact,
    require_artifact,
)

from .commands import check_executable_installed, format_command, join_classpath

from .termination import (
    ProcessTreeTermination,
    SignalTermination,
    TerminationStrategy,
    select_termination_strategy,
)

__all__ = [
    # Artifacts
    "RUNTIME_PATH_ENV",
    "default_search_paths",
    "is_runtime_artifact",
    "locate_artifact",
    "require_artifact",
    # Commands
    "check_executable_installed",
    "format_command",
    "join_classpath",
    # Termination
    "ProcessTreeTermination",
    "SignalTermination",
    "TerminationStrategy",
    "select_termination_strategy",
]
