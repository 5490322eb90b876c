"""
Worker termination strategies.

A strategy is selected once at startup based on the host platform and
exposes a uniform graceful/forceful pair to the process supervisor.
"""

import logging
import sys
from abc import ABC, abstractmethod
from typing import Any, Dict, List

import psutil

logger = logging.getLogger(__name__)


class TerminationStrategy(ABC):
    """Sends termination requests to a worker process."""

    name = "abstract"

    @abstractmethod
    def terminate_gracefully(self, process: Any) -> None:
        """Ask the process to exit. Must not block."""

    @abstractmethod
    def terminate_forcefully(self, process: Any) -> None:
        """Kill the process unconditionally. Must not block."""


class SignalTermination(TerminationStrategy):
    """
    SIGTERM for the graceful request, SIGKILL for the forced one.
    """

    name = "signal"

    def terminate_gracefully(self, process: Any) -> None:
        try:
            process.terminate()
            logger.debug(f"Sent SIGTERM to PID {process.pid}")
        except ProcessLookupError:
            logger.debug(f"PID {process.pid} already exited before SIGTERM")

    def terminate_forcefully(self, process: Any) -> None:
        try:
            process.kill()
            logger.warning(f"Force killed worker PID {process.pid}")
        except ProcessLookupError:
            logger.debug(f"PID {process.pid} already exited before SIGKILL")


class ProcessTreeTermination(TerminationStrategy):
    """
    Terminates the whole process tree rooted at the worker.

    Used where signalling a single process does not reliably stop the
    processes it spawned. The tree is snapshotted on the graceful request so
    that children orphaned by the parent's exit are still killed by the
    forced request.
    """

    name = "process_tree"

    def __init__(self) -> None:
        self._known_children: Dict[int, List[psutil.Process]] = {}

    def terminate_gracefully(self, process: Any) -> None:
        tree = self._collect_tree(process.pid)
        self._known_children[process.pid] = tree[:-1]
        logger.info(f"Terminating worker PID {process.pid} and {len(tree) - 1} children")
        self._signal_all(tree, force=False)

    def terminate_forcefully(self, process: Any) -> None:
        tree = self._collect_tree(process.pid)
        seen = {p.pid for p in tree}
        for child in self._known_children.pop(process.pid, []):
            if child.pid not in seen:
                tree.insert(0, child)
        self._signal_all(tree, force=True)

    def _collect_tree(self, pid: int) -> List[psutil.Process]:
        """Children first, then the root; empty when the root is gone."""
        try:
            parent = psutil.Process(pid)
        except psutil.NoSuchProcess:
            return []
        except psutil.AccessDenied:
            logger.warning(f"Access denied to worker PID {pid}")
            return []

        children = []
        try:
            children = [c for c in parent.children(recursive=True) if self._is_process_alive(c)]
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            # Parent exited or hid its children during enumeration
            pass
        return children + [parent]

    def _signal_all(self, processes: List[psutil.Process], force: bool) -> None:
        action = "kill" if force else "terminate"
        for proc in processes:
            try:
                if not self._is_process_alive(proc):
                    continue
                if force:
                    proc.kill()
                else:
                    proc.terminate()
                logger.debug(f"Sent {action} to PID {proc.pid}")
            except psutil.NoSuchProcess:
                continue
            except psutil.AccessDenied:
                logger.warning(f"Access denied sending {action} to PID {proc.pid}")

    @staticmethod
    def _is_process_alive(process: psutil.Process) -> bool:
        """Safely check if a process is still alive and not a zombie."""
        try:
            if not process.is_running():
                return False
            return process.status() not in (psutil.STATUS_ZOMBIE, psutil.STATUS_DEAD)
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            return False


def select_termination_strategy(
    platform: str = sys.platform, kill_process_tree: bool = False
) -> TerminationStrategy:
    """
    Pick the termination strategy for this host.

    Windows has no reliable graceful signal for a process tree, so the tree
    strategy is used there; elsewhere it is opt-in.
    """
    if platform.startswith("win") or kill_process_tree:
        strategy: TerminationStrategy = ProcessTreeTermination()
    else:
        strategy = SignalTermination()
    logger.debug(f"Using '{strategy.name}' worker termination strategy")
    return strategy
