"""
Worker process supervision.

The supervisor owns a single worker slot and moves it through
ABSENT -> STARTING -> RUNNING -> STOPPING -> ABSENT. It distinguishes an
exit it requested from an exit the worker decided on by the slot state,
never by exit code.
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Set

from ..models.config import RuntimeConfig
from ..models.runtime import WorkerHandle, WorkerState
from ..system.commands import format_command, join_classpath
from ..system.termination import TerminationStrategy, select_termination_strategy
from ..validation import ProcessSpawnError
from .shared_state import TimeoutConstants

logger = logging.getLogger(__name__)

UnexpectedExitCallback = Callable[[WorkerHandle, Optional[int]], None]


class ProcessSupervisor:
    """
    Starts, observes and stops the worker process.

    Only one worker exists at a time. `start` is valid from ABSENT only;
    `stop` always resolves within the grace period plus a short reap
    timeout, escalating to forced termination when the worker does not
    exit on its own.
    """

    def __init__(
        self,
        runtime: RuntimeConfig,
        strategy: Optional[TerminationStrategy] = None,
        grace_period: Optional[float] = None,
        reap_timeout: float = TimeoutConstants.FORCED_EXIT_REAP_TIMEOUT,
        on_unexpected_exit: Optional[UnexpectedExitCallback] = None,
    ):
        self.runtime = runtime
        self.strategy = strategy or select_termination_strategy(
            kill_process_tree=runtime.kill_process_tree
        )
        self.grace_period = runtime.grace_period if grace_period is None else grace_period
        self.reap_timeout = reap_timeout
        self.on_unexpected_exit = on_unexpected_exit

        self.state = WorkerState.ABSENT
        self.handle: Optional[WorkerHandle] = None
        self.forced_terminations = 0
        self._exited: Optional[asyncio.Event] = None
        self._monitors: Set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return self.state is WorkerState.RUNNING

    def build_worker_command(
        self,
        artifact_path: Path,
        output_dir: Path,
        port: int,
        extra_classpath: Sequence[Path] = (),
    ) -> List[str]:
        classpath = join_classpath([artifact_path, output_dir, *extra_classpath])
        return [
            self.runtime.java,
            f"-D{self.runtime.port_property}={port}",
            "-cp",
            classpath,
            self.runtime.main_class,
        ]

    async def start(
        self,
        artifact_path: Path,
        output_dir: Path,
        port: int,
        extra_classpath: Sequence[Path] = (),
    ) -> WorkerHandle:
        """
        Launch the worker with inherited standard streams.

        Raises:
            RuntimeError: If the slot is not ABSENT
            ProcessSpawnError: If the process cannot be spawned
        """
        if self.state is not WorkerState.ABSENT:
            raise RuntimeError(f"Cannot start worker while slot is {self.state.value}")

        self.state = WorkerState.STARTING
        argv = self.build_worker_command(artifact_path, output_dir, port, extra_classpath)
        logger.debug(f"Worker command: {format_command(argv)}")

        try:
            process = await asyncio.create_subprocess_exec(*argv)
        except asyncio.CancelledError:
            self.state = WorkerState.ABSENT
            raise
        except OSError as e:
            self.state = WorkerState.ABSENT
            raise ProcessSpawnError(f"Failed to start worker '{self.runtime.java}': {e}") from e

        handle = WorkerHandle(pid=process.pid, started_at=time.monotonic(), process=process)
        self.handle = handle
        self._exited = asyncio.Event()
        self.state = WorkerState.RUNNING

        monitor = asyncio.create_task(
            self._monitor_exit(handle, self._exited), name=f"worker-exit-{handle.pid}"
        )
        self._monitors.add(monitor)
        monitor.add_done_callback(self._monitors.discard)

        logger.info(f"Worker started with PID {handle.pid} on port {port}")
        return handle

    async def _monitor_exit(self, handle: WorkerHandle, exited: asyncio.Event) -> None:
        returncode = await handle.process.wait()
        exited.set()

        if self.handle is not handle:
            return
        if self.state is WorkerState.RUNNING:
            # Nobody asked the worker to stop
            self.state = WorkerState.ABSENT
            self.handle = None
            if self.on_unexpected_exit is not None:
                self.on_unexpected_exit(handle, returncode)
            else:
                logger.error(f"Worker PID {handle.pid} exited unexpectedly with code {returncode}")
        # In STOPPING, stop() owns the transition to ABSENT.

    async def stop(self) -> None:
        """
        Stop the worker, waiting at most the grace period before forcing it.

        A no-op when no worker is running.
        """
        if self.state is WorkerState.ABSENT or self.handle is None:
            return
        if self.state is not WorkerState.RUNNING:
            raise RuntimeError(f"Cannot stop worker while slot is {self.state.value}")

        handle = self.handle
        exited = self._exited
        self.state = WorkerState.STOPPING
        logger.info(f"Stopping worker PID {handle.pid}...")

        try:
            if not exited.is_set():
                self.strategy.terminate_gracefully(handle.process)
                if not await self._wait_for_exit(exited, self.grace_period):
                    logger.warning(
                        f"Worker PID {handle.pid} did not exit within {self.grace_period}s, forcing termination"
                    )
                    self.strategy.terminate_forcefully(handle.process)
                    self.forced_terminations += 1
                    try:
                        await asyncio.wait_for(exited.wait(), timeout=self.reap_timeout)
                    except asyncio.TimeoutError:
                        logger.warning(f"Exit of worker PID {handle.pid} not observed after forced termination")
        except asyncio.CancelledError:
            # Cancelled mid-stop: do not leave the worker behind
            if handle.returncode is None:
                self.strategy.terminate_forcefully(handle.process)
                self.forced_terminations += 1
            raise
        finally:
            self.state = WorkerState.ABSENT
            self.handle = None

        logger.info(
            f"Worker PID {handle.pid} stopped after {handle.uptime():.1f}s (exit code {handle.returncode})"
        )

    @staticmethod
    async def _wait_for_exit(exited: asyncio.Event, timeout: float) -> bool:
        """
        Race the exit notification against a timer; cancel whichever loses.

        Returns:
            True if the process exited before the timer fired
        """
        exit_wait = asyncio.create_task(exited.wait())
        timer = asyncio.create_task(asyncio.sleep(timeout))
        try:
            done, _ = await asyncio.wait({exit_wait, timer}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (exit_wait, timer):
                if not task.done():
                    task.cancel()
            await asyncio.gather(exit_wait, timer, return_exceptions=True)
        return exit_wait in done

    async def aclose(self) -> None:
        """Stop the worker if needed and drop any lingering exit monitors."""
        if self.state is WorkerState.RUNNING:
            await self.stop()
        monitors = list(self._monitors)
        for monitor in monitors:
            monitor.cancel()
        await asyncio.gather(*monitors, return_exceptions=True)
