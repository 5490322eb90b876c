"""
The development loop: watch, rebuild, restart.

DevLoop resolves dependencies and locates the runtime artifact once, runs
an initial build-and-start cycle, then rebuilds and restarts the worker on
every relevant source change. A single-flight guard ensures only one cycle
runs at a time; changes arriving while a cycle is in flight are dropped.
"""

import asyncio
import dataclasses
import logging
from pathlib import Path
from typing import Callable, List, Optional

from ..dependencies import DependencyResolver
from ..executor import BuildPipeline
from ..models.config import ProjectConfig
from ..models.results import BuildFailure, BuildResult, FailureReason
from ..models.runtime import BuildRequest, WatchEvent, WorkerHandle
from ..system.artifacts import default_search_paths, require_artifact
from ..validation import ConfigurationError, ErrorSeverity, ProcessSpawnError, WatchError, handle_error
from .process_manager import ProcessSupervisor
from .shared_state import OrchestratorState, TimeoutConstants
from .signal_handler import SignalHandler
from .watcher import SourceWatcher

logger = logging.getLogger(__name__)


class DevLoop:
    """
    Orchestrates the watch -> build -> restart cycle for one project.

    Collaborators can be injected; by default they are built from the
    project configuration.
    """

    def __init__(
        self,
        config: ProjectConfig,
        port_override: Optional[int] = None,
        resolver: Optional[DependencyResolver] = None,
        pipeline: Optional[BuildPipeline] = None,
        supervisor: Optional[ProcessSupervisor] = None,
        watcher: Optional[SourceWatcher] = None,
        config_loader: Optional[Callable[[], ProjectConfig]] = None,
        port_release_delay: float = TimeoutConstants.PORT_RELEASE_DELAY,
        install_signal_handlers: bool = True,
    ):
        """
        Args:
            config: Validated project configuration
            port_override: Port from the command line; wins over the descriptor
            resolver: Dependency resolver (defaults to the project cache)
            pipeline: Build pipeline (defaults to the configured compiler)
            supervisor: Worker supervisor (defaults to the configured runtime)
            watcher: Source watch subscription
            config_loader: Called at the start of every cycle to re-read the
                descriptor; only the port is taken from the result
            port_release_delay: Pause before relaunching a stopped worker
            install_signal_handlers: Whether run() installs SIGINT/SIGTERM handlers
        """
        self.config = config
        self.port_override = port_override
        self.state = OrchestratorState()

        self.resolver = resolver or DependencyResolver(config.dependency_cache_dir)
        self.pipeline = pipeline or BuildPipeline(compiler=config.runtime.compiler)
        self.supervisor = supervisor or ProcessSupervisor(config.runtime)
        if self.supervisor.on_unexpected_exit is None:
            self.supervisor.on_unexpected_exit = self._on_unexpected_exit
        self.watcher = watcher or SourceWatcher(config.source_root, suffix=self.pipeline.source_suffix)
        self.signal_handler = SignalHandler(self.state)

        self._config_loader = config_loader
        self.port_release_delay = port_release_delay
        self.install_signal_handlers = install_signal_handlers

        self.events: "asyncio.Queue[WatchEvent]" = asyncio.Queue()
        self.artifact_path: Optional[Path] = None
        self.dependency_classpath: List[Path] = []
        self._watch_task: Optional[asyncio.Task] = None
        self._consumer_task: Optional[asyncio.Task] = None

    @property
    def port(self) -> int:
        return self.port_override if self.port_override is not None else self.config.port

    def build_request(self) -> BuildRequest:
        entries = ([self.artifact_path] if self.artifact_path else []) + self.dependency_classpath
        return BuildRequest(
            source_root=self.config.source_root,
            output_dir=self.config.output_root,
            classpath_entries=tuple(entries),
        )

    # --- Startup ---

    async def prepare_inputs(self) -> None:
        """
        Resolve dependencies and locate the runtime artifact.

        Raises:
            ArtifactNotFoundError: If the runtime artifact cannot be found
        """
        report = await self.resolver.resolve(self.config.dependencies)
        self.dependency_classpath = report.classpath
        self.state.unresolved_dependencies = report.failures
        for failure in report.failures:
            logger.warning(f"Dependency {failure.spec} unavailable: {failure.error}")

        candidates = default_search_paths(self.config.project_dir, self.config.runtime.search_paths)
        self.artifact_path = require_artifact(candidates, self.config.runtime.artifact_prefix)

    async def prepare(self) -> None:
        """Prepare inputs, then run the initial build-and-start cycle."""
        await self.prepare_inputs()
        self.state.restarting = True
        await self._run_cycle(None)

    async def build_once(self) -> BuildResult:
        """Resolve, locate and compile once, without starting a worker."""
        await self.prepare_inputs()
        result = await self.pipeline.build(self.build_request())
        if isinstance(result, BuildFailure):
            self._report_build_failure(result)
        return result

    # --- Change handling ---

    def handle_change(self, event: WatchEvent) -> Optional[asyncio.Task]:
        """
        Start a rebuild cycle for a change, unless one is already in flight.

        Returns:
            The cycle task, or None if the event was dropped
        """
        if self.state.restarting:
            self.state.events_dropped += 1
            logger.info(f"Already restarting, ignoring change to {event.path}")
            return None

        self.state.restarting = True
        logger.info(f"File changed: {event.path}")
        task = asyncio.create_task(self._run_cycle(event), name="rebuild-cycle")
        self.state.current_cycle = task
        return task

    async def _run_cycle(self, event: Optional[WatchEvent]) -> None:
        """Stop, rebuild, restart. The guard is released however this ends."""
        try:
            self._refresh_config()

            stopped_worker = self.supervisor.is_running
            await self.supervisor.stop()
            self.state.worker = None

            result = await self.pipeline.build(self.build_request())
            if isinstance(result, BuildFailure):
                self._report_build_failure(result)
                return

            if stopped_worker and self.port_release_delay > 0:
                await asyncio.sleep(self.port_release_delay)

            try:
                self.state.worker = await self.supervisor.start(
                    self.artifact_path,
                    self.config.output_root,
                    self.port,
                    self.dependency_classpath,
                )
            except ProcessSpawnError as e:
                handle_error(
                    error=e,
                    context="starting worker",
                    severity=ErrorSeverity.ERROR,
                    reraise=False,
                    logger=logger
                )
        except Exception as e:
            logger.error(f"Rebuild cycle failed: {type(e).__name__}: {e}", exc_info=True)
        finally:
            self.state.restarting = False
            self.state.cycles_completed += 1
            if self.state.current_cycle is asyncio.current_task():
                self.state.current_cycle = None

    def _refresh_config(self) -> None:
        if self._config_loader is None:
            return
        try:
            fresh = self._config_loader()
        except ConfigurationError as e:
            logger.warning(f"Keeping previous configuration, descriptor reload failed: {e}")
            return
        if fresh.port != self.config.port:
            logger.info(f"Descriptor port changed from {self.config.port} to {fresh.port}")
            self.config = dataclasses.replace(self.config, port=fresh.port)

    def _report_build_failure(self, result: BuildFailure) -> None:
        if result.reason is FailureReason.NO_SOURCES:
            logger.error(result.diagnostics)
            return
        logger.error(f"Compilation failed:\n{result.diagnostics}")
        if result.reason is FailureReason.COMPILE_ERROR and self.state.unresolved_dependencies:
            names = ", ".join(str(r.spec) for r in self.state.unresolved_dependencies)
            logger.warning(f"These dependencies failed to resolve at startup and may be missing: {names}")

    def _on_unexpected_exit(self, handle: WorkerHandle, returncode: Optional[int]) -> None:
        if self.state.worker is handle:
            self.state.worker = None
        if self.state.restarting:
            logger.info(f"Worker PID {handle.pid} exited with code {returncode} during restart")
            return
        logger.error(
            f"Worker stopped unexpectedly with code {returncode} (PID {handle.pid}). "
            f"Save a source file to rebuild and restart it."
        )

    async def _consume_events(self) -> None:
        while True:
            event = await self.events.get()
            try:
                self.handle_change(event)
            finally:
                self.events.task_done()

    # --- Lifecycle ---

    async def run(self) -> None:
        """
        Run until a shutdown is requested.

        Raises:
            ArtifactNotFoundError: If the runtime artifact cannot be found
            WatchError: If the source watch subscription fails or ends on its own
        """
        if self.install_signal_handlers:
            self.signal_handler.setup_signal_handlers()
        try:
            await self.prepare()

            self._watch_task = asyncio.create_task(self.watcher.run(self.events), name="source-watcher")
            self._consumer_task = asyncio.create_task(self._consume_events(), name="change-consumer")
            logger.info("Watching for changes... (Press Ctrl+C to stop)")

            shutdown_wait = asyncio.create_task(self.state.shutdown_requested.wait())
            done, _ = await asyncio.wait(
                {shutdown_wait, self._watch_task}, return_when=asyncio.FIRST_COMPLETED
            )
            if self._watch_task in done:
                shutdown_wait.cancel()
                error = None if self._watch_task.cancelled() else self._watch_task.exception()
                if error is not None:
                    raise WatchError(
                        f"Watch subscription on {self.config.source_root} failed: {type(error).__name__}: {error}"
                    ) from error
                raise WatchError(f"Watch subscription on {self.config.source_root} ended unexpectedly")
        finally:
            await self.shutdown()
            if self.install_signal_handlers:
                self.signal_handler.cleanup_signal_handlers()

    async def shutdown(self) -> None:
        """
        Stop accepting changes, let an in-flight cycle finish, stop the
        worker, then release the watch subscription.
        """
        logger.info("Shutting down development loop...")

        if self._consumer_task is not None:
            self._consumer_task.cancel()
            await asyncio.gather(self._consumer_task, return_exceptions=True)
            self._consumer_task = None

        cycle = self.state.current_cycle
        if cycle is not None and not cycle.done():
            logger.info("Waiting for the in-flight rebuild to finish...")
            await asyncio.gather(cycle, return_exceptions=True)

        await self.supervisor.aclose()
        self.state.worker = None

        self.watcher.stop()
        if self._watch_task is not None:
            await asyncio.gather(self._watch_task, return_exceptions=True)
            self._watch_task = None

        logger.info(
            f"Development loop stopped after {self.state.cycles_completed} cycles "
            f"({self.state.events_dropped} changes ignored during restarts)"
        )
