"""
Unit tests for DevLoop, the watch -> build -> restart orchestrator.

The compiler, worker and watch subscription are replaced by in-memory fakes
so the cycle logic can be driven event by event.
"""

import asyncio
import logging
import signal
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest

from devloop.models import (
    BuildFailure,
    BuildSuccess,
    DependencyResolution,
    DependencySpec,
    FailureReason,
    ProjectConfig,
    RuntimeConfig,
    WatchEvent,
)
from devloop.models.results import ResolutionReport
from devloop.orchestration import DevLoop, SourceWatcher
from devloop.validation import (
    ArtifactNotFoundError,
    ConfigurationError,
    ProcessSpawnError,
    UnknownDependencyError,
    WatchError,
)


class RecordingSupervisor:
    """Worker supervisor fake that records starts and stops."""

    def __init__(self):
        self.on_unexpected_exit = None
        self.running = False
        self.starts = []
        self.stops = 0
        self.closed = False
        self.start_error = None

    @property
    def is_running(self):
        return self.running

    async def start(self, artifact_path, output_dir, port, extra_classpath=()):
        if self.start_error is not None:
            raise self.start_error
        self.starts.append((artifact_path, output_dir, port, list(extra_classpath)))
        self.running = True
        return Mock(pid=1000 + len(self.starts))

    async def stop(self):
        if self.running:
            self.stops += 1
        self.running = False

    async def aclose(self):
        await self.stop()
        self.closed = True


class IdleWatcher:
    """Watch subscription fake that only waits to be stopped."""

    def __init__(self):
        self.stopped = asyncio.Event()

    async def run(self, queue):
        await self.stopped.wait()

    def stop(self):
        self.stopped.set()


async def _until(predicate, timeout=1.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


def _event(name="Main.java"):
    return WatchEvent(Path("/work/app/src") / name)


@pytest.fixture
def project_config(temp_dir, runtime_jar):
    return ProjectConfig(
        project_dir=temp_dir,
        port=8080,
        dependencies={"gson": "2.10.1"},
        runtime=RuntimeConfig(search_paths=[runtime_jar.parent]),
    )


@pytest.fixture
def make_loop(project_config):
    """Build a DevLoop wired to fakes. Returns (loop, pipeline, supervisor)."""

    def _make(build_result=None, report=None, **kwargs):
        pipeline = Mock()
        pipeline.source_suffix = ".java"
        pipeline.build = AsyncMock(return_value=build_result or BuildSuccess(source_count=1))
        resolver = Mock()
        resolver.resolve = AsyncMock(return_value=report or ResolutionReport())
        supervisor = RecordingSupervisor()
        loop = DevLoop(
            kwargs.pop("config", project_config),
            resolver=resolver,
            pipeline=pipeline,
            supervisor=supervisor,
            watcher=kwargs.pop("watcher", IdleWatcher()),
            port_release_delay=0,
            install_signal_handlers=False,
            **kwargs,
        )
        return loop, pipeline, supervisor

    return _make


@pytest.mark.unit
class TestPrepare:
    """Test cases for startup."""

    @pytest.mark.asyncio
    async def test_initial_cycle_builds_and_starts(self, make_loop, runtime_jar, temp_dir):
        gson = temp_dir / ".devloop" / "lib" / "gson-2.10.1.jar"
        report = ResolutionReport([DependencyResolution(DependencySpec("gson", "2.10.1"), path=gson)])
        loop, pipeline, supervisor = make_loop(report=report)

        await loop.prepare()

        assert loop.artifact_path == runtime_jar
        request = pipeline.build.await_args.args[0]
        assert request.source_root == temp_dir / "src"
        assert request.output_dir == temp_dir / "build"
        assert request.classpath_entries == (runtime_jar, gson)
        assert supervisor.starts == [(runtime_jar, temp_dir / "build", 8080, [gson])]
        assert loop.state.worker.pid == 1001
        assert loop.state.restarting is False
        assert loop.state.cycles_completed == 1

    @pytest.mark.asyncio
    async def test_missing_artifact_is_fatal(self, make_loop, temp_dir, monkeypatch):
        monkeypatch.delenv("DEVLOOP_RUNTIME_PATH", raising=False)
        config = ProjectConfig(
            project_dir=temp_dir / "a" / "b" / "app",
            runtime=RuntimeConfig(search_paths=[temp_dir / "empty"]),
        )
        loop, pipeline, supervisor = make_loop(config=config)

        with pytest.raises(ArtifactNotFoundError):
            await loop.prepare()

        pipeline.build.assert_not_awaited()
        assert supervisor.starts == []

    @pytest.mark.asyncio
    async def test_resolution_failures_are_not_fatal(self, make_loop):
        failure = DependencyResolution(DependencySpec("left-pad", "1.0"), error=UnknownDependencyError("left-pad"))
        loop, pipeline, supervisor = make_loop(report=ResolutionReport([failure]))

        await loop.prepare()

        assert loop.state.unresolved_dependencies == [failure]
        assert len(supervisor.starts) == 1

    @pytest.mark.asyncio
    async def test_port_override_wins(self, make_loop):
        loop, _, supervisor = make_loop(port_override=9999)

        await loop.prepare()

        assert supervisor.starts[0][2] == 9999


@pytest.mark.unit
class TestChangeHandling:
    """Test cases for handle_change and the rebuild cycle."""

    @pytest.mark.asyncio
    async def test_single_flight(self, make_loop):
        loop, pipeline, supervisor = make_loop()
        await loop.prepare_inputs()
        gate = asyncio.Event()

        async def slow_build(request):
            await gate.wait()
            return BuildSuccess(source_count=1)

        pipeline.build.side_effect = slow_build

        first = loop.handle_change(_event("A.java"))
        dropped = [loop.handle_change(_event(f"B{i}.java")) for i in range(5)]
        await asyncio.sleep(0)
        assert loop.handle_change(_event("C.java")) is None

        gate.set()
        await first

        assert first is not None
        assert dropped == [None] * 5
        assert pipeline.build.await_count == 1
        assert len(supervisor.starts) == 1
        assert loop.state.events_dropped == 6
        assert loop.state.restarting is False
        assert loop.state.current_cycle is None

    @pytest.mark.asyncio
    async def test_next_change_after_cycle_restarts_worker(self, make_loop):
        loop, pipeline, supervisor = make_loop()
        await loop.prepare()

        await loop.handle_change(_event())

        assert supervisor.stops == 1
        assert len(supervisor.starts) == 2
        assert pipeline.build.await_count == 2
        assert loop.state.cycles_completed == 2

    @pytest.mark.asyncio
    async def test_worker_stopped_before_build(self, make_loop):
        loop, pipeline, supervisor = make_loop()
        await loop.prepare()
        running_during_build = []

        async def observing_build(request):
            running_during_build.append(supervisor.is_running)
            return BuildSuccess(source_count=1)

        pipeline.build.side_effect = observing_build

        await loop.handle_change(_event())

        assert running_during_build == [False]

    @pytest.mark.asyncio
    async def test_compile_failure_leaves_slot_empty(self, make_loop, caplog):
        loop, pipeline, supervisor = make_loop()
        await loop.prepare()
        pipeline.build.return_value = BuildFailure("Main.java:3: error: cannot find symbol")

        await loop.handle_change(_event())

        assert supervisor.running is False
        assert len(supervisor.starts) == 1
        assert loop.state.worker is None
        assert "Main.java:3: error: cannot find symbol" in caplog.text
        assert loop.state.restarting is False

    @pytest.mark.asyncio
    async def test_compile_failure_mentions_unresolved_dependencies(self, make_loop, caplog):
        failure = DependencyResolution(DependencySpec("gson", "2.10.1"), error=UnknownDependencyError("gson"))
        loop, _, _ = make_loop(
            build_result=BuildFailure("error: package com.google.gson does not exist"),
            report=ResolutionReport([failure]),
        )

        await loop.prepare()

        assert "failed to resolve at startup" in caplog.text
        assert "gson@2.10.1" in caplog.text

    @pytest.mark.asyncio
    async def test_no_sources_reported(self, make_loop, caplog):
        loop, _, supervisor = make_loop(
            build_result=BuildFailure("No source files found in /x/src", FailureReason.NO_SOURCES)
        )

        await loop.prepare()

        assert supervisor.starts == []
        assert "No source files found in /x/src" in caplog.text

    @pytest.mark.asyncio
    async def test_spawn_failure_releases_guard(self, make_loop, caplog):
        loop, _, supervisor = make_loop()
        supervisor.start_error = ProcessSpawnError("Failed to start worker 'java': not found")

        await loop.prepare()

        assert loop.state.restarting is False
        assert "Failed to start worker" in caplog.text

    @pytest.mark.asyncio
    async def test_unexpected_error_releases_guard(self, make_loop, caplog):
        loop, pipeline, _ = make_loop()
        await loop.prepare()
        pipeline.build.side_effect = RuntimeError("compiler exploded")

        await loop.handle_change(_event())

        assert loop.state.restarting is False
        assert "Rebuild cycle failed: RuntimeError: compiler exploded" in caplog.text
        next_cycle = loop.handle_change(_event())
        assert next_cycle is not None
        await next_cycle


@pytest.mark.unit
class TestConfigRefresh:
    """Test cases for re-reading the descriptor at each cycle."""

    @pytest.mark.asyncio
    async def test_port_change_is_picked_up(self, make_loop, project_config):
        fresh = ProjectConfig(project_dir=project_config.project_dir, port=9100)
        loop, _, supervisor = make_loop(config_loader=Mock(return_value=fresh))
        await loop.prepare()

        assert supervisor.starts[-1][2] == 9100
        assert loop.config.runtime is project_config.runtime

    @pytest.mark.asyncio
    async def test_failed_reload_keeps_previous_config(self, make_loop, caplog):
        loader = Mock(side_effect=ConfigurationError("project descriptor not found"))
        loop, _, supervisor = make_loop(config_loader=loader)

        await loop.prepare()

        assert supervisor.starts[-1][2] == 8080
        assert "Keeping previous configuration" in caplog.text


@pytest.mark.unit
class TestUnexpectedExit:

    def test_callback_installed_on_supervisor(self, make_loop):
        loop, _, supervisor = make_loop()

        assert supervisor.on_unexpected_exit == loop._on_unexpected_exit

    def test_crash_reported_as_error(self, make_loop, caplog):
        loop, _, supervisor = make_loop()

        supervisor.on_unexpected_exit(Mock(pid=77), 0)

        assert "Worker stopped unexpectedly with code 0 (PID 77)" in caplog.text

    @pytest.mark.asyncio
    async def test_crash_clears_current_worker(self, make_loop):
        loop, _, supervisor = make_loop()
        await loop.prepare()
        handle = loop.state.worker

        supervisor.on_unexpected_exit(handle, 1)

        assert loop.state.worker is None

    @pytest.mark.asyncio
    async def test_stale_exit_keeps_current_worker(self, make_loop):
        loop, _, supervisor = make_loop()
        await loop.prepare()
        handle = loop.state.worker

        supervisor.on_unexpected_exit(Mock(pid=1), 1)

        assert loop.state.worker is handle

    def test_exit_during_restart_is_informational(self, make_loop, caplog):
        caplog.set_level(logging.INFO)
        loop, _, supervisor = make_loop()
        loop.state.restarting = True

        supervisor.on_unexpected_exit(Mock(pid=77), 1)

        assert "during restart" in caplog.text
        assert not any(r.levelno >= logging.ERROR for r in caplog.records)


@pytest.mark.unit
class TestRunLoop:
    """Test cases for the full run/shutdown lifecycle."""

    @pytest.mark.asyncio
    async def test_events_trigger_rebuild_and_shutdown_stops_everything(self, make_loop):
        watcher = IdleWatcher()
        loop, pipeline, supervisor = make_loop(watcher=watcher)

        task = asyncio.create_task(loop.run())
        await _until(lambda: len(supervisor.starts) == 1)

        await loop.events.put(_event())
        await _until(lambda: len(supervisor.starts) == 2 and not loop.state.restarting)

        loop.state.shutdown_requested.set()
        await asyncio.wait_for(task, timeout=1.0)

        assert supervisor.closed
        assert watcher.stopped.is_set()
        assert pipeline.build.await_count == 2

    @pytest.mark.asyncio
    async def test_shutdown_waits_for_in_flight_cycle(self, make_loop):
        loop, pipeline, supervisor = make_loop()
        task = asyncio.create_task(loop.run())
        await _until(lambda: len(supervisor.starts) == 1)

        gate = asyncio.Event()

        async def slow_build(request):
            await gate.wait()
            return BuildSuccess(source_count=1)

        pipeline.build.side_effect = slow_build
        await loop.events.put(_event())
        await _until(lambda: loop.state.restarting)

        loop.state.shutdown_requested.set()
        await asyncio.sleep(0.01)
        assert not task.done()

        gate.set()
        await asyncio.wait_for(task, timeout=1.0)

        assert loop.state.cycles_completed == 2
        assert supervisor.closed
        assert supervisor.running is False

    @pytest.mark.asyncio
    async def test_missing_artifact_still_tears_down(self, make_loop, temp_dir, monkeypatch):
        monkeypatch.delenv("DEVLOOP_RUNTIME_PATH", raising=False)
        config = ProjectConfig(
            project_dir=temp_dir / "a" / "b" / "app",
            runtime=RuntimeConfig(search_paths=[temp_dir / "empty"]),
        )
        loop, _, supervisor = make_loop(config=config)

        with pytest.raises(ArtifactNotFoundError):
            await loop.run()

        assert supervisor.closed

    @pytest.mark.asyncio
    async def test_failed_watch_subscription_is_fatal(self, make_loop):
        class BrokenWatcher(IdleWatcher):
            async def run(self, queue):
                raise FileNotFoundError("No path was found.")

        loop, _, supervisor = make_loop(watcher=BrokenWatcher())

        with pytest.raises(WatchError, match="No path was found"):
            await asyncio.wait_for(loop.run(), timeout=1.0)

        assert supervisor.closed

    @pytest.mark.asyncio
    async def test_missing_source_dir_keeps_loop_running(self, make_loop, project_config):
        source_root = project_config.source_root
        assert not source_root.exists()
        loop, pipeline, supervisor = make_loop(
            watcher=SourceWatcher(source_root, debounce_ms=50),
        )
        pipeline.build.return_value = BuildFailure(
            f"No .java files found under {source_root}", FailureReason.NO_SOURCES
        )

        task = asyncio.create_task(loop.run())
        await _until(lambda: source_root.is_dir(), timeout=2.0)
        await asyncio.sleep(0.1)
        assert not task.done()

        loop.state.shutdown_requested.set()
        await asyncio.wait_for(task, timeout=5.0)

        assert supervisor.starts == []
        assert supervisor.closed

    @pytest.mark.asyncio
    async def test_second_signal_abandons_hung_build(self, make_loop):
        loop, pipeline, supervisor = make_loop()
        task = asyncio.create_task(loop.run())
        await _until(lambda: len(supervisor.starts) == 1)

        async def hung_build(request):
            await asyncio.Event().wait()

        pipeline.build.side_effect = hung_build
        await loop.events.put(_event())
        await _until(lambda: loop.state.restarting)

        loop.signal_handler._handle_signal(signal.SIGINT)
        await asyncio.sleep(0.01)
        assert not task.done()

        loop.signal_handler._handle_signal(signal.SIGINT)
        await asyncio.wait_for(task, timeout=1.0)

        assert loop.state.restarting is False
        assert len(supervisor.starts) == 1
        assert supervisor.closed
