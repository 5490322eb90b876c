"""
Pytest configuration and shared fixtures for the devloop test suite.

This module provides common fixtures, test utilities, and configuration
for all test modules in the devloop project.
"""

import asyncio
import shutil
import sys
import tempfile
from pathlib import Path
from typing import Optional
from unittest.mock import Mock

import pytest

# Add src to Python path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


# ============================================================================
# Test Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# ============================================================================
# Core Fixtures
# ============================================================================


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def sample_descriptor_data():
    """Sample project descriptor for testing."""
    return {
        "name": "test_project",
        "port": 9090,
        "source_dir": "src",
        "output_dir": "build",
        "dependencies": {
            "postgresql": "42.7.1",
            "jackson": "2.15.2",
        },
        "runtime": {
            "grace_period": 2.0,
        },
    }


@pytest.fixture
def project_dir(temp_dir, sample_descriptor_data):
    """Create a project directory with a descriptor and an empty source tree."""
    import toml

    with open(temp_dir / "devloop.toml", "w") as f:
        toml.dump(sample_descriptor_data, f)
    (temp_dir / "src").mkdir()
    return temp_dir


@pytest.fixture
def runtime_jar(temp_dir):
    """Create a runtime artifact in a search directory."""
    runtime_dir = temp_dir / "runtime" / "target"
    runtime_dir.mkdir(parents=True)
    jar = runtime_dir / "artha-runtime-1.0.0.jar"
    jar.write_bytes(b"PK\x03\x04")
    return jar


# ============================================================================
# Test Utilities
# ============================================================================


class FakeWorkerProcess:
    """
    Stand-in for an asyncio subprocess.

    `terminate()` makes the process exit after `exit_delay` seconds, or never
    when `exit_delay` is None. `kill()` always makes it exit promptly.
    """

    def __init__(self, pid: int = 4242, exit_delay: Optional[float] = 0.0):
        self.pid = pid
        self.exit_delay = exit_delay
        self.returncode: Optional[int] = None
        self.terminate_calls = 0
        self.kill_calls = 0
        self._exited = asyncio.Event()

    def _exit_later(self, delay: float, code: int) -> None:
        loop = asyncio.get_running_loop()
        loop.call_later(delay, self.exit, code)

    def exit(self, code: int = 0) -> None:
        if self.returncode is None:
            self.returncode = code
            self._exited.set()

    def terminate(self) -> None:
        self.terminate_calls += 1
        if self.exit_delay is not None:
            self._exit_later(self.exit_delay, -15)

    def kill(self) -> None:
        self.kill_calls += 1
        self._exit_later(0.0, -9)

    async def wait(self) -> int:
        await self._exited.wait()
        return self.returncode


class DirectTermination:
    """Termination strategy that forwards to the fake process and records calls."""

    def __init__(self):
        self.graceful = Mock()
        self.forceful = Mock()

    def terminate_gracefully(self, process) -> None:
        self.graceful(process)
        process.terminate()

    def terminate_forcefully(self, process) -> None:
        self.forceful(process)
        process.kill()


@pytest.fixture
def fake_process_factory():
    """Provide the fake worker process class."""
    return FakeWorkerProcess


@pytest.fixture
def direct_termination():
    return DirectTermination()


@pytest.fixture(autouse=True)
def clear_config_after_test(monkeypatch):
    """Automatically reset the configuration singleton around each test."""
    from devloop.config import manager

    monkeypatch.setattr(manager, "_PROJECT_DIR", None)
    manager.clear_config_cache()

    yield  # Run the test

    manager.clear_config_cache()
