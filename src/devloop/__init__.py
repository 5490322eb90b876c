"""
devloop: Watch, rebuild and restart loop for JVM server applications.

This package watches a project's source tree, recompiles it on change and
restarts the server process against a prebuilt runtime artifact.

The package is organized into specialized modules:
- config: Project descriptor loading and validation
- models: Data structures and type definitions
- validation: Input validation and error handling
- system: Artifact lookup, command helpers and process termination
- dependencies: Dependency registry and Maven Central resolution
- executor: Compiler invocation
- orchestration: Worker supervision, file watching and the development loop
- cli: Command-line interface

Usage:
    From command line:
        devloop dev --port 8080

    Programmatically:
        from devloop import DevLoop, get_config
        config = get_config()
        asyncio.run(DevLoop(config).run())
"""

__version__ = "0.1.0"

# Main interfaces
from .config import get_config, clear_config_cache, reload_config, set_project_dir
from .orchestration import DevLoop, ProcessSupervisor, SourceWatcher
from .cli import main_cli

# Model classes for external use
from .models import (
    BuildFailure,
    BuildRequest,
    BuildSuccess,
    DependencySpec,
    ProjectConfig,
    RuntimeConfig,
    WatchEvent,
    WorkerState,
)

# Components
from .dependencies import DependencyResolver
from .executor import BuildPipeline
from .system import locate_artifact, require_artifact

# Errors
from .validation import (
    ArtifactNotFoundError,
    ConfigurationError,
    DependencyError,
    ValidationError,
    WatchError,
)

__all__ = [
    "__version__",
    # Main interfaces
    "get_config",
    "clear_config_cache",
    "reload_config",
    "set_project_dir",
    "DevLoop",
    "ProcessSupervisor",
    "SourceWatcher",
    "main_cli",
    # Models
    "BuildFailure",
    "BuildRequest",
    "BuildSuccess",
    "DependencySpec",
    "ProjectConfig",
    "RuntimeConfig",
    "WatchEvent",
    "WorkerState",
    # Components
    "DependencyResolver",
    "BuildPipeline",
    "locate_artifact",
    "require_artifact",
    # Errors
    "ArtifactNotFoundError",
    "ConfigurationError",
    "DependencyError",
    "ValidationError",
    "WatchError",
]
