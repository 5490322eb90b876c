"""
Configuration data models.

This module contains the data structures loaded from a project's
`devloop.toml` descriptor.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

DESCRIPTOR_FILE_NAME = "devloop.toml"
DEFAULT_PORT = 8080


@dataclass
class RuntimeConfig:
    """
    How to find and launch the worker runtime, loaded from `[runtime]`.
    """

    # Filename prefix of the runtime artifact (e.g. "artha-runtime-1.0.jar").
    artifact_prefix: str = "artha-runtime"
    # Entry point class passed to the worker JVM.
    main_class: str = "dev.artha.core.Runtime"
    # System property that carries the port into the worker.
    port_property: str = "artha.port"
    # Executables for the worker and the compiler.
    java: str = "java"
    compiler: str = "javac"
    # Extra artifact search directories, highest priority first.
    search_paths: List[Path] = field(default_factory=list)
    # Seconds the worker is given to exit after a graceful termination request.
    grace_period: float = 3.0
    # Terminate the whole process tree instead of signalling the worker only.
    kill_process_tree: bool = False


@dataclass
class ProjectConfig:
    """
    The root configuration object for one project.
    """

    # Directory containing the descriptor; relative paths resolve against it.
    project_dir: Path
    port: int = DEFAULT_PORT
    source_dir: Path = Path("src")
    output_dir: Path = Path("build")
    # Symbolic dependency name -> version.
    dependencies: Dict[str, str] = field(default_factory=dict)
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)

    @property
    def source_root(self) -> Path:
        return self.project_dir / self.source_dir

    @property
    def output_root(self) -> Path:
        return self.project_dir / self.output_dir

    @property
    def dependency_cache_dir(self) -> Path:
        return self.project_dir / ".devloop" / "lib"
