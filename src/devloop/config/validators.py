"""
Configuration validation utilities.

Turns raw descriptor data into validated configuration objects.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List

from ..models.config import DEFAULT_PORT, ProjectConfig, RuntimeConfig
from ..validation import (
    ValidationError,
    validate_dependency_map,
    validate_non_empty_string,
    validate_port,
    validate_positive_float,
)

logger = logging.getLogger(__name__)

_KNOWN_TOP_LEVEL_KEYS = {"port", "source_dir", "output_dir", "dependencies", "runtime", "name"}


def validate_project_config(data: Dict[str, Any], project_dir: Path) -> ProjectConfig:
    """
    Validate and create a ProjectConfig from raw descriptor data.

    Args:
        data: Raw descriptor data from TOML
        project_dir: Directory the descriptor was loaded from

    Returns:
        Validated ProjectConfig instance

    Raises:
        ValidationError: If validation fails
    """
    unknown = set(data) - _KNOWN_TOP_LEVEL_KEYS
    if unknown:
        logger.warning(f"Ignoring unknown descriptor keys: {', '.join(sorted(unknown))}")

    port = validate_port(data.get("port", DEFAULT_PORT), field_name="port")
    source_dir = _validate_relative_dir(data.get("source_dir", "src"), "source_dir")
    output_dir = _validate_relative_dir(data.get("output_dir", "build"), "output_dir")
    dependencies = validate_dependency_map(data.get("dependencies", {}), field_name="dependencies")
    runtime = validate_runtime_config(data.get("runtime", {}), project_dir)

    if source_dir == output_dir:
        raise ValidationError(
            "source_dir and output_dir must differ",
            field_name="output_dir",
            value=str(output_dir)
        )

    return ProjectConfig(
        project_dir=Path(project_dir),
        port=port,
        source_dir=source_dir,
        output_dir=output_dir,
        dependencies=dependencies,
        runtime=runtime,
    )


def validate_runtime_config(data: Any, project_dir: Path) -> RuntimeConfig:
    """
    Validate the optional `[runtime]` table.

    Raises:
        ValidationError: If validation fails
    """
    if not isinstance(data, dict):
        raise ValidationError("runtime must be a table", field_name="runtime", value=data)

    defaults = RuntimeConfig()

    kill_process_tree = data.get("kill_process_tree", defaults.kill_process_tree)
    if not isinstance(kill_process_tree, bool):
        raise ValidationError(
            "runtime.kill_process_tree must be a boolean",
            field_name="runtime.kill_process_tree",
            value=kill_process_tree
        )

    return RuntimeConfig(
        artifact_prefix=validate_non_empty_string(
            data.get("artifact_prefix", defaults.artifact_prefix), "runtime.artifact_prefix"
        ),
        main_class=validate_non_empty_string(
            data.get("main_class", defaults.main_class), "runtime.main_class"
        ),
        port_property=validate_non_empty_string(
            data.get("port_property", defaults.port_property), "runtime.port_property"
        ),
        java=validate_non_empty_string(data.get("java", defaults.java), "runtime.java"),
        compiler=validate_non_empty_string(
            data.get("compiler", defaults.compiler), "runtime.compiler"
        ),
        search_paths=_validate_search_paths(data.get("search_paths", []), project_dir),
        grace_period=validate_positive_float(
            data.get("grace_period", defaults.grace_period),
            min_value=0.1,
            max_value=60.0,
            field_name="runtime.grace_period",
        ),
        kill_process_tree=kill_process_tree,
    )


def _validate_relative_dir(value: Any, field_name: str) -> Path:
    """Directories inside the project; absolute paths are accepted as-is."""
    value = validate_non_empty_string(value, field_name=field_name)
    return Path(value)


def _validate_search_paths(value: Any, project_dir: Path) -> List[Path]:
    if not isinstance(value, list):
        raise ValidationError(
            "runtime.search_paths must be a list of directories",
            field_name="runtime.search_paths",
            value=value
        )
    paths = []
    for i, entry in enumerate(value):
        entry = validate_non_empty_string(entry, field_name=f"runtime.search_paths[{i}]")
        path = Path(entry).expanduser()
        if not path.is_absolute():
            path = Path(project_dir) / path
        paths.append(path)
    return paths
