"""
Configuration management and singleton pattern.

This module provides the main configuration loading interface, caching the
validated project configuration so it is parsed once per load request.
"""

import logging
from pathlib import Path
from typing import Optional

from ..models.config import ProjectConfig
from ..validation import ConfigurationError, ErrorSeverity, ValidationError, handle_config_error
from .loader import descriptor_path, load_project_descriptor
from .validators import validate_project_config

logger = logging.getLogger(__name__)

# --- Global Singleton for Configuration ---

# The cached, validated configuration of the current project.
_CONFIG: Optional[ProjectConfig] = None

# Project directory whose descriptor is loaded. None means the working
# directory at load time; the CLI sets it from --project-dir.
_PROJECT_DIR: Optional[Path] = None


def set_project_dir(project_dir: Path) -> None:
    """
    Set the project directory whose descriptor will be loaded.

    Clears any cached configuration.
    """
    global _PROJECT_DIR, _CONFIG
    _PROJECT_DIR = Path(project_dir).resolve()
    _CONFIG = None
    logger.info(f"Project directory set to: {_PROJECT_DIR}")


def get_project_dir() -> Path:
    return _PROJECT_DIR if _PROJECT_DIR is not None else Path.cwd()


def clear_config_cache() -> None:
    """Clear the cached configuration, forcing a reload on next access."""
    global _CONFIG
    _CONFIG = None
    logger.debug("Configuration cache cleared")


def _load_config(project_dir: Path) -> ProjectConfig:
    """
    Load and validate the descriptor of a project.

    Raises:
        ConfigurationError: If the descriptor is missing or invalid
    """
    data = load_project_descriptor(descriptor_path(project_dir))
    try:
        config = validate_project_config(data, project_dir)
    except ValidationError as e:
        handle_config_error(
            error=e,
            context="validating project descriptor",
            severity=ErrorSeverity.ERROR,
            reraise=False,
            logger=logger
        )
        raise ConfigurationError(f"Invalid project descriptor: {e}") from e

    logger.info(
        f"Loaded project configuration: port={config.port}, source_dir={config.source_dir}, "
        f"{len(config.dependencies)} dependencies"
    )
    return config


def get_config() -> ProjectConfig:
    """
    Get the project configuration, loading it if necessary.

    Raises:
        ConfigurationError: If the descriptor is missing or invalid
    """
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = _load_config(get_project_dir())
    return _CONFIG


def reload_config() -> ProjectConfig:
    """
    Re-read the descriptor from disk, replacing the cached configuration.

    The cached configuration is left untouched if the reload fails.

    Raises:
        ConfigurationError: If the descriptor is missing or invalid
    """
    global _CONFIG
    _CONFIG = _load_config(get_project_dir())
    return _CONFIG


def is_config_loaded() -> bool:
    return _CONFIG is not None
