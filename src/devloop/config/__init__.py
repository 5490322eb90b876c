"""
Configuration management for the devloop package.

This module provides a clean interface for loading, validating, and
accessing the project descriptor (`devloop.toml`).
"""

from .manager import (
    clear_config_cache,
    get_config,
    get_project_dir,
    is_config_loaded,
    reload_config,
    set_project_dir,
)

from .loader import descriptor_path, load_project_descriptor, load_toml_file
from .validators import validate_project_config, validate_runtime_config

__all__ = [
    # Main interface
    "get_config",
    "reload_config",
    "set_project_dir",
    "get_project_dir",
    "clear_config_cache",
    "is_config_loaded",
    # Advanced interface
    "descriptor_path",
    "load_project_descriptor",
    "load_toml_file",
    "validate_project_config",
    "validate_runtime_config",
]
