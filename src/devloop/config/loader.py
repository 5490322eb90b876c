"""
Configuration file loading utilities.

This module handles the low-level loading and parsing of the project's
`devloop.toml` descriptor.
"""

import logging
import tomllib
from pathlib import Path
from typing import Any, Dict

from ..models.config import DESCRIPTOR_FILE_NAME
from ..validation import ConfigurationError, ErrorSeverity, handle_config_error

logger = logging.getLogger(__name__)


def load_toml_file(file_path: Path, description: str = "configuration file") -> Dict[str, Any]:
    """
    Load and parse a TOML file with error handling.

    Args:
        file_path: Path to the TOML file to load
        description: Human-readable description for error messages

    Returns:
        Parsed TOML data as a dictionary

    Raises:
        ConfigurationError: If the file is missing, unreadable or malformed
    """
    logger.info(f"Loading {description} from: {file_path}")

    if not file_path.is_file():
        logger.error(f"{description} not found: {file_path}")
        raise ConfigurationError(f"{description} not found: {file_path}")

    try:
        with open(file_path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as e:
        handle_config_error(
            error=e,
            context=f"parsing {description}",
            severity=ErrorSeverity.CRITICAL,
            reraise=False,
            logger=logger
        )
        raise ConfigurationError(f"Cannot read {description} {file_path}: {e}") from e


def descriptor_path(project_dir: Path) -> Path:
    """Return the descriptor location for a project directory."""
    return Path(project_dir) / DESCRIPTOR_FILE_NAME


def load_project_descriptor(path: Path) -> Dict[str, Any]:
    """
    Load a project descriptor.

    Args:
        path: Path to `devloop.toml`, or to the directory that contains it

    Returns:
        Parsed descriptor data
    """
    path = Path(path)
    if path.is_dir():
        path = descriptor_path(path)
    return load_toml_file(path, "project descriptor")
