"""
Exception types and error handling helpers.

This module defines the error taxonomy of the development loop and the
small set of helpers used to log errors consistently across the package.
"""

import logging
import sys
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Sequence, Union

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Severity levels for error handling."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ValidationError(Exception):
    """
    Exception raised when a configuration value fails validation.
    """

    def __init__(self, message: str, field_name: Optional[str] = None,
                 value: Any = None, severity: ErrorSeverity = ErrorSeverity.ERROR):
        super().__init__(message)
        self.field_name = field_name
        self.value = value
        self.severity = severity


class ConfigurationError(Exception):
    """The project descriptor is missing, unreadable or invalid. Fatal."""


class ArtifactNotFoundError(Exception):
    """
    The runtime artifact could not be found in any candidate directory.

    Fatal at startup; the operator has to fix the environment.
    """

    def __init__(self, prefix: str, searched: Sequence[Path]):
        locations = ", ".join(str(p) for p in searched) or "<no candidates>"
        super().__init__(f"No '{prefix}*.jar' artifact found (searched: {locations})")
        self.prefix = prefix
        self.searched = list(searched)


class DependencyError(Exception):
    """Base class for per-dependency resolution failures."""

    def __init__(self, name: str, message: str):
        super().__init__(message)
        self.name = name


class UnknownDependencyError(DependencyError):
    """The symbolic name is not in the dependency registry."""

    def __init__(self, name: str):
        super().__init__(name, f"Unknown dependency: {name}")


class NetworkFailureError(DependencyError):
    """Fetching an artifact from the remote repository failed."""

    def __init__(self, name: str, url: str, reason: str):
        super().__init__(name, f"Failed to download {name} from {url}: {reason}")
        self.url = url
        self.reason = reason


class WriteFailureError(NetworkFailureError):
    """The artifact was fetched but could not be written to the cache."""


class ProcessSpawnError(Exception):
    """The worker process could not be started."""


class WatchError(Exception):
    """The source watch subscription failed. Fatal."""


def handle_error(
    error: Exception,
    context: str,
    severity: Union[ErrorSeverity, str] = ErrorSeverity.ERROR,
    reraise: bool = True,
    logger: Optional[logging.Logger] = None
) -> None:
    """
    Handle errors with consistent logging and optional re-raising.

    Args:
        error: The exception that occurred
        context: Context description of where the error occurred
        severity: Severity level for logging
        reraise: Whether to re-raise the exception after logging
        logger: Logger instance to use (defaults to module logger)
    """
    effective_logger = logger or globals()['logger']

    error_msg = f"Error in {context}: {error}"

    if isinstance(severity, str):
        severity_str = severity.lower()
    else:
        severity_str = severity.value

    if severity_str == "debug":
        effective_logger.debug(error_msg, exc_info=True)
    elif severity_str == "info":
        effective_logger.info(error_msg)
    elif severity_str == "warning":
        effective_logger.warning(error_msg)
    elif severity_str == "error":
        effective_logger.error(error_msg)
    elif severity_str == "critical":
        effective_logger.critical(error_msg, exc_info=True)

    if reraise:
        raise error


def handle_config_error(error: Exception, context: str, **kwargs) -> None:
    """Handle configuration-related errors."""
    handle_error(error, f"config {context}", **kwargs)


def handle_subprocess_error(error: Exception, command: str, **kwargs) -> None:
    """Handle subprocess-related errors."""
    handle_error(error, f"subprocess command '{command}'", **kwargs)


def handle_cli_error(error: Exception, context: str, **kwargs) -> None:
    """Log a CLI-level error and exit the process."""
    exit_code = kwargs.pop('exit_code', 1)
    severity = kwargs.pop('severity', ErrorSeverity.ERROR)

    handle_error(error, f"CLI {context}", severity=severity, reraise=False, **kwargs)

    sys.exit(exit_code)
