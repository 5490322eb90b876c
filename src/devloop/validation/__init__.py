"""
Validation and error handling for the devloop package.

This module provides input validation, the error taxonomy of the
development loop, and helpers for consistent error reporting.
"""

from .exceptions import (
    ArtifactNotFoundError,
    ConfigurationError,
    DependencyError,
    ErrorSeverity,
    NetworkFailureError,
    ProcessSpawnError,
    UnknownDependencyError,
    ValidationError,
    WatchError,
    WriteFailureError,
    handle_cli_error,
    handle_config_error,
    handle_error,
    handle_subprocess_error,
)

from .validators import (
    validate_dependency_map,
    validate_non_empty_string,
    validate_port,
    validate_positive_float,
    validate_positive_integer,
    validate_project_name,
)

__all__ = [
    # Errors
    "ArtifactNotFoundError",
    "ConfigurationError",
    "DependencyError",
    "ErrorSeverity",
    "NetworkFailureError",
    "ProcessSpawnError",
    "UnknownDependencyError",
    "ValidationError",
    "WatchError",
    "WriteFailureError",
    # Handlers
    "handle_cli_error",
    "handle_config_error",
    "handle_error",
    "handle_subprocess_error",
    # Validators
    "validate_dependency_map",
    "validate_non_empty_string",
    "validate_port",
    "validate_positive_float",
    "validate_positive_integer",
    "validate_project_name",
]
