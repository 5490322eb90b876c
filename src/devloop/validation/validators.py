"""
Validation functions for descriptor values and CLI arguments.
"""

import re
from typing import Any, Dict, Optional

from .exceptions import ValidationError

# Maven-style version strings: digits, letters, dots, dashes, underscores, plus.
_VERSION_PATTERN = re.compile(r'^[A-Za-z0-9][A-Za-z0-9._+-]*$')
_PROJECT_NAME_PATTERN = re.compile(r'^[a-zA-Z0-9_-]+$')


def validate_positive_integer(
    value: Any,
    min_value: int = 1,
    max_value: Optional[int] = None,
    field_name: str = "value"
) -> int:
    """
    Validate that a value is an integer within bounds.

    Args:
        value: Value to validate
        min_value: Minimum allowed value (inclusive)
        max_value: Maximum allowed value (inclusive), None for no limit
        field_name: Name of the field being validated

    Returns:
        Validated integer value

    Raises:
        ValidationError: If validation fails
    """
    if isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be a valid integer, got {value}",
            field_name=field_name,
            value=value
        )
    try:
        int_value = int(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"{field_name} must be a valid integer, got {value}",
            field_name=field_name,
            value=value
        )
    if int_value < min_value:
        raise ValidationError(
            f"{field_name} must be >= {min_value}, got {int_value}",
            field_name=field_name,
            value=value
        )
    if max_value is not None and int_value > max_value:
        raise ValidationError(
            f"{field_name} must be <= {max_value}, got {int_value}",
            field_name=field_name,
            value=value
        )
    return int_value


def validate_positive_float(
    value: Any,
    min_value: float = 0.0,
    max_value: Optional[float] = None,
    field_name: str = "value"
) -> float:
    """
    Validate that a value is a number within bounds.

    Raises:
        ValidationError: If validation fails
    """
    if isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be a valid number, got {value}",
            field_name=field_name,
            value=value
        )
    try:
        float_value = float(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"{field_name} must be a valid number, got {value}",
            field_name=field_name,
            value=value
        )
    if float_value < min_value:
        raise ValidationError(
            f"{field_name} must be >= {min_value}, got {float_value}",
            field_name=field_name,
            value=value
        )
    if max_value is not None and float_value > max_value:
        raise ValidationError(
            f"{field_name} must be <= {max_value}, got {float_value}",
            field_name=field_name,
            value=value
        )
    return float_value


def validate_port(value: Any, field_name: str = "port") -> int:
    """Validate a TCP port number."""
    return validate_positive_integer(value, min_value=1, max_value=65535, field_name=field_name)


def validate_non_empty_string(value: Any, field_name: str = "value") -> str:
    """Validate that a value is a string with non-whitespace content."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(
            f"{field_name} must be a non-empty string",
            field_name=field_name,
            value=value
        )
    return value.strip()


def validate_project_name(name: Any, field_name: str = "project_name") -> str:
    """
    Validate a project name (alphanumeric, underscore, hyphen).

    Raises:
        ValidationError: If name is invalid
    """
    name = validate_non_empty_string(name, field_name=field_name)
    if not _PROJECT_NAME_PATTERN.match(name):
        raise ValidationError(
            f"{field_name} must contain only alphanumeric characters, underscores, and hyphens: {name}",
            field_name=field_name,
            value=name
        )
    return name


def validate_dependency_map(value: Any, field_name: str = "dependencies") -> Dict[str, str]:
    """
    Validate the symbolic-name -> version mapping of a project.

    Names are not checked against the registry here; unknown names are a
    per-dependency resolution failure, not a configuration error.
    """
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationError(
            f"{field_name} must be a table of name = \"version\" entries",
            field_name=field_name,
            value=value
        )

    validated = {}
    for name, version in value.items():
        entry_field = f"{field_name}.{name}"
        name = validate_non_empty_string(name, field_name=f"{field_name} key")
        if not isinstance(version, str) or not _VERSION_PATTERN.match(version):
            raise ValidationError(
                f"{entry_field} must be a version string, got {version!r}",
                field_name=entry_field,
                value=version
            )
        validated[name] = version
    return validated
