"""Utility functions for cfrok."""

import math
from pathlib import Path

# Port range constants
MIN_PORT = 1
MAX_PORT = 65535


def validate_port(port: int, port_name: str = "Port") -> int:
    """Validate port number range.

    Args:
        port: Port number to validate
        port_name: Name of the port for error messages

    Returns:
        The port as an int

    Raises:
        ValueError: If port is not a finite integer in range (1-65535)
    """
    if isinstance(port, bool) or not isinstance(port, (int, float)):
        raise ValueError(f"{port_name} must be between {MIN_PORT} and {MAX_PORT}")

    if isinstance(port, float) and (not math.isfinite(port) or not port.is_integer()):
        raise ValueError(f"{port_name} must be between {MIN_PORT} and {MAX_PORT}")

    if not (MIN_PORT <= port <= MAX_PORT):
        raise ValueError(f"{port_name} must be between {MIN_PORT} and {MAX_PORT}")

    return int(port)


def validate_non_empty_string(value: str, field_name: str) -> str:
    """Validate that a string is not empty or only whitespace.

    Args:
        value: String value to validate
        field_name: Name of the field for error messages

    Returns:
        Stripped string value

    Raises:
        ValueError: If string is empty or only whitespace
    """
    if not value or not value.strip():
        raise ValueError(f"{field_name} cannot be empty")
    return value.strip()


def expand_tilde(path: str | Path) -> Path:
    """Expand a leading ``~`` to the user's home directory."""
    return Path(path).expanduser()


def ensure_directory(path: str | Path) -> Path:
    """Create a directory and any missing parents; existing ones are fine."""
    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory
