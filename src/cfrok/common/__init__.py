"""Common utilities and shared functionality."""

from .exceptions import (
    BinaryNotFoundError,
    CfrokError,
    DaemonSpawnFailedError,
    DnsRouteFailedError,
    InvalidArgumentError,
    IoFailureError,
    ProcessError,
    ProcessSpawnError,
    SessionStoppedError,
)
from .logging import get_logger, setup_logging
from .process import CommandResult, DaemonProcess, resolve_binary, run_once
from .streams import LineBroadcaster
from .utils import (
    MAX_PORT,
    MIN_PORT,
    ensure_directory,
    expand_tilde,
    validate_non_empty_string,
    validate_port,
)

__all__ = [
    # Process management
    "run_once",
    "resolve_binary",
    "CommandResult",
    "DaemonProcess",
    "LineBroadcaster",
    # Exceptions
    "CfrokError",
    "InvalidArgumentError",
    "IoFailureError",
    "DnsRouteFailedError",
    "DaemonSpawnFailedError",
    "ProcessError",
    "ProcessSpawnError",
    "BinaryNotFoundError",
    "SessionStoppedError",
    # Logging
    "get_logger",
    "setup_logging",
    # Utils
    "validate_port",
    "validate_non_empty_string",
    "expand_tilde",
    "ensure_directory",
    "MIN_PORT",
    "MAX_PORT",
]
