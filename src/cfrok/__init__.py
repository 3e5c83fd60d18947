"""cfrok - expose a local port through a cloudflared named tunnel."""

__version__ = "0.1.0"

# High-level API
from .api import build_config, managed_tunnel, start_tunnel

# Common utilities
from .common.exceptions import (
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
from .common.logging import get_logger, setup_logging

# Tunnel session
from .tunnel import (
    LogClassifier,
    LogEvent,
    LogEventKind,
    Protocol,
    ReadinessOutcome,
    SessionConfig,
    SessionReporter,
    SessionState,
    StartedTunnel,
    TunnelSession,
    TunnelSummary,
)

# Quiet by default for library use; the CLI reconfigures from --log-level.
setup_logging(level="WARNING")

__all__ = [
    # High-level API
    "start_tunnel",
    "managed_tunnel",
    "build_config",
    # Session
    "TunnelSession",
    "StartedTunnel",
    "SessionConfig",
    "SessionState",
    "SessionReporter",
    "TunnelSummary",
    "Protocol",
    "ReadinessOutcome",
    "LogClassifier",
    "LogEvent",
    "LogEventKind",
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
    # Utilities
    "get_logger",
    "setup_logging",
]
