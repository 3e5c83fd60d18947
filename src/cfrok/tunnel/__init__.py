"""Tunnel session components.

This package contains the session orchestrator and the pieces it drives:
subdomain generation, config rendering, readiness detection and daemon log
classification.
"""

from .classifier import (
    EXPECTED_CONNECTIONS,
    LineMode,
    LogClassifier,
    LogEvent,
    LogEventKind,
)
from .config import IngressConfigBuilder, config_file_name, materialize, render_config
from .identifiers import build_subdomain, random_digits, sanitize_prefix
from .models import Protocol, SessionConfig, SessionState, TunnelSummary
from .readiness import (
    READINESS_TIMEOUT,
    ReadinessDetector,
    ReadinessOutcome,
    await_marker,
)
from .reporter import NullReporter, SessionReporter
from .session import StartedTunnel, TunnelSession

__all__ = [
    # Models
    "SessionConfig",
    "SessionState",
    "Protocol",
    "TunnelSummary",
    # Orchestration
    "TunnelSession",
    "StartedTunnel",
    "SessionReporter",
    "NullReporter",
    # Identifiers
    "sanitize_prefix",
    "random_digits",
    "build_subdomain",
    # Config
    "IngressConfigBuilder",
    "render_config",
    "config_file_name",
    "materialize",
    # Readiness
    "ReadinessDetector",
    "ReadinessOutcome",
    "await_marker",
    "READINESS_TIMEOUT",
    # Log classification
    "LogClassifier",
    "LogEvent",
    "LogEventKind",
    "LineMode",
    "EXPECTED_CONNECTIONS",
]
