"""Classification of cloudflared log lines into session events.

cloudflared is chatty. The classifier drops the noise and maps what is left
to a handful of lifecycle events, each carrying how a terminal should draw
it: as a permanent line, as a transient line without newline, or by
rewriting the current line in place.
"""

from dataclasses import dataclass
from enum import Enum

from . import patterns

# cloudflared keeps four redundant edge connections; purely cosmetic.
EXPECTED_CONNECTIONS = 4


class LogEventKind(str, Enum):
    """Semantic bucket of a daemon log line."""

    ERROR = "error"
    WARNING = "warning"
    CONNECTION = "connection"
    TUNNEL_STARTING = "tunnel_starting"
    DNS_ROUTE = "dns_route"
    OTHER = "other"


class LineMode(str, Enum):
    """How an event should be drawn on a terminal."""

    PERMANENT = "permanent"
    TRANSIENT = "transient"
    OVERWRITE = "overwrite"
    OVERWRITE_THEN_CLEAR = "overwrite_then_clear"
    SILENT = "silent"


@dataclass(frozen=True)
class LogEvent:
    """A classified daemon log line."""

    kind: LogEventKind
    text: str
    line: str
    mode: LineMode = LineMode.PERMANENT
    connection_count: int = 0


class LogClassifier:
    """Stateful classifier for one session's daemon output.

    Not thread-safe; feed it from one thread or under a lock.
    """

    def __init__(self) -> None:
        self.connection_count = 0
        self.tunnel_start_announced = False

    def classify(self, line: str) -> LogEvent | None:
        """Classify one raw line.

        Returns:
            The event, or None for blank lines and noise
        """
        line = line.strip()
        if not line or patterns.is_noise(line):
            return None

        if patterns.is_error(line):
            return LogEvent(LogEventKind.ERROR, line, line)
        if patterns.is_warning(line):
            return LogEvent(LogEventKind.WARNING, line, line)
        if patterns.is_connection_registered(line):
            return self._connection(line)
        if patterns.is_tunnel_starting(line):
            self.tunnel_start_announced = True
            return LogEvent(
                LogEventKind.TUNNEL_STARTING,
                "Starting tunnel...",
                line,
                mode=LineMode.TRANSIENT,
            )
        if patterns.is_dns_route_added(line):
            return LogEvent(LogEventKind.DNS_ROUTE, "DNS route configured", line)
        return LogEvent(LogEventKind.OTHER, line, line)

    def _connection(self, line: str) -> LogEvent:
        self.connection_count += 1
        count = self.connection_count

        if count == 1:
            text = f"Connection established (1/{EXPECTED_CONNECTIONS})"
            mode = LineMode.OVERWRITE if self.tunnel_start_announced else LineMode.PERMANENT
        elif count < EXPECTED_CONNECTIONS:
            text = f"Connections established ({count}/{EXPECTED_CONNECTIONS})"
            mode = LineMode.OVERWRITE
        elif count == EXPECTED_CONNECTIONS:
            text = f"Connections established ({count}/{EXPECTED_CONNECTIONS})"
            mode = LineMode.OVERWRITE_THEN_CLEAR
        else:
            text = f"Connections established ({count})"
            mode = LineMode.SILENT

        return LogEvent(
            LogEventKind.CONNECTION, text, line, mode=mode, connection_count=count
        )
