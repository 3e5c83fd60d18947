"""Readiness detection on a daemon's output stream."""

import threading
from collections.abc import Callable
from enum import Enum

from ..common.logging import get_logger
from ..common.streams import LineBroadcaster

logger = get_logger(__name__)

READINESS_TIMEOUT = 10.0


class ReadinessOutcome(str, Enum):
    """What resolved a readiness wait."""

    MARKER = "marker"
    TIMEOUT = "timeout"
    STREAM_CLOSED = "stream_closed"


class ReadinessDetector:
    """Waits for a marker substring on a line stream.

    Resolves once, on whichever comes first: a line containing the marker,
    the timeout, or the stream closing. A timeout is not a failure; callers
    decide what an unconfirmed start means.
    """

    def __init__(self, marker: str, timeout: float = READINESS_TIMEOUT):
        self.marker = marker
        self.timeout = timeout
        self._lock = threading.Lock()
        self._resolved = threading.Event()
        self._outcome: ReadinessOutcome | None = None
        self._detach: list[Callable[[], None]] = []

    @property
    def outcome(self) -> ReadinessOutcome | None:
        return self._outcome

    @property
    def resolved(self) -> bool:
        return self._resolved.is_set()

    def attach(self, stream: LineBroadcaster) -> "ReadinessDetector":
        """Subscribe to ``stream``. Attach before the stream starts pumping."""
        self._detach.append(stream.subscribe(self._on_line))
        self._detach.append(stream.on_close(self._on_close))
        return self

    def wait(self) -> ReadinessOutcome:
        """Block until resolved; the timeout counts from this call."""
        if not self._resolved.wait(self.timeout):
            self._resolve(ReadinessOutcome.TIMEOUT)
        assert self._outcome is not None
        return self._outcome

    def _on_line(self, line: str) -> None:
        if self.marker in line:
            self._resolve(ReadinessOutcome.MARKER)

    def _on_close(self) -> None:
        self._resolve(ReadinessOutcome.STREAM_CLOSED)

    def _resolve(self, outcome: ReadinessOutcome) -> None:
        with self._lock:
            if self._outcome is not None:
                return
            self._outcome = outcome
            detach, self._detach = self._detach, []

        for remove in detach:
            remove()
        logger.debug("Readiness resolved", outcome=outcome.value, marker=self.marker)
        self._resolved.set()


def await_marker(
    stream: LineBroadcaster, marker: str, timeout: float = READINESS_TIMEOUT
) -> ReadinessOutcome:
    """Wait for ``marker`` on ``stream``, starting the pump if needed."""
    detector = ReadinessDetector(marker, timeout).attach(stream)
    stream.start()
    return detector.wait()
