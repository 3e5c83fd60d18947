"""Tests for readiness detection."""

import io
import time

from conftest import BlockingStream

from cfrok.common.streams import LineBroadcaster
from cfrok.tunnel.patterns import READY_MARKER
from cfrok.tunnel.readiness import ReadinessDetector, ReadinessOutcome, await_marker


class TestReadinessDetector:
    """Test ReadinessDetector class."""

    def test_marker(self):
        """A line containing the marker resolves the wait."""
        stream = LineBroadcaster(
            io.StringIO(f"INF Starting\nINF {READY_MARKER} connIndex=0\nINF more\n")
        )
        detector = ReadinessDetector(READY_MARKER, timeout=5).attach(stream)

        stream.start()

        assert detector.wait() is ReadinessOutcome.MARKER
        assert detector.resolved

    def test_stream_closed(self):
        """EOF without the marker resolves as closed."""
        stream = LineBroadcaster(io.StringIO("INF Starting\nERR boom\n"))
        detector = ReadinessDetector(READY_MARKER, timeout=5).attach(stream)

        stream.start()

        assert detector.wait() is ReadinessOutcome.STREAM_CLOSED

    def test_timeout(self):
        """Silence resolves as timeout once the deadline passes."""
        blocking = BlockingStream()
        stream = LineBroadcaster(blocking)
        detector = ReadinessDetector(READY_MARKER, timeout=0.05).attach(stream)
        stream.start()

        started = time.monotonic()
        outcome = detector.wait()
        elapsed = time.monotonic() - started
        blocking.release()

        assert outcome is ReadinessOutcome.TIMEOUT
        assert 0.05 <= elapsed < 5

    def test_resolves_once(self):
        """The first outcome sticks; closing afterwards changes nothing."""
        stream = LineBroadcaster(io.StringIO(f"{READY_MARKER}\n"))
        detector = ReadinessDetector(READY_MARKER, timeout=5).attach(stream)
        stream.start()
        detector.wait()
        stream.join(timeout=5)

        assert detector.outcome is ReadinessOutcome.MARKER
        assert detector.wait() is ReadinessOutcome.MARKER

    def test_attach_to_closed_stream(self):
        """Attaching after EOF resolves immediately."""
        stream = LineBroadcaster(io.StringIO(""))
        stream.start()
        stream.join(timeout=5)

        detector = ReadinessDetector(READY_MARKER, timeout=5).attach(stream)

        assert detector.resolved
        assert detector.wait() is ReadinessOutcome.STREAM_CLOSED

    def test_unresolved_outcome(self):
        assert ReadinessDetector(READY_MARKER).outcome is None


class TestAwaitMarker:
    """Test await_marker helper."""

    def test_starts_stream(self):
        stream = LineBroadcaster(io.StringIO("ready now\n"))

        assert await_marker(stream, "ready", timeout=5) is ReadinessOutcome.MARKER

    def test_custom_marker(self):
        stream = LineBroadcaster(io.StringIO(f"{READY_MARKER}\n"))

        outcome = await_marker(stream, "listening", timeout=5)

        assert outcome is ReadinessOutcome.STREAM_CLOSED
