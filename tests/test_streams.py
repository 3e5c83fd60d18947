"""Tests for the line broadcaster."""

import io
from unittest.mock import Mock

from conftest import BlockingStream

from cfrok.common.streams import LineBroadcaster


class TestLineBroadcaster:
    """Test LineBroadcaster class."""

    def test_delivers_lines_without_terminators(self):
        """Lines arrive in order with CR/LF stripped."""
        lines = []
        broadcaster = LineBroadcaster(io.StringIO("a\r\nb\n\nc"))
        broadcaster.subscribe(lines.append)

        broadcaster.start()

        assert broadcaster.join(timeout=5)
        assert lines == ["a", "b", "", "c"]

    def test_every_listener_sees_every_line(self):
        """Listeners do not compete for lines."""
        first, second = [], []
        broadcaster = LineBroadcaster(io.StringIO("one\ntwo\n"))
        broadcaster.subscribe(first.append)
        broadcaster.subscribe(second.append)

        broadcaster.start()
        broadcaster.join(timeout=5)

        assert first == ["one", "two"]
        assert second == ["one", "two"]

    def test_unsubscribe(self):
        """Removed listeners receive nothing."""
        lines = []
        broadcaster = LineBroadcaster(io.StringIO("one\n"))
        unsubscribe = broadcaster.subscribe(lines.append)
        unsubscribe()
        unsubscribe()

        broadcaster.start()
        broadcaster.join(timeout=5)

        assert lines == []

    def test_failing_listener_does_not_stop_others(self):
        """An exception in one listener is logged and the pump continues."""
        lines = []
        broadcaster = LineBroadcaster(io.StringIO("one\ntwo\n"))
        broadcaster.subscribe(Mock(side_effect=RuntimeError("boom")))
        broadcaster.subscribe(lines.append)

        broadcaster.start()
        broadcaster.join(timeout=5)

        assert lines == ["one", "two"]

    def test_drains_without_listeners(self):
        """The pump reads to EOF even when nobody listens."""
        broadcaster = LineBroadcaster(io.StringIO("x\n" * 1000))

        broadcaster.start()

        assert broadcaster.join(timeout=5)
        assert broadcaster.closed

    def test_close_listener(self):
        """Close listeners fire once at EOF."""
        on_close = Mock()
        broadcaster = LineBroadcaster(io.StringIO("x\n"))
        broadcaster.on_close(on_close)

        broadcaster.start()
        broadcaster.join(timeout=5)

        on_close.assert_called_once_with()

    def test_close_listener_after_close_runs_immediately(self):
        broadcaster = LineBroadcaster(io.StringIO(""))
        broadcaster.start()
        broadcaster.join(timeout=5)

        on_close = Mock()
        broadcaster.on_close(on_close)

        on_close.assert_called_once_with()

    def test_removed_close_listener(self):
        on_close = Mock()
        broadcaster = LineBroadcaster(io.StringIO(""))
        remove = broadcaster.on_close(on_close)
        remove()

        broadcaster.start()
        broadcaster.join(timeout=5)

        on_close.assert_not_called()

    def test_start_is_idempotent(self):
        """Starting twice does not read the stream twice."""
        lines = []
        broadcaster = LineBroadcaster(io.StringIO("only\n"))
        broadcaster.subscribe(lines.append)

        broadcaster.start()
        broadcaster.start()
        broadcaster.join(timeout=5)

        assert lines == ["only"]

    def test_read_error_closes_stream(self):
        """A torn-down pipe ends the pump instead of raising."""
        stream = Mock()
        stream.readline.side_effect = ValueError("I/O operation on closed file")
        broadcaster = LineBroadcaster(stream)

        broadcaster.start()

        assert broadcaster.join(timeout=5)

    def test_join_before_start(self):
        """Joining an unstarted broadcaster reports it is not drained."""
        assert LineBroadcaster(io.StringIO("x\n")).join(timeout=0.01) is False

    def test_close_after_drain(self):
        stream = io.StringIO("a\n")
        broadcaster = LineBroadcaster(stream)

        broadcaster.start()
        broadcaster.join(timeout=5)
        broadcaster.close()

        assert stream.closed

    def test_close_before_start(self):
        stream = io.StringIO("a\n")

        LineBroadcaster(stream).close()

        assert stream.closed

    def test_close_leaves_stream_open_while_pumping(self):
        """A pump still blocked on read keeps its stream."""
        stream = BlockingStream()
        broadcaster = LineBroadcaster(stream)
        broadcaster.start()

        broadcaster.close()

        assert not stream.closed
        stream.release()
        assert broadcaster.join(timeout=5)
