"""Line-oriented fan-out for subprocess output pipes."""

import threading
from collections.abc import Callable
from typing import IO

from .logging import get_logger

logger = get_logger(__name__)

LineListener = Callable[[str], None]
CloseListener = Callable[[], None]


class LineBroadcaster:
    """Drains a text stream on a background thread and hands every line to
    all subscribed listeners.

    Listeners never compete for lines: each one sees the full stream from
    the moment it subscribes. The pump keeps draining even when there are no
    listeners, so the writing process never blocks on a full pipe.
    """

    def __init__(self, stream: IO[str], name: str = "stream"):
        """Initialize LineBroadcaster.

        Args:
            stream: Text stream to read lines from
            name: Label used in logs and the pump thread name
        """
        self.name = name
        self._stream = stream
        self._listeners: list[LineListener] = []
        self._close_listeners: list[CloseListener] = []
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        """True once the underlying stream reached EOF."""
        return self._closed.is_set()

    def subscribe(self, listener: LineListener) -> Callable[[], None]:
        """Register a line listener.

        Returns:
            A callable that removes the listener again
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def on_close(self, listener: CloseListener) -> Callable[[], None]:
        """Register a callback fired once when the stream closes.

        If the stream is already closed the callback runs immediately.
        """
        with self._lock:
            if not self._closed.is_set():
                self._close_listeners.append(listener)

                def remove() -> None:
                    with self._lock:
                        if listener in self._close_listeners:
                            self._close_listeners.remove(listener)

                return remove

        listener()
        return lambda: None

    def start(self) -> None:
        """Start the pump thread. Calling it twice is a no-op."""
        if self._thread is not None:
            return

        self._thread = threading.Thread(
            target=self._pump, name=f"cfrok-{self.name}-pump", daemon=True
        )
        self._thread.start()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the pump to finish draining.

        Returns:
            True if the stream is fully drained
        """
        if self._thread is not None:
            self._thread.join(timeout)
        return self.closed

    def close(self) -> None:
        """Close the underlying stream unless the pump is still reading it."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stream.close()

    def _pump(self) -> None:
        try:
            for raw_line in iter(self._stream.readline, ""):
                line = raw_line.rstrip("\r\n")
                with self._lock:
                    listeners = list(self._listeners)
                for listener in listeners:
                    self._dispatch(listener, line)
        except (OSError, ValueError) as e:
            # Pipe torn down underneath us, e.g. closed during shutdown.
            logger.debug("Stream read aborted", stream=self.name, error=str(e))
        finally:
            self._finish()

    def _dispatch(self, listener: LineListener, line: str) -> None:
        try:
            listener(line)
        except Exception:
            logger.exception("Line listener failed", stream=self.name)

    def _finish(self) -> None:
        with self._lock:
            self._closed.set()
            close_listeners = list(self._close_listeners)
            self._close_listeners.clear()

        logger.debug("Stream closed", stream=self.name)
        for listener in close_listeners:
            try:
                listener()
            except Exception:
                logger.exception("Close listener failed", stream=self.name)
