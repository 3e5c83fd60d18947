"""Terminal output for the cfrok command line."""

import threading

from rich.console import Console
from rich.control import Control
from rich.segment import ControlType
from rich.status import Status
from rich.text import Text

from ..tunnel.classifier import LineMode, LogEvent, LogEventKind
from ..tunnel.models import TunnelSummary

_CLEAR_LINE = Control(ControlType.CARRIAGE_RETURN, (ControlType.ERASE_IN_LINE, 2))

_EVENT_STYLES: dict[LogEventKind, tuple[str, str]] = {
    LogEventKind.ERROR: ("  ✗ ", "red"),
    LogEventKind.WARNING: ("  ⚠ ", "yellow"),
    LogEventKind.CONNECTION: ("  ✓ ", "green"),
    LogEventKind.TUNNEL_STARTING: ("  🔄 ", "blue"),
    LogEventKind.DNS_ROUTE: ("  📡 ", "cyan"),
    LogEventKind.OTHER: ("  ", "dim"),
}


class ConsoleReporter:
    """SessionReporter that draws spinners and daemon events with rich.

    ``quiet`` hides everything but errors; ``json`` additionally hides
    errors from stdout so only the JSON document is printed there.
    """

    def __init__(
        self,
        quiet: bool = False,
        json: bool = False,
        console: Console | None = None,
        error_console: Console | None = None,
    ):
        self.quiet = quiet
        self.json = json
        self.console = console or Console(highlight=False)
        self.error_console = error_console or Console(stderr=True, highlight=False)
        self._status: Status | None = None
        self._line_open = False
        self._lock = threading.RLock()

    @property
    def silent(self) -> bool:
        return self.quiet or self.json

    # SessionReporter

    def begin_phase(self, message: str) -> None:
        if self.silent:
            return
        with self._lock:
            self._stop_status()
            self._status = self.console.status(Text(message, style="blue"))
            self._status.start()

    def end_phase(self) -> None:
        with self._lock:
            self._stop_status()

    def log_event(self, event: LogEvent) -> None:
        if self.silent or event.mode is LineMode.SILENT:
            return

        prefix, style = _EVENT_STYLES[event.kind]
        text = Text(prefix + event.text, style=style)

        with self._lock:
            if self._status is not None:
                self._render_during_phase(event, text)
            elif self.console.is_terminal:
                self._render_in_place(event, text)
            else:
                self._render_plain(event, text)

    # Plain messages

    def info(self, message: str) -> None:
        self._message("ℹ", "blue", message)

    def success(self, message: str) -> None:
        self._message("✓", "green", message)

    def warn(self, message: str) -> None:
        self._message("⚠", "yellow", message)

    def error(self, message: str) -> None:
        with self._lock:
            self._close_line()
            self.error_console.print(Text("✗ ", style="red") + Text(message))

    def url(self, url: str) -> None:
        # Shown in quiet mode too.
        if self.json:
            return
        with self._lock:
            self._close_line()
            self.console.print(
                Text("🌐 URL: ", style="cyan") + Text(url, style="underline cyan")
            )

    def config(self, path: str) -> None:
        if self.silent:
            return
        with self._lock:
            self._close_line()
            self.console.print(Text(f"📁 Config: {path}", style="bright_black"))

    def ready(self) -> None:
        self._message("🚀", "green", "Tunnel ready! Press Ctrl+C to stop...")

    def json_output(self, summary: TunnelSummary) -> None:
        if not self.json:
            return
        self.console.out(
            summary.model_dump_json(indent=2, by_alias=True), highlight=False
        )

    def _message(self, symbol: str, style: str, message: str) -> None:
        if self.silent:
            return
        with self._lock:
            self._close_line()
            self.console.print(Text(f"{symbol} ", style=style) + Text(message))

    def _stop_status(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None

    def _render_during_phase(self, event: LogEvent, text: Text) -> None:
        assert self._status is not None
        if event.mode is LineMode.PERMANENT:
            self.console.print(text)
        else:
            # Progress lines ride on the spinner while a phase is active.
            self._status.update(text)

    def _render_in_place(self, event: LogEvent, text: Text) -> None:
        if event.mode is LineMode.PERMANENT:
            self._close_line()
            self.console.print(text)
        elif event.mode is LineMode.TRANSIENT:
            self._close_line()
            self.console.print(text, end="")
            self._line_open = True
        elif event.mode is LineMode.OVERWRITE:
            self.console.control(_CLEAR_LINE)
            self.console.print(text, end="")
            self._line_open = True
        elif event.mode is LineMode.OVERWRITE_THEN_CLEAR:
            self.console.control(_CLEAR_LINE)
            self.console.print(text, end="")
            self.console.control(_CLEAR_LINE)
            self._line_open = False

    def _render_plain(self, event: LogEvent, text: Text) -> None:
        # No cursor control off a terminal: every visible event gets a line.
        if event.mode is not LineMode.OVERWRITE_THEN_CLEAR:
            self.console.print(text)

    def _close_line(self) -> None:
        if self._line_open:
            self.console.print()
            self._line_open = False
