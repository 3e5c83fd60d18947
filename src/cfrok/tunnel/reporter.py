"""Presentation hooks used by the session orchestrator."""

from typing import Protocol

from .classifier import LogEvent


class SessionReporter(Protocol):
    """What a session tells its presentation layer."""

    def begin_phase(self, message: str) -> None:
        """A start-up phase began, e.g. to show a spinner."""

    def end_phase(self) -> None:
        """The current phase finished, successfully or not."""

    def log_event(self, event: LogEvent) -> None:
        """A classified daemon log line arrived. Called from pump threads."""


class NullReporter:
    """Reporter that ignores everything."""

    def begin_phase(self, message: str) -> None:
        pass

    def end_phase(self) -> None:
        pass

    def log_event(self, event: LogEvent) -> None:
        pass
