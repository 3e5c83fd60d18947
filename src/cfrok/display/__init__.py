"""Terminal display for the cfrok command line."""

from .console import ConsoleReporter

__all__ = ["ConsoleReporter"]
