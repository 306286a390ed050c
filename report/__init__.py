"""Console output for the LocalRAG CLI."""

from .console_reporter import ConsoleReporter

__all__ = [
    "ConsoleReporter",
]
