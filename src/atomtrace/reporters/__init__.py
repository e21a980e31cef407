"""Output reporters."""

from atomtrace.reporters.terminal import CLIReporter, reporter

__all__ = ["CLIReporter", "reporter"]
