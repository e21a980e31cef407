"""atomtrace: Intent Atom traceability, coverage normalization and trust metrics."""

__version__ = "0.3.0"
