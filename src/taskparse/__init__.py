"""Turn free-form text into structured tasks and events."""

__version__ = "0.1.0"
