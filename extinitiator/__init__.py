"""SQLite subscription store and mock blockchain client for external initiators."""

__version__ = "0.1.0"