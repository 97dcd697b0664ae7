"""Exception hierarchy for the profiler.

    ProfilerError
    ├── InvalidCircuitError
    │   ├── CircuitReadError     file cannot be opened or read
    │   └── CircuitDecodeError   file is not well-formed JSON
    └── BatchDirectoryError      batch target missing or not a directory

Cost database operations never raise; they fall back to seeded defaults
and drop failed writes.
"""

from __future__ import annotations

from pathlib import Path


class ProfilerError(Exception):
    """Base class for all profiler errors."""


class InvalidCircuitError(ProfilerError):
    """A circuit artifact could not be turned into a record."""

    def __init__(self, path: str | Path, message: str) -> None:
        self.path = Path(path)
        self.message = message
        super().__init__(f"{message}: {self.path}")


class CircuitReadError(InvalidCircuitError):
    """The circuit file could not be opened or read."""

    def __init__(self, path: str | Path, reason: str = "") -> None:
        message = "Failed to read circuit file"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(path, message)


class CircuitDecodeError(InvalidCircuitError):
    """The circuit file is not well-formed JSON."""

    def __init__(self, path: str | Path, reason: str = "") -> None:
        message = "Failed to parse JSON"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(path, message)


class BatchDirectoryError(ProfilerError, NotADirectoryError):
    """Batch target does not exist or is not a directory."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        super().__init__(f"Directory not found or is not a directory: {self.path}")
