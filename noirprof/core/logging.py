"""Structured logging configuration.

Profiler log records may carry four context fields, passed through
``extra=`` or a :class:`CircuitLogAdapter`:

  circuit      path of the circuit artifact being analyzed
  operation    cost database entry being calibrated
  constraints  constraint total of a finished analysis
  duration_ms  wall time of a finished analysis

``JSONFormatter`` emits them as top-level keys for machine consumption
(staging/production); ``DevFormatter`` folds them into a coloured line
for terminal use.

Log output goes to stderr so that ``--format json`` and ``stats`` output on
stdout stays machine-readable.
"""

from __future__ import annotations

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Any, MutableMapping

CONTEXT_FIELDS = ("circuit", "operation", "constraints", "duration_ms")


def _context(record: logging.LogRecord) -> dict[str, Any]:
    """Context fields set on ``record``, skipping unset and None values."""
    return {
        key: getattr(record, key)
        for key in CONTEXT_FIELDS
        if getattr(record, key, None) is not None
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with profiler context flattened in."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": f"{record.module}:{record.lineno}",
        }
        log_entry.update(_context(record))

        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else "Unknown",
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(log_entry, default=str)


class DevFormatter(logging.Formatter):
    """Coloured single-line formatter.

    Renders as ``HH:MM:SS [LEVEL] logger: [circuit] operation: message (k=v ...)``
    where the bracketed circuit, the operation lead and the trailing
    metrics appear only when the record carries them.
    """

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    DIM = "\033[2m"
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        ts = datetime.now(timezone.utc).strftime("%H:%M:%S")
        context = _context(record)

        parts = [f"{color}{ts} [{record.levelname:>8s}]{self.RESET}", f"{record.name}:"]
        if "circuit" in context:
            parts.append(f"[{context['circuit']}]")
        if "operation" in context:
            parts.append(f"{context['operation']}:")
        parts.append(record.getMessage())

        metrics = [f"{key}={context[key]}" for key in ("constraints", "duration_ms") if key in context]
        if metrics:
            parts.append(f"{self.DIM}({' '.join(metrics)}){self.RESET}")

        line = " ".join(parts)
        if record.exc_info and record.exc_info[1]:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(env: str = "development", log_level: str = "WARNING") -> None:
    """Configure logging for the profiler.

    Args:
        env: Application environment (development/staging/production)
        log_level: Minimum log level; unknown names fall back to WARNING
    """
    level = getattr(logging, log_level.upper(), logging.WARNING)
    root = logging.getLogger()
    root.setLevel(level)

    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    if env in ("staging", "production"):
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(DevFormatter())

    root.addHandler(handler)


class CircuitLogAdapter(logging.LoggerAdapter):
    """Logger view that tags every record with the circuit being analyzed.

    Explicit ``extra=`` keys passed by the caller win over the adapter's.
    Each adapter is a per-call object, so concurrent analyses never see
    each other's circuit.
    """

    def __init__(self, logger: logging.Logger, circuit: str | None) -> None:
        super().__init__(logger, {"circuit": circuit})

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs
