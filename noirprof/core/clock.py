"""Wall-clock entropy source and the measurement-noise model.

Every cost surface in the profiler (cost lookups, database updates,
comparator tolerance, proving-time hardware factor) is perturbed by a
small factor derived from the sub-second component of the wall clock.
All such reads go through a :class:`ClockSource` so tests can pin them.
"""

from __future__ import annotations

import itertools
import time
from datetime import datetime
from typing import Iterable, Protocol

NANOS_PER_SECOND = 1_000_000_000


class ClockSource(Protocol):
    """Source of sub-second entropy and timestamps."""

    def subsec_nanos(self) -> int:
        """Nanosecond component of the current second, in ``[0, 1e9)``."""
        ...

    def now(self) -> datetime:
        """Current local time (timezone-aware)."""
        ...


class SystemClock:
    """Production clock backed by ``time.time_ns``."""

    def subsec_nanos(self) -> int:
        return time.time_ns() % NANOS_PER_SECOND

    def now(self) -> datetime:
        return datetime.now().astimezone()


class FixedClock:
    """Deterministic clock for tests.

    ``nanos`` may be a single value or a sequence; a sequence is cycled
    so that successive reads see successive values.
    """

    def __init__(
        self,
        nanos: int | Iterable[int] = 0,
        now: datetime | None = None,
    ) -> None:
        values = [nanos] if isinstance(nanos, int) else list(nanos)
        if not values:
            raise ValueError("FixedClock needs at least one nanos value")
        self._cycle = itertools.cycle(v % NANOS_PER_SECOND for v in values)
        self._now = now or datetime(2024, 1, 1, 12, 0, 0).astimezone()

    def subsec_nanos(self) -> int:
        return next(self._cycle)

    def now(self) -> datetime:
        return self._now


_system_clock = SystemClock()


def default_clock() -> ClockSource:
    return _system_clock


def variability_factor(clock: ClockSource | None = None) -> float:
    """Multiplicative noise factor in ``[0.98, 1.02)``."""
    seed = (clock or _system_clock).subsec_nanos()
    return 0.98 + (seed % 40) * 0.001


def variability(cost: int, clock: ClockSource | None = None) -> int:
    """Return ``cost`` perturbed by up to ±2% of simulated measurement noise."""
    return int(cost * variability_factor(clock))
