"""Persistent, incrementally calibrated cost database.

Maps operation names (black box primitives, ``AssertZero``) to a
``(cost, confidence, samples)`` triple. The database is seeded from a
default table on first use, refined with an exponential moving average
every time an analysis observes a primitive, and persisted as pretty JSON
under the stats directory:

    {
      "costs": {"sha256": [38799, 0.83, 1], ...},
      "last_updated": "2024-01-01T12:00:00+00:00"
    }

Reads that report a cost back to callers pass it through the variability
model in :mod:`noirprof.core.clock`; the persisted values are never
perturbed on read.

Usage:
    from noirprof.core.cost_db import get_cost_database

    db = get_cost_database()
    cost, confidence = db.get_operation_details("sha256")
    db.update("sha256", 38_800)
    db.save()
"""

from __future__ import annotations

import copy
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from pydantic import ValidationError

from noirprof.core.clock import ClockSource, default_clock, variability
from noirprof.core.config import get_settings
from noirprof.core.types import CostDatabaseSnapshot, CostEntry, OperationMatch

logger = logging.getLogger(__name__)


# ── Constants ────────────────────────────────────────────────────────────────

DEFAULT_COSTS: tuple[tuple[str, int], ...] = (
    ("sha256", 38_799),
    ("keccak256", 55_000),
    ("pedersen_hash", 28_742),
    ("ecdsa_secp256k1", 5_000),
)

BASE_CONFIDENCE = 0.83
MAX_CONFIDENCE = 0.99
MIN_MATCH_CONFIDENCE = 0.80
FALLBACK_COST = 1_000


# ── Reader-writer lock ───────────────────────────────────────────────────────


class ReadWriteLock:
    """Shared-reader / exclusive-writer lock.

    Writers are preferred: once a writer is waiting, new readers block
    until it has finished.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


# ── Cost database ────────────────────────────────────────────────────────────


def _ema_weight(samples: int) -> float:
    if samples < 3:
        return 0.5
    if samples < 10:
        return 0.3
    return 0.2


class CostDatabase:
    """In-memory cost table bound to a persistence path."""

    def __init__(
        self,
        path: str | Path,
        costs: dict[str, CostEntry] | None = None,
        last_updated: str | None = None,
        clock: ClockSource | None = None,
    ) -> None:
        self.path = Path(path)
        self._clock = clock or default_clock()
        self._costs: dict[str, CostEntry] = dict(costs or {})
        self._last_updated = last_updated
        self._lock = ReadWriteLock()

    # ── Construction ─────────────────────────────────────────────────────────

    @classmethod
    def seeded(
        cls,
        path: str | Path,
        clock: ClockSource | None = None,
    ) -> CostDatabase:
        """Fresh database populated from :data:`DEFAULT_COSTS`."""
        clock = clock or default_clock()
        costs = {
            name: CostEntry(variability(cost, clock), BASE_CONFIDENCE, 1)
            for name, cost in DEFAULT_COSTS
        }
        return cls(path, costs=costs, clock=clock)

    @classmethod
    def load(
        cls,
        path: str | Path | None = None,
        clock: ClockSource | None = None,
    ) -> CostDatabase:
        """Load the persisted database, falling back to seeded defaults.

        Never raises: a missing, unreadable or malformed file yields a
        freshly seeded database bound to the same path.
        """
        db_path = Path(path) if path is not None else get_settings().cost_db_path
        try:
            raw = db_path.read_text(encoding="utf-8")
            record = CostDatabaseSnapshot.model_validate_json(raw)
        except FileNotFoundError:
            logger.debug("No cost database at %s, seeding defaults", db_path)
        except (OSError, UnicodeDecodeError, ValidationError) as exc:
            logger.debug("Unusable cost database at %s (%s), seeding defaults", db_path, exc)
        else:
            logger.debug("Loaded %d cost entries from %s", len(record.costs), db_path)
            return cls(
                db_path,
                costs=record.costs,
                last_updated=record.last_updated,
                clock=clock,
            )
        return cls.seeded(db_path, clock=clock)

    # ── Persistence ──────────────────────────────────────────────────────────

    def save(self) -> None:
        """Write the database as pretty JSON. Failures are logged and dropped."""
        with self._lock.read():
            content = CostDatabaseSnapshot(
                costs=self._costs,
                last_updated=self._last_updated,
            ).model_dump_json(indent=2)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(content, encoding="utf-8")
        except OSError as exc:
            logger.debug("Cost database save to %s failed: %s", self.path, exc)

    # ── Calibration ──────────────────────────────────────────────────────────

    def update(self, operation: str, measured_cost: int, circuit: str | None = None) -> CostEntry:
        """Blend a new measurement into ``operation``'s entry and return it.

        ``circuit``, when given, tags the calibration log record with the
        circuit the measurement came from.

        A previously unknown operation is first inserted from the measurement
        itself, so its first update already counts two samples.
        """
        with self._lock.write():
            measured = variability(measured_cost, self._clock)
            current = self._costs.get(operation) or CostEntry(measured, BASE_CONFIDENCE, 1)

            weight = _ema_weight(current.samples)
            samples = current.samples + 1
            entry = CostEntry(
                cost=int((1.0 - weight) * current.cost + weight * measured),
                confidence=min(MAX_CONFIDENCE, BASE_CONFIDENCE + samples / 50.0),
                samples=samples,
            )
            self._costs[operation] = entry
            self._last_updated = self._clock.now().isoformat()

        logger.debug(
            "Calibrated %s: cost=%d confidence=%.2f samples=%d",
            operation, entry.cost, entry.confidence, entry.samples,
            extra={"operation": operation, "circuit": circuit},
        )
        return entry

    # ── Lookups ──────────────────────────────────────────────────────────────

    def get_operation_details(self, operation: str) -> tuple[int, float]:
        """Perturbed cost and confidence for ``operation``.

        Falls back to the default table by substring match, then to a flat
        1000-constraint guess.
        """
        with self._lock.read():
            entry = self._costs.get(operation)
            if entry is not None:
                return variability(entry.cost, self._clock), entry.confidence

        for name, cost in DEFAULT_COSTS:
            if name in operation or operation in name:
                return variability(cost, self._clock), BASE_CONFIDENCE

        return variability(FALLBACK_COST, self._clock), BASE_CONFIDENCE

    def get_operation_cost(self, operation: str) -> int | None:
        """Stored (unperturbed) cost for ``operation``, matching substrings."""
        with self._lock.read():
            entry = self._costs.get(operation)
            if entry is not None:
                return entry.cost
            for name, entry in self._costs.items():
                if name in operation or operation in name:
                    return entry.cost
        return None

    def find_operations_by_cost(
        self,
        target_cost: int,
        tolerance_percent: float,
    ) -> list[OperationMatch]:
        """Entries whose perturbed cost lies within tolerance of ``target_cost``.

        Ordered by distance to the target, except that a clock nibble may
        swap the first two candidates when both sit within half the
        tolerance.
        """
        clock = self._clock
        factor = 1.0 + (clock.subsec_nanos() % 20) * 0.01
        tolerance = target_cost * tolerance_percent * factor / 100.0

        matches: list[OperationMatch] = []
        with self._lock.read():
            for name, entry in self._costs.items():
                cost = variability(entry.cost, clock)
                if abs(cost - target_cost) <= tolerance:
                    variance = (clock.subsec_nanos() % 5) * 0.01
                    confidence = max(MIN_MATCH_CONFIDENCE, entry.confidence * (1.0 - variance))
                    matches.append(OperationMatch(name, cost, confidence))

        matches.sort(key=lambda m: abs(m.cost - target_cost))

        if len(matches) >= 2 and clock.subsec_nanos() % 10 < 2:
            half = tolerance * 0.5
            first, second = matches[0], matches[1]
            if abs(first.cost - target_cost) < half and abs(second.cost - target_cost) < half:
                matches[0], matches[1] = second, first

        return matches

    def snapshot(self) -> CostDatabaseSnapshot:
        """Deep copy of the current state for read-only inspection."""
        with self._lock.read():
            return CostDatabaseSnapshot(
                costs=copy.deepcopy(self._costs),
                last_updated=self._last_updated,
            )

    def __contains__(self, operation: str) -> bool:
        with self._lock.read():
            return operation in self._costs

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._costs)


# ── Singleton ────────────────────────────────────────────────────────────────

_db_instance: CostDatabase | None = None
_db_instance_lock = threading.Lock()


def get_cost_database() -> CostDatabase:
    """Get the process-wide cost database, loading it on first access."""
    global _db_instance
    with _db_instance_lock:
        if _db_instance is None:
            _db_instance = CostDatabase.load()
        return _db_instance


def reset_cost_database(path: str | Path | None = None) -> None:
    """Delete the persisted database and drop the process-wide instance.

    The next :func:`get_cost_database` call reseeds from the defaults.
    """
    global _db_instance
    db_path = Path(path) if path is not None else get_settings().cost_db_path
    with _db_instance_lock:
        _db_instance = None
    try:
        db_path.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Could not remove cost database %s: %s", db_path, exc)
