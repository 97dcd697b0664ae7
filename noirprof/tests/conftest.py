"""Shared fixtures for the noirprof test suite."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable

import pytest

import noirprof.core.cost_db as cost_db_module
from noirprof.analyzer.circuit_analyzer import CircuitAnalyzer
from noirprof.core.clock import FixedClock
from noirprof.core.config import get_settings
from noirprof.core.cost_db import CostDatabase


# ── Isolation ────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def isolated_workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Run every test in a scratch cwd with no cached settings or database."""
    for key in list(os.environ):
        if key.startswith("NOIRPROF_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    monkeypatch.setattr(cost_db_module, "_db_instance", None)
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield tmp_path
    root.handlers[:] = handlers
    root.setLevel(level)
    get_settings.cache_clear()


# ── Cost database ────────────────────────────────────────────────────────────


@pytest.fixture
def fixed_clock() -> FixedClock:
    """Clock pinned at nanos=0: variability factor 0.98, hardware factor 0.85."""
    return FixedClock(0)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "circuit_stats" / "cost_database.json"


@pytest.fixture
def cost_db(db_path: Path) -> CostDatabase:
    """Freshly seeded database on the system clock."""
    return CostDatabase.load(db_path)


@pytest.fixture
def fixed_db(db_path: Path, fixed_clock: FixedClock) -> CostDatabase:
    """Freshly seeded database on the pinned clock."""
    return CostDatabase.load(db_path, clock=fixed_clock)


@pytest.fixture
def analyzer(cost_db: CostDatabase) -> CircuitAnalyzer:
    return CircuitAnalyzer(cost_db=cost_db)


@pytest.fixture
def fixed_analyzer(fixed_db: CostDatabase, fixed_clock: FixedClock) -> CircuitAnalyzer:
    return CircuitAnalyzer(cost_db=fixed_db, clock=fixed_clock)


# ── Circuit builders ─────────────────────────────────────────────────────────


def _assert_zero(n_terms: int, prefix: str = "w") -> dict[str, Any]:
    return {
        "type": "AssertZero",
        "expression": {
            "terms": [{"variable": f"{prefix}{i}", "coefficient": "1"} for i in range(n_terms)],
        },
    }


def _black_box(
    function: str,
    inputs: list[str] | None = None,
    outputs: list[str] | None = None,
) -> dict[str, Any]:
    return {
        "type": "BlackBoxFunction",
        "function": function,
        "inputs": [{"variable": v} for v in inputs or []],
        "outputs": [{"variable": v} for v in outputs or []],
    }


@pytest.fixture
def assert_zero() -> Callable[..., dict[str, Any]]:
    return _assert_zero


@pytest.fixture
def black_box() -> Callable[..., dict[str, Any]]:
    return _black_box


@pytest.fixture
def write_circuit(tmp_path: Path) -> Callable[..., Path]:
    """Write a circuit dict to ``<tmp>/circuits/<name>`` and return its path."""

    def _write(
        name: str,
        opcodes: list[dict[str, Any]] | None = None,
        directory: Path | None = None,
        **fields: Any,
    ) -> Path:
        target_dir = directory or tmp_path / "circuits"
        target_dir.mkdir(parents=True, exist_ok=True)
        record: dict[str, Any] = {
            "opcodes": opcodes or [],
            "public_inputs": [],
            "return_values": [],
        }
        record.update(fields)
        path = target_dir / name
        path.write_text(json.dumps(record), encoding="utf-8")
        return path

    return _write
