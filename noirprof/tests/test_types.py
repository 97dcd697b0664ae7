"""Tests for noirprof.core.types — shared enums, cost entries and analyses."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from noirprof.core.types import (
    CircuitAnalysis,
    CostDatabaseSnapshot,
    CostEntry,
    OpcodeType,
    OperationCategory,
    OperationMatch,
)


# ── Enum Tests ───────────────────────────────────────────────────────────────


class TestEnums:
    def test_opcode_types(self):
        assert OpcodeType.ASSERT_ZERO.value == "AssertZero"
        assert OpcodeType.BLACK_BOX_FUNCTION.value == "BlackBoxFunction"

    def test_categories(self):
        assert {c.value for c in OperationCategory} == {"External", "Constraint"}

    def test_str_enum_compares_to_raw(self):
        assert OpcodeType.ASSERT_ZERO == "AssertZero"


# ── Cost entries ─────────────────────────────────────────────────────────────


class TestCostEntry:
    def test_fields(self):
        entry = CostEntry(100, 0.9, 4)
        assert (entry.cost, entry.confidence, entry.samples) == (100, 0.9, 4)

    def test_match_fields(self):
        match = OperationMatch("sha256", 38_000, 0.85)
        assert match.name == "sha256"
        assert match.cost == 38_000

    def test_snapshot_serialises_entries_as_arrays(self):
        snapshot = CostDatabaseSnapshot(costs={"sha256": CostEntry(38_000, 0.9, 3)})
        data = json.loads(snapshot.model_dump_json())
        assert data == {"costs": {"sha256": [38_000, 0.9, 3]}, "last_updated": None}

    def test_snapshot_parses_arrays(self):
        snapshot = CostDatabaseSnapshot.model_validate_json(
            '{"costs": {"foo": [10, 0.87, 2]}, "last_updated": "2024-01-01T00:00:00+00:00"}'
        )
        assert snapshot.costs["foo"] == CostEntry(10, 0.87, 2)
        assert snapshot.last_updated.startswith("2024")

    def test_snapshot_missing_fields_default(self):
        assert CostDatabaseSnapshot.model_validate_json("{}").costs == {}

    def test_snapshot_rejects_short_entries(self):
        with pytest.raises(ValidationError):
            CostDatabaseSnapshot.model_validate_json('{"costs": {"foo": [10]}}')


# ── Circuit analysis ─────────────────────────────────────────────────────────


class TestCircuitAnalysis:
    @pytest.fixture
    def analysis(self) -> CircuitAnalysis:
        return CircuitAnalysis(
            constraints=80_000,
            total_opcodes=40,
            operation_counts=[("Constraint", 38), ("External", 2)],
            black_box_functions=[("sha256", 1, 38_000), ("keccak256", 1, 41_000)],
            estimated_proving_time=1_600.0,
        )

    def test_defaults(self):
        empty = CircuitAnalysis()
        assert empty.constraints == 0
        assert empty.bottlenecks == ()
        assert empty.constraints_per_opcode == 0.0
        assert empty.proving_efficiency_us == 0.0

    def test_derived_metrics(self, analysis: CircuitAnalysis):
        assert analysis.constraints_per_opcode == 2_000.0
        assert analysis.proving_efficiency_us == pytest.approx(20.0)
        assert analysis.external_constraints == 79_000

    def test_lookups(self, analysis: CircuitAnalysis):
        assert analysis.operation_count("External") == 2
        assert analysis.black_box_calls("keccak256") == 1
        assert analysis.black_box_calls("pedersen_hash") == 0

    def test_frozen(self, analysis: CircuitAnalysis):
        with pytest.raises(ValidationError):
            analysis.constraints = 1

    def test_json_uses_arrays(self, analysis: CircuitAnalysis):
        data = json.loads(analysis.model_dump_json())
        assert data["black_box_functions"][0] == ["sha256", 1, 38_000]
        assert data["operation_counts"][1] == ["External", 2]

    def test_collections_are_immutable(self, analysis: CircuitAnalysis):
        assert analysis.operation_counts == (("Constraint", 38), ("External", 2))
        assert isinstance(analysis.black_box_functions, tuple)
        with pytest.raises(AttributeError):
            analysis.black_box_functions.append(("pedersen_hash", 1, 28_000))
