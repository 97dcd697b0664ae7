"""Circuit analyzer — per-opcode cost attribution and proving-time estimation.

Walks the opcodes of a compiled circuit, assigns each a constraint cost and
a confidence, and aggregates them into a :class:`CircuitAnalysis`:

  BlackBoxFunction  → "External",   cost and confidence from the cost database
  AssertZero        → "Constraint", ceil(terms / 4) constraints, confidence 0.98
  anything else     → raw type,     1 constraint, confidence 0.9

Every analysis feeds its observations back into the cost database and
persists it.
"""

from __future__ import annotations

import logging
import math
import time
from pathlib import Path

from noirprof.core.clock import NANOS_PER_SECOND, ClockSource, default_clock
from noirprof.core.config import Settings, get_settings
from noirprof.core.cost_db import CostDatabase, get_cost_database
from noirprof.core.logging import CircuitLogAdapter
from noirprof.core.types import CircuitAnalysis, OpcodeType, OperationCategory
from noirprof.ingestion.acir_reader import CircuitRecord, Opcode, read_circuit

logger = logging.getLogger(__name__)


# ── Constants ────────────────────────────────────────────────────────────────

TERMS_PER_CONSTRAINT = 4
ASSERT_ZERO_CONFIDENCE = 0.98
DEFAULT_OPCODE_COST = 1
DEFAULT_OPCODE_CONFIDENCE = 0.9
CONSTRAINTS_PER_MS = 50.0
ASSERT_ZERO_CALIBRATION_MIN = 10


# ── Heuristics ───────────────────────────────────────────────────────────────


def assert_zero_cost(term_count: int) -> int:
    """Constraints needed for an arithmetic expression with ``term_count`` terms."""
    if term_count <= 0:
        return 1
    return (term_count + TERMS_PER_CONSTRAINT - 1) // TERMS_PER_CONSTRAINT


def has_sequential_dependencies(analysis: CircuitAnalysis) -> bool:
    """Whether the circuit is treated as poorly parallelisable.

    True when it touches memory/array opcodes, or when it makes at most one
    hash call in total.
    """
    has_memory_ops = any(
        "Memory" in op or "Array" in op for op, _ in analysis.operation_counts
    )
    hash_calls = sum(
        count
        for name, count, _ in analysis.black_box_functions
        if "hash" in name or "Hash" in name
    )
    return has_memory_ops or hash_calls <= 1


def hardware_factor(clock: ClockSource | None = None) -> float:
    """Simulated hardware noise in ``[0.85, 1.15]``."""
    seed = (clock or default_clock()).subsec_nanos() / NANOS_PER_SECOND
    return 0.85 + abs(math.sin(seed)) * 0.3


def parallelism_factor(analysis: CircuitAnalysis) -> float:
    root = math.sqrt(analysis.public_inputs)
    if has_sequential_dependencies(analysis):
        return 1.0 - min(0.5, 0.15 * root / 10.0)
    return 1.0 - min(0.7, 0.3 * root / 10.0)


def estimate_proving_time(
    analysis: CircuitAnalysis,
    clock: ClockSource | None = None,
    proving_time_factor: float = 1.0,
) -> float:
    """Estimated proving time in milliseconds."""
    base = analysis.constraints * proving_time_factor / CONSTRAINTS_PER_MS
    proving_time = base * hardware_factor(clock)
    if analysis.constraints > 0:
        proving_time *= parallelism_factor(analysis)
    return proving_time


# ── Analyzer ─────────────────────────────────────────────────────────────────


class CircuitAnalyzer:
    """Analyze circuit artifacts against a cost database."""

    def __init__(
        self,
        cost_db: CostDatabase | None = None,
        clock: ClockSource | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._cost_db = cost_db
        self._clock = clock or default_clock()
        self._settings = settings or get_settings()

    @property
    def cost_db(self) -> CostDatabase:
        if self._cost_db is None:
            self._cost_db = get_cost_database()
        return self._cost_db

    def analyze(self, path: str | Path) -> CircuitAnalysis:
        """Read, analyze and calibrate from a single circuit file.

        Raises:
            CircuitReadError: the file cannot be read.
            CircuitDecodeError: the file is not valid JSON.
        """
        start = time.monotonic()
        record = read_circuit(path)
        analysis = self.analyze_record(record, circuit=str(path))
        duration_ms = (time.monotonic() - start) * 1000
        CircuitLogAdapter(logger, str(path)).info(
            "Analyzed %s: %d constraints over %d opcodes",
            path, analysis.constraints, analysis.total_opcodes,
            extra={
                "constraints": analysis.constraints,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return analysis

    def analyze_record(self, record: CircuitRecord, circuit: str | None = None) -> CircuitAnalysis:
        """Analyze an already decoded circuit record.

        ``circuit`` names the source in calibration log records.
        """
        opcodes = record.opcodes
        public_inputs = record.public_input_count
        private_inputs = max(record.witness_count() - public_inputs, 0)

        constraints = 0
        confidence = 0.0
        bottlenecks: list[tuple[str, int]] = []
        op_counts: dict[str, int] = {}
        black_box_functions: list[tuple[str, int, int]] = []
        bb_index: dict[str, int] = {}
        operation_types: dict[str, list[int]] = {}

        for idx, op in enumerate(opcodes):
            category, bucket, cost, op_confidence = self._cost_opcode(op)

            if op.type == OpcodeType.BLACK_BOX_FUNCTION.value:
                pos = bb_index.get(bucket)
                if pos is None:
                    bb_index[bucket] = len(black_box_functions)
                    black_box_functions.append((bucket, 1, cost))
                else:
                    name, count, unit_cost = black_box_functions[pos]
                    black_box_functions[pos] = (name, count + 1, unit_cost)

            operation_types.setdefault(bucket, []).append(idx)
            op_counts[category] = op_counts.get(category, 0) + 1

            constraints += cost
            if cost > self._settings.bottleneck_threshold:
                bottlenecks.append((category, cost))

            if idx == 0:
                confidence = op_confidence
            else:
                confidence = (confidence + op_confidence) / 2.0

        operation_counts = sorted(op_counts.items(), key=lambda kv: kv[1], reverse=True)

        analysis = CircuitAnalysis(
            constraints=constraints,
            bottlenecks=tuple(bottlenecks),
            total_opcodes=len(opcodes),
            operation_counts=tuple(operation_counts),
            black_box_functions=tuple(black_box_functions),
            public_inputs=public_inputs,
            private_inputs=private_inputs,
            return_values=record.return_value_count,
            confidence=confidence,
        )
        analysis = analysis.model_copy(
            update={
                "estimated_proving_time": estimate_proving_time(
                    analysis,
                    clock=self._clock,
                    proving_time_factor=self._settings.proving_time_factor,
                ),
            }
        )

        self.update_cost_database_from_circuit(operation_types, analysis, circuit=circuit)
        return analysis

    def _cost_opcode(self, op: Opcode) -> tuple[str, str, int, float]:
        """Return ``(category, bucket, cost, confidence)`` for one opcode."""
        op_type = op.type

        if op_type == OpcodeType.BLACK_BOX_FUNCTION.value:
            name = op.function
            cost, confidence = self.cost_db.get_operation_details(name)
            return OperationCategory.EXTERNAL.value, name, cost, confidence

        if op_type == OpcodeType.ASSERT_ZERO.value:
            cost = assert_zero_cost(len(op.terms))
            return OperationCategory.CONSTRAINT.value, op_type, cost, ASSERT_ZERO_CONFIDENCE

        return op_type, op_type, DEFAULT_OPCODE_COST, DEFAULT_OPCODE_CONFIDENCE

    def update_cost_database_from_circuit(
        self,
        operation_types: dict[str, list[int]],
        analysis: CircuitAnalysis,
        circuit: str | None = None,
    ) -> None:
        """Feed this analysis' observations back into the cost database.

        Only primitives called exactly once are calibrated, since their
        unit cost is unambiguous. ``AssertZero`` is calibrated with the
        circuit-wide average once it has enough instances.
        """
        db = self.cost_db
        for op_name, instances in operation_types.items():
            if not instances or op_name == OpcodeType.BLACK_BOX_FUNCTION.value:
                continue

            for name, count, unit_cost in analysis.black_box_functions:
                if name == op_name and count == 1:
                    db.update(op_name, unit_cost, circuit=circuit)
                    break

            if (
                op_name == OpcodeType.ASSERT_ZERO.value
                and len(instances) >= ASSERT_ZERO_CALIBRATION_MIN
            ):
                db.update(op_name, analysis.constraints // len(instances), circuit=circuit)

        db.save()


def analyze_circuit(path: str | Path, cost_db: CostDatabase | None = None) -> CircuitAnalysis:
    """Analyze ``path`` against the process-wide (or given) cost database."""
    return CircuitAnalyzer(cost_db=cost_db).analyze(path)
