"""Shared enums and types used across the profiler."""

from __future__ import annotations

import enum
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field


# ── Enums ────────────────────────────────────────────────────────────────────


class OpcodeType(str, enum.Enum):
    """ACIR opcode types with dedicated cost rules."""

    ASSERT_ZERO = "AssertZero"
    BLACK_BOX_FUNCTION = "BlackBoxFunction"


class OperationCategory(str, enum.Enum):
    """Coarse categories for the opcode histogram.

    Opcodes without a dedicated rule are counted under their raw type string.
    """

    EXTERNAL = "External"
    CONSTRAINT = "Constraint"


# ── Cost database ────────────────────────────────────────────────────────────


class CostEntry(NamedTuple):
    """Calibrated cost of a single named operation."""

    cost: int
    confidence: float
    samples: int


class OperationMatch(NamedTuple):
    """A cost database entry whose (perturbed) cost is close to a target."""

    name: str
    cost: int
    confidence: float


class CostDatabaseSnapshot(BaseModel):
    """Point-in-time copy of the cost database."""

    costs: dict[str, CostEntry] = Field(default_factory=dict)
    last_updated: str | None = None


# ── Circuit analysis ─────────────────────────────────────────────────────────


class CircuitAnalysis(BaseModel):
    """Cost profile of a single compiled circuit."""

    model_config = ConfigDict(frozen=True)

    constraints: int = 0
    bottlenecks: tuple[tuple[str, int], ...] = ()
    total_opcodes: int = 0
    operation_counts: tuple[tuple[str, int], ...] = ()
    black_box_functions: tuple[tuple[str, int, int], ...] = ()
    public_inputs: int = 0
    private_inputs: int = 0
    return_values: int = 0
    estimated_proving_time: float = 0.0
    confidence: float = 0.0

    @property
    def constraints_per_opcode(self) -> float:
        if self.total_opcodes == 0:
            return 0.0
        return self.constraints / self.total_opcodes

    @property
    def proving_efficiency_us(self) -> float:
        """Estimated microseconds of proving time per constraint."""
        if self.constraints == 0:
            return 0.0
        return self.estimated_proving_time / self.constraints * 1000.0

    @property
    def external_constraints(self) -> int:
        return sum(count * cost for _, count, cost in self.black_box_functions)

    def operation_count(self, category: str) -> int:
        for name, count in self.operation_counts:
            if name == category:
                return count
        return 0

    def black_box_calls(self, name: str) -> int:
        for fn_name, count, _ in self.black_box_functions:
            if fn_name == name:
                return count
        return 0
