"""Circuit comparison and cost-model attribution of constraint deltas."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from noirprof.analyzer.circuit_analyzer import CircuitAnalyzer
from noirprof.core.cost_db import CostDatabase
from noirprof.core.types import CircuitAnalysis, OperationMatch

logger = logging.getLogger(__name__)

MIN_ATTRIBUTION_DELTA = 100


@dataclass
class CircuitDiff:
    """Signed differences between two analyses (second minus first)."""

    constraint_delta: int = 0
    operation_diffs: list[tuple[str, int]] = field(default_factory=list)
    external_diffs: list[tuple[str, int]] = field(default_factory=list)


def _signed_diffs(before: dict[str, int], after: dict[str, int]) -> list[tuple[str, int]]:
    names = list(dict.fromkeys([*before, *after]))
    diffs = [(name, after.get(name, 0) - before.get(name, 0)) for name in names]
    diffs = [(name, d) for name, d in diffs if d != 0]
    diffs.sort(key=lambda item: abs(item[1]), reverse=True)
    return diffs


def diff_analyses(
    first: CircuitAnalysis,
    second: CircuitAnalysis,
    min_delta: int = MIN_ATTRIBUTION_DELTA,
) -> CircuitDiff | None:
    """Per-category and per-primitive count diffs, or None for small deltas."""
    delta = second.constraints - first.constraints
    if abs(delta) < min_delta:
        return None

    return CircuitDiff(
        constraint_delta=delta,
        operation_diffs=_signed_diffs(
            dict(first.operation_counts), dict(second.operation_counts)
        ),
        external_diffs=_signed_diffs(
            {name: count for name, count, _ in first.black_box_functions},
            {name: count for name, count, _ in second.black_box_functions},
        ),
    )


def attribute_delta(
    delta: int,
    cost_db: CostDatabase,
    tolerance_percent: float = 5.0,
    limit: int = 3,
) -> list[OperationMatch]:
    """Known operations whose cost could explain a constraint delta."""
    return cost_db.find_operations_by_cost(abs(delta), tolerance_percent)[:limit]


def match_quality(match: OperationMatch, delta: int) -> str:
    """Human label for how closely ``match`` explains ``delta``."""
    if match.cost == 0:
        return "resembles"
    diff_percent = abs(match.cost - abs(delta)) / match.cost * 100.0
    if diff_percent < 1.0:
        return "strong similarity to"
    if diff_percent < 3.0:
        return "possible"
    return "resembles"


def compare_circuits(
    first: str | Path,
    second: str | Path,
    analyzer: CircuitAnalyzer | None = None,
) -> tuple[CircuitAnalysis, CircuitAnalysis]:
    """Analyze two circuits in order; each run calibrates the cost database."""
    analyzer = analyzer or CircuitAnalyzer()
    analysis1 = analyzer.analyze(first)
    analysis2 = analyzer.analyze(second)

    diff = diff_analyses(analysis1, analysis2)
    if diff is not None:
        logger.debug(
            "Constraint delta %+d: operations %s, externals %s",
            diff.constraint_delta, diff.operation_diffs, diff.external_diffs,
        )

    return analysis1, analysis2
