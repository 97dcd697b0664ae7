"""Report generation for circuit analyses: JSON export and CSV statistics."""

from __future__ import annotations

import csv
import io
import logging
from datetime import datetime
from pathlib import Path

from noirprof.core.types import CircuitAnalysis, OperationCategory

logger = logging.getLogger(__name__)

STATS_COLUMNS = [
    "Circuit",
    "Constraints",
    "Opcodes",
    "ExternalOps",
    "PublicInputs",
    "PrivateInputs",
    "OutputCount",
    "AvgCostPerOp",
]


def _csv_line(values: list[object]) -> str:
    buf = io.StringIO()
    csv.writer(buf, lineterminator="").writerow(values)
    return buf.getvalue()


class ReportGenerator:
    """Render circuit analyses for export.

    Features:
    - Pretty JSON of a single analysis
    - Constraint distribution by category
    - Research CSV rows and per-circuit CSV statistics files
    """

    def generate_json(self, analysis: CircuitAnalysis) -> str:
        """Pretty JSON of the analysis, tuples rendered as arrays."""
        return analysis.model_dump_json(indent=2)

    @staticmethod
    def constraint_breakdown(analysis: CircuitAnalysis) -> dict[str, int]:
        """Constraints per category, largest first, empty categories omitted.

        Arithmetic is counted per opcode, external per call at unit cost;
        whatever remains is attributed to other operations.
        """
        external = analysis.external_constraints
        arithmetic = sum(
            count
            for op_type, count in analysis.operation_counts
            if op_type == OperationCategory.CONSTRAINT.value
            or "Assert" in op_type
            or "Arithmetic" in op_type
        )
        other = max(analysis.constraints - external - arithmetic, 0)

        categories = {
            "External Operations": external,
            "Arithmetic Operations": arithmetic,
            "Other Operations": other,
        }
        ranked = sorted(
            ((name, value) for name, value in categories.items() if value > 0),
            key=lambda kv: kv[1],
            reverse=True,
        )
        return dict(ranked)

    # ── Statistics (CSV) ─────────────────────────────────────────────────────

    @staticmethod
    def stats_header() -> str:
        return ",".join(STATS_COLUMNS)

    @staticmethod
    def stats_row(name: str, analysis: CircuitAnalysis) -> str:
        return _csv_line([
            name,
            analysis.constraints,
            analysis.total_opcodes,
            len(analysis.black_box_functions),
            analysis.public_inputs,
            analysis.private_inputs,
            analysis.return_values,
            f"{analysis.constraints_per_opcode:.2f}",
        ])

    def generate_circuit_stats(self, name: str, analysis: CircuitAnalysis) -> str:
        """Detailed per-circuit CSV document."""
        lines = [
            f"# NOIR PROFILER CIRCUIT ANALYSIS: {name}",
            f"# Generated on {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
            "",
            "METRIC,VALUE",
            _csv_line(["Constraints", analysis.constraints]),
            _csv_line(["Opcodes", analysis.total_opcodes]),
            _csv_line(["Public Inputs", analysis.public_inputs]),
            _csv_line(["Private Inputs", analysis.private_inputs]),
            _csv_line(["Return Values", analysis.return_values]),
            "",
            "OPERATION,COUNT",
        ]
        lines.extend(_csv_line([op, count]) for op, count in analysis.operation_counts)

        if analysis.black_box_functions:
            lines += ["", "EXTERNAL_OPERATION,CALLS,CONSTRAINTS_EACH"]
            lines.extend(
                _csv_line([fn_name, count, cost])
                for fn_name, count, cost in analysis.black_box_functions
            )

        breakdown = self.constraint_breakdown(analysis)
        if breakdown:
            lines += ["", "CATEGORY,CONSTRAINTS,PERCENTAGE"]
            for category, value in breakdown.items():
                percent = value / analysis.constraints * 100.0 if analysis.constraints else 0.0
                lines.append(_csv_line([category, value, f"{percent:.1f}%"]))

        return "\n".join(lines) + "\n"

    def write_circuit_stats(
        self,
        name: str,
        analysis: CircuitAnalysis,
        stats_dir: str | Path,
    ) -> Path | None:
        """Write the per-circuit CSV to ``<stats_dir>/<name>.csv``.

        Returns the written path, or None if the write failed.
        """
        stats_dir = Path(stats_dir)
        target = stats_dir / f"{Path(name).stem}.csv"
        try:
            stats_dir.mkdir(parents=True, exist_ok=True)
            target.write_text(self.generate_circuit_stats(name, analysis), encoding="utf-8")
        except OSError as exc:
            logger.warning("Could not write stats for %s: %s", name, exc)
            return None
        return target
