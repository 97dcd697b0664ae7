"""Batch analysis of every circuit artifact under a directory."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from noirprof.analyzer.circuit_analyzer import CircuitAnalyzer
from noirprof.core.errors import BatchDirectoryError, InvalidCircuitError
from noirprof.core.types import CircuitAnalysis

logger = logging.getLogger(__name__)


@dataclass
class BatchItem:
    """Outcome of analyzing one file in a batch."""

    name: str
    path: Path
    analysis: CircuitAnalysis | None = None
    error: InvalidCircuitError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def iter_circuit_files(directory: Path) -> list[Path]:
    """Non-empty ``.json`` regular files under ``directory``, recursively."""
    files = []
    for path in sorted(directory.rglob("*.json")):
        try:
            if path.is_file() and path.stat().st_size > 0:
                files.append(path)
        except OSError:
            continue
    return files


def batch_analyze(
    directory: str | Path,
    analyzer: CircuitAnalyzer | None = None,
) -> list[BatchItem]:
    """Analyze every circuit in ``directory``.

    Per-file errors are captured on the returned items.

    Raises:
        BatchDirectoryError: ``directory`` is missing or not a directory.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise BatchDirectoryError(directory)

    analyzer = analyzer or CircuitAnalyzer()
    results: list[BatchItem] = []
    for path in iter_circuit_files(directory):
        try:
            results.append(BatchItem(path.name, path, analysis=analyzer.analyze(path)))
        except InvalidCircuitError as exc:
            logger.warning("Skipping %s: %s", path, exc, extra={"circuit": str(path)})
            results.append(BatchItem(path.name, path, error=exc))

    logger.info(
        "Batch over %s: %d circuits, %d failed",
        directory, len(results), sum(1 for r in results if not r.ok),
    )
    return results
