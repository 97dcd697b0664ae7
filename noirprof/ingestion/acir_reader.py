"""Field-level access to compiled ACIR circuit artifacts.

Only the subset of the artifact the cost model needs is exposed:

    {
      "opcodes":       [Opcode, ...],
      "public_inputs": [...],
      "return_values": [...],
      "witnesses":     {name: ...}
    }

Every field is optional; absent or mistyped fields read as empty.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from noirprof.core.errors import CircuitDecodeError, CircuitReadError
from noirprof.core.types import OpcodeType


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _variables(items: Any) -> list[str]:
    return [
        item["variable"]
        for item in _as_list(items)
        if isinstance(item, dict) and isinstance(item.get("variable"), str)
    ]


@dataclass(frozen=True)
class Opcode:
    """A single ACIR opcode."""

    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def type(self) -> str:
        op_type = self.raw.get("type")
        return op_type if isinstance(op_type, str) else "Unknown"

    @property
    def function(self) -> str:
        """Black box function name."""
        name = self.raw.get("function")
        return name if isinstance(name, str) else "unknown"

    @property
    def terms(self) -> list[Any]:
        """Terms of an ``AssertZero`` expression."""
        return _as_list(_as_dict(self.raw.get("expression")).get("terms"))

    def witness_variables(self) -> list[str]:
        """Witness names this opcode references.

        Only ``AssertZero`` terms and black box inputs/outputs are inspected.
        """
        if self.type == OpcodeType.ASSERT_ZERO.value:
            return _variables(self.terms)
        if self.type == OpcodeType.BLACK_BOX_FUNCTION.value:
            return _variables(self.raw.get("inputs")) + _variables(self.raw.get("outputs"))
        return []


@dataclass(frozen=True)
class CircuitRecord:
    """A decoded circuit artifact."""

    data: dict[str, Any] = field(default_factory=dict)

    @property
    def opcodes(self) -> list[Opcode]:
        return [Opcode(op if isinstance(op, dict) else {}) for op in _as_list(self.data.get("opcodes"))]

    @property
    def public_input_count(self) -> int:
        return len(_as_list(self.data.get("public_inputs")))

    @property
    def return_value_count(self) -> int:
        return len(_as_list(self.data.get("return_values")))

    def witness_count(self) -> int:
        """Number of distinct witnesses.

        Uses the ``witnesses`` map when present, otherwise the set of
        variables referenced by the opcodes.
        """
        witnesses = self.data.get("witnesses")
        if isinstance(witnesses, dict):
            return len(witnesses)
        seen: set[str] = set()
        for op in self.opcodes:
            seen.update(op.witness_variables())
        return len(seen)


def parse_circuit(text: str, path: str | Path = "<memory>") -> CircuitRecord:
    """Decode circuit JSON text. Non-object documents read as empty records.

    Any document the decoder rejects, including over-long integer literals
    and nesting deeper than the interpreter stack, is a decode error.
    """
    try:
        data = json.loads(text)
    except (ValueError, RecursionError) as exc:
        raise CircuitDecodeError(path, str(exc)) from exc
    return CircuitRecord(_as_dict(data))


def read_circuit(path: str | Path) -> CircuitRecord:
    """Read and decode a circuit artifact from disk."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise CircuitDecodeError(path, str(exc)) from exc
    except OSError as exc:
        raise CircuitReadError(path, exc.strerror or str(exc)) from exc
    return parse_circuit(text, path)
