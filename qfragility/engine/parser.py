"""Circuit text parsing: structured JSON gate lists and an OpenQASM 2.0 subset.

The two dialects follow different error policies. Structured input is
expected to come from tools, so a malformed entry or an unknown gate raises
:class:`CircuitParseError`. QASM is typed by hand while exploring, so any
line the parser does not understand is skipped and parsing carries on.
"""

from __future__ import annotations

import json
import logging
import math
import re

from .circuit import CircuitGate, ParsedCircuit
from .gate_registry import GateRegistry
from .gates import Gate, GateSymbol, GateType

logger = logging.getLogger(__name__)


class CircuitParseError(ValueError):
    """Raised for malformed structured circuit input."""


# ---------------------------------------------------------------------------
# Structured (JSON) dialect
# ---------------------------------------------------------------------------

def parse_gate_list(source: str | dict | list) -> ParsedCircuit:
    """Parse ``{"qubits"?: n, "gates": [...]}`` or a bare list of gates.

    Each gate is ``{"gate": "H", "qubit": 0, "target"?: 1, "angle"?: 1.57}``.
    Only the gate symbol and field types are checked; qubit indices are not
    compared against the declared qubit count.
    """
    data = source
    if isinstance(source, str):
        try:
            data = json.loads(source)
        except json.JSONDecodeError as e:
            raise CircuitParseError(f"Invalid JSON format: {e.msg}") from e

    declared = 1
    if isinstance(data, dict):
        gates_data = data.get("gates", [])
        if "qubits" in data:
            declared = _int_field(data["qubits"], "qubits", minimum=1)
    elif isinstance(data, list):
        gates_data = data
    else:
        raise CircuitParseError("Circuit must be an object with a 'gates' list or a list of gates")

    if not isinstance(gates_data, list):
        raise CircuitParseError("'gates' must be a list")

    registry = GateRegistry.instance()
    gates = []
    for idx, entry in enumerate(gates_data):
        if not isinstance(entry, dict):
            raise CircuitParseError(f"Gate #{idx} must be an object, got {type(entry).__name__}")
        name = entry.get("gate", entry.get("id"))
        if not isinstance(name, str):
            raise CircuitParseError(f"Gate #{idx} is missing a 'gate' name")
        try:
            symbol = registry.lookup(name)
        except KeyError:
            raise CircuitParseError(f"Gate #{idx}: unknown gate '{name}'") from None

        qubit = _int_field(entry.get("qubit", 0), f"Gate #{idx} qubit")
        target = entry.get("target")
        if target is not None:
            target = _int_field(target, f"Gate #{idx} target")
        angle = entry.get("angle")
        if angle is not None:
            if isinstance(angle, bool) or not isinstance(angle, (int, float)) \
                    or not math.isfinite(angle):
                raise CircuitParseError(f"Gate #{idx} angle must be a finite number")
            angle = float(angle)

        gates.append(CircuitGate(Gate(symbol, angle), qubit, target))

    return ParsedCircuit(gates=gates, num_qubits=declared, dialect="json")


def _int_field(value, label: str, minimum: int = 0) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise CircuitParseError(f"{label} must be an integer >= {minimum}, got {value!r}")
    return value


# ---------------------------------------------------------------------------
# OpenQASM 2.0 subset
# ---------------------------------------------------------------------------

_SKIP_PREFIXES = ("OPENQASM", "include", "qreg", "creg", "//", "barrier")

_MEASURE_RE = re.compile(r"^measure\s+\w+\[(\d+)\]", re.IGNORECASE)
_CX_RE = re.compile(r"^cx\s+\w+\[(\d+)\]\s*,\s*\w+\[(\d+)\]", re.IGNORECASE)
_ROTATION_RE = re.compile(r"^(rx|ry|rz)\s*\(([^)]*)\)\s*\w+\[(\d+)\]", re.IGNORECASE)
_GATE_RE = re.compile(r"^(\w+)\s+\w+\[(\d+)\]")

_ANGLE_TERM_RE = re.compile(r"^(\d+(\.\d*)?|\.\d+|pi)$", re.IGNORECASE)


def parse_angle(expr: str) -> float | None:
    """Evaluate ``[-]term([*/]term)*`` where a term is a number or ``pi``.

    Returns None for anything else, including division by zero.
    """
    expr = expr.replace(" ", "")
    sign = 1.0
    if expr.startswith("-"):
        sign, expr = -1.0, expr[1:]
    tokens = re.split(r"([*/])", expr)
    if not tokens or len(tokens) % 2 == 0:
        return None

    def _term(tok: str) -> float | None:
        if not _ANGLE_TERM_RE.match(tok):
            return None
        return math.pi if tok.lower() == "pi" else float(tok)

    value = _term(tokens[0])
    if value is None:
        return None
    for op, tok in zip(tokens[1::2], tokens[2::2]):
        operand = _term(tok)
        if operand is None:
            return None
        if op == "*":
            value *= operand
        elif operand == 0:
            return None
        else:
            value /= operand
    return sign * value


def _parse_qasm_line(line: str, registry: GateRegistry) -> CircuitGate | None:
    m = _MEASURE_RE.match(line)
    if m:
        return CircuitGate(Gate(GateSymbol.M), int(m.group(1)))

    m = _CX_RE.match(line)
    if m:
        return CircuitGate(Gate(GateSymbol.CNOT), int(m.group(1)), int(m.group(2)))

    m = _ROTATION_RE.match(line)
    if m:
        angle = parse_angle(m.group(2))
        if angle is None:
            return None
        gate_def = registry.from_qasm(m.group(1).lower())
        return CircuitGate(Gate(gate_def.symbol, angle), int(m.group(3)))

    m = _GATE_RE.match(line)
    if m:
        gate_def = registry.from_qasm(m.group(1).lower())
        if (gate_def is not None and gate_def.gate_type == GateType.SINGLE
                and not gate_def.takes_angle):
            return CircuitGate(Gate(gate_def.symbol), int(m.group(2)))
    return None


def parse_qasm(text: str) -> ParsedCircuit:
    """Line-oriented OpenQASM 2.0 subset; unknown lines are dropped."""
    registry = GateRegistry.instance()
    gates = []
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.split("//", 1)[0] if not raw.lstrip().startswith("//") else ""
        line = line.strip().rstrip(";").strip()
        if not line or line.startswith(_SKIP_PREFIXES):
            continue
        gate = _parse_qasm_line(line, registry)
        if gate is None:
            logger.debug("Skipping unrecognized QASM line %d: %r", lineno, raw)
            continue
        gates.append(gate)
    return ParsedCircuit(gates=gates, dialect="qasm")


def parse_circuit(text: str) -> ParsedCircuit:
    """Dispatch on the first non-blank character: ``{``/``[`` means JSON."""
    if text.lstrip().startswith(("{", "[")):
        return parse_gate_list(text)
    return parse_qasm(text)
