"""Circuit data model: an ordered gate list over n qubits."""

from __future__ import annotations

from dataclasses import dataclass, field

from .gates import Gate, GateSymbol


@dataclass(frozen=True)
class CircuitGate:
    """A gate placed on ``qubit`` (and ``target`` for two-qubit gates)."""
    gate: Gate
    qubit: int = 0
    target: int | None = None

    @property
    def symbol(self) -> GateSymbol:
        return self.gate.symbol

    def touches(self, qubit: int) -> bool:
        return self.qubit == qubit or self.target == qubit

    def max_qubit(self) -> int:
        return self.qubit if self.target is None else max(self.qubit, self.target)

    def to_dict(self) -> dict:
        d: dict = {"gate": self.gate.symbol.value, "qubit": self.qubit}
        if self.target is not None:
            d["target"] = self.target
        if self.gate.angle is not None:
            d["angle"] = self.gate.angle
        return d


@dataclass
class ParsedCircuit:
    """Gates in execution order, plus the qubit count they span."""
    gates: list[CircuitGate] = field(default_factory=list)
    num_qubits: int = 1
    dialect: str = "json"

    def __post_init__(self):
        self.num_qubits = max(self.num_qubits, infer_num_qubits(self.gates))

    def gate_count(self) -> int:
        return len(self.gates)

    def gates_on(self, qubit: int) -> list[CircuitGate]:
        return [g for g in self.gates if g.touches(qubit)]

    def to_dict(self) -> dict:
        return {
            "version": "1.0",
            "qubits": self.num_qubits,
            "gates": [g.to_dict() for g in self.gates],
        }


def infer_num_qubits(gates: list[CircuitGate]) -> int:
    """max(qubit, target) + 1 over all gates, at least 1."""
    if not gates:
        return 1
    return max(1, max(g.max_qubit() for g in gates) + 1)
