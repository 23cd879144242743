"""Discrete gate application on the tracked qubit's Bloch vector."""

from __future__ import annotations

import math
from typing import Generator

import numpy as np

from .bloch import BlochVector
from .circuit import CircuitGate, ParsedCircuit
from .gate_registry import GateRegistry
from .gates import Gate, GateType
from .noise import clamp_to_ball


class GateApplier:
    """Maps gates to Bloch-vector transformations.

    ``gate_noise`` in [0, 1] drives a decoherence pass after every applied
    gate: the depolarizing shrink with gamma*dt = gate_noise.
    """

    def __init__(self, gate_noise: float = 0.0):
        if not math.isfinite(gate_noise) or not 0 <= gate_noise <= 1:
            raise ValueError(f"gate_noise must be in [0, 1], got {gate_noise}")
        self._gate_noise = gate_noise
        self._registry = GateRegistry.instance()

    @property
    def gate_noise(self) -> float:
        return self._gate_noise

    def transform(self, vector: BlochVector, gate: Gate) -> BlochVector:
        """The bare gate map, without the decoherence pass."""
        gate_def = self._registry.get(gate.symbol)
        matrix = gate_def.map_func(gate.effective_angle)
        return BlochVector.from_array(matrix @ vector.as_array())

    def apply(self, vector: BlochVector, gate: Gate) -> BlochVector:
        if not vector.is_finite():
            raise ValueError(f"Vector components must be finite, got {vector}")
        vec = self.transform(vector, gate).as_array()
        if self._gate_noise > 0:
            vec = vec * math.exp(-self._gate_noise)
        return BlochVector.from_array(clamp_to_ball(vec))

    def apply_circuit_gate(self, vector: BlochVector, circuit_gate: CircuitGate,
                           tracked_qubit: int = 0) -> BlochVector:
        """Apply only if the gate acts on ``tracked_qubit``.

        Single-qubit gates and measurements must sit on the tracked qubit;
        a CNOT counts when the tracked qubit is its control or its target.
        """
        gate_def = self._registry.get(circuit_gate.symbol)
        if gate_def.gate_type == GateType.CONTROLLED:
            acts = circuit_gate.touches(tracked_qubit)
        else:
            acts = circuit_gate.qubit == tracked_qubit
        if not acts:
            return vector
        return self.apply(vector, circuit_gate.gate)

    def run(self, circuit: ParsedCircuit, initial: BlochVector | None = None,
            tracked_qubit: int = 0) -> BlochVector:
        """Final vector of ``tracked_qubit`` after the whole circuit."""
        vector = initial or BlochVector(0.0, 0.0, 1.0)
        for gate in circuit.gates:
            vector = self.apply_circuit_gate(vector, gate, tracked_qubit)
        return vector

    def run_step_by_step(
        self,
        circuit: ParsedCircuit,
        initial: BlochVector | None = None,
        tracked_qubit: int = 0,
    ) -> Generator[tuple[int, BlochVector], None, None]:
        """Yields (gate_index, vector) after each gate, starting with (-1, initial)."""
        vector = initial or BlochVector(0.0, 0.0, 1.0)
        yield -1, vector
        for idx, gate in enumerate(circuit.gates):
            vector = self.apply_circuit_gate(vector, gate, tracked_qubit)
            yield idx, vector

    def trajectory(self, circuit: ParsedCircuit, initial: BlochVector | None = None,
                   tracked_qubit: int = 0) -> np.ndarray:
        """(n_gates + 1, 3) array of vectors, initial state first."""
        return np.array([
            v.as_array()
            for _, v in self.run_step_by_step(circuit, initial, tracked_qubit)
        ])
