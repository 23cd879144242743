"""Gate registry using the Singleton pattern."""

from __future__ import annotations

from .gates import (
    GateDefinition, GateSymbol, GateType, _const,
    H_MAP, X_MAP, Y_MAP, Z_MAP, S_MAP, T_MAP, CNOT_MAP, MEASURE_MAP,
    rx_map, ry_map, rz_map,
)

# Accepted spellings beyond the canonical symbol values
_ALIASES = {
    "CX": GateSymbol.CNOT,
    "MEASURE": GateSymbol.M,
}


class GateRegistry:
    """Singleton registry mapping gate symbols to GateDefinition objects."""

    _instance: GateRegistry | None = None

    def __init__(self):
        self._gates: dict[GateSymbol, GateDefinition] = {}
        self._by_name: dict[str, GateSymbol] = {}

    @classmethod
    def instance(cls) -> GateRegistry:
        if cls._instance is None:
            cls._instance = cls()
            cls._instance._register_builtins()
        return cls._instance

    @classmethod
    def reset(cls):
        """Reset the singleton (for testing)."""
        cls._instance = None

    def _register_builtins(self):
        self.register(GateDefinition(
            symbol=GateSymbol.H, display_name="Hadamard", gate_type=GateType.SINGLE,
            num_qubits=1, takes_angle=False, map_func=_const(H_MAP), qasm_name="h"))

        self.register(GateDefinition(
            symbol=GateSymbol.X, display_name="Pauli-X", gate_type=GateType.SINGLE,
            num_qubits=1, takes_angle=False, map_func=_const(X_MAP), qasm_name="x"))

        self.register(GateDefinition(
            symbol=GateSymbol.Y, display_name="Pauli-Y", gate_type=GateType.SINGLE,
            num_qubits=1, takes_angle=False, map_func=_const(Y_MAP), qasm_name="y"))

        self.register(GateDefinition(
            symbol=GateSymbol.Z, display_name="Pauli-Z", gate_type=GateType.SINGLE,
            num_qubits=1, takes_angle=False, map_func=_const(Z_MAP), qasm_name="z"))

        self.register(GateDefinition(
            symbol=GateSymbol.S, display_name="S Gate", gate_type=GateType.SINGLE,
            num_qubits=1, takes_angle=False, map_func=_const(S_MAP), qasm_name="s"))

        self.register(GateDefinition(
            symbol=GateSymbol.T, display_name="T Gate", gate_type=GateType.SINGLE,
            num_qubits=1, takes_angle=False, map_func=_const(T_MAP), qasm_name="t"))

        self.register(GateDefinition(
            symbol=GateSymbol.RX, display_name="Rotation-X", gate_type=GateType.SINGLE,
            num_qubits=1, takes_angle=True, map_func=rx_map, qasm_name="rx"))

        self.register(GateDefinition(
            symbol=GateSymbol.RY, display_name="Rotation-Y", gate_type=GateType.SINGLE,
            num_qubits=1, takes_angle=True, map_func=ry_map, qasm_name="ry"))

        self.register(GateDefinition(
            symbol=GateSymbol.RZ, display_name="Rotation-Z", gate_type=GateType.SINGLE,
            num_qubits=1, takes_angle=True, map_func=rz_map, qasm_name="rz"))

        self.register(GateDefinition(
            symbol=GateSymbol.CNOT, display_name="Controlled-NOT",
            gate_type=GateType.CONTROLLED, num_qubits=2, takes_angle=False,
            map_func=_const(CNOT_MAP), qasm_name="cx"))

        self.register(GateDefinition(
            symbol=GateSymbol.M, display_name="Measurement",
            gate_type=GateType.MEASUREMENT, num_qubits=1, takes_angle=False,
            map_func=_const(MEASURE_MAP), qasm_name="measure"))

        for alias, symbol in _ALIASES.items():
            self._by_name[alias] = symbol

    def register(self, gate_def: GateDefinition):
        self._gates[gate_def.symbol] = gate_def
        self._by_name[gate_def.symbol.value.upper()] = gate_def.symbol

    def get(self, symbol: GateSymbol) -> GateDefinition:
        if symbol not in self._gates:
            raise KeyError(f"Gate '{symbol}' not found in registry")
        return self._gates[symbol]

    def lookup(self, name: str) -> GateSymbol:
        """Resolve a user-supplied name (case-insensitive, aliases allowed)."""
        key = name.strip().upper()
        if key not in self._by_name:
            raise KeyError(f"Unknown gate '{name}'")
        return self._by_name[key]

    def from_qasm(self, name: str) -> GateDefinition | None:
        for gate_def in self._gates.values():
            if gate_def.qasm_name == name:
                return gate_def
        return None

    def all_gates(self) -> list[GateDefinition]:
        return list(self._gates.values())

    def gate_names(self) -> list[str]:
        return [s.value for s in self._gates]
