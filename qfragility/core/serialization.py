"""Save/load for circuits: ``.qcirc`` JSON and OpenQASM text."""

from __future__ import annotations

import json
from pathlib import Path

from qfragility.engine.circuit import ParsedCircuit
from qfragility.engine.parser import parse_gate_list, parse_qasm


class CircuitSerializer:
    """JSON save/load for circuits; ``.qasm`` files load through the QASM parser."""

    FILE_VERSION = "1.0"
    FILE_EXTENSION = ".qcirc"

    @staticmethod
    def save(circuit: ParsedCircuit, filepath: Path | str):
        filepath = Path(filepath)
        data = circuit.to_dict()
        data["version"] = CircuitSerializer.FILE_VERSION
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    @staticmethod
    def load(filepath: Path | str) -> ParsedCircuit:
        filepath = Path(filepath)
        text = filepath.read_text(encoding='utf-8')
        if filepath.suffix.lower() == ".qasm":
            return parse_qasm(text)
        return parse_gate_list(text)
