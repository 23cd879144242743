"""Gate symbols and their action on the Bloch vector as 3x3 real maps."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable

import numpy as np


class GateSymbol(Enum):
    H = "H"
    X = "X"
    Y = "Y"
    Z = "Z"
    S = "S"
    T = "T"
    CNOT = "CNOT"
    RX = "Rx"
    RY = "Ry"
    RZ = "Rz"
    M = "M"


class GateType(Enum):
    SINGLE = "single"
    CONTROLLED = "controlled"
    MEASUREMENT = "measurement"


ROTATION_SYMBOLS = frozenset({GateSymbol.RX, GateSymbol.RY, GateSymbol.RZ})

# Rotation angle used when a rotation gate carries none
DEFAULT_ROTATION_ANGLE = math.pi

# The tracked qubit's vector shrinks by this factor whenever it takes part
# in a CNOT. No two-qubit state is kept, so entanglement is shown only as
# lost single-qubit purity.
CNOT_ATTENUATION = 0.7


@dataclass(frozen=True)
class Gate:
    """A gate symbol with an optional rotation angle (radians)."""
    symbol: GateSymbol
    angle: float | None = None

    @property
    def effective_angle(self) -> float:
        return DEFAULT_ROTATION_ANGLE if self.angle is None else self.angle


@dataclass(frozen=True)
class GateDefinition:
    """Immutable definition of a gate's Bloch-vector action."""
    symbol: GateSymbol
    display_name: str
    gate_type: GateType
    num_qubits: int
    takes_angle: bool
    map_func: Callable[..., np.ndarray]
    qasm_name: str | None = None


# --- Fixed maps on (x, y, z) ---

I_MAP = np.eye(3)

# Hadamard exchanges the x and z axes
H_MAP = np.array([[0.0, 0.0, 1.0],
                  [0.0, 1.0, 0.0],
                  [1.0, 0.0, 0.0]])

X_MAP = np.diag([1.0, -1.0, -1.0])
Y_MAP = np.diag([-1.0, 1.0, -1.0])
Z_MAP = np.diag([-1.0, -1.0, 1.0])

CNOT_MAP = CNOT_ATTENUATION * np.eye(3)

# Non-selective Z measurement keeps only the populations
MEASURE_MAP = np.diag([0.0, 0.0, 1.0])


# --- Rotations ---

def rx_map(theta: float) -> np.ndarray:
    c, s = math.cos(theta), math.sin(theta)
    return np.array([[1.0, 0.0, 0.0],
                     [0.0, c, -s],
                     [0.0, s, c]])


def ry_map(theta: float) -> np.ndarray:
    c, s = math.cos(theta), math.sin(theta)
    return np.array([[c, 0.0, s],
                     [0.0, 1.0, 0.0],
                     [-s, 0.0, c]])


def rz_map(theta: float) -> np.ndarray:
    c, s = math.cos(theta), math.sin(theta)
    return np.array([[c, -s, 0.0],
                     [s, c, 0.0],
                     [0.0, 0.0, 1.0]])


S_MAP = rz_map(math.pi / 2)
T_MAP = rz_map(math.pi / 4)


def _const(matrix: np.ndarray) -> Callable[[float], np.ndarray]:
    """Returns a callable ignoring its angle and returning ``matrix``."""
    def _fn(_angle: float = 0.0) -> np.ndarray:
        return matrix
    return _fn
