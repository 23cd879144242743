"""Single-qubit Bloch vector and noise parameter data model."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace

import numpy as np


@dataclass(frozen=True)
class BlochVector:
    """Immutable point in the Bloch ball.

    Length 1 is a pure state, length 0 the maximally mixed state.
    """
    x: float = 0.0
    y: float = 0.0
    z: float = 1.0

    @property
    def length(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)

    @property
    def purity(self) -> float:
        """Tr(rho^2) = (1 + r^2) / 2."""
        return (1.0 + self.length ** 2) / 2.0

    @property
    def coherence(self) -> float:
        """Transverse (x-y plane) magnitude."""
        return math.hypot(self.x, self.y)

    @property
    def p0(self) -> float:
        """Probability of reading |0> in the Z basis."""
        return min(1.0, max(0.0, (self.z + 1.0) / 2.0))

    @property
    def p1(self) -> float:
        return 1.0 - self.p0

    @property
    def health(self) -> float:
        """Vector length as a percentage."""
        return self.length * 100.0

    def is_finite(self) -> bool:
        return all(math.isfinite(c) for c in (self.x, self.y, self.z))

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    @classmethod
    def from_array(cls, arr: np.ndarray) -> BlochVector:
        return cls(float(arr[0]), float(arr[1]), float(arr[2]))

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "z": self.z}

    @classmethod
    def from_dict(cls, data: dict) -> BlochVector:
        return cls(
            x=float(data.get("x", 0.0)),
            y=float(data.get("y", 0.0)),
            z=float(data.get("z", 0.0)),
        )


PRESET_VECTORS: dict[str, BlochVector] = {
    "zero": BlochVector(0.0, 0.0, 1.0),
    "one": BlochVector(0.0, 0.0, -1.0),
    "plus": BlochVector(1.0, 0.0, 0.0),
    "minus": BlochVector(-1.0, 0.0, 0.0),
}


def preset_vector(name: str) -> BlochVector:
    if name not in PRESET_VECTORS:
        raise KeyError(f"Unknown preset '{name}', expected one of {sorted(PRESET_VECTORS)}")
    return PRESET_VECTORS[name]


# Wire (camelCase) name -> attribute name
_NOISE_FIELDS = {
    "depolarizing": "depolarizing",
    "phaseFlip": "phase_flip",
    "bitFlip": "bit_flip",
    "amplitudeDamping": "amplitude_damping",
    "speed": "speed",
}


@dataclass(frozen=True)
class NoiseParams:
    """Channel strengths in [0, 1] plus a positive rate multiplier.

    A new instance replaces the old one; the stepper picks it up on the
    next step.
    """
    depolarizing: float = 0.0
    phase_flip: float = 0.0
    bit_flip: float = 0.0
    amplitude_damping: float = 0.0
    speed: float = 1.0

    def __post_init__(self):
        for name in ("depolarizing", "phase_flip", "bit_flip", "amplitude_damping"):
            value = getattr(self, name)
            if not math.isfinite(value) or not 0 <= value <= 1:
                raise ValueError(f"{name} must be in [0, 1], got {value}")
        if not math.isfinite(self.speed) or self.speed <= 0:
            raise ValueError(f"speed must be a positive finite number, got {self.speed}")

    @property
    def is_noiseless(self) -> bool:
        return (self.depolarizing == 0 and self.phase_flip == 0
                and self.bit_flip == 0 and self.amplitude_damping == 0)

    def with_preset(self, name: str) -> NoiseParams:
        """Apply a named channel preset, keeping the current speed."""
        if name not in NOISE_PRESETS:
            raise KeyError(f"Unknown noise preset '{name}'")
        return replace(self, **NOISE_PRESETS[name])

    def to_dict(self) -> dict:
        return {wire: getattr(self, attr) for wire, attr in _NOISE_FIELDS.items()}

    @classmethod
    def from_dict(cls, data: dict) -> NoiseParams:
        """Build from wire (camelCase) or attribute (snake_case) keys."""
        kwargs = {}
        for wire, attr in _NOISE_FIELDS.items():
            if wire in data:
                kwargs[attr] = float(data[wire])
            elif attr in data:
                kwargs[attr] = float(data[attr])
        return cls(**kwargs)


NOISE_PRESETS: dict[str, dict[str, float]] = {
    "clean": {"depolarizing": 0.0, "phase_flip": 0.0, "bit_flip": 0.0,
              "amplitude_damping": 0.0},
    "noisy": {"depolarizing": 0.3, "phase_flip": 0.2, "bit_flip": 0.1,
              "amplitude_damping": 0.1},
    "t1_only": {"depolarizing": 0.0, "phase_flip": 0.0, "bit_flip": 0.0,
                "amplitude_damping": 0.6},
    "t2_like": {"depolarizing": 0.0, "phase_flip": 0.6, "bit_flip": 0.0,
                "amplitude_damping": 0.0},
}
