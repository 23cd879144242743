"""Born-rule measurement of a single Bloch vector."""

from __future__ import annotations

import math
from enum import Enum

import numpy as np

from .bloch import BlochVector


class MeasurementBasis(Enum):
    """Measurement basis selection."""
    Z = "Z"  # computational basis (default)
    X = "X"
    Y = "Y"


_BASIS_AXES = {
    MeasurementBasis.Z: (0.0, 0.0, 1.0),
    MeasurementBasis.X: (1.0, 0.0, 0.0),
    MeasurementBasis.Y: (0.0, 1.0, 0.0),
}


def axis_from_angle(theta: float) -> tuple[float, float, float]:
    """Unit axis in the x-z plane, tilted ``theta`` radians from +z."""
    return (math.sin(theta), 0.0, math.cos(theta))


class MeasurementEngine:
    """Projective measurements of a (possibly mixed) single-qubit state."""

    @staticmethod
    def probability_up(vector: BlochVector,
                       axis: tuple[float, float, float]) -> float:
        """P(+1) along a unit axis n: (1 + n.r) / 2, clipped to [0, 1]."""
        nx, ny, nz = axis
        p = (1.0 + nx * vector.x + ny * vector.y + nz * vector.z) / 2.0
        return min(1.0, max(0.0, p))

    @staticmethod
    def measure(vector: BlochVector,
                basis: MeasurementBasis = MeasurementBasis.Z,
                rng: np.random.Generator | None = None) -> int:
        """Single shot. Returns 0 for the +1 eigenstate, 1 otherwise.

        The caller's vector is not collapsed.
        """
        rng = rng or np.random.default_rng()
        p0 = MeasurementEngine.probability_up(vector, _BASIS_AXES[basis])
        return 0 if rng.random() < p0 else 1

    @staticmethod
    def sample(vector: BlochVector, shots: int,
               basis: MeasurementBasis = MeasurementBasis.Z,
               rng: np.random.Generator | None = None) -> dict[str, int]:
        """Sample ``shots`` outcomes; both keys are always present."""
        if shots < 0:
            raise ValueError(f"shots must be >= 0, got {shots}")
        rng = rng or np.random.default_rng()
        p0 = MeasurementEngine.probability_up(vector, _BASIS_AXES[basis])
        zeros = int(rng.binomial(shots, p0))
        return {"0": zeros, "1": shots - zeros}
