"""Continuous-time noise channels acting on a single Bloch vector.

Each channel shrinks the vector with its own geometric pattern. The
stepper composes them in a fixed order after a coherent precession about
the z-axis. The combination is a pedagogical approximation (independent
exponential decays applied in sequence), not a solution of a master
equation, and the rate multipliers below are tuning values rather than
physical constants.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Iterator

import numpy as np

from .bloch import BlochVector, NoiseParams

BASE_DT = 0.01            # seconds of simulated time per step
LARMOR_OMEGA = 5.0        # rad/s precession about z

DEPOLARIZING_RATE = 2.0
AMPLITUDE_DAMPING_RATE = 1.5
PHASE_DAMPING_RATE = 3.0
BIT_FLIP_RATE = 2.0


class NoiseChannel(ABC):
    """Abstract base for a single decay channel."""

    rate_constant: float = 1.0

    def __init__(self, strength: float):
        if not math.isfinite(strength) or not 0 <= strength <= 1:
            raise ValueError(f"Strength must be in [0, 1], got {strength}")
        self._strength = strength

    @property
    def strength(self) -> float:
        return self._strength

    def rate(self, speed: float) -> float:
        """Decay rate gamma for the given speed multiplier."""
        return self._strength * self.rate_constant * speed

    @abstractmethod
    def apply(self, vec: np.ndarray, dt: float, speed: float) -> np.ndarray:
        ...


class DepolarizingChannel(NoiseChannel):
    """Isotropic shrink toward the centre of the ball."""

    rate_constant = DEPOLARIZING_RATE

    def apply(self, vec: np.ndarray, dt: float, speed: float) -> np.ndarray:
        return vec * math.exp(-self.rate(speed) * dt)


class AmplitudeDampingChannel(NoiseChannel):
    """T1 relaxation: x, y shrink at half rate while z relaxes toward +1."""

    rate_constant = AMPLITUDE_DAMPING_RATE

    def apply(self, vec: np.ndarray, dt: float, speed: float) -> np.ndarray:
        gamma = self.rate(speed)
        factor_xy = math.exp(-gamma * dt / 2)
        factor_z = math.exp(-gamma * dt)
        return np.array([
            vec[0] * factor_xy,
            vec[1] * factor_xy,
            1.0 - (1.0 - vec[2]) * factor_z,
        ])


class PhaseDampingChannel(NoiseChannel):
    """T2 dephasing: transverse components shrink, z untouched."""

    rate_constant = PHASE_DAMPING_RATE

    def apply(self, vec: np.ndarray, dt: float, speed: float) -> np.ndarray:
        factor = math.exp(-self.rate(speed) * dt)
        return vec * np.array([factor, factor, 1.0])


class BitFlipChannel(NoiseChannel):
    """Shrinks y and z, leaving the x-axis invariant."""

    rate_constant = BIT_FLIP_RATE

    def apply(self, vec: np.ndarray, dt: float, speed: float) -> np.ndarray:
        factor = math.exp(-self.rate(speed) * dt)
        return vec * np.array([1.0, factor, factor])


class NoiseModel:
    """Ordered set of active channels built from a NoiseParams value."""

    def __init__(self, speed: float = 1.0):
        self._channels: list[NoiseChannel] = []
        self._speed = speed

    @property
    def channels(self) -> list[NoiseChannel]:
        return list(self._channels)

    @property
    def speed(self) -> float:
        return self._speed

    def add_channel(self, channel: NoiseChannel):
        self._channels.append(channel)

    @classmethod
    def from_params(cls, params: NoiseParams) -> NoiseModel:
        """Channels with strength 0 are left out entirely."""
        model = cls(speed=params.speed)
        ordered = (
            (DepolarizingChannel, params.depolarizing),
            (AmplitudeDampingChannel, params.amplitude_damping),
            (PhaseDampingChannel, params.phase_flip),
            (BitFlipChannel, params.bit_flip),
        )
        for channel_cls, strength in ordered:
            if strength > 0:
                model.add_channel(channel_cls(strength))
        return model

    def apply(self, vec: np.ndarray, dt: float) -> np.ndarray:
        for channel in self._channels:
            vec = channel.apply(vec, dt, self._speed)
        return vec


def precession_matrix(angle: float) -> np.ndarray:
    """Rotation of the Bloch vector about z by ``angle`` radians."""
    c, s = math.cos(angle), math.sin(angle)
    return np.array([[c, -s, 0.0],
                     [s, c, 0.0],
                     [0.0, 0.0, 1.0]])


def clamp_to_ball(vec: np.ndarray) -> np.ndarray:
    """Rescale onto the unit sphere if numerical drift pushed it outside."""
    r2 = float(vec @ vec)
    if r2 > 1.0:
        return vec / math.sqrt(r2)
    return vec


class NoiseChannelStepper:
    """Advances a Bloch vector by one fixed time increment.

    Step order: precession, depolarizing, amplitude damping, phase damping,
    bit flip, clamp. Precession runs first so the dissipative terms act on
    the rotated frame.
    """

    def __init__(self, dt: float = BASE_DT, omega: float = LARMOR_OMEGA):
        if not math.isfinite(dt) or dt <= 0:
            raise ValueError(f"dt must be a positive finite number, got {dt}")
        if not math.isfinite(omega):
            raise ValueError(f"omega must be finite, got {omega}")
        self._dt = dt
        self._omega = omega

    @property
    def dt(self) -> float:
        return self._dt

    def step(self, vector: BlochVector, params: NoiseParams) -> BlochVector:
        self._check_inputs(vector, params)
        vec = vector.as_array()
        vec = precession_matrix(self._omega * self._dt * params.speed) @ vec
        vec = NoiseModel.from_params(params).apply(vec, self._dt)
        vec = clamp_to_ball(vec)
        return BlochVector.from_array(vec)

    def evolve(self, vector: BlochVector, params: NoiseParams,
               n_steps: int) -> Iterator[BlochVector]:
        """Yields the vector after each of ``n_steps`` steps."""
        if n_steps < 0:
            raise ValueError(f"n_steps must be >= 0, got {n_steps}")
        for _ in range(n_steps):
            vector = self.step(vector, params)
            yield vector

    def run(self, vector: BlochVector, params: NoiseParams,
            n_steps: int) -> BlochVector:
        """Final vector after ``n_steps`` steps."""
        for vector in self.evolve(vector, params, n_steps):
            pass
        return vector

    @staticmethod
    def _check_inputs(vector: BlochVector, params: NoiseParams):
        if not vector.is_finite():
            raise ValueError(f"Refusing to step a non-finite vector: {vector}")
        values = (params.depolarizing, params.phase_flip, params.bit_flip,
                  params.amplitude_damping, params.speed)
        if not all(math.isfinite(v) for v in values) or params.speed <= 0:
            raise ValueError(f"Refusing to step with invalid noise params: {params}")
