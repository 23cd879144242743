"""Cavity QED: atom/photon population exchange in a lossy cavity.

A two-population rate model of the Jaynes-Cummings system restricted to
|e,0> (atom excited, ``pe``) and |g,1> (photon in the cavity, ``pg``).
The coupling ``g`` swaps population between the two, ``gamma`` drains the
atom and ``kappa`` leaks the photon out through the mirrors. Each step is
explicit Euler on

    dPe/dt = -2g sqrt(Pe Pg + eps) sin(2gt) - gamma Pe
    dPg/dt = +2g sqrt(Pe Pg + eps) sin(2gt) - kappa Pg

followed by clamping each population to [0, 1] and renormalizing when the
total exceeds 1. Losses may reduce the total; nothing may raise it.
This is a teaching model, not a master-equation solution.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

CAVITY_DT = 0.015

# Seeds the exchange when one population is exactly zero
COUPLING_FLOOR = 1e-6

# g above this multiple of (gamma + kappa) counts as strong coupling
STRONG_COUPLING_RATIO = 1.5


def _check_positive(value: float, name: str):
    if not math.isfinite(value) or value <= 0:
        raise ValueError(f"{name} must be a positive finite number, got {value}")


@dataclass(frozen=True)
class CavityParams:
    g: float = 1.0
    gamma: float = 0.05
    kappa: float = 0.05

    def __post_init__(self):
        for name in ("g", "gamma", "kappa"):
            value = getattr(self, name)
            if isinstance(value, bool) or not math.isfinite(value) or value < 0:
                raise ValueError(f"{name} must be a finite number >= 0, got {value!r}")

    @property
    def regime(self) -> str:
        """``"strong"`` when the swap outpaces both loss channels."""
        if self.g > (self.gamma + self.kappa) * STRONG_COUPLING_RATIO:
            return "strong"
        return "weak"

    def to_dict(self) -> dict:
        return {"g": self.g, "gamma": self.gamma, "kappa": self.kappa}


@dataclass(frozen=True)
class CavityState:
    pe: float = 1.0
    pg: float = 0.0
    t: float = 0.0

    @property
    def total(self) -> float:
        return self.pe + self.pg

    def to_dict(self) -> dict:
        return {"t": self.t, "Pe": self.pe, "Pg": self.pg}


def rabi_step(state: CavityState, params: CavityParams,
              dt: float = CAVITY_DT) -> CavityState:
    """Advance ``state`` by one Euler step of ``dt`` simulated seconds."""
    _check_positive(dt, "dt")
    pe, pg, t = state.pe, state.pg, state.t
    exchange = (2.0 * params.g * math.sqrt(pe * pg + COUPLING_FLOOR)
                * math.sin(2.0 * params.g * t))
    d_pe = -exchange - params.gamma * pe
    d_pg = exchange - params.kappa * pg

    new_pe = min(max(pe + d_pe * dt, 0.0), 1.0)
    new_pg = min(max(pg + d_pg * dt, 0.0), 1.0)
    total = new_pe + new_pg
    if total > 1.0:
        new_pe /= total
        new_pg /= total
    return CavityState(new_pe, new_pg, t + dt)


def cavity_trajectory(
    params: CavityParams,
    duration: float,
    dt: float = CAVITY_DT,
    speed: float = 1.0,
    initial: CavityState | None = None,
) -> list[CavityState]:
    """States from ``initial`` (atom excited, empty cavity) through ``duration``.

    ``speed`` stretches each step to ``dt * speed`` simulated seconds, so a
    faster run covers the same duration in fewer, coarser steps.
    """
    if not math.isfinite(duration) or duration < 0:
        raise ValueError(f"duration must be a finite number >= 0, got {duration}")
    _check_positive(dt, "dt")
    _check_positive(speed, "speed")
    step = dt * speed
    n_steps = round(duration / step)
    state = initial or CavityState()
    states = [state]
    for _ in range(n_steps):
        state = rabi_step(state, params, step)
        states.append(state)
    return states
