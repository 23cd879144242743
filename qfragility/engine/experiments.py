"""Discrete experiment simulators: Bell/GHZ sampling, BB84, Stern-Gerlach.

All simulators are stateless. Each takes an optional ``rng`` so callers can
reproduce a run; without one a fresh unseeded generator is used.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np

from .bloch import BlochVector
from .measurement import MeasurementEngine, axis_from_angle

BELL_KEYS = ("00", "01", "10", "11")
GHZ_KEYS = ("000", "001", "010", "011", "100", "101", "110", "111")

# Rows kept in a BB84 trace
BB84_TRACE_LIMIT = 50

_BASIS_LABELS = ("Z", "X")


def _check_count(value: int, name: str):
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value < 1:
        raise ValueError(f"{name} must be a positive integer, got {value!r}")


def _sample_correlated(keys: tuple[str, ...], shots: int,
                       rng: np.random.Generator | None) -> dict[str, int]:
    """All-zeros / all-ones with probability 1/2 each; other keys stay 0."""
    _check_count(shots, "shots")
    rng = rng or np.random.default_rng()
    zeros = int(rng.binomial(shots, 0.5))
    counts = {k: 0 for k in keys}
    counts[keys[0]] = zeros
    counts[keys[-1]] = shots - zeros
    return counts


def simulate_bell(shots: int, rng: np.random.Generator | None = None) -> dict[str, int]:
    """Z-basis measurement of |Phi+> = (|00> + |11>)/sqrt(2)."""
    return _sample_correlated(BELL_KEYS, shots, rng)


def simulate_ghz(shots: int, rng: np.random.Generator | None = None) -> dict[str, int]:
    """Z-basis measurement of (|000> + |111>)/sqrt(2)."""
    return _sample_correlated(GHZ_KEYS, shots, rng)


def bell_correlation(theta_a: float, theta_b: float, quality: float = 1.0) -> float:
    """Probability that both analyzers agree, for angles in radians.

    ``quality`` mixes the ideal cos^2 fringe with an uncorrelated 1/2.
    """
    if not 0 <= quality <= 1:
        raise ValueError(f"quality must be in [0, 1], got {quality}")
    delta = theta_a - theta_b
    return quality * math.cos(delta / 2) ** 2 + (1 - quality) / 2


def chsh_value(quality: float = 1.0) -> float:
    """CHSH S at the standard angles a=0, a'=90, b=45, b'=135 degrees."""
    a, a2, b, b2 = (math.radians(d) for d in (0, 90, 45, 135))

    def e(x, y):
        # E = P(agree) - P(disagree)
        return 2 * bell_correlation(x, y, quality) - 1

    return abs(e(a, b) - e(a, b2) + e(a2, b) + e(a2, b2))


# ---------------------------------------------------------------------------
# Stern-Gerlach
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SternGerlachResult:
    outcome: str
    prob_up: float
    prob_down: float

    def to_dict(self) -> dict:
        return {"outcome": self.outcome, "probUp": self.prob_up, "probDown": self.prob_down}


def simulate_stern_gerlach(
    angle_degrees: float,
    state: BlochVector | None = None,
    rng: np.random.Generator | None = None,
) -> SternGerlachResult:
    """One particle through an apparatus tilted ``angle_degrees`` from +z.

    For the default spin-up state P(up) = cos^2(theta/2).
    """
    if not math.isfinite(angle_degrees):
        raise ValueError(f"angle_degrees must be finite, got {angle_degrees}")
    state = state or BlochVector(0.0, 0.0, 1.0)
    rng = rng or np.random.default_rng()
    theta = math.radians(angle_degrees)
    prob_up = MeasurementEngine.probability_up(state, axis_from_angle(theta))
    outcome = "up" if rng.random() < prob_up else "down"
    return SternGerlachResult(outcome=outcome, prob_up=prob_up, prob_down=1.0 - prob_up)


# ---------------------------------------------------------------------------
# BB84
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Bb84TraceRow:
    id: int
    alice_bit: int
    alice_basis: str
    eve_basis: str
    bob_basis: str
    bob_bit: int
    keep: bool
    error: bool

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "aliceBit": self.alice_bit,
            "aliceBasis": self.alice_basis,
            "eveBasis": self.eve_basis,
            "bobBasis": self.bob_basis,
            "bobBit": self.bob_bit,
            "keep": self.keep,
            "error": self.error,
        }


@dataclass(frozen=True)
class Bb84Summary:
    rounds: int
    sifted_key_length: int
    error_rate: float
    trace: list[Bb84TraceRow] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "rounds": self.rounds,
            "siftedKeyLength": self.sifted_key_length,
            "errorRate": self.error_rate,
            "trace": [row.to_dict() for row in self.trace],
        }


def run_bb84(rounds: int, with_eve: bool = False,
             rng: np.random.Generator | None = None) -> Bb84Summary:
    """BB84 key exchange with an optional intercept-resend eavesdropper.

    Bases are encoded 0 = Z, 1 = X. When Eve picks the wrong basis the
    photon she resends carries a random bit in her basis. Bob reads the
    carried bit only if his basis matches the carried one.
    """
    _check_count(rounds, "rounds")
    rng = rng or np.random.default_rng()

    alice_bits = rng.integers(0, 2, rounds)
    alice_bases = rng.integers(0, 2, rounds)

    carried_bits = alice_bits
    carried_bases = alice_bases
    eve_bases = None
    if with_eve:
        eve_bases = rng.integers(0, 2, rounds)
        disturbed = eve_bases != alice_bases
        carried_bits = np.where(disturbed, rng.integers(0, 2, rounds), alice_bits)
        carried_bases = np.where(disturbed, eve_bases, alice_bases)

    bob_bases = rng.integers(0, 2, rounds)
    bob_bits = np.where(bob_bases == carried_bases, carried_bits,
                        rng.integers(0, 2, rounds))

    keep = alice_bases == bob_bases
    error = keep & (bob_bits != alice_bits)
    sifted = int(keep.sum())
    errors = int(error.sum())

    trace = []
    for i in range(min(rounds, BB84_TRACE_LIMIT)):
        trace.append(Bb84TraceRow(
            id=i + 1,
            alice_bit=int(alice_bits[i]),
            alice_basis=_BASIS_LABELS[alice_bases[i]],
            eve_basis=_BASIS_LABELS[eve_bases[i]] if eve_bases is not None else "-",
            bob_basis=_BASIS_LABELS[bob_bases[i]],
            bob_bit=int(bob_bits[i]),
            keep=bool(keep[i]),
            error=bool(error[i]),
        ))

    return Bb84Summary(
        rounds=rounds,
        sifted_key_length=sifted,
        error_rate=errors / sifted if sifted else 0.0,
        trace=trace,
    )
