"""Wall-clock driven evolution of a Bloch vector with scrubbable history.

The scheduler owns no timer. A host (see
``qfragility.controller.evolution_controller``) calls :meth:`tick` from a
single periodic source; every call runs to completion before returning.
"""

from __future__ import annotations

import math

import numpy as np

from .bloch import BlochVector, NoiseParams
from .history import HistoryBuffer, DEFAULT_HISTORY_CAPACITY
from .measurement import MeasurementEngine, MeasurementBasis
from .noise import NoiseChannelStepper

# Longest wall-clock gap honoured by a single tick. Anything beyond it
# (tab switch, debugger pause) is not caught up.
MAX_TICK_ELAPSED = 0.5

# Absorbs float error when the pending time is a whole number of steps.
_STEP_EPS = 1e-9


def steps_for(elapsed: float, dt_base: float, speed: float = 1.0) -> int:
    """Number of whole fixed-size steps that fit in ``elapsed`` wall seconds.

    ``speed`` dilates simulated time relative to wall time. The result may
    be 0; callers carry the fractional remainder to the next tick.

    Args:
        elapsed: Wall-clock seconds since the previous tick (>= 0).
        dt_base: Simulated seconds per step (> 0).
        speed: Time dilation factor (> 0).
    """
    if not math.isfinite(elapsed) or elapsed < 0:
        raise ValueError(f"elapsed must be a finite number >= 0, got {elapsed}")
    if not math.isfinite(dt_base) or dt_base <= 0:
        raise ValueError(f"dt_base must be a positive finite number, got {dt_base}")
    if not math.isfinite(speed) or speed <= 0:
        raise ValueError(f"speed must be a positive finite number, got {speed}")
    return math.floor(elapsed * speed / dt_base + _STEP_EPS)


class EvolutionScheduler:
    """Owns the live vector, its history and the running flag.

    Usage::

        sched = EvolutionScheduler(PRESET_VECTORS["plus"], NoiseParams(phase_flip=0.6))
        sched.tick(time.monotonic())      # called by a timer
        sched.scrub_to_index(10)          # pauses, shows history[10]
        sched.reset_to(PRESET_VECTORS["zero"])
    """

    def __init__(
        self,
        initial: BlochVector,
        noise: NoiseParams | None = None,
        stepper: NoiseChannelStepper | None = None,
        capacity: int = DEFAULT_HISTORY_CAPACITY,
        running: bool = True,
        max_tick_elapsed: float = MAX_TICK_ELAPSED,
    ):
        self._check_vector(initial)
        self._state = initial
        self._history = HistoryBuffer(initial, capacity)
        self._noise = noise or NoiseParams()
        self._stepper = stepper or NoiseChannelStepper()
        self._running = running
        self._max_tick_elapsed = max_tick_elapsed
        self._last_tick: float | None = None
        self._pending = 0.0
        self._total_steps = 0

    # ---- State -------------------------------------------------------------

    @property
    def state(self) -> BlochVector:
        return self._state

    @property
    def history(self) -> tuple[BlochVector, ...]:
        return self._history.snapshot()

    @property
    def history_length(self) -> int:
        return len(self._history)

    @property
    def running(self) -> bool:
        return self._running

    @property
    def noise(self) -> NoiseParams:
        return self._noise

    @property
    def total_steps(self) -> int:
        """Stepper calls since construction or the last reset."""
        return self._total_steps

    @property
    def simulated_time(self) -> float:
        return self._total_steps * self._stepper.dt

    @property
    def pending_time(self) -> float:
        """Wall seconds received but not yet covered by a whole step."""
        return self._pending

    def set_noise(self, noise: NoiseParams):
        """Takes effect on the next step."""
        self._noise = noise

    # ---- Control -----------------------------------------------------------

    def start(self):
        if self._running:
            return
        self._running = True
        self._clear_pending()

    def pause(self):
        if not self._running:
            return
        self._running = False
        self._clear_pending()

    def reset_to(self, vector: BlochVector):
        """History becomes exactly ``[vector]``; pending time is dropped."""
        self._check_vector(vector)
        self._state = vector
        self._history.replace(vector)
        self._clear_pending()
        self._total_steps = 0

    def scrub_to_index(self, index: int) -> BlochVector:
        """Pause and display ``history[index]`` (clamped). History is kept."""
        self.pause()
        self._state = self._history[self._history.clamp_index(index)]
        return self._state

    # ---- Stepping ----------------------------------------------------------

    def tick(self, now: float) -> int:
        """Scheduling tick at monotonic time ``now`` (seconds).

        Returns the number of stepper calls made (0 while paused, or when
        less than one step of wall time has accumulated).
        """
        if not self._running:
            return 0
        if self._last_tick is None:
            elapsed = 0.0
        else:
            elapsed = min(max(now - self._last_tick, 0.0), self._max_tick_elapsed)
        self._last_tick = now
        return self.advance(elapsed)

    def advance(self, elapsed: float) -> int:
        """Add ``elapsed`` wall seconds to the pending time and step through it.

        Only whole steps are taken and the remainder waits for the next
        call; nothing is recorded when no step fits. The noise speed
        already scales every rate inside the stepper, so the step count is
        derived from wall time alone.
        """
        dt = self._stepper.dt
        n_steps = steps_for(self._pending + elapsed, dt)
        self._pending = max(self._pending + elapsed - n_steps * dt, 0.0)
        if n_steps == 0:
            return 0
        vector = self._stepper.run(self._state, self._noise, n_steps)
        self._state = vector
        self._history.append(vector)
        self._total_steps += n_steps
        return n_steps

    def _clear_pending(self):
        self._last_tick = None
        self._pending = 0.0

    def get_shot(self, rng: np.random.Generator | None = None) -> int:
        """Z-basis shot on the current vector; the evolution is not collapsed."""
        return MeasurementEngine.measure(self._state, MeasurementBasis.Z, rng)

    @staticmethod
    def _check_vector(vector: BlochVector):
        if not vector.is_finite():
            raise ValueError(f"Vector components must be finite, got {vector}")
        if vector.length > 1.0 + 1e-9:
            raise ValueError(f"Vector lies outside the Bloch ball (|r|={vector.length:.6f})")
