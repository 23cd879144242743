"""Tests for the Qt-hosted evolution controller.

Skipped when PyQt6 is not installed. Ticks are driven by calling the timer
slot directly, so no event loop has to run.
"""

from __future__ import annotations

import sys

import pytest

QtCore = pytest.importorskip("PyQt6.QtCore")

from qfragility.controller.evolution_controller import EvolutionController  # noqa: E402
from qfragility.engine.bloch import PRESET_VECTORS, NoiseParams  # noqa: E402
from qfragility.engine.evolution import EvolutionScheduler  # noqa: E402


@pytest.fixture(scope="module")
def qapp():
    return QtCore.QCoreApplication.instance() or QtCore.QCoreApplication([])


@pytest.fixture
def controller(qapp, monkeypatch):
    scheduler = EvolutionScheduler(PRESET_VECTORS["plus"], NoiseParams(phase_flip=0.5))
    ctrl = EvolutionController(scheduler, interval_ms=16)
    # each timeout sees 20 ms more wall time
    clock = iter(i * 0.02 for i in range(1, 10_000))
    monkeypatch.setattr(ctrl, "_now", lambda: next(clock))
    yield ctrl
    ctrl.stop()


def _record(signal) -> list:
    seen = []
    signal.connect(seen.append)
    return seen


def test_timer_runs_while_scheduler_running(controller):
    assert controller.is_active
    states = _record(controller.state_changed)
    lengths = _record(controller.history_changed)
    # the first timeout only sets the reference time
    controller._on_timeout()
    assert states == []
    controller._on_timeout()
    controller._on_timeout()
    assert len(states) == 2
    assert states[-1] == controller.scheduler.state
    assert lengths == [2, 3]


def test_pause_and_start(controller):
    running = _record(controller.running_changed)
    states = _record(controller.state_changed)

    controller.pause()
    controller.pause()
    assert running == [False]
    assert not controller.is_active
    controller._on_timeout()
    assert states == []

    controller.start()
    assert running == [False, True]
    assert controller.is_active

    controller.toggle()
    assert running[-1] is False


def test_scrub_pauses_and_publishes(controller):
    for _ in range(4):
        controller._on_timeout()
    history = controller.scheduler.history
    running = _record(controller.running_changed)
    states = _record(controller.state_changed)

    vector = controller.scrub_to_index(1)
    assert vector == history[1]
    assert states == [history[1]]
    assert running == [False]
    assert not controller.is_active
    assert controller.scheduler.history == history


def test_reset_and_noise(controller):
    controller._on_timeout()
    lengths = _record(controller.history_changed)
    controller.reset_to(PRESET_VECTORS["zero"])
    assert lengths == [1]
    assert controller.scheduler.history == (PRESET_VECTORS["zero"],)

    controller.set_noise(NoiseParams(amplitude_damping=0.6))
    assert controller.scheduler.noise.amplitude_damping == 0.6


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
