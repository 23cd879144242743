"""Qt host for the evolution scheduler: a QTimer drives ticks, signals publish state."""

from __future__ import annotations

import logging

from PyQt6.QtCore import QElapsedTimer, QObject, QTimer, pyqtSignal

from qfragility.engine.bloch import BlochVector, NoiseParams
from qfragility.engine.evolution import EvolutionScheduler

logger = logging.getLogger(__name__)


class EvolutionController(QObject):
    """Runs an :class:`EvolutionScheduler` on the Qt event loop.

    All calls happen on the thread owning the controller, so a tick and a
    scrub can never interleave.
    """

    state_changed = pyqtSignal(object)     # BlochVector
    history_changed = pyqtSignal(int)      # history length
    running_changed = pyqtSignal(bool)

    def __init__(self, scheduler: EvolutionScheduler, interval_ms: int = 16,
                 parent: QObject | None = None):
        super().__init__(parent)
        self._scheduler = scheduler
        self._clock = QElapsedTimer()
        self._clock.start()
        self._timer = QTimer(self)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self._on_timeout)
        if scheduler.running:
            self._timer.start()

    @property
    def scheduler(self) -> EvolutionScheduler:
        return self._scheduler

    @property
    def is_active(self) -> bool:
        return self._timer.isActive()

    def _now(self) -> float:
        return self._clock.elapsed() / 1000.0

    def _on_timeout(self):
        if self._scheduler.tick(self._now()):
            self.state_changed.emit(self._scheduler.state)
            self.history_changed.emit(self._scheduler.history_length)

    # -- control --

    def start(self):
        if self._scheduler.running:
            return
        self._scheduler.start()
        self._timer.start()
        self.running_changed.emit(True)

    def pause(self):
        if not self._scheduler.running:
            return
        self._scheduler.pause()
        self._timer.stop()
        self.running_changed.emit(False)

    def toggle(self):
        if self._scheduler.running:
            self.pause()
        else:
            self.start()

    def set_noise(self, noise: NoiseParams):
        self._scheduler.set_noise(noise)

    def reset_to(self, vector: BlochVector):
        self._scheduler.reset_to(vector)
        logger.debug("Evolution reset to %s", vector)
        self.state_changed.emit(self._scheduler.state)
        self.history_changed.emit(self._scheduler.history_length)

    def scrub_to_index(self, index: int) -> BlochVector:
        was_running = self._scheduler.running
        vector = self._scheduler.scrub_to_index(index)
        logger.debug("Scrubbed to history index %d of %d", index, self._scheduler.history_length)
        self._timer.stop()
        if was_running:
            self.running_changed.emit(False)
        self.state_changed.emit(vector)
        return vector

    def stop(self):
        """Stop the timer without changing the scheduler's state."""
        self._timer.stop()
