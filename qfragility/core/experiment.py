"""Experiment records and seed management for reproducible runs.

:class:`ExperimentRecord` is a JSON snapshot of one simulator run (which
experiment, its parameters, the seed and the result payload).
:class:`SeedManager` spawns independent per-run generators from one
master seed.
"""

from __future__ import annotations

import datetime
import json
import threading
from dataclasses import asdict, dataclass, is_dataclass
from pathlib import Path

import numpy as np

RECORD_VERSION = "1.0.0"


# ---------------------------------------------------------------------------
# ExperimentRecord
# ---------------------------------------------------------------------------

@dataclass
class ExperimentRecord:
    """Snapshot of an experiment run.

    Parameters
    ----------
    experiment : str
        Experiment name, e.g. ``"bell"`` or ``"bb84"``.
    parameters : dict
        Inputs the simulator was called with, in wire (camelCase) form.
    seed : int | None
        Seed of the generator used, ``None`` for an unseeded run.
    results : dict | None
        Result payload as returned over the API.
    timestamp : str
        ISO-8601 UTC creation time.
    version : str
        Record format version.
    metadata : dict | None
        Free-form annotations.
    """

    experiment: str = ""
    parameters: dict | None = None
    seed: int | None = None
    results: dict | None = None
    timestamp: str = ""
    version: str = RECORD_VERSION
    metadata: dict | None = None

    @staticmethod
    def _json_default(obj):
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, np.generic):
            return obj.item()
        if hasattr(obj, "to_dict"):
            return obj.to_dict()
        if is_dataclass(obj):
            return asdict(obj)
        raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=2, default=self._json_default)

    def save(self, filepath: str | Path) -> None:
        """Write the record, creating parent directories as needed."""
        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_json(), encoding="utf-8")

    @classmethod
    def from_json(cls, json_str: str) -> ExperimentRecord:
        return cls(**json.loads(json_str))

    @classmethod
    def load(cls, filepath: str | Path) -> ExperimentRecord:
        return cls.from_json(Path(filepath).read_text(encoding="utf-8"))

    @classmethod
    def from_result(cls, experiment: str, parameters: dict, result,
                    seed: int | None = None) -> ExperimentRecord:
        """Build a record right after a run; ``result`` may be a dict or
        any object with ``to_dict()``."""
        payload = result.to_dict() if hasattr(result, "to_dict") else dict(result)
        return cls(
            experiment=experiment,
            parameters=dict(parameters),
            seed=seed,
            results=payload,
            timestamp=datetime.datetime.now(datetime.timezone.utc).isoformat(),
        )


# ---------------------------------------------------------------------------
# SeedManager
# ---------------------------------------------------------------------------

class SeedManager:
    """Spawns independent per-run generators from one master seed.

    Children come from :meth:`numpy.random.SeedSequence.spawn`, so with a
    fixed seed the n-th run always gets the same stream. Safe to share
    between request threads.

    >>> mgr = SeedManager(42)
    >>> a = mgr.rng_for().random()
    >>> mgr.reset()
    >>> a == mgr.rng_for().random()
    True
    """

    def __init__(self, seed: int | None = None):
        self._lock = threading.Lock()
        self._master_seed = seed
        self._sequence = np.random.SeedSequence(seed)

    @property
    def seed(self) -> int | None:
        return self._master_seed

    @property
    def runs_spawned(self) -> int:
        return self._sequence.n_children_spawned

    def set_seed(self, seed: int | None) -> None:
        with self._lock:
            self._master_seed = seed
            self._sequence = np.random.SeedSequence(seed)

    def reset(self) -> None:
        """Restart the child stream (fresh entropy when unseeded)."""
        self.set_seed(self._master_seed)

    def create_child_rng(self) -> np.random.Generator:
        with self._lock:
            (child,) = self._sequence.spawn(1)
        return np.random.default_rng(child)

    def rng_for(self, seed: int | None = None) -> np.random.Generator:
        """Generator for one run; an explicit ``seed`` bypasses the stream."""
        if seed is not None:
            return np.random.default_rng(seed)
        return self.create_child_rng()
