"""Application configuration management."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]

_PERSISTED_FIELDS = (
    "host", "port", "allowed_origins", "history_capacity", "base_dt",
    "tick_interval_ms", "gate_noise", "default_preset", "seed", "log_level",
)


@dataclass
class AppConfig:
    """Persistent application configuration.

    Values are read from ``~/.qfragility/config.json`` and then overridden
    by the ``PORT``, ``ALLOWED_ORIGIN`` and ``QFRAGILITY_SEED`` environment
    variables.
    """
    host: str = "127.0.0.1"
    port: int = 4000
    allowed_origins: list[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_ORIGINS))
    history_capacity: int = 600
    base_dt: float = 0.01
    tick_interval_ms: int = 16
    gate_noise: float = 0.05
    default_preset: str = "plus"
    seed: int | None = None
    log_level: str = "INFO"

    _config_dir: Path = field(
        default_factory=lambda: Path.home() / ".qfragility",
        repr=False)

    @property
    def config_path(self) -> Path:
        return self._config_dir / "config.json"

    def to_dict(self) -> dict:
        return {key: getattr(self, key) for key in _PERSISTED_FIELDS}

    def save(self):
        self._config_dir.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, config_dir: Path | str | None = None,
             environ: dict[str, str] | None = None) -> AppConfig:
        config = cls() if config_dir is None else cls(_config_dir=Path(config_dir))
        if config.config_path.exists():
            try:
                with open(config.config_path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
                for key, value in data.items():
                    if key in _PERSISTED_FIELDS:
                        setattr(config, key, value)
            except (json.JSONDecodeError, OSError) as e:
                logger.warning("Ignoring unreadable config %s: %s", config.config_path, e)
        config.apply_env(os.environ if environ is None else environ)
        return config

    def apply_env(self, environ) -> None:
        port = environ.get("PORT")
        if port:
            try:
                self.port = int(port)
            except ValueError:
                logger.warning("Ignoring non-integer PORT=%r", port)
        origin = environ.get("ALLOWED_ORIGIN")
        if origin and origin not in self.allowed_origins:
            self.allowed_origins.append(origin)
        seed = environ.get("QFRAGILITY_SEED")
        if seed:
            try:
                self.seed = int(seed)
            except ValueError:
                logger.warning("Ignoring non-integer QFRAGILITY_SEED=%r", seed)
