"""Client library for the experiment API.

Usage example::

    from qfragility.bridge.client import ExperimentClient

    api = ExperimentClient("http://127.0.0.1:4000")
    counts = api.run_bell(shots=1000, seed=7)
    summary = api.run_bb84(rounds=2000, with_eve=True)
"""

from __future__ import annotations

import json
import urllib.error
import urllib.request
from typing import Any

DEFAULT_BASE_URL = "http://127.0.0.1:4000"


class ExperimentClient:
    """Synchronous HTTP client; error responses raise RuntimeError."""

    def __init__(self, base_url: str = DEFAULT_BASE_URL, timeout: float = 30.0):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    @property
    def base_url(self) -> str:
        return self._base_url

    def _request(self, method: str, path: str, payload: dict | None = None) -> dict:
        data = None
        headers = {"Accept": "application/json"}
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")
            headers["Content-Type"] = "application/json"
        req = urllib.request.Request(
            self._base_url + path, data=data, headers=headers, method=method)
        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as resp:
                return json.loads(resp.read().decode("utf-8"))
        except urllib.error.HTTPError as e:
            try:
                message = json.loads(e.read().decode("utf-8")).get("error", e.reason)
            except (ValueError, AttributeError):
                message = e.reason
            raise RuntimeError(f"API error: {message}") from None

    @staticmethod
    def _with_seed(params: dict[str, Any], seed: int | None) -> dict[str, Any]:
        if seed is not None:
            params["seed"] = seed
        return params

    # -- High-level API methods --

    def health(self) -> dict:
        return self._request("GET", "/health")

    def run_bell(self, shots: int = 100, seed: int | None = None) -> dict:
        return self._request("POST", "/api/experiments/bell",
                             self._with_seed({"shots": shots}, seed))

    def run_ghz(self, shots: int = 100, seed: int | None = None) -> dict:
        return self._request("POST", "/api/experiments/ghz",
                             self._with_seed({"shots": shots}, seed))

    def run_bb84(self, rounds: int = 50, with_eve: bool = False,
                 seed: int | None = None) -> dict:
        return self._request("POST", "/api/experiments/bb84",
                             self._with_seed({"rounds": rounds, "withEve": with_eve}, seed))

    def run_stern_gerlach(self, angle_degrees: float = 0.0,
                          seed: int | None = None) -> dict:
        return self._request("POST", "/api/experiments/stern-gerlach",
                             self._with_seed({"angleDegrees": angle_degrees}, seed))
