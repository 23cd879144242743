"""Request validation and response envelope for the experiment API.

Bodies and responses are JSON objects. Errors are reported as
``{"error": message}`` with a 4xx/5xx status.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field

MAX_SHOTS = 10000
MAX_ROUNDS = 5000
DEFAULT_SHOTS = 100
DEFAULT_ROUNDS = 50


class ApiError(Exception):
    """A request the API rejects; ``status`` is the HTTP status code."""

    def __init__(self, message: str, status: int = 400):
        super().__init__(message)
        self.message = message
        self.status = status


@dataclass
class ApiResponse:
    """Status code plus JSON payload.

    Attributes:
        status: HTTP status code.
        payload: JSON-serializable body, None for an empty body.
        headers: Extra response headers.
    """
    status: int = 200
    payload: dict | None = None
    headers: dict = field(default_factory=dict)

    def to_bytes(self) -> bytes:
        if self.payload is None:
            return b""
        return json.dumps(self.payload, ensure_ascii=False).encode("utf-8")

    @classmethod
    def ok(cls, payload: dict) -> ApiResponse:
        return cls(status=200, payload=payload)

    @classmethod
    def error(cls, message: str, status: int = 400) -> ApiResponse:
        return cls(status=status, payload={"error": message})


def decode_body(raw: bytes | None) -> dict:
    """Parse a request body; an empty body is an empty object."""
    if not raw or not raw.strip():
        return {}
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise ApiError("Invalid JSON body") from None
    if not isinstance(data, dict):
        raise ApiError("Request body must be a JSON object")
    return data


# ---------------------------------------------------------------------------
# Field parsers
# ---------------------------------------------------------------------------

def _parse_bounded_int(body: dict, name: str, default: int, low: int, high: int) -> int:
    message = f"{name} must be an integer between {low} and {high}"
    value = body.get(name)
    if value is None:
        return default
    if isinstance(value, bool):
        raise ApiError(message)
    if isinstance(value, float):
        if not value.is_integer():
            raise ApiError(message)
        value = int(value)
    elif isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise ApiError(message) from None
    elif not isinstance(value, int):
        raise ApiError(message)
    if not low <= value <= high:
        raise ApiError(message)
    return value


def parse_shots(body: dict) -> int:
    return _parse_bounded_int(body, "shots", DEFAULT_SHOTS, 1, MAX_SHOTS)


def parse_rounds(body: dict) -> int:
    return _parse_bounded_int(body, "rounds", DEFAULT_ROUNDS, 1, MAX_ROUNDS)


def parse_with_eve(body: dict) -> bool:
    value = body.get("withEve", False)
    if not isinstance(value, bool):
        raise ApiError("withEve must be a boolean")
    return value


def parse_angle(body: dict) -> float:
    value = body.get("angleDegrees")
    if value is None:
        return 0.0
    if isinstance(value, bool):
        raise ApiError("angleDegrees must be a number")
    try:
        angle = float(value)
    except (TypeError, ValueError):
        raise ApiError("angleDegrees must be a number") from None
    if not math.isfinite(angle):
        raise ApiError("angleDegrees must be a number")
    return angle


def parse_seed(body: dict) -> int | None:
    value = body.get("seed")
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ApiError("seed must be a non-negative integer")
    return value
