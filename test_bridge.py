"""Tests for the experiment API: validation, routing, status codes and the
client/server round trip over a real socket.

Run: python -m pytest test_bridge.py
"""

from __future__ import annotations

import json
import socket
import sys
import urllib.request

import pytest

from qfragility.bridge.client import ExperimentClient
from qfragility.bridge.protocol import ApiError, decode_body, parse_shots
from qfragility.bridge.server import ApiServer, ExperimentCommandHandler
from qfragility.core.experiment import SeedManager

ORIGIN = "http://localhost:5173"


def _post(handler, path, payload=None, raw: bytes | None = None):
    body = raw if raw is not None else json.dumps(payload or {}).encode("utf-8")
    return handler.handle("POST", path, body)


@pytest.fixture
def handler():
    return ExperimentCommandHandler()


# =========================================================================
# Command handler
# =========================================================================

def test_health(handler):
    response = handler.handle("GET", "/health")
    assert response.status == 200
    assert response.payload["status"] == "ok"
    assert "T" in response.payload["timestamp"]


def test_bell_counts(handler):
    response = _post(handler, "/api/experiments/bell", {"shots": 500, "seed": 1})
    assert response.status == 200
    assert set(response.payload) == {"00", "01", "10", "11"}
    assert sum(response.payload.values()) == 500
    assert response.payload["01"] == response.payload["10"] == 0


def test_shots_default_and_string(handler):
    assert sum(_post(handler, "/api/experiments/ghz", raw=b"").payload.values()) == 100
    assert sum(_post(handler, "/api/experiments/ghz", {"shots": "40"}).payload.values()) == 40
    assert sum(_post(handler, "/api/experiments/ghz", {"shots": 30.0}).payload.values()) == 30


@pytest.mark.parametrize("shots", [0, 10001, -3, 2.5, True, "abc", [1]])
def test_shots_validation(handler, shots):
    response = _post(handler, "/api/experiments/bell", {"shots": shots})
    assert response.status == 400
    assert response.payload == {"error": "shots must be an integer between 1 and 10000"}


def test_bb84_endpoint(handler):
    response = _post(handler, "/api/experiments/bb84",
                     {"rounds": 2000, "withEve": False, "seed": 8})
    assert response.status == 200
    assert response.payload["rounds"] == 2000
    assert response.payload["errorRate"] == 0.0
    assert len(response.payload["trace"]) == 50

    default = _post(handler, "/api/experiments/bb84", {})
    assert default.payload["rounds"] == 50


@pytest.mark.parametrize("body, message", [
    ({"rounds": 5001}, "rounds must be an integer between 1 and 5000"),
    ({"rounds": "many"}, "rounds must be an integer between 1 and 5000"),
    ({"rounds": 10, "withEve": "yes"}, "withEve must be a boolean"),
    ({"rounds": 10, "seed": -1}, "seed must be a non-negative integer"),
])
def test_bb84_validation(handler, body, message):
    response = _post(handler, "/api/experiments/bb84", body)
    assert response.status == 400
    assert response.payload["error"] == message


def test_stern_gerlach_endpoint(handler):
    response = _post(handler, "/api/experiments/stern-gerlach", {"angleDegrees": "90"})
    assert response.status == 200
    assert response.payload["probUp"] == pytest.approx(0.5)
    assert response.payload["outcome"] in ("up", "down")

    default = _post(handler, "/api/experiments/stern-gerlach", {})
    assert default.payload == {"outcome": "up", "probUp": 1.0, "probDown": 0.0}


@pytest.mark.parametrize("angle", ["north", True, "nan", [90]])
def test_stern_gerlach_validation(handler, angle):
    response = _post(handler, "/api/experiments/stern-gerlach", {"angleDegrees": angle})
    assert response.status == 400
    assert response.payload == {"error": "angleDegrees must be a number"}


@pytest.mark.parametrize("raw", [b"{shots: 5", b"[1, 2]", b"\xff\xfe"])
def test_malformed_body(handler, raw):
    response = _post(handler, "/api/experiments/bell", raw=raw)
    assert response.status == 400
    assert "error" in response.payload


def test_routing_errors(handler):
    assert handler.handle("POST", "/api/experiments/teleport", b"{}").status == 404
    wrong = handler.handle("GET", "/api/experiments/bell")
    assert wrong.status == 405
    assert wrong.headers["Allow"] == "POST"
    assert handler.handle("POST", "/health", b"").status == 405
    assert handler.handle("GET", "/health?probe=1").status == 200


def test_internal_error_is_500(handler, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("sampler exploded")

    monkeypatch.setattr("qfragility.bridge.server.simulate_bell", boom)
    response = _post(handler, "/api/experiments/bell", {"shots": 10})
    assert response.status == 500
    assert response.payload == {"error": "Internal server error"}


def test_request_seed_repeats(handler):
    body = {"rounds": 300, "withEve": True, "seed": 12}
    first = _post(handler, "/api/experiments/bb84", body).payload
    second = _post(handler, "/api/experiments/bb84", body).payload
    assert first == second


def test_server_seed_manager_replays():
    a = ExperimentCommandHandler(SeedManager(5))
    b = ExperimentCommandHandler(SeedManager(5))
    runs_a = [_post(a, "/api/experiments/bell", {"shots": 1000}).payload for _ in range(3)]
    runs_b = [_post(b, "/api/experiments/bell", {"shots": 1000}).payload for _ in range(3)]
    assert runs_a == runs_b


def test_protocol_helpers():
    assert decode_body(b"  ") == {}
    assert parse_shots({}) == 100
    with pytest.raises(ApiError) as info:
        parse_shots({"shots": 0})
    assert info.value.status == 400


# =========================================================================
# Live server round trip
# =========================================================================

@pytest.fixture
def live_server():
    server = ApiServer(ExperimentCommandHandler(), host="127.0.0.1", port=0,
                       allowed_origins=[ORIGIN])
    server.start()
    yield server
    server.stop()


def test_client_round_trip(live_server):
    client = ExperimentClient(live_server.url, timeout=5.0)
    assert client.health()["status"] == "ok"

    counts = client.run_bell(shots=200, seed=3)
    assert sum(counts.values()) == 200

    ghz = client.run_ghz(shots=64)
    assert sum(ghz.values()) == 64

    summary = client.run_bb84(rounds=400, with_eve=True, seed=4)
    assert summary["rounds"] == 400
    assert all(row["eveBasis"] in ("Z", "X") for row in summary["trace"])

    sg = client.run_stern_gerlach(180)
    assert sg["probUp"] == pytest.approx(0.0)


def test_client_raises_on_error_response(live_server):
    client = ExperimentClient(live_server.url, timeout=5.0)
    with pytest.raises(RuntimeError, match="API error: shots must be an integer"):
        client.run_bell(shots=0)


def test_cors_headers(live_server):
    req = urllib.request.Request(live_server.url + "/health", headers={"Origin": ORIGIN})
    with urllib.request.urlopen(req, timeout=5.0) as resp:
        assert resp.headers["Access-Control-Allow-Origin"] == ORIGIN

    req = urllib.request.Request(live_server.url + "/health",
                                 headers={"Origin": "http://evil.example"})
    with urllib.request.urlopen(req, timeout=5.0) as resp:
        assert resp.headers.get("Access-Control-Allow-Origin") is None

    preflight = urllib.request.Request(
        live_server.url + "/api/experiments/bell", method="OPTIONS",
        headers={"Origin": ORIGIN, "Access-Control-Request-Method": "POST"})
    with urllib.request.urlopen(preflight, timeout=5.0) as resp:
        assert resp.status == 204
        assert "POST" in resp.headers["Access-Control-Allow-Methods"]


def _raw_request(server, request: bytes) -> bytes:
    with socket.create_connection((server.host, server.port), timeout=5.0) as sock:
        sock.sendall(request)
        chunks = []
        while True:
            chunk = sock.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


@pytest.mark.parametrize("length", [b"abc", b"-5", b"1.5"])
def test_bad_content_length_is_400(live_server, length):
    reply = _raw_request(
        live_server,
        b"POST /api/experiments/bell HTTP/1.1\r\n"
        b"Host: localhost\r\n"
        b"Content-Type: application/json\r\n"
        b"Content-Length: " + length + b"\r\n"
        b"\r\n"
        b"{\"shots\": 5}",
    )
    status_line, _, rest = reply.partition(b"\r\n")
    assert status_line.startswith(b"HTTP/1.1 400")
    body = rest.split(b"\r\n\r\n", 1)[1]
    assert json.loads(body) == {"error": "Invalid Content-Length"}

    # the server keeps serving after the bad request
    assert ExperimentClient(live_server.url, timeout=5.0).health()["status"] == "ok"


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
