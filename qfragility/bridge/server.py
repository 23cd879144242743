"""HTTP server for the experiment API.

A ``ThreadingHTTPServer`` accepts requests and hands method, path and body
to :class:`ExperimentCommandHandler`, which validates, runs the simulator
and builds the JSON response.
"""

from __future__ import annotations

import datetime
import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import urlsplit

import numpy as np

from qfragility.core.experiment import SeedManager
from qfragility.engine.experiments import (
    run_bb84, simulate_bell, simulate_ghz, simulate_stern_gerlach,
)

from .protocol import (
    ApiError, ApiResponse, decode_body,
    parse_angle, parse_rounds, parse_seed, parse_shots, parse_with_eve,
)

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 4000

# path -> (allowed method, command name)
ROUTES = {
    "/health": ("GET", "health"),
    "/api/experiments/bell": ("POST", "bell"),
    "/api/experiments/ghz": ("POST", "ghz"),
    "/api/experiments/bb84": ("POST", "bb84"),
    "/api/experiments/stern-gerlach": ("POST", "stern_gerlach"),
}


class ExperimentCommandHandler:
    """Routes API requests to the simulators.

    Every request runs on its own generator. A request ``seed`` makes the
    run reproducible; otherwise the generator is spawned from the
    server-wide :class:`SeedManager` (unseeded unless one is given).
    """

    def __init__(self, seed_manager: SeedManager | None = None):
        self._seeds = seed_manager or SeedManager()

    def _rng_for(self, seed: int | None) -> np.random.Generator:
        return self._seeds.rng_for(seed)

    # -- dispatch --

    def handle(self, method: str, path: str, body: bytes | None = None) -> ApiResponse:
        """Route one request and return the response to send."""
        route = ROUTES.get(urlsplit(path).path.rstrip("/") or "/")
        if route is None:
            return ApiResponse.error(f"Not found: {path}", 404)
        allowed, action = route
        if method != allowed:
            response = ApiResponse.error(f"Method {method} not allowed", 405)
            response.headers["Allow"] = allowed
            return response

        handler = getattr(self, f"_cmd_{action}")
        try:
            params = decode_body(body) if method == "POST" else {}
            return ApiResponse.ok(handler(params))
        except ApiError as e:
            return ApiResponse.error(e.message, e.status)
        except Exception as e:
            logger.error("API command '%s' failed: %s", action, e, exc_info=True)
            return ApiResponse.error("Internal server error", 500)

    # -- individual commands --

    def _cmd_health(self, params: dict) -> dict:
        return {
            "status": "ok",
            "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        }

    def _cmd_bell(self, params: dict) -> dict:
        shots = parse_shots(params)
        return simulate_bell(shots, rng=self._rng_for(parse_seed(params)))

    def _cmd_ghz(self, params: dict) -> dict:
        shots = parse_shots(params)
        return simulate_ghz(shots, rng=self._rng_for(parse_seed(params)))

    def _cmd_bb84(self, params: dict) -> dict:
        rounds = parse_rounds(params)
        with_eve = parse_with_eve(params)
        summary = run_bb84(rounds, with_eve, rng=self._rng_for(parse_seed(params)))
        return summary.to_dict()

    def _cmd_stern_gerlach(self, params: dict) -> dict:
        angle = parse_angle(params)
        result = simulate_stern_gerlach(angle, rng=self._rng_for(parse_seed(params)))
        return result.to_dict()


class ExperimentRequestHandler(BaseHTTPRequestHandler):
    """Translates HTTP requests to :class:`ExperimentCommandHandler` calls.

    The owning server carries ``command_handler`` and ``allowed_origins``.
    """

    server_version = "QFragility/1.0"
    protocol_version = "HTTP/1.1"

    def _cors_headers(self):
        origin = self.headers.get("Origin")
        if origin and origin in self.server.allowed_origins:
            self.send_header("Access-Control-Allow-Origin", origin)
            self.send_header("Vary", "Origin")

    def _send(self, response: ApiResponse):
        body = response.to_bytes()
        self.send_response(response.status)
        if body:
            self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        for name, value in response.headers.items():
            self.send_header(name, value)
        self._cors_headers()
        self.end_headers()
        if body:
            self.wfile.write(body)

    def _content_length(self) -> int | None:
        raw = self.headers.get("Content-Length")
        if raw is None or not raw.strip():
            return 0
        try:
            length = int(raw)
        except ValueError:
            return None
        return length if length >= 0 else None

    def _dispatch(self):
        length = self._content_length()
        if length is None:
            logger.warning("Rejecting %s %s: bad Content-Length %r",
                           self.command, self.path, self.headers.get("Content-Length"))
            # the body cannot be framed, so the connection is not reusable
            self.close_connection = True
            self._send(ApiResponse.error("Invalid Content-Length", 400))
            return
        body = self.rfile.read(length) if length > 0 else b""
        logger.debug("%s %s (%d bytes)", self.command, self.path, len(body))
        self._send(self.server.command_handler.handle(self.command, self.path, body))

    do_GET = _dispatch
    do_POST = _dispatch
    do_PUT = _dispatch
    do_DELETE = _dispatch
    do_PATCH = _dispatch

    def do_OPTIONS(self):
        self.send_response(204)
        self.send_header("Access-Control-Allow-Methods", "GET, POST, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        self.send_header("Content-Length", "0")
        self._cors_headers()
        self.end_headers()

    def log_message(self, format, *args):
        logger.debug("%s - %s", self.address_string(), format % args)


class ApiServer:
    """Owns the HTTP server and, when started in the background, its thread."""

    def __init__(self, handler: ExperimentCommandHandler | None = None,
                 host: str = DEFAULT_HOST, port: int = DEFAULT_PORT,
                 allowed_origins: list[str] | None = None):
        self._handler = handler or ExperimentCommandHandler()
        self._httpd = ThreadingHTTPServer((host, port), ExperimentRequestHandler)
        self._httpd.daemon_threads = True
        self._httpd.command_handler = self._handler
        self._httpd.allowed_origins = set(allowed_origins or [])
        self._thread: threading.Thread | None = None

    @property
    def host(self) -> str:
        return self._httpd.server_address[0]

    @property
    def port(self) -> int:
        """Bound port; differs from the requested one when that was 0."""
        return self._httpd.server_address[1]

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def serve_forever(self):
        """Serve in the calling thread until :meth:`stop` or KeyboardInterrupt."""
        logger.info("Experiment API listening on %s", self.url)
        try:
            self._httpd.serve_forever()
        finally:
            self._httpd.server_close()
            logger.info("Experiment API stopped.")

    def start(self):
        """Serve from a daemon thread."""
        if self.is_running:
            return
        logger.info("Experiment API listening on %s", self.url)
        self._thread = threading.Thread(
            target=self._httpd.serve_forever, name="qfragility-api", daemon=True)
        self._thread.start()

    def stop(self):
        """Stop the background thread (if any) and release the socket."""
        if self._thread is not None:
            self._httpd.shutdown()
            self._thread.join(3.0)
            self._thread = None
            logger.info("Experiment API stopped.")
        self._httpd.server_close()
