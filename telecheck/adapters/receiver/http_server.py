"""HTTP server adapter for the fake telemetry receiver.

Serves the metric, logging and mesh edges service stubs behind one
listening port using Python's built-in http.server module. Requests are
routed by fully-qualified service name, ``POST /{service}/{method}``,
with JSON bodies in the protobuf JSON mapping. Each request is handled
on its own thread.
"""

import asyncio
import json
import logging
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any
from urllib.parse import urlsplit

from telecheck.adapters.receiver.services import (
    LoggingServiceStub,
    MeshEdgesServiceStub,
    MetricServiceStub,
    ServiceStub,
    StubResponse,
    error_body,
)
from telecheck.core.channel import CaptureChannel
from telecheck.core.errors import BindError
from telecheck.core.models import ServiceKind
from telecheck.core.ports import ReceiverPort

logger = logging.getLogger(__name__)

MAX_BODY_SIZE = 4 * 1024 * 1024


def make_receiver_handler(
    stubs: dict[str, ServiceStub],
) -> type[BaseHTTPRequestHandler]:
    """Factory to create a handler class bound to the given service stubs.

    Args:
        stubs: Service stubs keyed by fully-qualified service name.

    Returns:
        A ReceiverHTTPHandler class routing to the provided stubs.
    """

    class ReceiverHTTPHandler(BaseHTTPRequestHandler):
        """Routes ``POST /{service}/{method}`` to the matching stub."""

        def do_POST(self) -> None:
            path = urlsplit(self.path).path
            parts = path.strip("/").split("/")
            if len(parts) != 2 or not all(parts):
                self._send_json(
                    HTTPStatus.NOT_FOUND,
                    error_body(HTTPStatus.NOT_FOUND, f"Expected /<service>/<method>, got {path}"),
                )
                return

            service_name, method = parts
            stub = stubs.get(service_name)
            if stub is None:
                self._send_json(
                    HTTPStatus.NOT_FOUND,
                    error_body(
                        HTTPStatus.NOT_FOUND,
                        f"Unknown service: {service_name}. Available services: {sorted(stubs)}",
                    ),
                )
                return

            try:
                content_length = int(self.headers.get("Content-Length", 0))
            except ValueError:
                content_length = -1
            if content_length < 0:
                self._send_json(
                    HTTPStatus.BAD_REQUEST,
                    error_body(
                        HTTPStatus.BAD_REQUEST,
                        f"Invalid Content-Length: {self.headers.get('Content-Length')}",
                    ),
                )
                return
            if content_length > MAX_BODY_SIZE:
                self._send_json(
                    HTTPStatus.REQUEST_ENTITY_TOO_LARGE,
                    error_body(HTTPStatus.REQUEST_ENTITY_TOO_LARGE, "Request body too large"),
                )
                return
            body = self.rfile.read(content_length) if content_length > 0 else b""

            try:
                response: StubResponse = stub.handle(method, body)
            except Exception as e:
                # Isolated to this call
                logger.error(f"Error handling {service_name}/{method}: {e}", exc_info=True)
                self._send_json(
                    HTTPStatus.INTERNAL_SERVER_ERROR,
                    error_body(HTTPStatus.INTERNAL_SERVER_ERROR, "Internal server error"),
                )
                return
            self._send_json(response.status, response.body)

        def do_GET(self) -> None:
            """Health check only."""
            if urlsplit(self.path).path == "/health":
                self._send_json(HTTPStatus.OK, {"status": "healthy"})
            else:
                self.send_error(HTTPStatus.NOT_FOUND, "Not found")

        def _send_json(self, status: HTTPStatus, data: dict[str, Any]) -> None:
            payload = json.dumps(data).encode()
            self.send_response(status)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(payload)))
            self.end_headers()
            self.wfile.write(payload)

        def log_message(self, format: str, *args: Any) -> None:
            """Log HTTP request."""
            logger.debug(f"HTTP {self.client_address[0]}: {format % args}")

    return ReceiverHTTPHandler


class FakeTelemetryReceiver(ReceiverPort):
    """Fake telemetry backend serving three RPC services on one port.

    The receiver owns the service stubs and exposes their capture
    channels by reference. It has no verification logic.
    """

    def __init__(self, host: str = "127.0.0.1", port: int = 12312):
        """Initialize the receiver.

        Args:
            host: Host to listen on (default 127.0.0.1).
            port: Port to listen on (default 12312). 0 picks a free port.
        """
        self.host = host
        self.requested_port = port
        self.metric_service = MetricServiceStub()
        self.logging_service = LoggingServiceStub()
        self.edges_service = MeshEdgesServiceStub()
        self.stubs: dict[str, ServiceStub] = {
            stub.service_name: stub
            for stub in (self.metric_service, self.logging_service, self.edges_service)
        }
        self.server: ThreadingHTTPServer | None = None
        self._server_task: asyncio.Task[None] | None = None
        self._stopped = False

    @property
    def channels(self) -> dict[ServiceKind, CaptureChannel]:
        """Capture channels keyed by service kind."""
        return {stub.kind: stub.channel for stub in self.stubs.values()}

    @property
    def port(self) -> int:
        """The bound port, or the requested port before start."""
        if self.server is not None:
            return self.server.server_address[1]
        return self.requested_port

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    @property
    def running(self) -> bool:
        return self.server is not None and not self._stopped

    async def start(self) -> dict[ServiceKind, CaptureChannel]:
        """Bind the listening port and start serving.

        Returns:
            Capture channels keyed by service kind.

        Raises:
            BindError: If the port cannot be bound.
            RuntimeError: If the receiver was already stopped.
        """
        if self._stopped:
            raise RuntimeError("a stopped receiver cannot be restarted")
        if self.server is not None:
            logger.warning("Fake telemetry receiver already running")
            return self.channels

        handler_class = make_receiver_handler(self.stubs)
        try:
            server = ThreadingHTTPServer((self.host, self.requested_port), handler_class)
        except OSError as e:
            logger.error(
                f"Failed to bind fake telemetry receiver to {self.host}:{self.requested_port}: {e}"
            )
            raise BindError(self.host, self.requested_port, str(e)) from e
        server.daemon_threads = True
        self.server = server

        # Run the blocking server loop in a thread to avoid blocking the event loop
        self._server_task = asyncio.create_task(self._run_server())
        logger.info(
            f"Fake telemetry receiver listening on {self.host}:{self.port} "
            f"({', '.join(sorted(self.stubs))})"
        )
        return self.channels

    async def _run_server(self) -> None:
        if not self.server:
            return
        try:
            await asyncio.to_thread(self.server.serve_forever)
        except asyncio.CancelledError:
            # Normal shutdown
            pass
        except Exception as e:
            logger.error(f"Fake telemetry receiver error: {e}", exc_info=True)

    async def stop(self) -> None:
        """Stop serving and release the port. Idempotent."""
        if self._stopped:
            return
        self._stopped = True
        if self.server is None:
            return

        await asyncio.to_thread(self.server.shutdown)
        self.server.server_close()
        if self._server_task:
            await self._server_task
        logger.info("Fake telemetry receiver stopped")

    async def __aenter__(self) -> "FakeTelemetryReceiver":
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.stop()


async def start_fake_receiver(
    port: int, host: str = "127.0.0.1"
) -> tuple[FakeTelemetryReceiver, dict[ServiceKind, CaptureChannel]]:
    """Create and start a fake receiver.

    Returns:
        The running receiver and its capture channels keyed by kind.

    Raises:
        BindError: If the port is unavailable.
    """
    receiver = FakeTelemetryReceiver(host=host, port=port)
    channels = await receiver.start()
    return receiver, channels
