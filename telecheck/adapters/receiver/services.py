"""Service stubs impersonating the telemetry ingestion APIs.

Each stub implements one RPC service. The captured method decodes its
request, publishes the document in canonical protobuf JSON form onto
the stub's capture channel and acknowledges immediately; other methods
of the service are acknowledged with an empty response. Stubs keep no
cross-request state beyond counters and never validate payload contents.
"""

import json
import logging
import threading
from collections import Counter
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any

from pydantic import BaseModel, ValidationError

from telecheck.adapters.receiver.messages import (
    CreateTimeSeriesRequest,
    ReportTrafficAssertionsRequest,
    WriteLogEntriesRequest,
)
from telecheck.core.channel import CaptureChannel
from telecheck.core.errors import DecodeError
from telecheck.core.models import ServiceKind

logger = logging.getLogger(__name__)

# Canonical gRPC status codes used in JSON error bodies
_GRPC_STATUS: dict[HTTPStatus, tuple[int, str]] = {
    HTTPStatus.BAD_REQUEST: (3, "INVALID_ARGUMENT"),
    HTTPStatus.FORBIDDEN: (7, "PERMISSION_DENIED"),
    HTTPStatus.NOT_FOUND: (12, "UNIMPLEMENTED"),
    HTTPStatus.TOO_MANY_REQUESTS: (8, "RESOURCE_EXHAUSTED"),
    HTTPStatus.INTERNAL_SERVER_ERROR: (13, "INTERNAL"),
    HTTPStatus.SERVICE_UNAVAILABLE: (14, "UNAVAILABLE"),
    HTTPStatus.GATEWAY_TIMEOUT: (4, "DEADLINE_EXCEEDED"),
}


def error_body(status: HTTPStatus, message: str) -> dict[str, Any]:
    """Build a JSON error body in the Google API error shape."""
    code, name = _GRPC_STATUS.get(status, (2, "UNKNOWN"))
    return {"error": {"code": code, "status": name, "message": message}}


@dataclass(frozen=True)
class StubResponse:
    """HTTP status and JSON body returned for one RPC."""

    status: HTTPStatus
    body: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class InjectedFailure:
    """A configured failure returned instead of the canned success."""

    status: HTTPStatus
    message: str


class ServiceStub:
    """Base class for a fake RPC service with one captured method.

    Subclasses declare the service name, its kind, the captured method
    with its request model, and the canned responses of the remaining
    methods.
    """

    service_name: str = ""
    kind: ServiceKind
    captured_method: str = ""
    request_model: type[BaseModel]
    acknowledged_methods: dict[str, dict[str, Any]] = {}

    def __init__(self) -> None:
        """Initialize the stub with an empty capture channel."""
        self.channel = CaptureChannel(self.kind, self.captured_method)
        self._lock = threading.Lock()
        self.calls: Counter[str] = Counter()
        self.decode_errors: Counter[str] = Counter()
        self._failures: dict[str, InjectedFailure] = {}

    @property
    def methods(self) -> list[str]:
        """Every method name this service answers."""
        return [self.captured_method, *self.acknowledged_methods]

    @property
    def captured(self) -> int:
        """Number of requests published onto the capture channel."""
        return self.channel.published

    def set_failure(
        self, method: str, status: HTTPStatus | int, message: str = "injected failure"
    ) -> None:
        """Make every call to ``method`` fail with ``status``.

        Requests to the captured method are still captured while a
        failure is configured.

        Raises:
            ValueError: If the service has no such method.
        """
        if method not in self.methods:
            raise ValueError(f"{self.service_name} has no method {method!r}")
        with self._lock:
            self._failures[method] = InjectedFailure(HTTPStatus(status), message)

    def clear_failure(self, method: str | None = None) -> None:
        """Remove the injected failure for ``method``, or all of them."""
        with self._lock:
            if method is None:
                self._failures.clear()
            else:
                self._failures.pop(method, None)

    def reset(self) -> None:
        """Reset call counters and injected failures.

        Pending captured requests are left on the channel.
        """
        with self._lock:
            self.calls.clear()
            self.decode_errors.clear()
            self._failures.clear()

    def decode(self, method: str, body: bytes) -> dict[str, Any]:
        """Decode a JSON request body and validate its shape.

        Field names are normalized to their JSON names and null fields
        are dropped; unknown fields are kept as sent.

        Returns:
            The decoded JSON document in canonical form.

        Raises:
            DecodeError: If the body is not a JSON object of the expected shape.
        """
        if not body.strip():
            return {}
        try:
            document = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DecodeError(self.service_name, method, f"invalid JSON: {e}") from e
        if not isinstance(document, dict):
            raise DecodeError(
                self.service_name, method, f"expected a JSON object, got {type(document).__name__}"
            )
        try:
            message = self.request_model.model_validate(document)
        except ValidationError as e:
            raise DecodeError(
                self.service_name, method, f"{e.error_count()} invalid field(s): {e}"
            ) from e
        return message.model_dump(by_alias=True, exclude_unset=True)

    def handle(self, method: str, body: bytes) -> StubResponse:
        """Serve one RPC call.

        Never raises for malformed payloads: a DecodeError is logged and
        the call is still acknowledged, so the proxy under test is not
        disturbed by the fake.
        """
        if method not in self.methods:
            return StubResponse(
                HTTPStatus.NOT_FOUND,
                error_body(
                    HTTPStatus.NOT_FOUND,
                    f"Method {self.service_name}/{method} is not implemented. "
                    f"Available methods: {self.methods}",
                ),
            )

        with self._lock:
            self.calls[method] += 1
            failure = self._failures.get(method)

        if method == self.captured_method:
            try:
                payload = self.decode(method, body)
            except DecodeError as e:
                with self._lock:
                    self.decode_errors[method] += 1
                logger.warning(f"{e}; acknowledging without capture")
            else:
                self.channel.publish(payload)

        if failure is not None:
            logger.debug(
                f"Returning injected {failure.status.value} for {self.service_name}/{method}"
            )
            return StubResponse(failure.status, error_body(failure.status, failure.message))

        if method == self.captured_method:
            return StubResponse(HTTPStatus.OK, {})
        return StubResponse(HTTPStatus.OK, dict(self.acknowledged_methods[method]))


class MetricServiceStub(ServiceStub):
    """Fake google.monitoring.v3.MetricService capturing CreateTimeSeries."""

    service_name = "google.monitoring.v3.MetricService"
    kind = ServiceKind.METRICS
    captured_method = "CreateTimeSeries"
    request_model = CreateTimeSeriesRequest
    acknowledged_methods = {
        "CreateMetricDescriptor": {},
        "ListMetricDescriptors": {"metricDescriptors": []},
        "ListTimeSeries": {"timeSeries": []},
    }


class LoggingServiceStub(ServiceStub):
    """Fake google.logging.v2.LoggingServiceV2 capturing WriteLogEntries."""

    service_name = "google.logging.v2.LoggingServiceV2"
    kind = ServiceKind.LOGGING
    captured_method = "WriteLogEntries"
    request_model = WriteLogEntriesRequest
    acknowledged_methods = {
        "ListLogEntries": {"entries": []},
        "ListLogs": {"logNames": []},
        "DeleteLog": {},
    }


class MeshEdgesServiceStub(ServiceStub):
    """Fake mesh telemetry service capturing ReportTrafficAssertions."""

    service_name = "google.cloud.meshtelemetry.v1alpha1.MeshEdgesService"
    kind = ServiceKind.EDGES
    captured_method = "ReportTrafficAssertions"
    request_model = ReportTrafficAssertionsRequest
    acknowledged_methods = {}
