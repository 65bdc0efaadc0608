"""Replay client for the fake telemetry receiver.

Sends telemetry RPCs to a receiver the way a proxy would, so a running
receiver (and the verification around it) can be smoke-tested without
starting the proxy under test.
"""

import logging
from typing import Any

import httpx

from telecheck.adapters.receiver.services import (
    LoggingServiceStub,
    MeshEdgesServiceStub,
    MetricServiceStub,
)
from telecheck.core.models import Fixture, thaw

logger = logging.getLogger(__name__)


class TelemetryReplayClient:
    """httpx-backed client for the three captured telemetry RPCs."""

    def __init__(self, base_url: str, timeout: float = 10.0):
        """Initialize the replay client.

        Args:
            base_url: Receiver URL (e.g., http://127.0.0.1:12312)
            timeout: Per-request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def __aenter__(self) -> "TelemetryReplayClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.client.aclose()

    async def close(self) -> None:
        """Close the httpx client and clean up resources."""
        await self.client.aclose()

    async def call(self, service: str, method: str, body: dict[str, Any]) -> dict[str, Any]:
        """POST one RPC and return the decoded JSON response.

        Raises:
            httpx.HTTPError: If the receiver is unreachable or answers non-2xx.
        """
        try:
            response = await self.client.post(f"/{service}/{method}", json=body)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            logger.error(f"Failed to replay {service}/{method}: {e}", exc_info=True)
            raise

    async def create_time_series(self, project: str, series: Fixture) -> dict[str, Any]:
        """Send a CreateTimeSeries request carrying one TimeSeries fixture."""
        body = {"name": project, "timeSeries": [thaw(series.message)]}
        return await self.call(
            MetricServiceStub.service_name, MetricServiceStub.captured_method, body
        )

    async def write_log_entries(self, request: Fixture) -> dict[str, Any]:
        """Send a WriteLogEntries request."""
        return await self.call(
            LoggingServiceStub.service_name,
            LoggingServiceStub.captured_method,
            thaw(request.message),
        )

    async def report_traffic_assertions(self, request: Fixture) -> dict[str, Any]:
        """Send a ReportTrafficAssertions request."""
        return await self.call(
            MeshEdgesServiceStub.service_name,
            MeshEdgesServiceStub.captured_method,
            thaw(request.message),
        )
