"""Tests for the fake telemetry receiver over real HTTP."""

import asyncio
import json
from collections.abc import AsyncIterator

import httpx
import pytest

from telecheck.adapters.receiver import FakeTelemetryReceiver, start_fake_receiver
from telecheck.core.errors import BindError
from telecheck.core.models import ServiceKind
from telecheck.tests.fakes import stackdriver

METRIC_SERVICE = "google.monitoring.v3.MetricService"
LOGGING_SERVICE = "google.logging.v2.LoggingServiceV2"
EDGES_SERVICE = "google.cloud.meshtelemetry.v1alpha1.MeshEdgesService"


@pytest.fixture
async def receiver() -> AsyncIterator[FakeTelemetryReceiver]:
    async with FakeTelemetryReceiver(port=0) as running:
        yield running


@pytest.fixture
async def client(receiver: FakeTelemetryReceiver) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(base_url=receiver.url, timeout=5.0) as http:
        yield http


class TestRouting:
    """Tests for request routing and error bodies."""

    @pytest.mark.asyncio
    async def test_health(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    @pytest.mark.asyncio
    async def test_unknown_service_is_404(self, client: httpx.AsyncClient) -> None:
        response = await client.post("/google.example.Nope/Call", json={})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == 12

    @pytest.mark.asyncio
    async def test_unknown_method_is_404(self, client: httpx.AsyncClient) -> None:
        response = await client.post(f"/{METRIC_SERVICE}/DeleteEverything", json={})

        assert response.status_code == 404
        assert response.json()["error"]["status"] == "UNIMPLEMENTED"

    @pytest.mark.asyncio
    async def test_malformed_path_is_404(self, client: httpx.AsyncClient) -> None:
        response = await client.post("/only-one-part", json={})

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_content_length_is_400(self, receiver: FakeTelemetryReceiver) -> None:
        reader, writer = await asyncio.open_connection(receiver.host, receiver.port)
        writer.write(
            (
                f"POST /{METRIC_SERVICE}/CreateTimeSeries HTTP/1.1\r\n"
                f"Host: {receiver.host}\r\n"
                "Content-Type: application/json\r\n"
                "Content-Length: twelve\r\n"
                "Connection: close\r\n"
                "\r\n"
            ).encode()
        )
        await writer.drain()
        raw = await asyncio.wait_for(reader.read(), 5)
        writer.close()
        await writer.wait_closed()

        status_line, _, rest = raw.decode().partition("\r\n")
        body = json.loads(rest.split("\r\n\r\n", 1)[1])
        assert status_line.split()[1] == "400"
        assert body["error"]["status"] == "INVALID_ARGUMENT"
        assert receiver.metric_service.calls["CreateTimeSeries"] == 0

    @pytest.mark.asyncio
    async def test_acknowledged_method_returns_canned_body(
        self, client: httpx.AsyncClient, receiver: FakeTelemetryReceiver
    ) -> None:
        response = await client.post(f"/{METRIC_SERVICE}/ListTimeSeries", json={})

        assert response.status_code == 200
        assert response.json() == {"timeSeries": []}
        assert receiver.metric_service.calls["ListTimeSeries"] == 1
        assert receiver.channels[ServiceKind.METRICS].pending == 0


class TestCapture:
    """Tests for capture through the HTTP surface."""

    @pytest.mark.asyncio
    async def test_each_service_captures_onto_its_channel(
        self, client: httpx.AsyncClient, receiver: FakeTelemetryReceiver
    ) -> None:
        await client.post(
            f"/{METRIC_SERVICE}/CreateTimeSeries",
            json=stackdriver.create_time_series_request(stackdriver.client_request_count()),
        )
        await client.post(f"/{LOGGING_SERVICE}/WriteLogEntries", json=stackdriver.server_access_log())
        await client.post(
            f"/{EDGES_SERVICE}/ReportTrafficAssertions", json=stackdriver.traffic_assertions()
        )

        channels = receiver.channels
        metrics = channels[ServiceKind.METRICS].get_nowait()
        logs = channels[ServiceKind.LOGGING].get_nowait()
        edges = channels[ServiceKind.EDGES].get_nowait()
        assert metrics.payload["timeSeries"][0]["metric"]["type"] == stackdriver.CLIENT_REQUEST_COUNT
        assert logs.method == "WriteLogEntries"
        assert edges.payload["meshUid"] == "mesh"

    @pytest.mark.asyncio
    async def test_concurrent_posts_are_each_captured_once(
        self, client: httpx.AsyncClient, receiver: FakeTelemetryReceiver
    ) -> None:
        calls = 50

        responses = await asyncio.gather(
            *(
                client.post(
                    f"/{EDGES_SERVICE}/ReportTrafficAssertions",
                    json=stackdriver.traffic_assertions(mesh_uid=f"mesh-{i}"),
                )
                for i in range(calls)
            )
        )

        assert all(r.status_code == 200 for r in responses)
        events = receiver.channels[ServiceKind.EDGES].drain()
        assert sorted(e.payload["meshUid"] for e in events) == sorted(
            f"mesh-{i}" for i in range(calls)
        )
        assert sorted(e.sequence for e in events) == list(range(1, calls + 1))

    @pytest.mark.asyncio
    async def test_malformed_body_is_acknowledged(
        self, client: httpx.AsyncClient, receiver: FakeTelemetryReceiver
    ) -> None:
        response = await client.post(
            f"/{LOGGING_SERVICE}/WriteLogEntries",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 200
        assert receiver.channels[ServiceKind.LOGGING].pending == 0
        assert receiver.logging_service.decode_errors["WriteLogEntries"] == 1

    @pytest.mark.asyncio
    async def test_injected_failure_is_returned(
        self, client: httpx.AsyncClient, receiver: FakeTelemetryReceiver
    ) -> None:
        receiver.edges_service.set_failure("ReportTrafficAssertions", 503, "try later")

        response = await client.post(
            f"/{EDGES_SERVICE}/ReportTrafficAssertions", json=stackdriver.traffic_assertions()
        )

        assert response.status_code == 503
        assert response.json()["error"]["message"] == "try later"
        assert receiver.channels[ServiceKind.EDGES].pending == 1


class TestLifecycle:
    """Tests for start and stop."""

    @pytest.mark.asyncio
    async def test_port_zero_binds_a_free_port(self, receiver: FakeTelemetryReceiver) -> None:
        assert receiver.port > 0
        assert receiver.running

    @pytest.mark.asyncio
    async def test_bind_error_when_port_is_taken(self, receiver: FakeTelemetryReceiver) -> None:
        second = FakeTelemetryReceiver(port=receiver.port)

        with pytest.raises(BindError) as exc_info:
            await second.start()

        assert exc_info.value.port == receiver.port

    @pytest.mark.asyncio
    async def test_stop_is_idempotent_and_final(self) -> None:
        receiver = FakeTelemetryReceiver(port=0)
        await receiver.start()

        await receiver.stop()
        await receiver.stop()

        assert not receiver.running
        with pytest.raises(RuntimeError):
            await receiver.start()

    @pytest.mark.asyncio
    async def test_stop_before_start(self) -> None:
        receiver = FakeTelemetryReceiver(port=0)

        await receiver.stop()

        assert not receiver.running

    @pytest.mark.asyncio
    async def test_start_twice_returns_same_channels(
        self, receiver: FakeTelemetryReceiver
    ) -> None:
        channels = await receiver.start()

        assert channels[ServiceKind.EDGES] is receiver.edges_service.channel

    @pytest.mark.asyncio
    async def test_start_fake_receiver(self) -> None:
        receiver, channels = await start_fake_receiver(0)
        try:
            assert set(channels) == set(ServiceKind)
            async with httpx.AsyncClient(base_url=receiver.url) as http:
                await http.post(
                    f"/{EDGES_SERVICE}/ReportTrafficAssertions",
                    json=stackdriver.traffic_assertions(),
                )
            assert channels[ServiceKind.EDGES].pending == 1
        finally:
            await receiver.stop()
