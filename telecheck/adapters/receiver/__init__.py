"""Fake telemetry receiver adapters.

Impersonates three telemetry ingestion services behind one HTTP port:
- google.monitoring.v3.MetricService (CreateTimeSeries captured)
- google.logging.v2.LoggingServiceV2 (WriteLogEntries captured)
- google.cloud.meshtelemetry.v1alpha1.MeshEdgesService (ReportTrafficAssertions captured)
"""

from .http_server import FakeTelemetryReceiver, make_receiver_handler, start_fake_receiver
from .services import (
    LoggingServiceStub,
    MeshEdgesServiceStub,
    MetricServiceStub,
    ServiceStub,
    StubResponse,
)

__all__ = [
    "FakeTelemetryReceiver",
    "LoggingServiceStub",
    "MeshEdgesServiceStub",
    "MetricServiceStub",
    "ServiceStub",
    "StubResponse",
    "make_receiver_handler",
    "start_fake_receiver",
]
