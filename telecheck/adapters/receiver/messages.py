"""Request models for the telemetry APIs impersonated by the fake receiver.

These follow the protobuf JSON mapping of the Cloud Monitoring v3,
Cloud Logging v2 and Mesh Telemetry v1alpha1 request messages. Only
the fields the verifier inspects are declared; every other field is
accepted as-is, so a model validates the shape of a request without
rejecting fields it does not know.

As in the proto3 JSON mapping, a field may be sent under its original
proto name (``time_series``) or its JSON name (``timeSeries``), and a
``null`` value means the field is unset. Dumping a model with
``by_alias=True, exclude_unset=True`` yields the canonical document.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class WireMessage(BaseModel):
    """Base for protobuf-JSON messages (camelCase names, unknown fields kept)."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def drop_null_fields(cls, data: Any) -> Any:
        """Treat ``null`` fields as unset."""
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


# ============================================================================
# google.monitoring.v3
# ============================================================================


class Metric(WireMessage):
    type: str = ""
    labels: dict[str, str] = Field(default_factory=dict)


class MonitoredResource(WireMessage):
    type: str = ""
    labels: dict[str, str] = Field(default_factory=dict)


class TimeInterval(WireMessage):
    start_time: str | None = Field(default=None, alias="startTime")
    end_time: str | None = Field(default=None, alias="endTime")


class Point(WireMessage):
    interval: TimeInterval | None = None
    value: dict[str, Any] = Field(default_factory=dict)


class TimeSeries(WireMessage):
    metric: Metric | None = None
    resource: MonitoredResource | None = None
    metric_kind: str | None = Field(default=None, alias="metricKind")
    value_type: str | None = Field(default=None, alias="valueType")
    points: list[Point] = Field(default_factory=list)


class CreateTimeSeriesRequest(WireMessage):
    name: str = ""
    time_series: list[TimeSeries] = Field(default_factory=list, alias="timeSeries")


# ============================================================================
# google.logging.v2
# ============================================================================


class LogEntry(WireMessage):
    log_name: str | None = Field(default=None, alias="logName")
    severity: str | None = None
    timestamp: str | None = None
    labels: dict[str, str] = Field(default_factory=dict)
    http_request: dict[str, Any] | None = Field(default=None, alias="httpRequest")


class WriteLogEntriesRequest(WireMessage):
    log_name: str = Field(default="", alias="logName")
    resource: MonitoredResource | None = None
    labels: dict[str, str] = Field(default_factory=dict)
    entries: list[LogEntry] = Field(default_factory=list)
    partial_success: bool = Field(default=False, alias="partialSuccess")
    dry_run: bool = Field(default=False, alias="dryRun")


# ============================================================================
# google.cloud.meshtelemetry.v1alpha1
# ============================================================================


class WorkloadInstance(WireMessage):
    uid: str = ""
    location: str = ""
    cluster_name: str = Field(default="", alias="clusterName")
    owner_uid: str = Field(default="", alias="ownerUid")
    workload_name: str = Field(default="", alias="workloadName")
    workload_namespace: str = Field(default="", alias="workloadNamespace")


class TrafficAssertion(WireMessage):
    protocol: str | int | None = None
    destination_service_name: str = Field(default="", alias="destinationServiceName")
    destination_service_namespace: str = Field(
        default="", alias="destinationServiceNamespace"
    )
    source: WorkloadInstance | None = None
    destination: WorkloadInstance | None = None


class ReportTrafficAssertionsRequest(WireMessage):
    parent: str = ""
    mesh_uid: str = Field(default="", alias="meshUid")
    traffic_assertions: list[TrafficAssertion] = Field(
        default_factory=list, alias="trafficAssertions"
    )
    timestamp: str | None = None
