"""Sample telemetry a sidecar proxy reports for one client/server hop.

Every builder returns a fresh dict, so tests can alter their copy
without affecting other tests. The traffic is ten GET requests from
productpage-v1 to ratings-v1 in namespace default.
"""

from typing import Any

from telecheck.core.models import Fixture

PROJECT = "projects/test-project"
CLIENT_REQUEST_COUNT = "istio.io/service/client/request_count"
SERVER_REQUEST_COUNT = "istio.io/service/server/request_count"


def _pod_resource(resource_type: str, pod_name: str) -> dict[str, Any]:
    labels = {
        "cluster_name": "test-cluster",
        "location": "us-east4-b",
        "namespace_name": "default",
        "pod_name": pod_name,
        "project_id": "test-project",
    }
    if resource_type == "k8s_container":
        labels["container_name"] = "istio-proxy"
    return {"type": resource_type, "labels": labels}


def _request_count_labels() -> dict[str, str]:
    return {
        "request_protocol": "http",
        "response_code": "200",
        "service_authentication_policy": "NONE",
        "destination_service_name": "server",
        "destination_service_namespace": "default",
        "destination_principal": "",
        "destination_workload_name": "ratings-v1",
        "destination_workload_namespace": "default",
        "source_principal": "",
        "source_workload_name": "productpage-v1",
        "source_workload_namespace": "default",
    }


def client_request_count(count: int = 10) -> dict[str, Any]:
    """Expected client-side request count TimeSeries."""
    return {
        "metric": {"type": CLIENT_REQUEST_COUNT, "labels": _request_count_labels()},
        "resource": _pod_resource("k8s_pod", "productpage-v1-84975bc778-pxz2w"),
        "metricKind": "CUMULATIVE",
        "valueType": "INT64",
        "points": [{"value": {"int64Value": str(count)}}],
    }


def server_request_count(count: int = 10) -> dict[str, Any]:
    """Expected server-side request count TimeSeries."""
    return {
        "metric": {"type": SERVER_REQUEST_COUNT, "labels": _request_count_labels()},
        "resource": _pod_resource("k8s_container", "ratings-v1-84975bc778-pxz2w"),
        "metricKind": "CUMULATIVE",
        "valueType": "INT64",
        "points": [{"value": {"int64Value": str(count)}}],
    }


def with_interval(series: dict[str, Any], end_time: str = "2019-10-01T12:00:00Z") -> dict[str, Any]:
    """Add the point intervals a real report carries."""
    for point in series["points"]:
        point["interval"] = {"startTime": "2019-10-01T11:59:00Z", "endTime": end_time}
    return series


def create_time_series_request(*series: dict[str, Any]) -> dict[str, Any]:
    return {"name": PROJECT, "timeSeries": list(series)}


def server_access_log() -> dict[str, Any]:
    """Expected WriteLogEntriesRequest for the server access log."""
    return {
        "logName": f"{PROJECT}/logs/server-accesslog-stackdriver",
        "resource": _pod_resource("k8s_container", "ratings-v1-84975bc778-pxz2w"),
        "labels": {
            "destination_name": "ratings-v1-84975bc778-pxz2w",
            "destination_workload": "ratings-v1",
            "source_name": "productpage-v1-84975bc778-pxz2w",
            "source_workload": "productpage-v1",
            "mesh_uid": "mesh",
        },
        "entries": [
            {
                "httpRequest": {
                    "requestMethod": "GET",
                    "requestUrl": "http://127.0.0.1:20143/echo",
                    "status": 200,
                    "protocol": "http",
                },
                "severity": "INFO",
                "labels": {"response_flag": "-", "service_authentication_policy": "NONE"},
            }
        ],
    }


def with_timestamps(request: dict[str, Any], timestamp: str = "2019-10-01T12:00:01Z") -> dict[str, Any]:
    """Stamp every log entry the way a real report does."""
    for entry in request["entries"]:
        entry["timestamp"] = timestamp
    return request


def _workload(name: str) -> dict[str, Any]:
    return {
        "uid": f"kubernetes://{name}-84975bc778-pxz2w.default",
        "location": "us-east4-b",
        "clusterName": "test-cluster",
        "ownerUid": f"kubernetes://api/apps/v1/namespaces/default/deployment/{name}",
        "workloadName": name,
        "workloadNamespace": "default",
    }


def traffic_assertions(mesh_uid: str = "mesh") -> dict[str, Any]:
    """Expected ReportTrafficAssertionsRequest for the productpage to ratings edge."""
    return {
        "parent": "projects/test-project",
        "meshUid": mesh_uid,
        "trafficAssertions": [
            {
                "protocol": "PROTOCOL_HTTP",
                "destinationServiceName": "server.default.svc.cluster.local",
                "destinationServiceNamespace": "default",
                "source": _workload("productpage-v1"),
                "destination": _workload("ratings-v1"),
            }
        ],
    }


def fixture(name: str, message: dict[str, Any]) -> Fixture:
    return Fixture(name=name, message=message)
