from __future__ import annotations

import httpx
import pytest

from rrio_data.adapters import AdapterError, VerificationResult
from rrio_data.adapters.api import AIClient, DataError, RiskClient
from rrio_data.config import ClientSettings
from rrio_data.core import ExecutionContext, ExecutionOptions, default_registry
from rrio_data.core.monitoring import EventCategory
from rrio_data.services import DashboardServices

BASE_URL = "http://rrio.test"

REGIME_PAYLOAD = {
    "regime": "Expansion",
    "probabilities": {"Expansion": 0.7, "Contraction": 0.3},
    "updated_at": "2024-01-01T00:00:00Z",
}


@pytest.fixture()
def services(monitor, backend, sleeps) -> DashboardServices:
    context = ExecutionContext(
        settings=ClientSettings(api_base_url=BASE_URL),
        monitor=monitor,
        options=ExecutionOptions(max_workers=4),
    )
    return DashboardServices(default_registry(), context, transport=backend.transport, sleep=sleeps.append)


def test_clients_are_built_once_per_group(services, sleeps):
    risk = services.risk()

    assert isinstance(risk, RiskClient)
    assert services.client("risk") is risk
    assert isinstance(services.ai(), AIClient)
    assert risk.base_url == BASE_URL
    assert risk.sleep == sleeps.append


def test_fetch_returns_raw_payload(services, backend):
    backend.add("/api/v1/ai/regime/current", REGIME_PAYLOAD)

    assert services.fetch("regime") == REGIME_PAYLOAD


def test_fetch_unknown_endpoint(services):
    with pytest.raises(AdapterError, match="not registered"):
        services.fetch("does_not_exist")


def test_fetch_with_path_params(services, backend):
    backend.add("/api/v1/monitoring/data-lineage/VIX", {"series_id": "VIX"})

    assert services.fetch("data_lineage", path_params={"series_id": "VIX"}) == {"series_id": "VIX"}


def test_fetch_exhausts_retry_budget(services, backend, sleeps):
    backend.add("/api/v1/alerts/health-overview", httpx.Response(503))

    with pytest.raises(DataError) as excinfo:
        services.fetch("health_overview")

    assert excinfo.value.retry_attempt == 3
    assert backend.hits["/api/v1/alerts/health-overview"] == 4
    assert sleeps == [1.0, 2.0, 4.0]


def test_snapshot_keeps_order_and_isolates_failures(services, backend, telemetry):
    backend.add("/api/v1/ai/regime/current", REGIME_PAYLOAD)
    backend.add("/api/v1/alerts/health-overview", httpx.Response(503))
    backend.add("/api/v1/impact/ras/history", {"history": []})

    snapshot = services.fetch_snapshot(["health_overview", "regime", "ras_history"])

    assert list(snapshot) == ["health_overview", "regime", "ras_history"]
    assert snapshot["regime"].success is True
    assert snapshot["regime"].data == REGIME_PAYLOAD
    assert snapshot["ras_history"].data == {"history": []}
    failed = snapshot["health_overview"]
    assert failed.success is False
    assert "HTTP 503" in failed.error

    statuses = [
        (event.tags["component"], event.data["status"])
        for event in telemetry.of(EventCategory.USER_ACTION)
        if "status" in event.data
    ]
    assert ("HealthOverview", "error") in statuses
    assert ("RegimeData", "success") in statuses
    assert statuses.count(("RegimeData", "loading")) == 1


def test_snapshot_records_unresolvable_entries(services, backend):
    backend.add("/api/v1/ai/regime/current", REGIME_PAYLOAD)

    snapshot = services.fetch_snapshot(["regime", "governance_compliance", "does_not_exist"])

    assert list(snapshot) == ["regime", "governance_compliance", "does_not_exist"]
    assert snapshot["regime"].success is True
    assert snapshot["regime"].data == REGIME_PAYLOAD
    missing_param = snapshot["governance_compliance"]
    assert missing_param.success is False
    assert missing_param.error == "Endpoint 'governance_compliance' requires path parameter(s): model."
    unknown = snapshot["does_not_exist"]
    assert unknown.success is False
    assert "not registered" in unknown.error
    assert [request.url.path for request in backend.requests] == ["/api/v1/ai/regime/current"]


def test_snapshot_empty(services):
    assert services.fetch_snapshot([]) == {}


def test_verify_endpoint_success(services, backend):
    backend.add("/api/v1/ai/regime/current", REGIME_PAYLOAD)

    result = services.verify_endpoint("regime")

    assert result.success is True
    assert result.details["validator"] == "regime"


def test_verify_endpoint_reports_shape_errors(services, backend):
    backend.add("/api/v1/alerts/health-overview", {"health_score": 71})

    result = services.verify_endpoint("health_overview")

    assert result.success is False
    assert result.message == "health_overview returned a payload failing health overview validation."
    assert result.details["errors"] == ["overall_health must be a non-empty string"]


def test_verify_endpoint_requires_path_params(services, backend):
    result = services.verify_endpoint("data_lineage")

    assert result.success is False
    assert "series_id" in result.message
    assert backend.requests == []


def test_verify_endpoint_unreachable(services, backend):
    backend.add("/api/v1/ai/regime/current", httpx.Response(404))

    result = services.verify_endpoint("regime")

    assert result.success is False
    assert result.details["status_code"] == 404
    assert result.details["attempts"] == 1


def test_verify_endpoint_uses_supplied_adapter(services):
    class StaticAdapter:
        endpoint_id = "regime"

        def verify(self) -> VerificationResult:
            return VerificationResult(success=True, message="static")

    assert services.verify_endpoint("regime", StaticAdapter()).message == "static"


def test_audit_selected_endpoints(services, backend):
    backend.add("/api/v1/ai/regime/current", REGIME_PAYLOAD)
    backend.add("/api/v1/alerts/health-overview", {"overall_health": ""})

    results = services.audit(["regime", "health_overview"])

    assert list(results) == ["regime", "health_overview"]
    assert results["regime"].success is True
    assert results["health_overview"].success is False


def test_audit_defaults_to_probeable_endpoints(services, backend):
    backend.add("/api/v1/ai/regime/current", REGIME_PAYLOAD)

    results = services.audit()

    expected = [descriptor.endpoint_id for descriptor in default_registry().iter_probeable()]
    assert list(results) == expected
    assert results["regime"].success is True
    assert "predict_cascade" not in results
