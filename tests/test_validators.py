from __future__ import annotations

import math

import pytest

from rrio_data.core.monitoring import Severity
from rrio_data.validation import VALIDATOR_REGISTRY, Invalid, Valid, generate_validation_report, get_validator_for_endpoint
from rrio_data.validation import validators as v


def _overview(**changes):
    overview = {"score": 42, "change_24h": 1.5, "updated_at": "2024-11-19T00:00:00Z", "band": "moderate", "drivers": []}
    overview.update(changes)
    return {"overview": overview, "alerts": []}


def test_primitive_predicates():
    assert v.is_number(3) and v.is_number(2.5)
    assert not v.is_number(True)
    assert not v.is_number(math.nan)
    assert not v.is_number("3")
    assert v.is_date_string("2024-01-01T00:00:00Z")
    assert v.is_date_string("2024-01-01")
    assert not v.is_date_string("yesterday")
    assert not v.is_date_string("")


def test_risk_overview_score_checks():
    missing = _overview()
    del missing["overview"]["score"]
    assert "overview.score must be a number" in v.check_risk_overview(missing)
    assert "overview.score must be between 0 and 100" in v.check_risk_overview(_overview(score=150))
    assert v.check_risk_overview(_overview(score=42)) == []


def test_risk_overview_requires_object():
    assert v.check_risk_overview([1, 2]) == ["Risk overview must be an object"]
    assert "overview must be an object" in v.check_risk_overview({"alerts": []})


def test_component_item_errors_are_indexed():
    errors = v.check_components({"components": [{"id": "VIX", "value": 1, "z_score": 0.2}, {"id": 7, "value": 1, "z_score": 0}]})
    assert errors == ["components[1].id must be a string"]
    assert v.check_components({"components": "nope"}) == ["components must be an array"]


def test_regime_accepts_backend_mapping():
    payload = {
        "regime": "Expansion",
        "probabilities": {"Expansion": 0.7, "Contraction": 0.3},
        "confidence": 0.8,
        "updated_at": "2024-01-01T00:00:00Z",
    }
    assert v.check_regime(payload) == []
    payload["probabilities"]["Contraction"] = 1.3
    assert v.check_regime(payload) == ["probabilities.Contraction must be a number between 0 and 1"]


def test_transparency_status_enum():
    errors = v.check_transparency_status({"timestamp": "2024-01-01T00:00:00Z", "overall_status": "fine"})
    assert errors == ["overall_status must be one of: healthy, degraded, critical"]


def test_pagination_is_optional():
    assert v.check_pagination({}) == []
    assert v.check_pagination({"pagination": {"total": 1, "page": 1, "pageSize": "10"}}) == ["pagination.pageSize must be a number"]


def test_active_alerts_shape():
    alert = {
        "id": "a1",
        "service_name": "api",
        "severity": "high",
        "message": "latency",
        "timestamp": "2024-01-01T00:00:00Z",
        "resolved": False,
    }
    payload = {"active_alerts": [alert], "summary": {"total_alerts": 1, "critical_alerts": 0}, "timestamp": "now"}
    assert v.check_active_alerts(payload) == []
    payload["active_alerts"][0]["severity"] = "urgent"
    assert v.check_active_alerts(payload) == ["active_alerts[0].severity must be one of: critical, high, medium, low"]


def test_health_overview_requires_status():
    assert v.check_health_overview({"overall_health": "healthy", "health_score": 97}) == []
    assert v.check_health_overview({"overall_health": ""}) == ["overall_health must be a non-empty string"]


def test_shape_validator_results(monitor, telemetry):
    result = v.RISK_OVERVIEW.run(_overview())
    assert isinstance(result, Valid)
    assert result.valid and result.errors == ()

    failure = v.RISK_OVERVIEW(_overview(score=-1), "/api/v1/risk/overview", monitor=monitor)
    assert isinstance(failure, Invalid)
    assert failure.data is None
    quality = telemetry.quality()
    assert len(quality) == 1
    assert quality[0].tags["severity"] == Severity.HIGH.value
    assert quality[0].data["errors"] == ["overview.score must be between 0 and 100"]


@pytest.mark.parametrize(
    ("endpoint", "payload"),
    [
        ("/api/v1/risk/overview", _overview()),
        ("/api/v1/ai/regime/current", {"regime": "Expansion", "probabilities": {"Expansion": 0.7}, "updated_at": "2024-01-01T00:00:00Z"}),
        ("/api/v1/alerts/health-overview", {"overall_health": "healthy", "health_score": 98}),
    ],
)
def test_validating_twice_gives_the_same_result(monitor, telemetry, endpoint, payload):
    validator = get_validator_for_endpoint(endpoint)

    first = validator(payload, endpoint, monitor=monitor)
    second = validator(payload, endpoint, monitor=monitor)

    assert first.valid and second.valid
    assert first.errors == () and second.errors == ()
    assert first == second
    assert telemetry.quality() == []


def test_run_does_not_emit(monitor, telemetry):
    v.REGIME.run({"regime": 3})
    assert telemetry.events == []


def test_validator_lookup():
    assert get_validator_for_endpoint("/api/v1/ai/regime/current") is v.REGIME
    assert get_validator_for_endpoint("http://rrio.test/api/v1/impact/partners?limit=5") is v.PARTNERS
    assert get_validator_for_endpoint("/proxy/api/v1/anomalies/latest") is v.ANOMALIES
    assert get_validator_for_endpoint("/api/v1/unknown") is v.GENERIC
    assert get_validator_for_endpoint("/api/v1/analytics/geri") is v.GENERIC


def test_validator_registry_is_read_only():
    with pytest.raises(TypeError):
        VALIDATOR_REGISTRY["/api/v1/new"] = v.GENERIC  # type: ignore[index]


def test_generic_validator_rejects_null_only():
    assert v.GENERIC.run(None).errors == ("Received null or undefined data",)
    assert v.GENERIC.run([]).valid


def test_validation_report():
    report = generate_validation_report("/api/v1/regime", {"regime": "Expansion"}, [v.REGIME, v.GENERIC])
    assert report["endpoint"] == "/api/v1/regime"
    assert [entry["name"] for entry in report["validations"]] == ["regime", "generic"]
    assert report["validations"][0]["valid"] is False
    assert report["validations"][1] == {"name": "generic", "valid": True, "errors": []}
