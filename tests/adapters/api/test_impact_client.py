from __future__ import annotations

from rrio_data.adapters.api import ImpactClient
from rrio_data.adapters.api.transforms import engagement_from_deliverables, summarise_ras


def _partner(**changes):
    partner = {
        "lab_id": "lab-1",
        "sector": "supply_chain",
        "status": "active",
        "deliverables": ["risk_dashboard", "stress_tests"],
        "showcase_date": "2024-11-01T00:00:00Z",
    }
    partner.update(changes)
    return partner


def test_mission_highlights(make_client, backend):
    backend.add("/api/v1/impact/partners", {"partners": [_partner()]})
    client = make_client(ImpactClient)

    highlights = client.get_mission_highlights()

    assert highlights == [
        {
            "id": "lab-1",
            "title": "Supply Chain",
            "status": "active",
            "metric": "2 deliverables",
            "updatedAt": "2024-11-01T00:00:00Z",
        }
    ]


def test_partners_estimate_missing_engagement(make_client, backend, telemetry):
    backend.add("/api/v1/impact/partners", {"partners": [_partner()]})
    client = make_client(ImpactClient)

    details = client.get_partners_data()

    partner = details[0]
    assert partner["name"] == "Supply Chain"
    assert partner["engagement"] == 84
    assert partner["capabilities"] == ["Risk Dashboard", "Stress Tests"]
    assert partner["projects"][0] == {"name": "Risk Dashboard", "status": "in_progress", "priority": "critical"}
    estimates = [event for event in telemetry.quality() if event.data.get("calculated_engagement") == 84]
    assert len(estimates) == 1
    assert estimates[0].tags["severity"] == "medium"


def test_partners_keep_reported_engagement(make_client, backend, telemetry):
    backend.add("/api/v1/impact/partners", {"partners": [_partner(engagement_score=91)]})
    client = make_client(ImpactClient)

    assert client.get_partners_data()[0]["engagement"] == 91
    assert telemetry.quality() == []


def test_partner_without_sector_is_strategic(make_client, backend):
    partner = _partner()
    partner.pop("sector")
    backend.add("/api/v1/impact/partners", {"partners": [partner]})
    client = make_client(ImpactClient)

    detail = client.get_partners_data()[0]

    assert detail["type"] == "Strategic Partnership"
    assert detail["name"] == "Partner Lab 1"


def test_engagement_estimate_is_bounded():
    assert engagement_from_deliverables({"deliverables": [], "status": "paused"}) == 32
    assert engagement_from_deliverables({"deliverables": ["x"] * 10, "status": "active"}) == 114


def test_ras_summary_metrics():
    result = summarise_ras({"composite": 0.42, "components": {"supply_chain": 0.2, "labor": 0.05}, "calculated_at": "c"})

    assert result["score"] == 42
    assert result["delta"] == 32.0
    assert result["updatedAt"] == "c"
    assert [metric["status"] for metric in result["metrics"]] == ["good", "critical"]
    assert result["partners"] == ["Supply Chain", "Labor"]


def test_ras_history(make_client, backend):
    backend.add("/api/v1/impact/ras/history", {"history": [{"calculated_at": "d1", "composite": 0.3}, {"calculated_at": "d2", "value": 0.4}]})
    client = make_client(ImpactClient)

    assert client.get_ras_history() == [{"date": "d1", "value": 0.3}, {"date": "d2", "value": 0.4}]
    assert backend.requests[0].url.params["limit"] == "30"
