"""
Pure helpers that reshape backend payloads into dashboard values.

Nothing here performs I/O or emits telemetry; client methods wrap these
functions and report data-quality issues themselves.
"""

from __future__ import annotations

import re
import time
from datetime import UTC, datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional

_WORD_START = re.compile(r"\b\w")

FALLBACK_GERI_COLOR = "#FACC15"
FALLBACK_GERI_HISTORY: tuple[tuple[str, float], ...] = (
    ("2024-11-10", 52.3),
    ("2024-11-11", 52.9),
    ("2024-11-12", 53.4),
    ("2024-11-13", 53.0),
    ("2024-11-14", 53.8),
    ("2024-11-15", 54.1),
    ("2024-11-16", 54.6),
    ("2024-11-17", 55.0),
    ("2024-11-18", 55.4),
    ("2024-11-19", 55.1),
)
FALLBACK_GERI_UPDATED_AT = "2024-11-19T00:00:00Z"
SYNTHETIC_FORECAST_POINTS = 10


def utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


def title_case(text: str) -> str:
    """``"supply_chain"`` -> ``"Supply Chain"``."""

    return _WORD_START.sub(lambda match: match.group(0).upper(), text.replace("_", " "))


def as_float(value: object, default: float = 0.0) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default


def as_list(value: object) -> Optional[List[Any]]:
    return list(value) if isinstance(value, (list, tuple)) else None


# -- Risk ---------------------------------------------------------------------


def wrap_geri_overview(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """Wrap the flat GERI payload into the ``{overview, alerts}`` dashboard shape."""

    color = raw.get("color") or "#666"
    return {
        "overview": {
            "score": raw.get("score") or 0,
            "change_24h": raw.get("change_24h") or 0,
            "confidence": raw.get("confidence") or 0,
            "band": raw.get("band") or "unknown",
            "color": color,
            "band_color": raw.get("band_color") or color,
            "updated_at": raw.get("updated_at") or utc_now_iso(),
            "contributions": raw.get("contributions") or {},
            "component_scores": raw.get("component_scores") or {},
            "metadata": raw.get("metadata") or {"total_weight": 1},
            "drivers": raw.get("drivers") or [],
            "components": raw.get("components") or {},
        },
        "alerts": [],
    }


def normalise_geri_history(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Normalise GERI history points, substituting the reference series when empty.

    Date-only values get ``T00:00:00Z`` appended so every timestamp parses as
    a UTC instant.
    """

    points = []
    for point in raw.get("geri_history") or []:
        date = str(point.get("date", ""))
        points.append(
            {
                "timestamp": date if "T" in date else f"{date}T00:00:00Z",
                "score": point.get("score"),
                "band": point.get("band"),
                "color": point.get("color"),
            }
        )
    if not points:
        points = [
            {"timestamp": f"{date}T00:00:00Z", "score": score, "band": "moderate", "color": FALLBACK_GERI_COLOR}
            for date, score in FALLBACK_GERI_HISTORY
        ]
    metadata = raw.get("metadata") or {}
    updated_at = metadata.get("generated_at") or points[-1]["timestamp"]
    return {"points": points, "updatedAt": updated_at or FALLBACK_GERI_UPDATED_AT}


def map_classification_to_severity(classification: Optional[str], score: float) -> str:
    if classification == "critical" or score > 0.8:
        return "critical"
    if classification == "anomaly" or score > 0.4:
        return "high"
    if classification == "warning" or score > 0.2:
        return "medium"
    return "low"


def generate_alert_message(anomaly: Mapping[str, Any]) -> str:
    drivers = anomaly.get("drivers") or []
    cause = f"Driven by {', '.join(drivers)}" if drivers else "System anomaly detected"
    score = anomaly.get("score")
    severity = map_classification_to_severity(anomaly.get("classification") or "normal", as_float(score))
    score_text = f"{score:.2f}" if isinstance(score, (int, float)) and not isinstance(score, bool) else "Unknown"
    return f"{severity.upper()} alert - Risk score: {score_text}. {cause}"


def anomalies_to_alerts(anomalies: List[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    stamp = int(time.time() * 1000)
    alerts = []
    for index, anomaly in enumerate(anomalies):
        drivers = list(anomaly.get("drivers") or [])
        alerts.append(
            {
                "id": f"alert_{stamp}_{index}",
                "severity": map_classification_to_severity(anomaly.get("classification"), as_float(anomaly.get("score"))),
                "message": generate_alert_message(anomaly),
                "driver": ", ".join(drivers) or "System",
                "score": anomaly.get("score"),
                "classification": anomaly.get("classification"),
                "drivers": drivers,
                "timestamp": anomaly.get("timestamp"),
            }
        )
    return alerts


def normalise_anomaly_history(raw: Mapping[str, Any]) -> List[Dict[str, Any]]:
    return [
        {
            "timestamp": entry.get("timestamp"),
            "score": as_float(entry.get("score")),
            "classification": entry.get("classification"),
            "severity": entry.get("severity"),
        }
        for entry in raw.get("history") or []
    ]


# -- AI -----------------------------------------------------------------------


def normalise_regime(raw: Mapping[str, Any]) -> Dict[str, Any]:
    probabilities = raw.get("probabilities")
    if isinstance(probabilities, Mapping):
        entries = [{"name": name, "probability": value, "trend": "stable"} for name, value in probabilities.items()]
    elif isinstance(probabilities, list):
        entries = [{"name": item.get("name"), "probability": item.get("probability"), "trend": item.get("trend", "stable")} for item in probabilities]
    else:
        entries = []
    return {
        "current": raw.get("regime") or "Unknown",
        "probabilities": entries,
        "confidence": raw.get("confidence"),
        "updatedAt": raw.get("updated_at") or utc_now_iso(),
        "watchlist": [],
    }


def synthetic_forecast_points(delta: float, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Linear path from 0 to ``delta`` over the last nine hours, with a symmetric band."""

    now = now or datetime.now(UTC)
    step = delta / (SYNTHETIC_FORECAST_POINTS - 1)
    band = max(abs(delta) * 0.2, 0.5)
    points = []
    for index in range(SYNTHETIC_FORECAST_POINTS):
        value = round(step * index, 2)
        stamp = now - timedelta(hours=SYNTHETIC_FORECAST_POINTS - 1 - index)
        points.append({"timestamp": stamp.isoformat(), "value": value, "lower": value - band, "upper": value + band})
    return points


def build_forecast(raw: Mapping[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    delta = raw.get("delta24h")
    if delta is None:
        delta = raw.get("delta")
    delta = as_float(delta)

    supplied = as_list(raw.get("points"))
    if supplied:
        points = [
            {
                "timestamp": point.get("timestamp"),
                "value": point.get("value"),
                "lower": point["lower"] if point.get("lower") is not None else as_float(point.get("value")) - 0.5,
                "upper": point["upper"] if point.get("upper") is not None else as_float(point.get("value")) + 0.5,
            }
            for point in supplied
        ]
    else:
        points = synthetic_forecast_points(delta, now)

    probability = raw.get("p_gt_5")
    odds = f"{probability * 100:.1f}" if probability else "N/A"
    commentary = raw.get("commentary") or f"Expected move {delta:.1f} pts. P(>5pts): {odds}%."
    return {"delta24h": delta, "points": points, "updatedAt": raw.get("updated_at") or utc_now_iso(), "commentary": commentary}


def normalise_forecast_history(raw: Mapping[str, Any]) -> List[Dict[str, Any]]:
    history = []
    for point in raw.get("history") or []:
        predicted = as_float(point.get("predicted"))
        history.append(
            {
                "timestamp": point.get("timestamp"),
                "predicted": predicted,
                "realized": as_float(point.get("realized")),
                "lower": point["lower"] if point.get("lower") is not None else predicted - 1,
                "upper": point["upper"] if point.get("upper") is not None else predicted + 1,
            }
        )
    return history


def normalise_explainability(raw: Mapping[str, Any]) -> Dict[str, Any]:
    regime = [
        {"feature": driver.get("feature"), "importance": as_float(driver.get("importance")), "value": as_float(driver.get("value"))}
        for driver in raw.get("regime") or []
    ]
    forecast = [
        {
            "feature": driver.get("feature"),
            "contribution": as_float(driver.get("contribution")),
            "coef": as_float(driver.get("coef")),
            "value": as_float(driver.get("value")),
        }
        for driver in raw.get("forecast") or []
    ]
    return {"regime": regime, "forecast": forecast, "generated_at": raw.get("generated_at")}


# -- Impact -------------------------------------------------------------------


def partner_highlight(partner: Mapping[str, Any]) -> Dict[str, Any]:
    sector = partner.get("sector")
    return {
        "id": partner.get("lab_id") or f"partner-{int(time.time() * 1000)}",
        "title": title_case(sector) if sector else "Partner Lab",
        "status": partner.get("status") or "active",
        "metric": f"{len(partner.get('deliverables') or [])} deliverables",
        "updatedAt": partner.get("showcase_date") or utc_now_iso(),
    }


def engagement_from_deliverables(partner: Mapping[str, Any]) -> int:
    """Deterministic engagement estimate for partners without ``engagement_score``."""

    count = len(partner.get("deliverables") or [])
    multiplier = {"active": 1.2, "completed": 1.1}.get(partner.get("status") or "", 0.8)
    base = min(95, max(20, count * 15 + 40))
    return round(base * multiplier)


def partner_projects(partner: Mapping[str, Any]) -> List[Dict[str, Any]]:
    details = partner.get("project_details")
    if details:
        return [{"name": item.get("name"), "status": item.get("status"), "priority": item.get("priority")} for item in details]
    priorities = ("critical", "high")
    return [
        {
            "name": title_case(deliverable),
            "status": "in_progress",
            "priority": priorities[index] if index < len(priorities) else "medium",
        }
        for index, deliverable in enumerate(partner.get("deliverables") or [])
    ]


def summarise_ras(raw: Mapping[str, Any]) -> Dict[str, Any]:
    components = raw.get("components") or {}
    metrics = []
    for key, value in components.items():
        current = as_float(value)
        if current > 0.15:
            status = "good"
        elif current > 0.1:
            status = "warning"
        else:
            status = "critical"
        metrics.append(
            {
                "label": title_case(key),
                "value": round(current * 100),
                "change": round((current - 0.5) * 20, 1),
                "status": status,
            }
        )
    composite = as_float(raw.get("composite"))
    return {
        "score": round(composite * 100),
        "delta": round((composite - 0.1) * 1000) / 10,
        "updatedAt": raw.get("calculated_at") or utc_now_iso(),
        "metrics": metrics,
        "partners": [title_case(key) for key in components],
    }


def ras_history_points(raw: Mapping[str, Any]) -> List[Dict[str, Any]]:
    points = []
    for entry in raw.get("history") or []:
        value = entry.get("composite")
        if value is None:
            value = entry.get("value")
        points.append({"date": entry.get("calculated_at"), "value": value if value is not None else 0})
    return points


# -- Intel --------------------------------------------------------------------


def _newsletter_brief(kind: str, label: str, default_status: str, section: Mapping[str, Any]) -> Dict[str, Any]:
    preview = section.get("draft_preview") or {}
    return {
        "id": f"{kind}-{section.get('next_scheduled') or section.get('last_published') or 'na'}",
        "headline": preview.get("headline") or f"{label} · {section.get('status') or default_status}",
        "author": "RRIO Editorial",
        "timestamp": section.get("last_published") or section.get("next_scheduled") or utc_now_iso(),
        "link": preview.get("link") or section.get("publish_url"),
    }


def newsroom_briefs(raw: Mapping[str, Any]) -> List[Dict[str, Any]]:
    briefs = []
    if raw.get("daily_flash"):
        briefs.append(_newsletter_brief("daily", "Daily Flash", "Draft", raw["daily_flash"]))
    if raw.get("weekly_wrap"):
        briefs.append(_newsletter_brief("weekly", "Weekly Wrap", "In Progress", raw["weekly_wrap"]))
    reports = (raw.get("special_reports") or {}).get("recently_published")
    if isinstance(reports, list):
        for index, item in enumerate(reports):
            briefs.append(
                {
                    "id": f"special-{index}",
                    "headline": item.get("title") or "Special Report",
                    "author": item.get("author") or "RRIO Editorial",
                    "timestamp": item.get("published_date") or utc_now_iso(),
                    "link": item.get("url"),
                }
            )
    return briefs
