"""
Risk panel client: GERI headline, history, components, alerts and economics.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ...core.monitoring import Severity
from .base import BaseAPIClient
from .transforms import (
    anomalies_to_alerts,
    normalise_anomaly_history,
    normalise_geri_history,
    utc_now_iso,
    wrap_geri_overview,
)


class RiskClient(BaseAPIClient):
    """Fetches the Global Economic Risk Index and related risk series."""

    def get_risk_overview(self) -> Dict[str, Any]:
        return self.fetch_and_transform("risk_overview", wrap_geri_overview)

    def get_geri_history(self, days: int = 14) -> Dict[str, Any]:
        return self.fetch_and_transform("geri_history", normalise_geri_history, params={"days": days})

    def get_components_data(self) -> Dict[str, Any]:
        return self.fetch_and_transform("components", lambda raw: raw)

    def get_alerts(self) -> Dict[str, Any]:
        """Latest anomalies mapped to severity-labelled dashboard alerts."""

        _, config = self.resolve("alerts")

        def transform(raw: Dict[str, Any]) -> Dict[str, Any]:
            anomalies = raw.get("anomalies") if isinstance(raw, dict) else None
            if not isinstance(anomalies, list):
                self.monitor.track_data_quality("Invalid alerts/anomalies data structure", config.endpoint, Severity.MEDIUM)
                return {"anomalies": [], "summary": {"total_anomalies": 0, "max_severity": 0, "updated_at": utc_now_iso()}}
            return {**raw, "anomalies": anomalies_to_alerts(anomalies)}

        return self.fetch_and_transform("alerts", transform)

    def get_anomaly_history(self, days: int = 14) -> Dict[str, Any]:
        return self.fetch_and_transform(
            "anomaly_history",
            lambda raw: {"history": normalise_anomaly_history(raw), "generated_at": raw.get("generated_at")},
            params={"days": days},
        )

    def get_economic_data(self) -> Dict[str, Any]:
        _, config = self.resolve("economic_data")

        def transform(raw: Dict[str, Any]) -> Dict[str, Any]:
            indicators: Optional[List[Any]] = raw.get("indicators") if isinstance(raw, dict) else None
            if not isinstance(indicators, list):
                self.monitor.track_data_quality("Invalid economic indicators data structure", config.endpoint, Severity.MEDIUM)
                return {"indicators": [], "summary": "No economic data available", "updatedAt": utc_now_iso()}
            return {
                "indicators": indicators,
                "summary": raw.get("summary") or "Real-time economic indicators",
                "updatedAt": raw.get("updatedAt") or utc_now_iso(),
            }

        return self.fetch_and_transform("economic_data", transform)
