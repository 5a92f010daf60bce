"""
Operations client: production alerts, service health and cache analytics.

Alert endpoints back on-call tooling, so their payloads are contract-checked:
``/alerts/active`` is catalogued with the strict validation policy and fails
fast on a malformed response.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from ...core.monitoring import Severity
from ...validation.pipeline import TransformError
from ...validation.validators import check_production_alert
from .base import BaseAPIClient

ALERT_SEVERITIES = ("critical", "high", "medium", "low")


class OperationsClient(BaseAPIClient):
    """Fetches operational alerting and cache data."""

    def get_active_alerts(self, severity: Optional[str] = None) -> Dict[str, Any]:
        if severity is not None and severity not in ALERT_SEVERITIES:
            raise ValueError(f"severity must be one of: {', '.join(ALERT_SEVERITIES)}")
        params = {"severity": severity} if severity else None
        return self.fetch_and_transform("active_alerts", lambda raw: raw, params=params)

    def get_alert_history(self, limit: int = 50) -> Dict[str, Any]:
        """
        Alert history; the list itself is required, individual malformed alerts are
        reported as low-severity data-quality issues and kept.
        """

        _, config = self.resolve("alert_history", params={"limit": limit})

        def transform(raw: Any) -> Dict[str, Any]:
            history = raw.get("alert_history") if isinstance(raw, dict) else None
            if not isinstance(history, list):
                raise TransformError("Invalid alert history response structure")
            for index, alert in enumerate(history):
                errors = check_production_alert(alert)
                if errors:
                    self.monitor.track_data_quality(
                        f"Alert history validation warning at index {index}: {', '.join(errors)}",
                        config.endpoint,
                        Severity.LOW,
                        {"component": config.component, "index": index},
                    )
            return raw

        return self.fetch_and_transform("alert_history", transform, params={"limit": limit})

    def get_health_overview(self) -> Dict[str, Any]:
        def transform(raw: Any) -> Dict[str, Any]:
            if not isinstance(raw, dict) or not raw.get("overall_health"):
                raise TransformError("Invalid health overview response structure")
            return raw

        return self.fetch_and_transform("health_overview", transform)

    def get_cache_analytics(self) -> Any:
        return self.fetch_and_transform("cache_analytics", lambda raw: raw)
