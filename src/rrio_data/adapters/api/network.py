"""
Network panel client: provider health, supply-chain cascades and resilience metrics.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from ...core.monitoring import Severity
from .base import BaseAPIClient
from .transforms import utc_now_iso


def _passthrough(raw: Any) -> Any:
    return raw


class NetworkClient(BaseAPIClient):
    """Fetches provider and supply-chain network views."""

    def get_network_snapshot(self) -> Dict[str, Any]:
        _, config = self.resolve("network_snapshot")

        def transform(raw: Any) -> Dict[str, Any]:
            if not isinstance(raw, dict):
                self.monitor.track_data_quality("Invalid provider health data structure", config.endpoint, Severity.HIGH)
                return {"nodes": [], "criticalPaths": [], "summary": "No network data available", "updatedAt": utc_now_iso()}
            return raw

        return self.fetch_and_transform("network_snapshot", transform)

    def get_provider_health_history(self, points: int = 8) -> Dict[str, Any]:
        return self.fetch_and_transform(
            "provider_health_history",
            lambda raw: {"history": raw.get("history") or {}, "generated_at": raw.get("generated_at")},
            params={"points": points},
        )

    def get_supply_cascade_snapshot(self) -> Any:
        return self.fetch_and_transform("supply_cascade", _passthrough)

    def get_cascade_history(self) -> Any:
        return self.fetch_and_transform("cascade_history", _passthrough)

    def get_cascade_impacts(self) -> Any:
        return self.fetch_and_transform("cascade_impacts", _passthrough)

    def get_sector_vulnerabilities(self, sector: Optional[str] = None) -> Dict[str, Any]:
        """Vulnerability assessment for every sector, or for ``sector`` alone."""

        if sector:
            return self.fetch_and_transform(
                "sector_vulnerability",
                lambda raw: {"vulnerability_assessment": raw},
                path_params={"sector": sector},
            )
        return self.fetch_and_transform("sector_vulnerabilities", lambda raw: {"vulnerability_assessment": raw})

    def get_timeline_cascade(self, visualization_type: str = "timeline") -> Any:
        return self.fetch_and_transform("timeline_cascade", _passthrough, params={"visualization_type": visualization_type})

    def get_resilience_metrics(self) -> Any:
        return self.fetch_and_transform("resilience_metrics", _passthrough)
