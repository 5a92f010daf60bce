"""
Intelligence client: newsroom, trade, geopolitical and maritime feeds.
"""

from __future__ import annotations

from typing import Any, Dict

from ...core.monitoring import Severity
from .base import BaseAPIClient
from .transforms import newsroom_briefs


def _passthrough(raw: Any) -> Any:
    return raw


class IntelClient(BaseAPIClient):
    """Fetches market and geopolitical intelligence feeds."""

    def get_newsroom_briefs(self) -> Dict[str, Any]:
        """Daily flash, weekly wrap and recently published special reports as one brief list."""

        _, config = self.resolve("newsroom_briefs")

        def transform(raw: Any) -> Dict[str, Any]:
            if not isinstance(raw, dict):
                self.monitor.track_data_quality("Invalid newsletter data for newsroom transformation", config.endpoint, Severity.LOW)
                return {"briefs": []}
            return {"briefs": newsroom_briefs(raw)}

        return self.fetch_and_transform("newsroom_briefs", transform)

    def get_sp_global_vulnerabilities(self) -> Any:
        return self.fetch_and_transform("sp_global_vulnerabilities", _passthrough)

    def get_wto_trade_volume(self) -> Any:
        return self.fetch_and_transform("wto_trade_volume", _passthrough)

    def get_geopolitical_disruptions(self, days: int = 30) -> Any:
        return self.fetch_and_transform("geopolitical_disruptions", _passthrough, params={"days": days})

    def get_maritime_health(self) -> Any:
        return self.fetch_and_transform("maritime_health", _passthrough)

    def get_market_intelligence_overview(self) -> Any:
        return self.fetch_and_transform("market_intel_overview", _passthrough)

    def get_market_intelligence_sources(self) -> Any:
        return self.fetch_and_transform("market_intel_sources", _passthrough)

    def get_market_intelligence_health(self) -> Any:
        return self.fetch_and_transform("market_intel_health", _passthrough)
