"""
Community client: contributed risk insights, with an opt-in demo fallback.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from ...core.monitoring import Severity
from ...validation.pipeline import create_fallback_data
from .base import BaseAPIClient
from .errors import DataError

DEMO_INSIGHTS: tuple[Mapping[str, Any], ...] = (
    {
        "id": "1",
        "title": "Emerging Supply Chain Vulnerabilities in Southeast Asia",
        "content": (
            "Analysis of recent shipping delays and their correlation with GERI indicators suggests a developing "
            "cascade risk in Southeast Asian trade routes."
        ),
        "author": "Supply Chain Analytics",
        "category": "supply-chain",
        "timestamp": "2024-11-23T10:30:00Z",
        "likes": 24,
        "comments": 8,
        "risk_score": 72,
        "impact_level": "high",
        "tags": ["shipping", "southeast-asia", "cascade-risk", "freight"],
        "verified": True,
    },
    {
        "id": "2",
        "title": "Hidden Markov Model Insights on Current Economic Regime",
        "content": (
            "Regime classification indicates a transitional phase between expansion and uncertainty, with an "
            "elevated probability of a regime shift over the next 30 days."
        ),
        "author": "Economic Modeling",
        "category": "methodology",
        "timestamp": "2024-11-23T09:15:00Z",
        "likes": 31,
        "comments": 12,
        "risk_score": 58,
        "impact_level": "medium",
        "tags": ["regime-analysis", "hmm", "labor-markets", "forecasting"],
        "verified": True,
    },
    {
        "id": "3",
        "title": "Portfolio Resilience During Recent Market Volatility",
        "content": (
            "Stress testing identified hedge positions that outperformed during last week's market turbulence, "
            "led by energy sector allocations."
        ),
        "author": "Investment Team",
        "category": "market-analysis",
        "timestamp": "2024-11-23T08:45:00Z",
        "likes": 18,
        "comments": 6,
        "risk_score": 45,
        "impact_level": "low",
        "tags": ["portfolio", "stress-testing", "alpha", "volatility"],
        "verified": True,
    },
)


@dataclass(slots=True)
class CommunityInsights:
    """
    Community insights and whether they came from the demo set.

    ``degraded`` is ``True`` only when the backend failed and the caller
    allowed the demo fallback.
    """

    insights: List[Dict[str, Any]] = field(default_factory=list)
    degraded: bool = False


class CommunityClient(BaseAPIClient):
    """Fetches community-contributed insights."""

    def get_community_insights(self, *, allow_demo: Optional[bool] = None) -> CommunityInsights:
        """
        Fetch community insights.

        Parameters
        ----------
        allow_demo:
            When the fetch fails, return the built-in demo insights flagged as
            degraded instead of raising :class:`DataError`. Defaults to the
            client's ``demo_fallback`` setting.
        """

        _, config = self.resolve("community_insights")

        def transform(raw: Any) -> List[Dict[str, Any]]:
            insights = (raw.get("insights") or []) if isinstance(raw, dict) else None
            if not isinstance(insights, list):
                self.monitor.track_data_quality("Invalid community insights structure", config.endpoint, Severity.LOW)
                return []
            return insights

        try:
            return CommunityInsights(insights=self.fetch_and_transform("community_insights", transform))
        except DataError:
            if not (self.demo_fallback if allow_demo is None else allow_demo):
                raise
            demo = create_fallback_data(
                config.endpoint, lambda: [dict(item) for item in DEMO_INSIGHTS], config.component, monitor=self.monitor
            )
            return CommunityInsights(insights=demo, degraded=True)
