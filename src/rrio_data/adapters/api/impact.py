"""
Impact panel client: partner labs and the Resilience Activation Score (RAS).
"""

from __future__ import annotations

from typing import Any, Dict, List

from ...core.monitoring import Severity
from .base import BaseAPIClient
from .transforms import (
    engagement_from_deliverables,
    partner_highlight,
    partner_projects,
    ras_history_points,
    summarise_ras,
    title_case,
    utc_now_iso,
)


def _partners(raw: Any) -> List[Dict[str, Any]] | None:
    partners = raw.get("partners") if isinstance(raw, dict) else None
    return partners if isinstance(partners, list) else None


class ImpactClient(BaseAPIClient):
    """Fetches partner and RAS data for the mission panels."""

    def get_mission_highlights(self) -> List[Dict[str, Any]]:
        _, config = self.resolve("mission_highlights")

        def transform(raw: Any) -> List[Dict[str, Any]]:
            partners = _partners(raw)
            if partners is None:
                self.monitor.track_data_quality("Invalid partners data structure", config.endpoint, Severity.HIGH)
                return []
            return [partner_highlight(partner) for partner in partners]

        return self.fetch_and_transform("mission_highlights", transform)

    def get_partners_data(self) -> List[Dict[str, Any]]:
        """
        Detailed partner records.

        Partners without ``engagement_score`` get a deterministic estimate from
        their deliverable count and status; each estimate is reported as a
        medium data-quality issue.
        """

        _, config = self.resolve("partners")

        def engagement(partner: Dict[str, Any]) -> int:
            score = partner.get("engagement_score")
            if score:
                return score
            estimate = engagement_from_deliverables(partner)
            self.monitor.track_data_quality(
                "Missing engagement_score, calculated from deliverables",
                config.endpoint,
                Severity.MEDIUM,
                {
                    "partner_id": partner.get("lab_id"),
                    "calculated_engagement": estimate,
                    "deliverable_count": len(partner.get("deliverables") or []),
                },
            )
            return estimate

        def transform(raw: Any) -> List[Dict[str, Any]]:
            partners = _partners(raw)
            if partners is None:
                self.monitor.track_data_quality("Invalid partners data structure for detailed view", config.endpoint, Severity.HIGH)
                return []
            details = []
            for index, partner in enumerate(partners):
                sector = partner.get("sector")
                deliverables = partner.get("deliverables") or []
                details.append(
                    {
                        "id": partner.get("lab_id") or f"partner-{index}",
                        "name": title_case(sector) if sector else f"Partner Lab {index + 1}",
                        "type": f"{sector.replace('_', ' ')} Partnership" if sector else "Strategic Partnership",
                        "status": partner.get("status") or "active",
                        "engagement": engagement(partner),
                        "lastActivity": partner.get("showcase_date") or utc_now_iso(),
                        "projects": partner_projects(partner),
                        "capabilities": [title_case(item) for item in deliverables] or ["Research Collaboration"],
                    }
                )
            return details

        return self.fetch_and_transform("partners", transform)

    def get_ras_summary(self) -> Dict[str, Any]:
        _, config = self.resolve("ras_summary")

        def transform(raw: Any) -> Dict[str, Any]:
            if not isinstance(raw, dict):
                self.monitor.track_data_quality("Invalid RAS data structure", config.endpoint, Severity.HIGH)
                return {"score": 50, "delta": 0, "updatedAt": utc_now_iso(), "metrics": [], "partners": []}
            return summarise_ras(raw)

        return self.fetch_and_transform("ras_summary", transform)

    def get_ras_history(self, limit: int = 30) -> List[Dict[str, Any]]:
        return self.fetch_and_transform("ras_history", ras_history_points, params={"limit": limit})
