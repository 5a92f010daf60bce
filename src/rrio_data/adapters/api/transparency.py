"""
Transparency panel client: data freshness, lineage, update log and dataset catalogue.
"""

from __future__ import annotations

from typing import Any, Dict

from ...core.monitoring import Severity
from .base import BaseAPIClient
from .transforms import utc_now_iso

DEFAULT_EXPORT_FORMATS = ("csv", "json", "parquet")
DEFAULT_TIME_RANGES = ("30d", "3m", "1y", "5y", "all")


class TransparencyClient(BaseAPIClient):
    """Fetches provenance and freshness information about the published series."""

    def get_transparency_status(self) -> Any:
        _, config = self.resolve("transparency_status")

        def transform(raw: Any) -> Any:
            if not isinstance(raw, dict):
                self.monitor.track_data_quality("Invalid transparency data structure", config.endpoint, Severity.MEDIUM)
            return raw

        return self.fetch_and_transform("transparency_status", transform)

    def get_series_freshness_history(self, days: int = 14) -> Dict[str, Any]:
        return self.fetch_and_transform(
            "series_freshness_history",
            lambda raw: {"history": raw.get("history") or {}, "generated_at": raw.get("generated_at"), "days": raw.get("days")},
            params={"days": days},
        )

    def get_data_lineage(self, series_id: str) -> Dict[str, Any]:
        """Lineage for ``series_id``; a response for another series is kept but reported."""

        _, config = self.resolve("data_lineage", path_params={"series_id": series_id})

        def transform(raw: Any) -> Dict[str, Any]:
            if not isinstance(raw, dict):
                self.monitor.track_data_quality(f"Invalid data lineage structure for {series_id}", config.endpoint, Severity.MEDIUM)
                return {"series_id": series_id, "lineage": [], "lastUpdated": utc_now_iso()}
            if raw.get("series_id") != series_id:
                self.monitor.track_data_quality(f"Data lineage series_id mismatch for {series_id}", config.endpoint, Severity.MEDIUM)
            return raw

        return self.fetch_and_transform("data_lineage", transform, path_params={"series_id": series_id})

    def get_update_log(self) -> Dict[str, Any]:
        _, config = self.resolve("update_log")

        def transform(raw: Any) -> Dict[str, Any]:
            if not isinstance(raw, dict):
                self.monitor.track_data_quality("Invalid update log structure", config.endpoint, Severity.LOW)
                return {"entries": [], "lastUpdated": utc_now_iso()}
            if not isinstance(raw.get("entries"), list):
                self.monitor.track_data_quality("Invalid update log updates array", config.endpoint, Severity.LOW)
                return {**raw, "entries": [], "lastUpdated": utc_now_iso()}
            return raw

        return self.fetch_and_transform("update_log", transform)

    def get_transparency_datasets(self) -> Dict[str, Any]:
        _, config = self.resolve("transparency_datasets")

        def transform(raw: Any) -> Dict[str, Any]:
            empty_summary = {"total_datasets": 0, "categories": {}}
            if not isinstance(raw, dict):
                self.monitor.track_data_quality("Invalid transparency datasets structure", config.endpoint, Severity.MEDIUM)
                return {
                    "datasets": [],
                    "summary": empty_summary,
                    "export_formats": list(DEFAULT_EXPORT_FORMATS),
                    "time_ranges": list(DEFAULT_TIME_RANGES),
                    "updated_at": utc_now_iso(),
                }
            if not isinstance(raw.get("datasets"), list):
                self.monitor.track_data_quality("Invalid datasets array structure", config.endpoint, Severity.MEDIUM)
                return {**raw, "datasets": [], "summary": empty_summary}
            return raw

        return self.fetch_and_transform("transparency_datasets", transform)
