"""
AI panel client: regime classification, forecasts, explainability and model governance.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from .base import BaseAPIClient
from .transforms import build_forecast, normalise_explainability, normalise_forecast_history, normalise_regime


def _passthrough(raw: Any) -> Any:
    return raw


class AIClient(BaseAPIClient):
    """Fetches model outputs served under ``/api/v1/ai``."""

    def get_regime_data(self) -> Dict[str, Any]:
        """
        Current macro regime.

        The backend returns ``probabilities`` as a ``{name: probability}``
        mapping; the result lists them as ``{name, probability, trend}``
        records with ``trend`` fixed to ``"stable"``.
        """

        return self.fetch_and_transform("regime", normalise_regime)

    def get_forecast_data(self) -> Dict[str, Any]:
        """24-hour forecast; a synthetic linear path is produced when the backend sends no points."""

        return self.fetch_and_transform("forecast", build_forecast)

    def get_forecast_history(self, days: int = 14) -> Dict[str, Any]:
        return self.fetch_and_transform(
            "forecast_history",
            lambda raw: {"history": normalise_forecast_history(raw), "generated_at": raw.get("generated_at")},
            params={"days": days},
        )

    def get_explainability(self) -> Dict[str, Any]:
        return self.fetch_and_transform("explainability", normalise_explainability)

    def get_governance_models(self) -> Any:
        return self.fetch_and_transform("governance_models", _passthrough)

    def get_governance_compliance(self, model: str) -> Any:
        return self.fetch_and_transform("governance_compliance", _passthrough, path_params={"model": model})

    def get_explainability_audit(self, start: str, end: str, accessed_by: Optional[str] = None) -> Any:
        params: Dict[str, Any] = {"start_date": start, "end_date": end}
        if accessed_by:
            params["accessed_by"] = accessed_by
        return self.fetch_and_transform("explainability_audit", _passthrough, params=params)
