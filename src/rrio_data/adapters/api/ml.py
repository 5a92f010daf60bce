"""
Machine-learning client: model status, predictions and derived insights.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from .base import BaseAPIClient


def _passthrough(raw: Any) -> Any:
    return raw


class MLClient(BaseAPIClient):
    """Fetches ML model status and requests predictions."""

    def get_model_status(self) -> Any:
        return self.fetch_and_transform("ml_model_status", _passthrough)

    def predict_cascade_likelihood(self, features: Mapping[str, Any]) -> Any:
        """POST ``features`` to the cascade model and return its prediction unchanged."""

        return self.fetch_and_transform("predict_cascade", _passthrough, json_body=dict(features))

    def predict_risk_score(self, entity_id: str, entity_type: str, features: Optional[Mapping[str, Any]] = None) -> Any:
        """
        Risk score prediction for one entity.

        ``entity_id`` is recorded in telemetry only; the backend identifies the
        entity from ``entity_type`` and the feature vector.
        """

        self.monitor.track_user_action("predict_risk_score", "RiskScorePrediction", {"entity_id": entity_id, "entity_type": entity_type})
        return self.fetch_and_transform(
            "predict_risk_score",
            _passthrough,
            params={"entity_type": entity_type},
            json_body=dict(features or {}),
        )

    def get_insights_summary(self) -> Any:
        return self.fetch_and_transform("ml_insights_summary", _passthrough)

    def get_network_insights(self) -> Any:
        return self.fetch_and_transform("ml_network_insights", _passthrough)
