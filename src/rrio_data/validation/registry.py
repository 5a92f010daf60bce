"""Lookup table from endpoint paths to the shape validator for their payloads."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping
from urllib.parse import urlsplit

from . import validators as v

VALIDATOR_REGISTRY: Mapping[str, v.ShapeValidator] = MappingProxyType(
    {
        "/api/v1/risk/overview": v.RISK_OVERVIEW,
        "/api/v1/analytics/components": v.COMPONENTS,
        "/api/v1/impact/partners": v.PARTNERS,
        "/api/v1/anomalies/latest": v.ANOMALIES,
        "/api/v1/ai/regime/current": v.REGIME,
        "/api/v1/transparency/data-freshness": v.TRANSPARENCY_STATUS,
        "/api/v1/analytics/geri": v.GENERIC,
        "/api/v1/geopolitical/disruptions": v.GEOPOLITICAL_DISRUPTIONS,
        "/api/v1/alerts/active": v.ACTIVE_ALERTS,
        "/api/v1/alerts/health-overview": v.HEALTH_OVERVIEW,
    }
)


def get_validator_for_endpoint(endpoint: str) -> v.ShapeValidator:
    """
    Return the validator registered for ``endpoint``.

    ``endpoint`` may be a bare path or a full URL with a query string. An exact
    path match wins; otherwise the first registered key contained in the
    endpoint string is used, and the generic presence check is the fallback.
    """

    path = urlsplit(endpoint).path or endpoint
    exact = VALIDATOR_REGISTRY.get(path)
    if exact is not None:
        return exact
    for key, validator in VALIDATOR_REGISTRY.items():
        if key in endpoint:
            return validator
    return v.GENERIC
