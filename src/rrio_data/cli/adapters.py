"""
Helpers for resolving endpoint probes in CLI contexts.
"""

from __future__ import annotations

from typing import Mapping, Optional

from ..adapters import EndpointAdapter
from ..adapters.probe import EndpointProbeAdapter
from ..services import DashboardServices


def resolve_adapter(
    endpoint_id: str,
    services: DashboardServices,
    path_params: Optional[Mapping[str, object]] = None,
) -> Optional[EndpointAdapter]:
    """
    Locate the probe for a catalogued endpoint.

    Returns ``None`` when the endpoint is not registered. The probe reuses the
    group client held by ``services`` so retries, transport and telemetry match
    regular fetches.
    """

    descriptor = services.registry.get(endpoint_id)
    if descriptor is None:
        return None
    return EndpointProbeAdapter(
        endpoint_id,
        client=services.client(descriptor.group),
        path_params=dict(path_params or {}),
    )
