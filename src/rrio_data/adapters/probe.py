"""
Endpoint probe used by ``rrio endpoints verify`` and ``rrio endpoints audit``.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Mapping

from ..core.registry import ValidationPolicy
from ..validation.registry import get_validator_for_endpoint
from .api.base import BaseAPIClient
from .api.errors import DataError
from .base import EndpointAdapter, VerificationResult


@dataclass(slots=True)
class EndpointProbeAdapter(EndpointAdapter):
    """Fetch one catalogued endpoint and check its payload against the shape validator."""

    endpoint_id: str
    client: BaseAPIClient = field(default_factory=BaseAPIClient)
    path_params: Mapping[str, object] = field(default_factory=dict)

    def verify(self) -> VerificationResult:
        try:
            descriptor, config = self.client.resolve(self.endpoint_id, path_params=self.path_params)
        except KeyError as exc:
            return VerificationResult(success=False, message=str(exc).strip("'\""))

        started = time.perf_counter()
        try:
            payload = self.client.fetch_json(config.endpoint, config)
        except DataError as exc:
            return VerificationResult(
                success=False,
                message=f"{self.endpoint_id} unreachable: {exc.original_error}",
                details={"status_code": exc.status_code, "attempts": exc.retry_attempt + 1, "url": config.endpoint},
            )
        latency_ms = round((time.perf_counter() - started) * 1000, 1)

        if descriptor.validation is ValidationPolicy.SKIP:
            return VerificationResult(success=True, message=f"{self.endpoint_id} reachable.", details={"latency_ms": latency_ms})

        validator = get_validator_for_endpoint(config.endpoint)
        result = validator(payload, config.endpoint, monitor=self.client.monitor)
        if not result.valid:
            return VerificationResult(
                success=False,
                message=f"{self.endpoint_id} returned a payload failing {validator.name} validation.",
                details={"latency_ms": latency_ms, "errors": list(result.errors)},
            )
        return VerificationResult(
            success=True,
            message=f"{self.endpoint_id} reachable.",
            details={"latency_ms": latency_ms, "validator": validator.name},
        )
