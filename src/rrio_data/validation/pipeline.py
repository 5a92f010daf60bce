"""
Validate-then-transform pipeline applied to every decoded backend payload.

The pipeline never fetches anything. It receives the JSON value produced by
the retrying fetcher, runs the endpoint's shape validator, applies the client's
transform and records what happened. Under the default soft policy a shape
failure is reported and the transform still runs, because transforms fill
defaults for missing fields; strict callers get :class:`DataValidationError`.
"""

from __future__ import annotations

import json
import time
from typing import Any, Callable, Optional, Sequence, TypeVar

from ..adapters.base import AdapterError
from ..core.monitoring import CacheEvent, ErrorKind, RiskMonitor, Severity, get_monitor
from .registry import get_validator_for_endpoint

T = TypeVar("T")

_PREVIEW_CHARS = 200


class TransformError(AdapterError):
    """Raised when a payload cannot be turned into the dashboard shape."""


class DataValidationError(TransformError):
    """Raised under strict validation when a payload fails its shape check."""

    def __init__(self, endpoint: str, errors: Sequence[str]) -> None:
        self.endpoint = endpoint
        self.errors = tuple(errors)
        super().__init__(f"Data validation failed for {endpoint}: {'; '.join(self.errors)}")


def _preview(data: Any) -> str:
    try:
        text = json.dumps(data, default=str)
    except (TypeError, ValueError):
        text = repr(data)
    return text[:_PREVIEW_CHARS]


def validate_and_transform(
    data: Any,
    transform: Callable[[Any], Optional[T]],
    endpoint: str,
    component: str = "DataTransformer",
    *,
    skip_shape_validation: bool = False,
    strict: bool = False,
    monitor: Optional[RiskMonitor] = None,
) -> T:
    """
    Shape-check ``data``, apply ``transform`` and return its result.

    Parameters
    ----------
    data:
        Decoded payload. ``None`` is always rejected, even with
        ``skip_shape_validation``.
    transform:
        Pure function producing the dashboard value.
    endpoint:
        Endpoint path or URL; selects the shape validator.
    component:
        Component name recorded in telemetry.
    skip_shape_validation:
        Bypass the shape validator (for pre-validated inputs).
    strict:
        Raise :class:`DataValidationError` instead of continuing on a shape
        failure.
    monitor:
        Telemetry sink; the process-wide monitor when omitted.

    Raises
    ------
    TransformError
        When ``data`` is ``None`` or the transform returns ``None``.
    DataValidationError
        Strict mode only, when the shape check fails.

    Any exception raised by ``transform`` propagates after a high-severity
    ``data_quality`` event has been recorded.
    """

    monitor = monitor or get_monitor()
    started = time.perf_counter()
    try:
        if data is None:
            raise TransformError("No data received from API")

        if not skip_shape_validation:
            result = get_validator_for_endpoint(endpoint)(data, endpoint, monitor=monitor)
            if not result.valid:
                if strict:
                    raise DataValidationError(endpoint, result.errors)
                monitor.track_data_quality(
                    f"Shape validation failed but continuing with transformation: {'; '.join(result.errors)}",
                    endpoint,
                    Severity.MEDIUM,
                    {"component": component, "action": "validation_failed_continue", "errors": list(result.errors)},
                )

        transformed = transform(data)
        if transformed is None:
            raise TransformError("Data transformation returned nothing")

        monitor.track_performance(
            f"Data transformation {endpoint}",
            (time.perf_counter() - started) * 1000,
            {"component": component, "endpoint": endpoint, "input_type": type(data).__name__},
        )
        return transformed
    except Exception as exc:
        monitor.track_data_quality(
            f"Data transformation failed for {endpoint}: {exc}",
            endpoint,
            Severity.HIGH,
            {
                "component": component,
                "input_type": type(data).__name__,
                "duration_ms": (time.perf_counter() - started) * 1000,
                "input_preview": _preview(data),
            },
        )
        raise


def validate_data_shape(data: Any, endpoint: str, component: str = "DataValidator", *, monitor: Optional[RiskMonitor] = None) -> Any:
    """Strictly validate ``data`` and return it unchanged."""

    monitor = monitor or get_monitor()
    started = time.perf_counter()
    result = get_validator_for_endpoint(endpoint).run(data)
    if not result.valid:
        monitor.track_data_quality(
            f"Strict validation failed for {endpoint}: {'; '.join(result.errors)}",
            endpoint,
            Severity.HIGH,
            {"component": component, "errors": list(result.errors)},
        )
        raise DataValidationError(endpoint, result.errors)
    monitor.track_performance(
        f"Validate {endpoint}",
        (time.perf_counter() - started) * 1000,
        {"component": component, "endpoint": endpoint},
    )
    return data


def track_cache_performance(
    key: str,
    hit: bool,
    component: str = "CacheManager",
    *,
    layer: str = "L1",
    monitor: Optional[RiskMonitor] = None,
) -> None:
    """Record a cache hit or miss for ``key``."""

    (monitor or get_monitor()).track_cache_event(CacheEvent.HIT if hit else CacheEvent.MISS, layer, key, {"component": component})


def create_fallback_data(
    endpoint: str,
    fallback: Callable[[], T],
    component: str = "FallbackProvider",
    *,
    monitor: Optional[RiskMonitor] = None,
) -> T:
    """
    Build degraded data for ``endpoint`` by calling ``fallback``.

    Serving the fallback is recorded as a ``fallback_data_used`` action and a
    medium data-quality event. A failing factory is logged as a data-quality
    error and re-raised as :class:`TransformError`.
    """

    monitor = monitor or get_monitor()
    try:
        data = fallback()
    except Exception as exc:
        monitor.log_error(exc, ErrorKind.DATA_QUALITY, {"component": component, "endpoint": endpoint, "action": "fallback_data_failed"})
        raise TransformError(f"Fallback data generation failed for {endpoint}: {exc}") from exc
    monitor.track_user_action("fallback_data_used", component, {"endpoint": endpoint})
    monitor.track_data_quality(
        f"Using fallback data for {endpoint}",
        endpoint,
        Severity.MEDIUM,
        {"component": component, "action": "fallback_data_used"},
    )
    return data
