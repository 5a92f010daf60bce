"""
Telemetry for the RRIO data pipeline.

:class:`RiskMonitor` is the single entry point used by the fetch, validation
and transformation layers. It turns each observation (an API call, a slow
operation, a data-quality issue, ...) into an immutable :class:`TelemetryEvent`
and hands it to a :class:`TelemetryClient`. The default client writes events to
the structured log; deployments that ship events to an error-tracking backend
provide their own client.

One monitor is normally shared per process (:func:`get_monitor`), but every
component also accepts an explicit ``monitor=`` so tests can inject a recorder.
"""

from __future__ import annotations

import logging
import platform
import time
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from functools import lru_cache
from logging import LoggerAdapter
from types import MappingProxyType
from typing import Any, Iterator, Mapping, MutableMapping, Optional, Protocol

from .logging import get_logger, log_event

SLOW_OPERATION_MS = 2000.0
SLOW_API_CALL_MS = 5000.0
FASTEST_CACHE_LAYER = "L1"

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"
_EMPTY: Mapping[str, Any] = MappingProxyType({})

# Trace correlation tags for the fetch currently running in this context.
_TRACE_SCOPE: ContextVar[Mapping[str, Any]] = ContextVar("rrio_trace_scope", default=_EMPTY)


class ErrorKind(str, Enum):
    """Error taxonomy shared by the classifier, the fetcher and telemetry tags."""

    API_ERROR = "api_error"
    DATA_QUALITY = "data_quality"
    PERFORMANCE = "performance"
    NETWORK_ERROR = "network_error"


class Severity(str, Enum):
    """Data-quality severity; :attr:`level` is the telemetry level it maps to."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def level(self) -> str:
        return {"low": "info", "medium": "warning", "high": "error"}[self.value]


class EventCategory(str, Enum):
    ERROR = "error"
    PERFORMANCE = "performance"
    CACHE = "cache"
    API_CALL = "api_call"
    USER_ACTION = "user_action"
    DATA_QUALITY = "data_quality"


class Delivery(str, Enum):
    """How a backend should record the event."""

    BREADCRUMB = "breadcrumb"
    EXCEPTION = "exception"
    MESSAGE = "message"


class CacheEvent(str, Enum):
    HIT = "hit"
    MISS = "miss"
    STALE = "stale"
    REFRESH = "refresh"


@dataclass(frozen=True, slots=True)
class TelemetryEvent:
    """
    One observation forwarded to a :class:`TelemetryClient`.

    Attributes
    ----------
    category:
        Event family (``error``, ``performance``, ``cache``, ``api_call``,
        ``user_action`` or ``data_quality``).
    delivery:
        Whether the backend should store a breadcrumb, an exception or a message.
    level:
        ``debug``, ``info``, ``warning`` or ``error``.
    message:
        Human-readable summary.
    session_id:
        Identifier of the monitor that produced the event.
    timestamp:
        ISO-8601 UTC creation time.
    tags:
        Low-cardinality string tags used for filtering (component, endpoint,
        error_type, attempt, cache_layer, risk_level, trace ids).
    data:
        Free-form context.
    error:
        The exception for ``exception`` deliveries, when one exists.
    """

    category: EventCategory
    delivery: Delivery
    level: str
    message: str
    session_id: str
    timestamp: str
    tags: Mapping[str, str] = field(default_factory=dict)
    data: Mapping[str, Any] = field(default_factory=dict)
    error: Optional[BaseException] = None


class TelemetryClient(Protocol):
    """Destination for telemetry events."""

    def send(self, event: TelemetryEvent) -> None:
        """Record ``event``. Must be safe to call from several threads."""


_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class LoggingTelemetryClient:
    """Telemetry client writing events to the structured log."""

    def __init__(self, logger: Optional[LoggerAdapter] = None) -> None:
        self.logger = logger or get_logger("rrio_data.telemetry")

    def send(self, event: TelemetryEvent) -> None:
        level = _LOG_LEVELS.get(event.level, logging.INFO)
        if event.delivery is Delivery.BREADCRUMB and level <= logging.INFO:
            level = logging.DEBUG
        payload: MutableMapping[str, object] = {
            "category": event.category.value,
            "delivery": event.delivery.value,
            "session_id": event.session_id,
        }
        payload.update(event.tags)
        if event.data:
            payload["data"] = dict(event.data)
        log_event(self.logger, level, event.message, payload, exc_info=event.error)


def risk_level(score: float) -> str:
    """Bucket a 0-100 risk score into the label used for the ``risk_level`` tag."""

    if score >= 80:
        return "critical"
    if score >= 60:
        return "high"
    if score >= 40:
        return "moderate"
    if score >= 20:
        return "low"
    return "minimal"


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def _epoch_ms() -> int:
    return int(time.time() * 1000)


def _utc_now() -> str:
    return datetime.now(UTC).isoformat()


def build_session_id(fingerprint: Optional[str] = None) -> str:
    """Return ``rrio_<epoch-ms>_<base36 hash of the environment fingerprint>``."""

    source = fingerprint if fingerprint is not None else f"{platform.platform()} python/{platform.python_version()}"
    return f"rrio_{_epoch_ms()}_{_to_base36(sum(ord(char) for char in source))}"


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class RiskMonitor:
    """
    Observability sink for the data pipeline.

    Parameters
    ----------
    client:
        Destination for events. Defaults to :class:`LoggingTelemetryClient`.
    session_id:
        Fixed session identifier, mostly useful in tests. Generated once when
        omitted and never changed afterwards.
    """

    def __init__(self, client: Optional[TelemetryClient] = None, *, session_id: Optional[str] = None) -> None:
        self.client: TelemetryClient = client or LoggingTelemetryClient()
        self._session_id = session_id or build_session_id()

    @property
    def session_id(self) -> str:
        return self._session_id

    # -- Event plumbing -----------------------------------------------------

    def _emit(
        self,
        category: EventCategory,
        delivery: Delivery,
        level: str,
        message: str,
        *,
        tags: Optional[Mapping[str, object]] = None,
        data: Optional[Mapping[str, Any]] = None,
        error: Optional[BaseException] = None,
    ) -> TelemetryEvent:
        scope = _TRACE_SCOPE.get()
        merged_tags = {key: str(value) for key, value in scope.get("tags", {}).items()}
        merged_tags.update({key: str(value) for key, value in (tags or {}).items() if value is not None})
        payload = dict(data or {})
        if scope.get("context"):
            payload.setdefault("trace", dict(scope["context"]))
        event = TelemetryEvent(
            category=category,
            delivery=delivery,
            level=level,
            message=message,
            session_id=self._session_id,
            timestamp=_utc_now(),
            tags=merged_tags,
            data=payload,
            error=error,
        )
        self.client.send(event)
        return event

    @contextmanager
    def scope(self) -> Iterator[None]:
        """Isolate trace tags attached inside the block from the surrounding context."""

        token = _TRACE_SCOPE.set(_EMPTY)
        try:
            yield
        finally:
            _TRACE_SCOPE.reset(token)

    def attach_trace_context(
        self,
        *,
        request_id: Optional[str] = None,
        trace_id: Optional[str] = None,
        span_id: Optional[str] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Tag every later event in the current scope with the backend's trace identifiers."""

        tags = {key: value for key, value in (("request_id", request_id), ("trace_id", trace_id), ("span_id", span_id)) if value}
        if not tags:
            return
        _TRACE_SCOPE.set(MappingProxyType({"tags": tags, "context": {**tags, **(context or {})}}))

    # -- Public tracking API ------------------------------------------------

    def log_error(self, error: BaseException | str, kind: ErrorKind = ErrorKind.API_ERROR, context: Optional[Mapping[str, Any]] = None) -> str:
        """
        Record an error as an exception-level event.

        Returns
        -------
        str
            ``rrio_error_<epoch-ms>``, a local correlation id (not globally unique).
        """

        ctx = dict(context or {})
        error_id = f"rrio_error_{_epoch_ms()}"
        tags: MutableMapping[str, object] = {
            "error_type": ErrorKind(kind).value,
            "component": ctx.get("component", "unknown"),
        }
        score = ctx.get("risk_score")
        if _is_number(score):
            tags["risk_level"] = risk_level(float(score))
        endpoint = ctx.get("api_endpoint") or ctx.get("endpoint")
        if endpoint:
            tags["api_endpoint"] = endpoint
            tags["cache_layer"] = ctx.get("cache_layer", "unknown")
        exception = error if isinstance(error, BaseException) else None
        ctx["error_id"] = error_id
        self._emit(EventCategory.ERROR, Delivery.EXCEPTION, "error", str(error), tags=tags, data=ctx, error=exception)
        return error_id

    def track_performance(self, operation: str, duration_ms: float, context: Optional[Mapping[str, Any]] = None) -> None:
        ctx = dict(context or {})
        self._emit(
            EventCategory.PERFORMANCE,
            Delivery.BREADCRUMB,
            "info",
            f"{operation} completed in {duration_ms:.0f}ms",
            tags={"component": ctx.get("component")},
            data={"operation": operation, "duration_ms": round(duration_ms, 3), **ctx},
        )
        if duration_ms > SLOW_OPERATION_MS:
            self.log_error(
                f"Slow operation: {operation} took {duration_ms:.0f}ms",
                ErrorKind.PERFORMANCE,
                {**ctx, "operation": operation, "duration_ms": duration_ms},
            )

    def track_user_action(self, action: str, component: str, data: Optional[Mapping[str, Any]] = None) -> None:
        self._emit(
            EventCategory.USER_ACTION,
            Delivery.BREADCRUMB,
            "info",
            f"User action: {action} in {component}",
            tags={"component": component},
            data={"action": action, **(data or {})},
        )

    def track_data_quality(
        self,
        issue: str,
        source: str,
        severity: Severity | str = Severity.MEDIUM,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        resolved = Severity(severity)
        ctx = dict(context or {})
        self._emit(
            EventCategory.DATA_QUALITY,
            Delivery.MESSAGE,
            resolved.level,
            f"Data Quality Issue: {issue}",
            tags={"severity": resolved.value, "data_source": source, "component": ctx.get("component")},
            data={"issue": issue, "source": source, "severity": resolved.value, **ctx},
        )

    def track_cache_event(self, event: CacheEvent | str, layer: str, key: str, context: Optional[Mapping[str, Any]] = None) -> None:
        resolved = CacheEvent(event)
        ctx = dict(context or {})
        self._emit(
            EventCategory.CACHE,
            Delivery.BREADCRUMB,
            "warning" if resolved is CacheEvent.MISS else "info",
            f"Cache {resolved.value} on {layer}: {key}",
            tags={"cache_layer": layer, "component": ctx.get("component")},
            data={"event": resolved.value, "layer": layer, "key": key, **ctx},
        )
        if resolved is CacheEvent.MISS and layer == FASTEST_CACHE_LAYER:
            self.track_data_quality(f"{layer} cache miss for {key}", "redis", Severity.LOW, {"cache_key": key, **ctx})

    def track_api_call(
        self,
        endpoint: str,
        method: str,
        status_code: int,
        duration_ms: float,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        ctx = dict(context or {})
        failed = status_code >= 400
        self._emit(
            EventCategory.API_CALL,
            Delivery.BREADCRUMB,
            "error" if failed else "info",
            f"{method} {endpoint} -> {status_code} ({duration_ms:.0f}ms)",
            tags={"endpoint": endpoint, "component": ctx.get("component")},
            data={"method": method, "status_code": status_code, "duration_ms": round(duration_ms, 3), **ctx},
        )
        if failed:
            self.log_error(
                f"API Error: {method} {endpoint} returned {status_code}",
                ErrorKind.API_ERROR,
                {**ctx, "endpoint": endpoint, "method": method, "status_code": status_code, "duration_ms": duration_ms},
            )
        if duration_ms > SLOW_API_CALL_MS:
            self.track_performance(f"API {method} {endpoint}", duration_ms, ctx)

    def track_fetch_error(
        self,
        error: BaseException,
        *,
        kind: ErrorKind,
        endpoint: str,
        component: str,
        attempt: int,
        max_retries: int,
        will_retry: bool,
        status_code: Optional[int] = None,
        duration_ms: Optional[float] = None,
    ) -> None:
        """Record one failed fetch attempt, whether or not another attempt follows."""

        self._emit(
            EventCategory.ERROR,
            Delivery.BREADCRUMB,
            "warning" if will_retry else "error",
            f"API retry {attempt + 1}/{max_retries + 1} failed for {endpoint}: {error}",
            tags={
                "component": component,
                "endpoint": endpoint,
                "attempt": attempt,
                "error_type": kind.value,
                "status_code": status_code,
            },
            data={
                "will_retry": will_retry,
                "error_category": kind.value,
                "error_message": str(error),
                "max_retries": max_retries,
                "duration_ms": duration_ms,
            },
        )

    def track_data_fetch(self, component: str, status: str, context: Optional[Mapping[str, Any]] = None) -> None:
        self._emit(
            EventCategory.USER_ACTION,
            Delivery.BREADCRUMB,
            "error" if status == "error" else "info",
            f"Data fetch {status} for {component}",
            tags={"component": component},
            data={"status": status, **(context or {})},
        )

    @contextmanager
    def timed(self, operation: str, context: Optional[Mapping[str, Any]] = None) -> Iterator[None]:
        """Time the enclosed block; failures are logged with their duration and re-raised."""

        started = time.perf_counter()
        try:
            yield
        except Exception as exc:
            duration_ms = (time.perf_counter() - started) * 1000
            self.log_error(exc, ErrorKind.API_ERROR, {**(context or {}), "operation": operation, "duration_ms": duration_ms})
            raise
        self.track_performance(operation, (time.perf_counter() - started) * 1000, context)

    def bind(self, component: str) -> "ComponentMonitor":
        return ComponentMonitor(monitor=self, component=component)


@dataclass(slots=True, frozen=True)
class ComponentMonitor:
    """Monitor helpers with the component name filled in."""

    monitor: RiskMonitor
    component: str

    def log_error(self, error: BaseException | str, kind: ErrorKind = ErrorKind.API_ERROR, context: Optional[Mapping[str, Any]] = None) -> str:
        return self.monitor.log_error(error, kind, {**(context or {}), "component": self.component})

    def track_action(self, action: str, data: Optional[Mapping[str, Any]] = None) -> None:
        self.monitor.track_user_action(action, self.component, data)

    def track_data_quality(self, issue: str, severity: Severity | str = Severity.MEDIUM, context: Optional[Mapping[str, Any]] = None) -> None:
        self.monitor.track_data_quality(issue, self.component, severity, {**(context or {}), "component": self.component})


@lru_cache(maxsize=1)
def get_monitor() -> RiskMonitor:
    """Return the process-wide monitor, creating it on first use."""

    return RiskMonitor()
