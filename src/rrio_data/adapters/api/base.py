"""
Shared HTTP client for the RRIO backend.

Every backend read goes through :meth:`BaseAPIClient.fetch_with_retry`: one
logical fetch made of up to ``max_retries + 1`` attempts, each bounded by the
per-attempt timeout, with exponential backoff between retryable failures and
telemetry for every attempt. The client stays synchronous and builds a fresh
``httpx.Client`` per attempt; tests inject an ``httpx.MockTransport`` and a
recording ``sleep``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from logging import LoggerAdapter
from typing import TYPE_CHECKING, Any, Callable, Mapping, MutableMapping, Optional, TypeVar

import httpx
from tenacity import RetryCallState, Retrying, stop_after_attempt

from ...config import DEFAULT_API_BASE_URL, DEFAULT_HEADERS, DEFAULT_MAX_RETRIES, DEFAULT_RETRY_DELAY_MS, DEFAULT_TIMEOUT_MS
from ...core.logging import get_logger, log_event
from ...core.monitoring import ErrorKind, RiskMonitor, get_monitor
from ...core.registry import EndpointDescriptor, EndpointRegistry, ValidationPolicy, default_registry
from ...validation.pipeline import validate_and_transform
from .errors import (
    DataError,
    HTTPStatusError,
    PayloadDecodeError,
    classify_error,
    extract_status_code,
    is_retryable,
    normalise_error,
)
from .retry import FetchConfig, RetryDecision, after_failure, after_success, sample_jitter, start_attempt

if TYPE_CHECKING:  # pragma: no cover
    from ...core.context import ExecutionContext

T = TypeVar("T")

TRACE_HEADERS = (("request_id", "X-Request-ID"), ("trace_id", "X-Trace-ID"), ("span_id", "X-Span-ID"))


@dataclass(slots=True)
class _FetchState:
    decision: RetryDecision
    started: float


@dataclass(slots=True)
class BaseAPIClient:
    """
    Synchronous RRIO client with retry, telemetry and response shaping.

    Parameters
    ----------
    base_url:
        Root URL of the backend, without a trailing slash.
    default_headers:
        Headers attached to every request.
    monitor:
        Telemetry sink. Defaults to the process-wide monitor.
    registry:
        Endpoint catalogue used by :meth:`fetch_endpoint`.
    transport:
        Optional httpx transport, e.g. ``httpx.MockTransport`` in tests.
    sleep:
        Blocking sleep used between attempts.
    strict_validation:
        Raise on shape validation failures for every endpoint, not only the
        ones catalogued as ``strict``.
    jitter_ms:
        Upper bound of random delay added to each backoff.
    demo_fallback:
        Default for clients that can substitute demo data when the backend
        is unreachable.
    default_timeout_ms, default_max_retries, default_retry_delay_ms:
        Budget for ad-hoc paths fetched with :meth:`fetch_path`.
    """

    base_url: str = DEFAULT_API_BASE_URL
    default_headers: MutableMapping[str, str] = field(default_factory=lambda: dict(DEFAULT_HEADERS))
    monitor: RiskMonitor = field(default_factory=get_monitor)
    registry: EndpointRegistry = field(default_factory=default_registry)
    transport: Optional[httpx.BaseTransport] = None
    sleep: Callable[[float], None] = time.sleep
    strict_validation: bool = False
    jitter_ms: int = 0
    demo_fallback: bool = False
    default_timeout_ms: int = DEFAULT_TIMEOUT_MS
    default_max_retries: int = DEFAULT_MAX_RETRIES
    default_retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS
    logger: LoggerAdapter = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.base_url = self.base_url.rstrip("/")
        self.logger = get_logger(
            f"{self.__class__.__module__}.{self.__class__.__name__}",
            extra={"base_url": self.base_url},
        )

    @classmethod
    def from_context(
        cls,
        context: "ExecutionContext",
        *,
        registry: Optional[EndpointRegistry] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        settings = context.settings
        return cls(
            base_url=settings.api_base_url,
            default_headers=dict(settings.headers),
            monitor=context.monitor,
            registry=registry or default_registry(),
            transport=transport,
            strict_validation=context.options.strict_validation,
            demo_fallback=context.options.demo_fallback,
            default_timeout_ms=settings.default_timeout_ms,
            default_max_retries=settings.default_max_retries,
            default_retry_delay_ms=settings.default_retry_delay_ms,
        )

    def _build_client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.base_url,
            headers=dict(self.default_headers),
            transport=self.transport,
            follow_redirects=True,
        )

    # -- Retry loop ---------------------------------------------------------

    def fetch_with_retry(self, perform_request: Callable[[], httpx.Response], config: FetchConfig) -> Any:
        """
        Run ``perform_request`` until it yields a 2xx JSON response or the budget is spent.

        Parameters
        ----------
        perform_request:
            Issues one HTTP request and returns the response. Called once per
            attempt; it must honour ``config.timeout_ms``.
        config:
            Retry budget and telemetry labels.

        Returns
        -------
        Any
            The decoded JSON body of the first successful attempt.

        Raises
        ------
        DataError
            Exactly once per failed fetch, wrapping the last attempt's error.
        """

        state = _FetchState(decision=start_attempt(0), started=time.perf_counter())

        def should_retry(retry_state: RetryCallState) -> bool:
            return retry_state.outcome is not None and retry_state.outcome.failed and state.decision.will_retry

        def wait(retry_state: RetryCallState) -> float:
            return state.decision.delay_ms / 1000.0

        def before_sleep(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception() if retry_state.outcome else None
            self.monitor.track_user_action(
                "retry_attempt",
                config.component,
                {
                    "endpoint": config.endpoint,
                    "attempt_number": state.decision.attempt + 1,
                    "max_retries": config.max_retries,
                    "error": str(error),
                    "delay_ms": state.decision.delay_ms,
                },
            )

        retrying = Retrying(
            stop=stop_after_attempt(config.max_attempts),
            retry=should_retry,
            wait=wait,
            before_sleep=before_sleep,
            sleep=self.sleep,
            reraise=True,
        )

        with self.monitor.scope():
            try:
                for attempt in retrying:
                    with attempt:
                        payload = self._attempt(perform_request, config, attempt.retry_state.attempt_number - 1, state)
            except Exception as exc:
                data_error = DataError(
                    config.endpoint,
                    exc,
                    status_code=extract_status_code(exc),
                    retry_attempt=state.decision.attempt,
                    component=config.component,
                )
                self.monitor.log_error(
                    data_error,
                    ErrorKind.API_ERROR,
                    {
                        "component": config.component,
                        "api_endpoint": config.endpoint,
                        "action": "data_fetch_final_failure",
                        "total_retries": state.decision.attempt,
                        "status_code": data_error.status_code,
                    },
                )
                log_event(
                    self.logger,
                    logging.ERROR,
                    "Data fetch failed",
                    {"endpoint": config.endpoint, "component": config.component, "attempt": state.decision.attempt, "error": str(exc)},
                )
                raise data_error from exc
        return payload

    def _attempt(self, perform_request: Callable[[], httpx.Response], config: FetchConfig, attempt: int, state: _FetchState) -> Any:
        state.decision = start_attempt(attempt)
        started = time.perf_counter()
        try:
            log_event(self.logger, logging.DEBUG, "HTTP request", {"endpoint": config.endpoint, "method": config.method, "attempt": attempt})
            response = perform_request()
            duration_ms = (time.perf_counter() - started) * 1000
            self._attach_trace(response)
            self.monitor.track_api_call(
                config.endpoint,
                config.method,
                response.status_code,
                duration_ms,
                {"component": config.component, "attempt": attempt, "action": "api_fetch"},
            )
            if not response.is_success:
                raise HTTPStatusError(response.status_code, response.reason_phrase)

            parse_started = time.perf_counter()
            try:
                payload = response.json()
            except ValueError as exc:
                raise PayloadDecodeError(f"JSON parse error: {exc}") from exc
            self.monitor.track_performance(
                f"Parse {config.endpoint}",
                (time.perf_counter() - parse_started) * 1000,
                {"component": config.component, "attempt": attempt},
            )
        except Exception as exc:
            error = normalise_error(exc, timeout_ms=config.timeout_ms)
            kind = classify_error(error)
            state.decision = after_failure(attempt, config, is_retryable(error), jitter_ms=sample_jitter(config))
            self.monitor.track_fetch_error(
                error,
                kind=kind,
                endpoint=config.endpoint,
                component=config.component,
                attempt=attempt,
                max_retries=config.max_retries,
                will_retry=state.decision.will_retry,
                status_code=extract_status_code(error),
                duration_ms=(time.perf_counter() - started) * 1000,
            )
            if error is exc:
                raise
            raise error from exc

        state.decision = after_success(attempt)
        if attempt > 0:
            self.monitor.track_user_action(
                "retry_success",
                config.component,
                {
                    "endpoint": config.endpoint,
                    "successful_attempt": attempt + 1,
                    "total_duration": (time.perf_counter() - state.started) * 1000,
                },
            )
        return payload

    def _attach_trace(self, response: httpx.Response) -> None:
        found = {name: response.headers.get(header) for name, header in TRACE_HEADERS}
        self.monitor.attach_trace_context(**found)

    # -- Request helpers ----------------------------------------------------

    def fetch_json(
        self,
        url: str,
        config: FetchConfig,
        *,
        json_body: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Fetch ``url`` (absolute, or relative to :attr:`base_url`) with retries and decode it."""

        timeout = httpx.Timeout(config.timeout_seconds)

        def perform() -> httpx.Response:
            with self._build_client() as client:
                return client.request(config.method, url, json=json_body, timeout=timeout)

        return self.fetch_with_retry(perform, config)

    def fetch_path(
        self,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        component: str = "DataService",
    ) -> Any:
        """Fetch an uncatalogued GET path using the client's default budget."""

        url = self.build_url(path, params)
        config = FetchConfig(
            endpoint=url,
            max_retries=self.default_max_retries,
            retry_delay_ms=self.default_retry_delay_ms,
            timeout_ms=self.default_timeout_ms,
            component=component,
            jitter_ms=self.jitter_ms,
        )
        return self.fetch_json(url, config)

    def build_url(self, path: str, params: Optional[Mapping[str, Any]] = None) -> str:
        if not path.startswith("/"):
            path = f"/{path}"
        query = {key: value for key, value in (params or {}).items() if value is not None}
        return str(httpx.URL(f"{self.base_url}{path}", params=query or None))

    def resolve(
        self,
        endpoint_id: str,
        *,
        path_params: Optional[Mapping[str, object]] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> tuple[EndpointDescriptor, FetchConfig]:
        """Return the descriptor for ``endpoint_id`` and the fetch config for this call."""

        descriptor = self.registry.require(endpoint_id)
        url = self.build_url(descriptor.render_path(path_params), {**descriptor.params, **(params or {})})
        return descriptor, FetchConfig.from_descriptor(descriptor, url, jitter_ms=self.jitter_ms)

    def fetch_endpoint(
        self,
        endpoint_id: str,
        *,
        path_params: Optional[Mapping[str, object]] = None,
        params: Optional[Mapping[str, Any]] = None,
        json_body: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Fetch a catalogued endpoint and return the raw decoded payload."""

        _, config = self.resolve(endpoint_id, path_params=path_params, params=params)
        return self.fetch_json(config.endpoint, config, json_body=json_body)

    def fetch_and_transform(
        self,
        endpoint_id: str,
        transform: Callable[[Any], Optional[T]],
        *,
        path_params: Optional[Mapping[str, object]] = None,
        params: Optional[Mapping[str, Any]] = None,
        json_body: Optional[Mapping[str, Any]] = None,
    ) -> T:
        """Fetch a catalogued endpoint, shape-check the payload and apply ``transform``."""

        descriptor, config = self.resolve(endpoint_id, path_params=path_params, params=params)
        data = self.fetch_json(config.endpoint, config, json_body=json_body)
        return validate_and_transform(
            data,
            transform,
            config.endpoint,
            descriptor.component,
            skip_shape_validation=descriptor.validation is ValidationPolicy.SKIP,
            strict=self.strict_validation or descriptor.validation is ValidationPolicy.STRICT,
            monitor=self.monitor,
        )
