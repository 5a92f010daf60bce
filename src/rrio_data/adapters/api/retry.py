"""
Retry policy for backend fetches.

The policy is a tiny state machine: every attempt starts in ``ATTEMPTING`` and
ends in ``SUCCEEDED``, ``WAITING`` (another attempt follows after a backoff) or
``FAILED`` (terminal). The transition functions below are pure; the fetcher in
:mod:`rrio_data.adapters.api.base` performs the I/O, sleeps and telemetry
around them.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover
    from ...core.registry import EndpointDescriptor

DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_MS = 1000
DEFAULT_TIMEOUT_MS = 10_000
DEFAULT_COMPONENT = "DataService"


@dataclass(frozen=True, slots=True)
class FetchConfig:
    """
    Parameters of one logical fetch.

    Attributes
    ----------
    endpoint:
        Endpoint identifier, normally the full request URL. Used for telemetry
        tags and shape validator lookup.
    max_retries:
        Retries after the first attempt; ``max_retries + 1`` attempts at most.
    retry_delay_ms:
        Base backoff. Attempt ``n`` (0-based) waits ``retry_delay_ms * 2**n``.
    timeout_ms:
        Per-attempt timeout, applied by httpx to each phase (connect, read,
        write, pool) separately. It bounds every wait on the socket, not the
        total duration of an attempt, so a slowly trickling body can run past it.
    component:
        Originating dashboard component, recorded in telemetry.
    method:
        HTTP method recorded with ``api_call`` events.
    jitter_ms:
        Upper bound of a uniform random delay added to each backoff. ``0``
        keeps the schedule deterministic.
    """

    endpoint: str
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    component: str = DEFAULT_COMPONENT
    method: str = "GET"
    jitter_ms: int = 0

    def __post_init__(self) -> None:
        for name in ("max_retries", "retry_delay_ms", "timeout_ms", "jitter_ms"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ValueError(f"{name} must be a non-negative integer, got {value!r}")

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def backoff_ms(self, attempt: int) -> float:
        """Delay before the attempt following ``attempt``, without jitter."""

        return float(self.retry_delay_ms * 2**attempt)

    @classmethod
    def from_descriptor(cls, descriptor: "EndpointDescriptor", endpoint: str, *, jitter_ms: int = 0) -> "FetchConfig":
        return cls(
            endpoint=endpoint,
            max_retries=descriptor.max_retries,
            retry_delay_ms=descriptor.retry_delay_ms,
            timeout_ms=descriptor.timeout_ms,
            component=descriptor.component,
            method=descriptor.method.value,
            jitter_ms=jitter_ms,
        )


class RetryPhase(str, Enum):
    ATTEMPTING = "attempting"
    WAITING = "waiting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class RetryDecision:
    """Outcome of one attempt: the next phase and, when waiting, the delay."""

    phase: RetryPhase
    attempt: int
    delay_ms: float = 0.0

    @property
    def will_retry(self) -> bool:
        return self.phase is RetryPhase.WAITING

    @property
    def terminal(self) -> bool:
        return self.phase in (RetryPhase.SUCCEEDED, RetryPhase.FAILED)


def start_attempt(attempt: int) -> RetryDecision:
    return RetryDecision(RetryPhase.ATTEMPTING, attempt)


def after_success(attempt: int) -> RetryDecision:
    return RetryDecision(RetryPhase.SUCCEEDED, attempt)


def after_failure(attempt: int, config: FetchConfig, retryable: bool, *, jitter_ms: float = 0.0) -> RetryDecision:
    """
    Decide what follows a failed attempt.

    Parameters
    ----------
    attempt:
        0-based index of the attempt that failed.
    config:
        Fetch parameters providing the retry budget and base delay.
    retryable:
        Classifier verdict for the error.
    jitter_ms:
        Extra delay sampled by the caller (see :func:`sample_jitter`).
    """

    if not retryable or attempt >= config.max_retries:
        return RetryDecision(RetryPhase.FAILED, attempt)
    return RetryDecision(RetryPhase.WAITING, attempt, config.backoff_ms(attempt) + jitter_ms)


def sample_jitter(config: FetchConfig, rng: Optional[random.Random] = None) -> float:
    if config.jitter_ms <= 0:
        return 0.0
    return (rng or random).uniform(0, config.jitter_ms)
