"""
Error types and the failure classifier used by the retrying fetcher.

The classifier works on messages rather than exception types so it treats
errors raised by httpx, by the JSON decoder and by our own status checks the
same way. Transport failures are therefore re-raised with messages that carry
the keywords the classifier looks for (``Network error``, ``timeout``, ``JSON
parse error``, ``HTTP <code>``).
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import Optional

import httpx

from ...core.monitoring import ErrorKind
from ..base import AdapterError

_STATUS_PATTERN = re.compile(r"HTTP (\d+)")

_CLASSIFICATION_RULES: tuple[tuple[tuple[str, ...], ErrorKind], ...] = (
    (("network", "fetch"), ErrorKind.NETWORK_ERROR),
    (("timeout", "abort"), ErrorKind.PERFORMANCE),
    (("json", "parse"), ErrorKind.DATA_QUALITY),
    (("http", "status"), ErrorKind.API_ERROR),
)


class APIError(AdapterError):
    """Raised when an HTTP API call fails."""


class HTTPStatusError(APIError):
    """Non-2xx response. The message always starts with ``HTTP <status>``."""

    def __init__(self, status_code: int, reason: str = "") -> None:
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"HTTP {status_code}: {reason}" if reason else f"HTTP {status_code}")


class NetworkError(APIError):
    """Connection-level failure (DNS, refused connection, reset, ...)."""


class FetchTimeoutError(APIError):
    """An attempt exceeded its timeout and the request was aborted."""


class PayloadDecodeError(APIError):
    """The response body was not valid JSON."""


class DataError(AdapterError):
    """
    Terminal fetch failure surfaced to callers.

    Raised once per failed fetch, after the retry budget is exhausted or on the
    first non-retryable error. The underlying error is kept both as
    :attr:`original_error` and as ``__cause__``.
    """

    def __init__(
        self,
        endpoint: str,
        original_error: BaseException,
        *,
        status_code: Optional[int] = None,
        retry_attempt: int = 0,
        component: str = "DataService",
        timestamp: Optional[str] = None,
    ) -> None:
        self.endpoint = endpoint
        self.original_error = original_error
        self.status_code = status_code
        self.retry_attempt = retry_attempt
        self.component = component
        self.timestamp = timestamp or datetime.now(UTC).isoformat()
        super().__init__(f"Data fetch failed for {endpoint}: {original_error}")

    def to_dict(self) -> dict[str, object]:
        return {
            "endpoint": self.endpoint,
            "status_code": self.status_code,
            "retry_attempt": self.retry_attempt,
            "component": self.component,
            "timestamp": self.timestamp,
            "error": str(self.original_error),
        }


def classify_error(error: BaseException | str) -> ErrorKind:
    """Map an error to the taxonomy; the first matching keyword group wins."""

    message = str(error).lower()
    for keywords, kind in _CLASSIFICATION_RULES:
        if any(keyword in message for keyword in keywords):
            return kind
    return ErrorKind.API_ERROR


def extract_status_code(error: BaseException | str) -> Optional[int]:
    """Return the status code embedded as ``HTTP <code>`` in the message, if any."""

    status = getattr(error, "status_code", None)
    if isinstance(status, int):
        return status
    match = _STATUS_PATTERN.search(str(error))
    return int(match.group(1)) if match else None


def is_retryable(error: BaseException | str) -> bool:
    """
    Decide whether another attempt could succeed.

    Client errors (4xx, including 401/403) and JSON parse failures are
    deterministic; network errors, timeouts and 5xx responses are not.
    """

    status = extract_status_code(error)
    if status is not None and 400 <= status < 500:
        return False
    message = str(error).lower()
    if "json" in message or "parse" in message:
        return False
    return True


def normalise_error(error: BaseException, *, timeout_ms: Optional[int] = None) -> BaseException:
    """
    Rewrite httpx timeouts and transport failures into :class:`APIError` subclasses.

    The replacement messages carry the classifier keywords; other errors are
    returned unchanged.
    """

    if isinstance(error, APIError):
        return error
    if isinstance(error, httpx.TimeoutException):
        budget = f" after {timeout_ms}ms" if timeout_ms is not None else ""
        return FetchTimeoutError(f"Request timeout{budget} ({type(error).__name__})")
    if isinstance(error, httpx.TransportError):
        return NetworkError(f"Network error: {error or type(error).__name__}")
    return error
