"""
Structured logging helpers for the RRIO data client.

Every module obtains its logger through :func:`get_logger` so records share one
formatter: the usual ``time | level | name | message`` prefix followed by the
structured extras (endpoint, component, attempt, ...) as ``key=value`` pairs.
The telemetry layer in :mod:`rrio_data.core.monitoring` writes through the same
helpers, which keeps fetch diagnostics and telemetry events in a single stream.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from copy import copy
from functools import lru_cache
from logging import Logger, LoggerAdapter
from typing import Any, Iterable, Mapping, MutableMapping, Optional, Sequence

DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_LEVEL = "WARNING"
ENV_LEVEL = "RRIO_LOG_LEVEL"
ENV_COLOR = "RRIO_LOG_COLOR"

# Extras printed first, in this order; everything else follows alphabetically.
_EXTRA_FOCUS_ORDER: Sequence[str] = (
    "category",
    "endpoint",
    "component",
    "method",
    "status_code",
    "attempt",
    "max_retries",
    "will_retry",
    "duration_ms",
    "error_type",
    "severity",
    "session_id",
    "tags",
)

_LEVEL_STYLES = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[95m",
}
_RESET = "\033[0m"

_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "message",
        "asctime",
    }
)


def resolve_level(level: Optional[int | str]) -> int:
    """Translate a level name (or ``None`` for the environment default) to an int."""

    if isinstance(level, int):
        return level
    candidate = (level or os.getenv(ENV_LEVEL) or DEFAULT_LEVEL).upper()
    resolved = logging.getLevelName(candidate)
    return resolved if isinstance(resolved, int) else logging.WARNING


def _coerce_bool(value: str) -> Optional[bool]:
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on", "enabled"}:
        return True
    if lowered in {"0", "false", "no", "off", "disabled"}:
        return False
    return None


def _supports_color(stream: Any) -> bool:
    preference = os.getenv(ENV_COLOR)
    if preference:
        resolved = _coerce_bool(preference)
        if resolved is not None:
            return resolved
    return hasattr(stream, "isatty") and bool(stream.isatty())


def _iter_extras(record: logging.LogRecord) -> Iterable[tuple[str, Any]]:
    payload = {key: value for key, value in record.__dict__.items() if key not in _RESERVED_ATTRS and not key.startswith("_") and value is not None}

    for key in _EXTRA_FOCUS_ORDER:
        if key in payload:
            yield key, payload.pop(key)

    for key in sorted(payload):
        yield key, payload[key]


def _format_extra_value(value: Any) -> str:
    if isinstance(value, (list, tuple, set)):
        return "[" + ", ".join(_format_extra_value(item) for item in value) + "]"
    if isinstance(value, Mapping):
        return json.dumps(value, ensure_ascii=False, default=str)
    if isinstance(value, float):
        return f"{value:.4g}"
    return str(value)


class StructuredLogFormatter(logging.Formatter):
    """Formatter that appends ``key=value`` extras and can colour the level name."""

    def __init__(self, *, use_color: bool = False) -> None:
        super().__init__(DEFAULT_FORMAT, datefmt=DEFAULT_DATE_FORMAT)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        working = copy(record)
        if self.use_color:
            style = _LEVEL_STYLES.get(working.levelname.strip().upper())
            if style:
                working.levelname = f"{style}{working.levelname}{_RESET}"
        base = super().format(working)
        extras = " ".join(f"{key}={_format_extra_value(value)}" for key, value in _iter_extras(record))
        return f"{base} | {extras}" if extras else base


@lru_cache(maxsize=1)
def _base_logger_configured() -> bool:
    return False


def _build_handler(level: Optional[int | str]) -> logging.Handler:
    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setLevel(resolve_level(level))
    handler.setFormatter(StructuredLogFormatter(use_color=_supports_color(handler.stream)))
    return handler


def configure_logging(level: Optional[int | str] = None, *, force: bool = False) -> None:
    """
    Install the structured stderr handler on the root logger once per process.

    Parameters
    ----------
    level:
        Optional level override. Falls back to ``RRIO_LOG_LEVEL`` or ``WARNING``.
    force:
        Reinstall the handler even when logging was configured before, e.g. after
        the CLI parsed ``--log-level``.
    """

    if not force and _base_logger_configured.cache_info().currsize:
        return
    logging.basicConfig(level=resolve_level(level), handlers=[_build_handler(level)], force=force)
    _base_logger_configured.cache_clear()
    _base_logger_configured()


def _merge_extra(
    *,
    tags: Optional[Sequence[str]],
    extra: Optional[Mapping[str, object]],
) -> MutableMapping[str, object]:
    payload: MutableMapping[str, object] = {}
    if tags:
        payload["tags"] = tuple(tags)
    if extra:
        payload.update({key: value for key, value in extra.items() if value is not None})
    return payload


def get_logger(
    name: str,
    *,
    level: Optional[int | str] = None,
    tags: Optional[Sequence[str]] = None,
    extra: Optional[Mapping[str, object]] = None,
) -> LoggerAdapter:
    """
    Return a :class:`logging.LoggerAdapter` carrying static structured context.

    Parameters
    ----------
    name:
        Logger namespace, usually ``__name__`` or ``module.ClassName``.
    level:
        Optional per-logger level override.
    tags:
        Observability tags attached to every record.
    extra:
        Static metadata (for example the API base URL) merged into every record.
    """

    configure_logging()
    base: Logger = logging.getLogger(name)
    if level is not None:
        base.setLevel(resolve_level(level))
    return LoggerAdapter(base, _merge_extra(tags=tags, extra=extra))


def bind_tags(logger: LoggerAdapter, tags: Sequence[str]) -> LoggerAdapter:
    """Return a child adapter with ``tags`` added; the original adapter is untouched."""

    current = dict(logger.extra) if isinstance(logger.extra, Mapping) else {}
    current["tags"] = tuple(dict.fromkeys([*current.get("tags", ()), *tags]))
    return LoggerAdapter(logger.logger, current)


def log_event(
    logger: LoggerAdapter | Logger,
    level: int,
    message: str,
    payload: Optional[Mapping[str, object]] = None,
    *,
    exc_info: Optional[BaseException] = None,
) -> None:
    """
    Emit ``message`` with the adapter's static extras merged under ``payload``.

    Unlike :meth:`LoggerAdapter.log` the per-call payload wins over the adapter
    context, so callers can override keys such as ``component`` per record.
    """

    merged: MutableMapping[str, object] = {}
    target = logger
    if isinstance(logger, LoggerAdapter):
        target = logger.logger
        if isinstance(logger.extra, Mapping):
            merged.update({key: value for key, value in logger.extra.items() if value is not None})
    if payload:
        merged.update({key: value for key, value in payload.items() if key not in _RESERVED_ATTRS})
    target.log(level, message, extra=merged or None, exc_info=exc_info)


def log_progress(
    logger: LoggerAdapter | Logger,
    message: str,
    *,
    endpoint: Optional[str] = None,
    component: Optional[str] = None,
    status: Optional[str] = None,
    level: int = logging.INFO,
    extra: Optional[Mapping[str, object]] = None,
) -> None:
    """Emit a progress record tagged with the endpoint and component being processed."""

    payload: MutableMapping[str, object] = dict(extra or {})
    if endpoint:
        payload["endpoint"] = endpoint
    if component:
        payload["component"] = component
    if status:
        payload["status"] = status
    log_event(logger, level, message, payload or None)
