"""
Execution context shared by the CLI, the dashboard services and the clients.

The context bundles the resolved settings, the telemetry monitor and the
runtime flags so call sites pass one object around instead of three.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import LoggerAdapter
from typing import Mapping, Optional, Sequence

from ..config import ClientSettings, load_settings
from .logging import get_logger as _get_logger
from .monitoring import RiskMonitor, get_monitor


@dataclass(slots=True)
class ExecutionOptions:
    """
    Flags controlling how fetches behave at runtime.

    Attributes
    ----------
    strict_validation:
        Raise on shape validation failures instead of logging them and
        transforming the payload anyway.
    demo_fallback:
        Allow clients that support it to substitute demo data when the backend
        is unreachable. Results produced that way are flagged as degraded.
    observability_tags:
        Extra tags attached to every log record emitted through
        :meth:`ExecutionContext.get_logger`.
    max_workers:
        Thread pool size for parallel snapshot fetches.
    """

    strict_validation: bool = False
    demo_fallback: bool = False
    observability_tags: Sequence[str] = field(default_factory=tuple)
    max_workers: int = 8


@dataclass(slots=True)
class ExecutionContext:
    """
    Shared execution context.

    Attributes
    ----------
    settings:
        Resolved :class:`~rrio_data.config.ClientSettings`.
    monitor:
        Telemetry sink used by every component built from this context.
    options:
        Runtime flags.
    extra:
        Free-form metadata. Prefer well-defined attributes when possible.
    """

    settings: ClientSettings
    monitor: RiskMonitor
    options: ExecutionOptions = field(default_factory=ExecutionOptions)
    extra: Mapping[str, object] = field(default_factory=dict)

    @classmethod
    def build_default(
        cls,
        *,
        settings: Optional[ClientSettings] = None,
        monitor: Optional[RiskMonitor] = None,
        options: Optional[ExecutionOptions] = None,
    ) -> "ExecutionContext":
        """
        Construct a context using sensible defaults.

        Parameters
        ----------
        settings:
            Preloaded settings. When omitted :func:`~rrio_data.config.load_settings`
            is called.
        monitor:
            Telemetry sink. Defaults to the process-wide monitor.
        options:
            Runtime flags. When omitted, ``strict_validation`` follows the
            settings file.
        """

        resolved_settings = settings or load_settings()
        resolved_options = options or ExecutionOptions(strict_validation=resolved_settings.strict_validation)
        return cls(
            settings=resolved_settings,
            monitor=monitor or get_monitor(),
            options=resolved_options,
        )

    def get_logger(self, name: str, *, extra: Optional[Mapping[str, object]] = None) -> LoggerAdapter:
        """Return a logger adapter enriched with the context's observability tags."""

        tags = tuple(self.options.observability_tags)
        merged = {"environment": self.settings.environment, **(extra or {})}
        return _get_logger(name, tags=tags or None, extra=merged)
