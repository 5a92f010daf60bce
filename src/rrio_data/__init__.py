"""
Reliability layer for the RRIO dashboard data fetches.

The :mod:`rrio_data.adapters.api` package exposes one client per dashboard
group; every client retries transient failures, validates payload shapes and
reports telemetry through :class:`~rrio_data.core.monitoring.RiskMonitor`.
Import :class:`DashboardServices` for the main developer-facing surface.
"""

from .adapters.api import BaseAPIClient, DataError, FetchConfig
from .core import ExecutionContext, ExecutionOptions, RiskMonitor, default_registry, get_monitor
from .services import DashboardServices
from .validation import DataValidationError, TransformError, validate_and_transform

__all__ = [
    "BaseAPIClient",
    "DataError",
    "FetchConfig",
    "ExecutionContext",
    "ExecutionOptions",
    "RiskMonitor",
    "default_registry",
    "get_monitor",
    "DashboardServices",
    "DataValidationError",
    "TransformError",
    "validate_and_transform",
]
