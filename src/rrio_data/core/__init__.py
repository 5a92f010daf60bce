"""
Core infrastructure shared across the RRIO data client: logging, telemetry,
the endpoint catalogue and the execution context.
"""

from .context import ExecutionContext, ExecutionOptions
from .logging import bind_tags, configure_logging, get_logger, log_event, log_progress
from .monitoring import (
    CacheEvent,
    ComponentMonitor,
    Delivery,
    ErrorKind,
    EventCategory,
    LoggingTelemetryClient,
    RiskMonitor,
    Severity,
    TelemetryClient,
    TelemetryEvent,
    get_monitor,
    risk_level,
)
from .registry import (
    EndpointDescriptor,
    EndpointRegistry,
    HTTPMethod,
    RegistryLoadError,
    ValidationPolicy,
    default_registry,
    load_registry,
)

__all__ = [
    "ExecutionContext",
    "ExecutionOptions",
    "CacheEvent",
    "ComponentMonitor",
    "Delivery",
    "ErrorKind",
    "EventCategory",
    "LoggingTelemetryClient",
    "RiskMonitor",
    "Severity",
    "TelemetryClient",
    "TelemetryEvent",
    "get_monitor",
    "risk_level",
    "EndpointDescriptor",
    "EndpointRegistry",
    "HTTPMethod",
    "RegistryLoadError",
    "ValidationPolicy",
    "default_registry",
    "load_registry",
    "get_logger",
    "configure_logging",
    "bind_tags",
    "log_event",
    "log_progress",
]
