from __future__ import annotations

import logging

from rrio_data.config import ClientSettings
from rrio_data.core.context import ExecutionContext, ExecutionOptions
from rrio_data.core.logging import StructuredLogFormatter, bind_tags, configure_logging, get_logger, log_event, log_progress
from rrio_data.core.monitoring import LoggingTelemetryClient, RiskMonitor, get_monitor


class _ListHandler(logging.Handler):
    def __init__(self, formatter: logging.Formatter):
        super().__init__()
        self.records: list[logging.LogRecord] = []
        self.setFormatter(formatter)

    def emit(self, record: logging.LogRecord) -> None:  # pragma: no cover - trivial
        self.records.append(record)


def _capture(name: str) -> tuple[logging.Logger, _ListHandler]:
    base = logging.getLogger(name)
    handler = _ListHandler(StructuredLogFormatter(use_color=False))
    base.addHandler(handler)
    base.setLevel(logging.DEBUG)
    return base, handler


def test_execution_context_build_default(monitor):
    settings = ClientSettings(api_base_url="http://rrio.test", strict_validation=True)

    context = ExecutionContext.build_default(settings=settings, monitor=monitor)

    assert context.settings is settings
    assert context.monitor is monitor
    assert isinstance(context.options, ExecutionOptions)
    assert context.options.strict_validation is True
    assert context.options.demo_fallback is False


def test_execution_context_explicit_options_win(monitor):
    settings = ClientSettings(strict_validation=True)

    context = ExecutionContext.build_default(settings=settings, monitor=monitor, options=ExecutionOptions(max_workers=2))

    assert context.options.strict_validation is False
    assert context.options.max_workers == 2


def test_execution_context_defaults_to_process_monitor():
    context = ExecutionContext.build_default(settings=ClientSettings())

    assert context.monitor is get_monitor()


def test_context_logger_carries_tags(monitor):
    context = ExecutionContext(
        settings=ClientSettings(environment="test"),
        monitor=monitor,
        options=ExecutionOptions(observability_tags=("dashboard",)),
    )

    logger = context.get_logger("rrio.test.context", extra={"component": "Partners"})

    assert logger.extra["tags"] == ("dashboard",)
    assert logger.extra["environment"] == "test"
    assert logger.extra["component"] == "Partners"


def test_structured_formatter_appends_extras():
    formatter = StructuredLogFormatter(use_color=False)
    record = logging.LogRecord(
        name="test.logger",
        level=logging.WARNING,
        pathname=__file__,
        lineno=42,
        msg="Retrying request",
        args=(),
        exc_info=None,
    )
    record.component = "RiskOverview"
    record.endpoint = "/api/v1/analytics/geri"
    record.attempt = 1
    record.tags = ("fetch",)
    record.zeta = 0.123456

    formatted = formatter.format(record)

    assert "Retrying request" in formatted
    extras = formatted.split(" | ")[-1]
    assert extras == "endpoint=/api/v1/analytics/geri component=RiskOverview attempt=1 tags=[fetch] zeta=0.1235"


def test_configure_logging_installs_structured_formatter():
    root = logging.getLogger()
    existing_handlers = list(root.handlers)
    try:
        configure_logging("INFO", force=True)
        assert root.handlers, "expected at least one handler configured"
        assert isinstance(root.handlers[0].formatter, StructuredLogFormatter)
        assert root.level == logging.INFO
    finally:
        root.handlers = existing_handlers


def test_log_event_payload_overrides_adapter_extra():
    base, handler = _capture("rrio.test.log_event")
    logger = get_logger("rrio.test.log_event", extra={"component": "Default"})

    log_event(logger, logging.INFO, "Fetched", {"component": "Partners", "message": "ignored"})

    record = handler.records[-1]
    assert record.component == "Partners"
    assert record.getMessage() == "Fetched"
    base.removeHandler(handler)


def test_bind_tags_keeps_original_adapter():
    logger = get_logger("rrio.test.bind", tags=["fetch"])

    bound = bind_tags(logger, ["retry", "fetch"])

    assert bound.extra["tags"] == ("fetch", "retry")
    assert logger.extra["tags"] == ("fetch",)


def test_log_progress_records_endpoint():
    base, handler = _capture("rrio.test.progress")
    logger = get_logger("rrio.test.progress")

    log_progress(logger, "Endpoint probed", endpoint="regime", status="ok")

    record = handler.records[-1]
    assert record.endpoint == "regime"
    assert record.status == "ok"
    assert not hasattr(record, "component")
    base.removeHandler(handler)


def test_logging_telemetry_client_writes_records():
    base, handler = _capture("rrio.test.telemetry")
    monitor = RiskMonitor(LoggingTelemetryClient(get_logger("rrio.test.telemetry")), session_id="s1")

    monitor.track_data_quality("missing field", "Partners", "high")
    monitor.track_user_action("refresh", "Dashboard")

    quality, action = handler.records
    assert quality.levelno == logging.ERROR
    assert quality.category == "data_quality"
    assert quality.severity == "high"
    assert quality.session_id == "s1"
    assert action.levelno == logging.DEBUG
    base.removeHandler(handler)
