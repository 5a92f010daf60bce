from __future__ import annotations

import httpx
import pytest

from rrio_data.adapters.api import BaseAPIClient, DataError, FetchConfig, FetchTimeoutError, NetworkError, PayloadDecodeError
from rrio_data.adapters.api.retry import RetryPhase, after_failure, after_success, sample_jitter, start_attempt
from rrio_data.core.monitoring import EventCategory

URL = "http://rrio.test/api/v1/test"


def _config(**overrides) -> FetchConfig:
    values = {"endpoint": URL, "max_retries": 2, "retry_delay_ms": 1000, "timeout_ms": 5000, "component": "TestPanel"}
    values.update(overrides)
    return FetchConfig(**values)


def test_fetch_config_rejects_negative_values():
    with pytest.raises(ValueError):
        FetchConfig(endpoint=URL, max_retries=-1)
    with pytest.raises(ValueError):
        FetchConfig(endpoint=URL, retry_delay_ms=-5)


def test_fetch_config_backoff_doubles():
    config = _config(retry_delay_ms=250)
    assert [config.backoff_ms(attempt) for attempt in range(3)] == [250.0, 500.0, 1000.0]
    assert config.max_attempts == 3


def test_retry_state_transitions():
    config = _config()
    assert start_attempt(0).phase is RetryPhase.ATTEMPTING
    assert after_success(1).terminal is True

    waiting = after_failure(0, config, retryable=True)
    assert waiting.will_retry is True
    assert waiting.delay_ms == 1000.0

    assert after_failure(1, config, retryable=True).delay_ms == 2000.0
    assert after_failure(2, config, retryable=True).phase is RetryPhase.FAILED
    assert after_failure(0, config, retryable=False).phase is RetryPhase.FAILED


def test_sample_jitter_is_zero_by_default():
    assert sample_jitter(_config()) == 0.0
    assert 0.0 <= sample_jitter(_config(jitter_ms=100)) <= 100.0


def test_fetch_recovers_after_two_failures(make_client, backend, sleeps, telemetry):
    backend.add("/api/v1/test", httpx.Response(500), httpx.Response(502), {"ok": True})
    client = make_client(BaseAPIClient)

    payload = client.fetch_json(URL, _config())

    assert payload == {"ok": True}
    assert backend.hits["/api/v1/test"] == 3
    assert sleeps == [1.0, 2.0]

    retries = telemetry.actions("retry_attempt")
    assert [event.data["attempt_number"] for event in retries] == [1, 2]
    assert [event.data["delay_ms"] for event in retries] == [1000.0, 2000.0]
    successes = telemetry.actions("retry_success")
    assert len(successes) == 1
    assert successes[0].data["successful_attempt"] == 3


def test_fetch_exhausts_retries_on_server_errors(make_client, backend, sleeps, telemetry):
    backend.add("/api/v1/test", httpx.Response(500))
    client = make_client(BaseAPIClient)

    with pytest.raises(DataError) as excinfo:
        client.fetch_json(URL, _config())

    error = excinfo.value
    assert error.retry_attempt == 2
    assert error.status_code == 500
    assert error.endpoint == URL
    assert error.component == "TestPanel"
    assert "HTTP 500" in str(error.original_error)
    assert error.__cause__ is error.original_error
    assert backend.hits["/api/v1/test"] == 3
    assert sleeps == [1.0, 2.0]

    final = [event for event in telemetry.of(EventCategory.ERROR) if event.data.get("action") == "data_fetch_final_failure"]
    assert len(final) == 1
    assert final[0].tags["api_endpoint"] == URL


def test_fetch_does_not_retry_client_errors(make_client, backend, sleeps, telemetry):
    backend.add("/api/v1/test", httpx.Response(403))
    client = make_client(BaseAPIClient)

    with pytest.raises(DataError) as excinfo:
        client.fetch_json(URL, _config())

    assert excinfo.value.status_code == 403
    assert excinfo.value.retry_attempt == 0
    assert backend.hits["/api/v1/test"] == 1
    assert sleeps == []
    assert telemetry.actions("retry_attempt") == []


def test_fetch_does_not_retry_invalid_json(make_client, backend, sleeps):
    backend.add("/api/v1/test", httpx.Response(200, content=b"<html>oops</html>"))
    client = make_client(BaseAPIClient)

    with pytest.raises(DataError) as excinfo:
        client.fetch_json(URL, _config())

    assert isinstance(excinfo.value.original_error, PayloadDecodeError)
    assert "JSON parse error" in str(excinfo.value.original_error)
    assert backend.hits["/api/v1/test"] == 1
    assert sleeps == []


def test_fetch_retries_network_errors(make_client, backend, sleeps, telemetry):
    backend.add("/api/v1/test", httpx.ConnectError("connection refused"), {"ok": 1})
    client = make_client(BaseAPIClient)

    assert client.fetch_json(URL, _config()) == {"ok": 1}
    assert sleeps == [1.0]

    attempt_errors = [event for event in telemetry.of(EventCategory.ERROR) if event.tags.get("attempt") == "0"]
    assert attempt_errors[0].tags["error_type"] == "network_error"
    assert attempt_errors[0].data["will_retry"] is True


def test_fetch_reports_timeouts(make_client, backend):
    backend.add("/api/v1/test", httpx.ReadTimeout("slow backend"))
    client = make_client(BaseAPIClient)

    with pytest.raises(DataError) as excinfo:
        client.fetch_json(URL, _config(max_retries=0, timeout_ms=1500))

    original = excinfo.value.original_error
    assert isinstance(original, FetchTimeoutError)
    assert "1500ms" in str(original)
    assert excinfo.value.status_code is None


def test_timeout_applies_to_each_httpx_phase(make_client, backend):
    backend.add("/api/v1/test", {"ok": True})
    client = make_client(BaseAPIClient)

    client.fetch_json(URL, _config(timeout_ms=1500))

    assert backend.requests[0].extensions["timeout"] == {"connect": 1.5, "read": 1.5, "write": 1.5, "pool": 1.5}


def test_network_error_after_budget(make_client, backend):
    backend.add("/api/v1/test", httpx.ConnectError("down"))
    client = make_client(BaseAPIClient)

    with pytest.raises(DataError) as excinfo:
        client.fetch_json(URL, _config(max_retries=1))

    assert isinstance(excinfo.value.original_error, NetworkError)
    assert excinfo.value.retry_attempt == 1


def test_trace_headers_tag_events_within_one_fetch(make_client, backend, telemetry, monitor):
    backend.add(
        "/api/v1/test",
        httpx.Response(200, json={"ok": True}, headers={"X-Request-ID": "req-42", "X-Trace-ID": "trace-7"}),
    )
    client = make_client(BaseAPIClient)

    client.fetch_json(URL, _config())
    api_calls = telemetry.of(EventCategory.API_CALL)
    assert api_calls[-1].tags["request_id"] == "req-42"
    assert api_calls[-1].tags["trace_id"] == "trace-7"

    monitor.track_user_action("after_fetch", "TestPanel")
    assert "request_id" not in telemetry.events[-1].tags


def test_requests_carry_default_headers(make_client, backend):
    backend.add("/api/v1/test", {"ok": True})
    client = make_client(BaseAPIClient, default_headers={"Content-Type": "application/json", "X-Client": "rrio"})

    client.fetch_json(URL, _config())

    assert backend.requests[0].headers["X-Client"] == "rrio"
