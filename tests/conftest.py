from __future__ import annotations

import json
from collections import defaultdict, deque
from importlib import resources
from pathlib import Path
from typing import Any, Callable, Deque, Dict, List, Optional

import httpx
import pytest
from typer.testing import CliRunner

from rrio_data.cli.main import app
from rrio_data.core.monitoring import EventCategory, RiskMonitor, TelemetryEvent

BASE_URL = "http://rrio.test"


class RecordingTelemetryClient:
    """Telemetry client keeping every event in memory."""

    def __init__(self) -> None:
        self.events: List[TelemetryEvent] = []

    def send(self, event: TelemetryEvent) -> None:
        self.events.append(event)

    def of(self, category: EventCategory) -> List[TelemetryEvent]:
        return [event for event in self.events if event.category is category]

    def actions(self, name: str) -> List[TelemetryEvent]:
        return [event for event in self.of(EventCategory.USER_ACTION) if event.data.get("action") == name]

    def quality(self) -> List[TelemetryEvent]:
        return self.of(EventCategory.DATA_QUALITY)


class MockBackend:
    """
    Route table behind an ``httpx.MockTransport``.

    Each path maps to a queue of responses; the last one repeats once the queue
    is down to a single entry. A response may be an ``httpx.Response``, a JSON
    value (served with status 200) or an exception instance to raise.
    """

    def __init__(self) -> None:
        self.routes: Dict[str, Deque[Any]] = {}
        self.requests: List[httpx.Request] = []
        self.hits: Dict[str, int] = defaultdict(int)

    def add(self, path: str, *responses: Any) -> "MockBackend":
        self.routes[path] = deque(responses)
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.hits[request.url.path] += 1
        queue = self.routes.get(request.url.path)
        if not queue:
            return httpx.Response(404, json={"detail": "not found"})
        item = queue.popleft() if len(queue) > 1 else queue[0]
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, httpx.Response):
            return item
        return httpx.Response(200, content=json.dumps(item).encode("utf-8"), headers={"content-type": "application/json"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture()
def telemetry() -> RecordingTelemetryClient:
    return RecordingTelemetryClient()


@pytest.fixture()
def monitor(telemetry) -> RiskMonitor:
    return RiskMonitor(telemetry, session_id="rrio_test_session")


@pytest.fixture()
def sleeps() -> List[float]:
    return []


@pytest.fixture()
def backend() -> MockBackend:
    return MockBackend()


@pytest.fixture()
def make_client(monitor, sleeps, backend) -> Callable[..., Any]:
    """Build any client class wired to the mock backend, the recorder and a no-op sleep."""

    def _make(client_cls, *, transport: Optional[httpx.BaseTransport] = None, **kwargs):
        return client_cls(
            base_url=BASE_URL,
            monitor=monitor,
            transport=transport or backend.transport,
            sleep=sleeps.append,
            **kwargs,
        )

    return _make


@pytest.fixture(scope="session")
def registry_file() -> Path:
    with resources.as_file(resources.files("rrio_data.resources") / "endpoints.yaml") as ref:
        return Path(ref)


@pytest.fixture()
def cli_runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def cli_app():
    return app
