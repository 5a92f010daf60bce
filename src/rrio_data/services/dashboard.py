"""
Dashboard service façade coordinating the endpoint catalogue, clients and execution context.

CLI commands and embedding applications go through :class:`DashboardServices`
rather than instantiating clients directly: it builds each group client once
from the execution context, resolves endpoints by id and fans snapshot fetches
out over a thread pool.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from logging import LoggerAdapter
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

import httpx

from ..adapters import AdapterError, EndpointAdapter, VerificationResult
from ..adapters.api import (
    AIClient,
    BaseAPIClient,
    CommunityClient,
    ImpactClient,
    IntelClient,
    MLClient,
    NetworkClient,
    OperationsClient,
    RiskClient,
    TransparencyClient,
)
from ..adapters.probe import EndpointProbeAdapter
from ..core import EndpointDescriptor, EndpointRegistry, ExecutionContext, log_event, log_progress

CLIENT_TYPES: Mapping[str, type[BaseAPIClient]] = {
    "risk": RiskClient,
    "ai": AIClient,
    "network": NetworkClient,
    "impact": ImpactClient,
    "transparency": TransparencyClient,
    "intel": IntelClient,
    "ml": MLClient,
    "operations": OperationsClient,
    "community": CommunityClient,
}


@dataclass(slots=True)
class SnapshotEntry:
    """Outcome of one endpoint inside :meth:`DashboardServices.fetch_snapshot`."""

    endpoint_id: str
    success: bool
    data: Any = None
    error: Optional[str] = None


@dataclass(slots=True)
class DashboardServices:
    """High-level façade used by CLI commands and embedding applications."""

    registry: EndpointRegistry
    context: ExecutionContext
    transport: Optional[httpx.BaseTransport] = None
    sleep: Optional[Callable[[float], None]] = None
    logger: LoggerAdapter = field(init=False, repr=False)
    _clients: Dict[str, BaseAPIClient] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        self.logger = self.context.get_logger(self.__class__.__name__)

    # -- Client factories -------------------------------------------------

    def client(self, group: str) -> BaseAPIClient:
        """Return the client for ``group``, creating it on first use."""

        existing = self._clients.get(group)
        if existing is not None:
            return existing
        client_type = CLIENT_TYPES.get(group, BaseAPIClient)
        created = client_type.from_context(self.context, registry=self.registry, transport=self.transport)
        if self.sleep is not None:
            created.sleep = self.sleep
        self._clients[group] = created
        return created

    def risk(self) -> RiskClient:
        return self.client("risk")  # type: ignore[return-value]

    def ai(self) -> AIClient:
        return self.client("ai")  # type: ignore[return-value]

    def network(self) -> NetworkClient:
        return self.client("network")  # type: ignore[return-value]

    def impact(self) -> ImpactClient:
        return self.client("impact")  # type: ignore[return-value]

    def transparency(self) -> TransparencyClient:
        return self.client("transparency")  # type: ignore[return-value]

    def intel(self) -> IntelClient:
        return self.client("intel")  # type: ignore[return-value]

    def ml(self) -> MLClient:
        return self.client("ml")  # type: ignore[return-value]

    def operations(self) -> OperationsClient:
        return self.client("operations")  # type: ignore[return-value]

    def community(self) -> CommunityClient:
        return self.client("community")  # type: ignore[return-value]

    # -- Endpoint operations ----------------------------------------------

    def resolve_endpoint(self, endpoint_id: str) -> EndpointDescriptor:
        descriptor = self.registry.get(endpoint_id)
        if descriptor is None:
            raise AdapterError(f"Endpoint '{endpoint_id}' is not registered.")
        return descriptor

    def fetch(
        self,
        endpoint_id: str,
        *,
        path_params: Optional[Mapping[str, object]] = None,
        params: Optional[Mapping[str, Any]] = None,
        json_body: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Fetch a catalogued endpoint, shape-check it and return the raw payload."""

        descriptor = self.resolve_endpoint(endpoint_id)
        return self.client(descriptor.group).fetch_and_transform(
            endpoint_id,
            lambda raw: raw,
            path_params=path_params,
            params=params,
            json_body=json_body,
        )

    def verify_endpoint(
        self,
        endpoint_id: str,
        adapter: Optional[EndpointAdapter] = None,
        *,
        path_params: Optional[Mapping[str, object]] = None,
    ) -> VerificationResult:
        """Run ``adapter``, or the default probe for ``endpoint_id``, and return its verdict."""

        descriptor = self.resolve_endpoint(endpoint_id)
        if adapter is None:
            adapter = EndpointProbeAdapter(endpoint_id, client=self.client(descriptor.group), path_params=dict(path_params or {}))
        return adapter.verify()

    def audit(self, endpoint_ids: Optional[Sequence[str]] = None) -> Dict[str, VerificationResult]:
        """Probe several endpoints in parallel; defaults to every GET endpoint without path parameters."""

        targets = list(endpoint_ids) if endpoint_ids else [descriptor.endpoint_id for descriptor in self.registry.iter_probeable()]
        results: Dict[str, VerificationResult] = {}
        if not targets:
            return results
        with ThreadPoolExecutor(max_workers=min(self.context.options.max_workers, len(targets))) as executor:
            futures = {executor.submit(self.verify_endpoint, endpoint_id): endpoint_id for endpoint_id in targets}
            for future in as_completed(futures):
                endpoint_id = futures[future]
                results[endpoint_id] = future.result()
                log_progress(
                    self.logger,
                    "Endpoint probed",
                    endpoint=endpoint_id,
                    status="ok" if results[endpoint_id].success else "failed",
                )
        return {endpoint_id: results[endpoint_id] for endpoint_id in targets}

    def fetch_snapshot(self, endpoint_ids: Sequence[str]) -> Dict[str, SnapshotEntry]:
        """
        Fetch several endpoints concurrently.

        Failures do not abort the snapshot; each entry records either the
        payload or the error message. Results keep the requested order.
        """

        monitor = self.context.monitor
        entries: Dict[str, SnapshotEntry] = {}
        if not endpoint_ids:
            return entries

        def run(endpoint_id: str) -> SnapshotEntry:
            descriptor = self.registry.get(endpoint_id)
            component = descriptor.component if descriptor is not None else "unknown"
            monitor.track_data_fetch(component, "loading", {"endpoint_id": endpoint_id})
            try:
                data = self.fetch(endpoint_id)
            except (AdapterError, KeyError, ValueError) as exc:
                # KeyError carries the message as its only argument; str() would quote it.
                message = str(exc.args[0]) if isinstance(exc, KeyError) and exc.args else str(exc)
                monitor.track_data_fetch(component, "error", {"endpoint_id": endpoint_id, "error": message})
                return SnapshotEntry(endpoint_id, success=False, error=message)
            monitor.track_data_fetch(component, "success", {"endpoint_id": endpoint_id})
            return SnapshotEntry(endpoint_id, success=True, data=data)

        with ThreadPoolExecutor(max_workers=min(self.context.options.max_workers, len(endpoint_ids))) as executor:
            futures = {executor.submit(run, endpoint_id): endpoint_id for endpoint_id in endpoint_ids}
            for future in as_completed(futures):
                entry = future.result()
                entries[entry.endpoint_id] = entry
                if not entry.success:
                    log_event(self.logger, logging.WARNING, "Snapshot entry failed", {"endpoint": entry.endpoint_id, "error": entry.error})
        return {endpoint_id: entries[endpoint_id] for endpoint_id in endpoint_ids}
