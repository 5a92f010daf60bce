"""
Endpoint catalogue for the RRIO backend.

Every backend endpoint the client talks to is described once, in
``rrio_data/resources/endpoints.yaml``: its path template, the dashboard
component that owns it, the HTTP method, and the retry/timeout budget. Client
methods resolve their descriptor by id, so tuning a budget never requires a
code change, and the CLI can list, probe and audit the whole surface.
"""

from __future__ import annotations

import json
import string
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, MutableMapping, Optional, Sequence
from urllib.parse import quote

import yaml

DEFAULT_CATALOGUE_PACKAGE = "rrio_data.resources"
DEFAULT_CATALOGUE_FILE = "endpoints.yaml"


class RegistryLoadError(RuntimeError):
    """Raised when the endpoint catalogue cannot be parsed or validated."""


class HTTPMethod(str, Enum):
    GET = "GET"
    POST = "POST"


class ValidationPolicy(str, Enum):
    """
    How responses are shape-checked.

    ``shape`` logs validation failures and continues, ``strict`` raises on them,
    ``skip`` bypasses the shape validator entirely.
    """

    SHAPE = "shape"
    STRICT = "strict"
    SKIP = "skip"


@dataclass(slots=True)
class EndpointDescriptor:
    """
    Metadata for one backend endpoint.

    Parameters
    ----------
    endpoint_id:
        Unique identifier used by client methods and the CLI.
    path:
        Path below the API base URL. May contain ``{name}`` placeholders filled
        from path parameters at call time.
    component:
        Dashboard component name recorded in telemetry.
    group:
        Client group (``risk``, ``ai``, ``network``, ...).
    method:
        HTTP method.
    max_retries:
        Retries after the first attempt.
    timeout_ms:
        Per-attempt timeout.
    retry_delay_ms:
        Base backoff delay; attempt ``n`` waits ``retry_delay_ms * 2**n``.
    validation:
        Shape validation policy.
    description:
        Short summary shown by ``rrio endpoints list``.
    params:
        Default query parameters.
    """

    endpoint_id: str
    path: str
    component: str
    group: str = "misc"
    method: HTTPMethod = HTTPMethod.GET
    max_retries: int = 3
    timeout_ms: int = 10_000
    retry_delay_ms: int = 1_000
    validation: ValidationPolicy = ValidationPolicy.SHAPE
    description: str = ""
    params: Mapping[str, Any] = field(default_factory=dict)

    @property
    def path_parameters(self) -> Sequence[str]:
        """Placeholder names found in :attr:`path`, in order."""

        return tuple(name for _, name, _, _ in string.Formatter().parse(self.path) if name)

    def validate(self) -> None:
        """Validate internal consistency of the descriptor."""

        if not self.endpoint_id or not self.endpoint_id.isidentifier():
            raise RegistryLoadError(f"Endpoint '{self.endpoint_id}' must be a valid identifier (letters, digits, underscore).")
        if not self.path.startswith("/"):
            raise RegistryLoadError(f"Endpoint '{self.endpoint_id}' path must start with '/', got '{self.path}'.")
        for name, value in (("max_retries", self.max_retries), ("timeout_ms", self.timeout_ms), ("retry_delay_ms", self.retry_delay_ms)):
            if value < 0:
                raise RegistryLoadError(f"Endpoint '{self.endpoint_id}' has negative {name}: {value}.")

    def render_path(self, path_params: Optional[Mapping[str, object]] = None) -> str:
        """Fill the path placeholders with percent-encoded values, raising ``KeyError`` for a missing one."""

        supplied = dict(path_params or {})
        missing = [name for name in self.path_parameters if name not in supplied]
        if missing:
            raise KeyError(f"Endpoint '{self.endpoint_id}' requires path parameter(s): {', '.join(missing)}.")
        return self.path.format(**{key: quote(str(value), safe="") for key, value in supplied.items()})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.endpoint_id,
            "path": self.path,
            "component": self.component,
            "group": self.group,
            "method": self.method.value,
            "max_retries": self.max_retries,
            "timeout_ms": self.timeout_ms,
            "retry_delay_ms": self.retry_delay_ms,
            "validation": self.validation.value,
            "description": self.description,
            "params": dict(self.params),
        }

    def to_json(self) -> str:
        """Return a JSON representation useful for CLI output."""

        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2)


class EndpointRegistry:
    """In-memory catalogue of :class:`EndpointDescriptor` entries."""

    def __init__(self) -> None:
        self._entries: MutableMapping[str, EndpointDescriptor] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, endpoint_id: object) -> bool:
        return endpoint_id in self._entries

    def register(self, descriptor: EndpointDescriptor) -> None:
        """Register or overwrite a descriptor."""

        descriptor.validate()
        self._entries[descriptor.endpoint_id] = descriptor

    def unregister(self, endpoint_id: str) -> None:
        self._entries.pop(endpoint_id, None)

    def get(self, endpoint_id: str) -> Optional[EndpointDescriptor]:
        return self._entries.get(endpoint_id)

    def require(self, endpoint_id: str) -> EndpointDescriptor:
        """Retrieve a descriptor or raise an informative error."""

        descriptor = self.get(endpoint_id)
        if descriptor is None:
            raise KeyError(f"Endpoint '{endpoint_id}' is not registered.")
        return descriptor

    def list(self, *, group: Optional[str] = None) -> List[EndpointDescriptor]:
        """Return descriptors, optionally restricted to one client group."""

        items = self._entries.values()
        if group:
            return [item for item in items if item.group == group]
        return list(items)

    def groups(self) -> List[str]:
        return sorted({item.group for item in self._entries.values()})

    def iter_probeable(self) -> Iterator[EndpointDescriptor]:
        """Yield GET endpoints that need no path parameters, i.e. safe to call blind."""

        for descriptor in self._entries.values():
            if descriptor.method is HTTPMethod.GET and not descriptor.path_parameters:
                yield descriptor

    @classmethod
    def from_yaml(cls, path: Path | str) -> "EndpointRegistry":
        """Load descriptors from a YAML document holding a top-level ``endpoints`` list."""

        location = Path(path)
        if not location.exists():
            raise RegistryLoadError(f"Registry file '{location}' does not exist.")

        try:
            with location.open("r", encoding="utf-8") as handle:
                payload = yaml.safe_load(handle)
        except yaml.YAMLError as exc:
            raise RegistryLoadError(f"Failed to parse '{location}': {exc}") from exc

        if not isinstance(payload, dict):
            raise RegistryLoadError(f"Registry file '{location}' must contain a mapping with an 'endpoints' list.")
        defaults = payload.get("defaults") or {}
        entries = payload.get("endpoints")
        if not isinstance(defaults, dict) or not isinstance(entries, list):
            raise RegistryLoadError(f"Registry file '{location}' must contain a mapping with an 'endpoints' list.")

        registry = cls()
        for entry in entries:
            descriptor = cls._descriptor_from_payload(entry, defaults=defaults, origin=location)
            if descriptor.endpoint_id in registry:
                raise RegistryLoadError(f"Duplicate endpoint id '{descriptor.endpoint_id}' in '{location}'.")
            registry.register(descriptor)
        return registry

    @staticmethod
    def _descriptor_from_payload(entry: object, *, defaults: Mapping[str, Any], origin: Path) -> EndpointDescriptor:
        """Convert a YAML mapping into a descriptor instance."""

        if not isinstance(entry, dict):
            raise RegistryLoadError(f"Invalid entry in '{origin}': expected mapping, got {type(entry)!r}")

        merged = {**defaults, **entry}
        try:
            params = merged.get("params") or {}
            if not isinstance(params, dict):
                raise ValueError(f"params for '{merged['id']}' must be a mapping")
            descriptor = EndpointDescriptor(
                endpoint_id=str(merged["id"]),
                path=str(merged["path"]),
                component=str(merged["component"]),
                group=str(merged.get("group", "misc")),
                method=HTTPMethod(str(merged.get("method", "GET")).upper()),
                max_retries=int(merged.get("max_retries", 3)),
                timeout_ms=int(merged.get("timeout_ms", 10_000)),
                retry_delay_ms=int(merged.get("retry_delay_ms", 1_000)),
                validation=ValidationPolicy(str(merged.get("validation", "shape"))),
                description=_optional_str(merged.get("description")) or "",
                params=dict(params),
            )
        except KeyError as exc:
            raise RegistryLoadError(f"Missing required key {exc!s} in '{origin}'.") from exc
        except (TypeError, ValueError) as exc:
            raise RegistryLoadError(f"Invalid field in '{origin}': {exc}") from exc

        descriptor.validate()
        return descriptor


def _optional_str(value: object | None) -> Optional[str]:
    if value is None:
        return None
    text = " ".join(str(value).split())
    return text or None


def load_registry(path: Optional[Path] = None) -> EndpointRegistry:
    """Load ``path`` or, when omitted, the catalogue bundled with the package."""

    if path is not None:
        return EndpointRegistry.from_yaml(path)
    return default_registry()


@lru_cache(maxsize=1)
def default_registry() -> EndpointRegistry:
    """Return the bundled catalogue, parsed once per process."""

    with resources.as_file(resources.files(DEFAULT_CATALOGUE_PACKAGE) / DEFAULT_CATALOGUE_FILE) as resolved:
        return EndpointRegistry.from_yaml(resolved)
