"""
Runtime settings for the RRIO data client.

Settings are read from a TOML file and then overridden by environment variables.
The file lookup order is:

1. Explicit ``RRIO_SETTINGS_PATH`` environment variable.
2. ``.rrio/settings.toml`` relative to the current working directory.
3. ``.rrio/settings.toml`` in the project root (the directory holding ``pyproject.toml``).

A missing file is not an error: the defaults point at a local development
backend on ``http://localhost:8001``. Call :func:`load_settings` to obtain a
:class:`ClientSettings` instance.

Example ``settings.toml``::

    [api]
    base_url = "https://rrio.example.org"
    environment = "production"

    [fetch]
    timeout_ms = 8000
    max_retries = 2
    retry_delay_ms = 1000

    [validation]
    strict = false
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional

DEFAULT_API_BASE_URL = "http://localhost:8001"
DEFAULT_TIMEOUT_MS = 10_000
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_MS = 1_000
DEFAULT_HEADERS: Mapping[str, str] = {"Content-Type": "application/json"}

ENV_SETTINGS_PATH = "RRIO_SETTINGS_PATH"
ENV_API_BASE_URL = "RRIO_API_BASE_URL"
ENV_ENVIRONMENT = "RRIO_ENV"
ENV_STRICT_VALIDATION = "RRIO_STRICT_VALIDATION"

_ENVIRONMENTS = frozenset({"development", "production", "test"})


class SettingsError(RuntimeError):
    """Raised when a settings file or override holds an unusable value."""


@dataclass(slots=True, frozen=True)
class ClientSettings:
    """
    Resolved client configuration.

    Attributes
    ----------
    api_base_url:
        Root URL of the RRIO backend, without a trailing slash.
    environment:
        ``development``, ``production`` or ``test``. Informational; surfaced as a
        telemetry tag.
    default_timeout_ms / default_max_retries / default_retry_delay_ms:
        Fetch defaults for endpoints whose catalogue entry omits them.
    strict_validation:
        When ``True`` shape validation failures abort the fetch instead of being
        logged and tolerated.
    log_level:
        Optional level name applied by the CLI.
    source_path:
        File the settings were read from, if any.
    """

    api_base_url: str = DEFAULT_API_BASE_URL
    environment: str = "development"
    default_timeout_ms: int = DEFAULT_TIMEOUT_MS
    default_max_retries: int = DEFAULT_MAX_RETRIES
    default_retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS
    strict_validation: bool = False
    log_level: Optional[str] = None
    headers: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_HEADERS))
    source_path: Optional[Path] = None

    def with_overrides(self, **changes: Any) -> "ClientSettings":
        """Return a copy with the non-``None`` keyword arguments applied."""

        applied = {key: value for key, value in changes.items() if value is not None}
        if "api_base_url" in applied:
            applied["api_base_url"] = _normalise_base_url(str(applied["api_base_url"]))
        return replace(self, **applied)


def _discover_project_root() -> Optional[Path]:
    for parent in Path(__file__).resolve().parents:
        if (parent / "pyproject.toml").is_file():
            return parent
    return None


def _candidate_paths() -> Iterable[Path]:
    env_override = os.getenv(ENV_SETTINGS_PATH)
    if env_override:
        yield Path(env_override).expanduser()

    roots = [Path.cwd()]
    project_root = _discover_project_root()
    if project_root and project_root not in roots:
        roots.append(project_root)
    for root in roots:
        yield root / ".rrio" / "settings.toml"


def _load_toml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise SettingsError(f"Failed to parse settings file '{path}': {exc}") from exc


def _coerce_bool(value: str) -> Optional[bool]:
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    return None


def _normalise_base_url(value: str) -> str:
    cleaned = value.strip().rstrip("/")
    if not cleaned.startswith(("http://", "https://")):
        raise SettingsError(f"API base URL must start with http:// or https://, got '{value}'.")
    return cleaned


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = raw.get(name, {})
    return value if isinstance(value, Mapping) else {}


def _non_negative_int(section: Mapping[str, Any], key: str, default: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise SettingsError(f"Setting '{key}' must be a non-negative integer, got {value!r}.")
    return value


def _settings_from_mapping(raw: Mapping[str, Any], source_path: Optional[Path]) -> ClientSettings:
    api = _section(raw, "api")
    fetch = _section(raw, "fetch")
    validation = _section(raw, "validation")
    logging_section = _section(raw, "logging")

    environment = str(api.get("environment", "development")).lower()
    if environment not in _ENVIRONMENTS:
        raise SettingsError(f"Unknown environment '{environment}'. Expected one of: {', '.join(sorted(_ENVIRONMENTS))}.")

    headers = dict(DEFAULT_HEADERS)
    extra_headers = api.get("headers")
    if isinstance(extra_headers, Mapping):
        headers.update({str(key): str(value) for key, value in extra_headers.items()})

    level = logging_section.get("level")
    return ClientSettings(
        api_base_url=_normalise_base_url(str(api.get("base_url", DEFAULT_API_BASE_URL))),
        environment=environment,
        default_timeout_ms=_non_negative_int(fetch, "timeout_ms", DEFAULT_TIMEOUT_MS),
        default_max_retries=_non_negative_int(fetch, "max_retries", DEFAULT_MAX_RETRIES),
        default_retry_delay_ms=_non_negative_int(fetch, "retry_delay_ms", DEFAULT_RETRY_DELAY_MS),
        strict_validation=bool(validation.get("strict", False)),
        log_level=str(level) if isinstance(level, str) and level else None,
        headers=headers,
        source_path=source_path,
    )


def _apply_environment(settings: ClientSettings) -> ClientSettings:
    base_url = os.getenv(ENV_API_BASE_URL)
    environment = os.getenv(ENV_ENVIRONMENT)
    strict_raw = os.getenv(ENV_STRICT_VALIDATION)

    strict: Optional[bool] = None
    if strict_raw:
        strict = _coerce_bool(strict_raw)
        if strict is None:
            raise SettingsError(f"{ENV_STRICT_VALIDATION} must be a boolean flag, got '{strict_raw}'.")
    if environment and environment.lower() not in _ENVIRONMENTS:
        raise SettingsError(f"{ENV_ENVIRONMENT} must be one of {', '.join(sorted(_ENVIRONMENTS))}, got '{environment}'.")

    return settings.with_overrides(
        api_base_url=base_url or None,
        environment=environment.lower() if environment else None,
        strict_validation=strict,
    )


def load_settings(path: Optional[Path] = None) -> ClientSettings:
    """
    Load settings from ``path`` or the first discovered settings file.

    Parameters
    ----------
    path:
        Explicit TOML file. When given it must exist.
    """

    if path is not None:
        if not path.is_file():
            raise SettingsError(f"Settings file '{path}' does not exist.")
        return _apply_environment(_settings_from_mapping(_load_toml(path), path))

    for candidate in _candidate_paths():
        if candidate.is_file():
            return _apply_environment(_settings_from_mapping(_load_toml(candidate), candidate))
    return _apply_environment(ClientSettings())


def build_api_url(path: str, settings: Optional[ClientSettings] = None) -> str:
    """Join ``path`` onto the configured base URL, adding the leading slash if missing."""

    base = (settings or ClientSettings()).api_base_url
    if path.startswith(("http://", "https://")):
        return path
    normalised = path if path.startswith("/") else f"/{path}"
    return f"{base}{normalised}"
