"""
Primary Typer application wiring for the RRIO data client CLI.

The commands expose the endpoint catalogue, live probes against the backend,
raw fetches through the retrying client and offline shape validation of saved
payloads.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer

from ..adapters import AdapterError
from ..adapters.api import DataError
from ..config import SettingsError, load_settings
from ..core import EndpointRegistry, ExecutionContext, ExecutionOptions, RegistryLoadError, configure_logging, load_registry
from ..services import DashboardServices
from ..validation import TransformError, generate_validation_report, get_validator_for_endpoint
from .adapters import resolve_adapter

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Reliable data access for the RRIO risk-intelligence dashboard.\n\n"
        "Command groups:\n"
        "- endpoints: list, describe, verify and audit catalogued backend endpoints.\n"
        "- fetch: retrieve one endpoint through the retrying, validating client.\n"
        "- validate: check a saved payload against the shape validator for a path."
    ),
)
endpoints_app = typer.Typer(help="Inspect the endpoint catalogue and probe backend endpoints.")
app.add_typer(endpoints_app, name="endpoints")


def _parse_pairs(values: Optional[List[str]], label: str) -> Dict[str, str]:
    pairs: Dict[str, str] = {}
    if not values:
        return pairs
    for entry in values:
        if "=" not in entry:
            raise typer.BadParameter(f"{label} '{entry}' must use key=value format.")
        key, value = entry.split("=", 1)
        key = key.strip()
        if not key:
            raise typer.BadParameter(f"{label} '{entry}' is missing a key.")
        pairs[key] = value
    return pairs


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2, default=str))


@app.callback(invoke_without_command=False)
def main(
    ctx: typer.Context,
    registry_file: Optional[Path] = typer.Option(
        None,
        "--registry",
        "-r",
        help="Override endpoint catalogue YAML file.",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    settings_file: Optional[Path] = typer.Option(
        None,
        "--settings",
        help="Client settings TOML file. Defaults to the discovered .rrio/settings.toml.",
        dir_okay=False,
    ),
    base_url: Optional[str] = typer.Option(None, "--base-url", help="Override the backend base URL."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)."),
    strict: Optional[bool] = typer.Option(
        None,
        "--strict/--no-strict",
        help="Abort fetches whose payload fails shape validation instead of logging and continuing.",
    ),
) -> None:
    """
    Configure global execution context.

    The callback stores the registry, execution context and dashboard services
    in Typer's state so child commands can retrieve them via
    :class:`typer.Context`. Callers embedding the app may pre-seed the state
    with ``transport`` and ``sleep`` entries.
    """

    try:
        registry = load_registry(registry_file)
    except RegistryLoadError as exc:
        typer.echo(f"Invalid endpoint catalogue: {exc}", err=True)
        raise typer.Exit(code=1)

    try:
        settings = load_settings(settings_file).with_overrides(api_base_url=base_url, strict_validation=strict, log_level=log_level)
    except SettingsError as exc:
        typer.echo(f"Invalid settings: {exc}", err=True)
        raise typer.Exit(code=1)
    configure_logging(settings.log_level, force=log_level is not None)

    context = ExecutionContext.build_default(
        settings=settings,
        options=ExecutionOptions(strict_validation=settings.strict_validation),
    )
    state = ctx.ensure_object(dict)
    state["registry"] = registry
    state["context"] = context
    state["services"] = DashboardServices(
        registry=registry,
        context=context,
        transport=state.get("transport"),
        sleep=state.get("sleep"),
    )


def _require_registry(ctx: typer.Context) -> EndpointRegistry:
    state = ctx.ensure_object(dict)
    registry = state.get("registry")
    if not isinstance(registry, EndpointRegistry):
        raise typer.Exit(code=2)
    return registry


def _require_services(ctx: typer.Context) -> DashboardServices:
    state = ctx.ensure_object(dict)
    services = state.get("services")
    if not isinstance(services, DashboardServices):
        raise typer.Exit(code=2)
    return services


@endpoints_app.command("list")
def endpoints_list(
    ctx: typer.Context,
    group: Optional[str] = typer.Option(None, "--group", "-g", help="Only list endpoints of this client group."),
) -> None:
    """List catalogued endpoints with basic metadata."""

    registry = _require_registry(ctx)
    entries = registry.list(group=group)
    if not entries:
        typer.echo("No endpoints match the requested filters.")
        raise typer.Exit(code=0)

    header = f"{'ID':<30} {'Group':<13} {'Method':<6} Path"
    typer.echo(header)
    typer.echo("-" * len(header))
    for entry in entries:
        typer.echo(f"{entry.endpoint_id:<30} {entry.group:<13} {entry.method.value:<6} {entry.path}")


@endpoints_app.command("describe")
def endpoints_describe(
    ctx: typer.Context,
    endpoint_id: str = typer.Argument(..., help="Identifier of the endpoint."),
    output_json: bool = typer.Option(False, "--json", help="Emit descriptor in JSON format."),
) -> None:
    """Show detailed metadata for a specific endpoint."""

    registry = _require_registry(ctx)
    descriptor = registry.get(endpoint_id)
    if not descriptor:
        typer.echo(f"Endpoint '{endpoint_id}' is not registered.", err=True)
        raise typer.Exit(code=1)

    if output_json:
        typer.echo(descriptor.to_json())
        return

    typer.echo(f"ID: {descriptor.endpoint_id}")
    typer.echo(f"Path: {descriptor.method.value} {descriptor.path}")
    typer.echo(f"Group: {descriptor.group}")
    typer.echo(f"Component: {descriptor.component}")
    typer.echo(f"Retries: {descriptor.max_retries} (base delay {descriptor.retry_delay_ms} ms)")
    typer.echo(f"Timeout: {descriptor.timeout_ms} ms")
    typer.echo(f"Validation: {descriptor.validation.value}")
    if descriptor.path_parameters:
        typer.echo(f"Path Parameters: {', '.join(descriptor.path_parameters)}")
    if descriptor.params:
        typer.echo(f"Default Query: {json.dumps(dict(descriptor.params), ensure_ascii=False)}")
    if descriptor.description:
        typer.echo(f"Description: {descriptor.description}")


@endpoints_app.command("verify")
def endpoints_verify(
    ctx: typer.Context,
    endpoint_id: str = typer.Argument(..., help="Identifier of the endpoint."),
    path_param: Optional[List[str]] = typer.Option(None, "--path-param", "-p", help="Path placeholder as key=value. Can be repeated."),
) -> None:
    """Fetch one endpoint and check its payload against the matching shape validator."""

    services = _require_services(ctx)
    adapter = resolve_adapter(endpoint_id, services, _parse_pairs(path_param, "Path parameter"))
    if adapter is None:
        typer.echo(f"Endpoint '{endpoint_id}' is not registered.", err=True)
        raise typer.Exit(code=1)

    try:
        result = services.verify_endpoint(endpoint_id, adapter)
    except AdapterError as exc:
        typer.echo(f"Verification failed: {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(result.message)
    if result.details:
        typer.echo(f"Details: {json.dumps(dict(result.details), ensure_ascii=False, default=str)}")
    if not result.success:
        raise typer.Exit(code=1)


@endpoints_app.command("audit")
def endpoints_audit(
    ctx: typer.Context,
    output_json: bool = typer.Option(False, "--json", help="Emit the audit report in JSON format."),
    fail_on_error: bool = typer.Option(True, "--fail-on-error/--no-fail-on-error", help="Control whether failures set a non-zero exit code."),
) -> None:
    """
    Probe every GET endpoint that needs no path parameters and emit a summary report.
    """

    services = _require_services(ctx)
    results = services.audit()
    if not results:
        typer.echo("No endpoints available for audit.")
        raise typer.Exit(code=0)

    records: List[Dict[str, Any]] = []
    for endpoint_id, verification in results.items():
        records.append(
            {
                "id": endpoint_id,
                "success": verification.success,
                "message": verification.message,
                "details": dict(verification.details) if verification.details is not None else None,
            }
        )
    failures = sum(1 for record in records if not record["success"])

    if output_json:
        _echo_json({"results": records})
    else:
        header = f"{'ID':<30} {'Result':<7} Message"
        typer.echo(header)
        typer.echo("-" * len(header))
        for record in records:
            message = str(record["message"]).replace("\n", " ").strip()
            result_str = "pass" if record["success"] else "fail"
            typer.echo(f"{record['id']:<30} {result_str:<7} {message}")
        passed = len(records) - failures
        typer.echo(f"Audit complete: {len(records)} endpoint(s), {passed} passed, {failures} failed.")

    if failures and fail_on_error:
        raise typer.Exit(code=1)


@app.command("fetch")
def fetch(
    ctx: typer.Context,
    endpoint_id: str = typer.Argument(..., help="Identifier of the endpoint."),
    path_param: Optional[List[str]] = typer.Option(None, "--path-param", "-p", help="Path placeholder as key=value. Can be repeated."),
    query: Optional[List[str]] = typer.Option(None, "--query", "-q", help="Query parameter as key=value. Can be repeated."),
) -> None:
    """Fetch one endpoint with retries and shape validation, printing the JSON payload."""

    services = _require_services(ctx)
    path_params = _parse_pairs(path_param, "Path parameter")
    params = _parse_pairs(query, "Query parameter")

    try:
        payload = services.fetch(endpoint_id, path_params=path_params, params=params or None)
    except KeyError as exc:
        typer.echo(str(exc).strip("'\""), err=True)
        raise typer.Exit(code=1)
    except DataError as exc:
        typer.echo(f"Fetch failed after {exc.retry_attempt + 1} attempt(s): {exc.original_error}", err=True)
        raise typer.Exit(code=1)
    except (AdapterError, TransformError) as exc:
        typer.echo(f"Fetch failed: {exc}", err=True)
        raise typer.Exit(code=1)

    _echo_json(payload)


@app.command("validate")
def validate(
    endpoint_path: str = typer.Argument(..., help="Endpoint path or URL whose validator should be applied."),
    payload_file: Path = typer.Argument(..., exists=True, dir_okay=False, resolve_path=True, help="JSON file holding the payload."),
    output_json: bool = typer.Option(False, "--json", help="Emit the validation report in JSON format."),
) -> None:
    """Check a saved JSON payload against the shape validator registered for a path."""

    try:
        data = json.loads(payload_file.read_text(encoding="utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise typer.BadParameter(f"Failed to read JSON from '{payload_file}': {exc}") from exc

    validator = get_validator_for_endpoint(endpoint_path)
    report = generate_validation_report(endpoint_path, data, [validator])
    entry = report["validations"][0]

    if output_json:
        _echo_json(report)
    elif entry["valid"]:
        typer.echo(f"Payload matches the {entry['name']} shape.")
    else:
        typer.echo(f"Payload fails {entry['name']} validation:")
        for error in entry["errors"]:
            typer.echo(f"- {error}")

    if not entry["valid"]:
        raise typer.Exit(code=1)


if __name__ == "__main__":  # pragma: no cover
    app()
