"""
Structural validators for backend payloads.

Each ``check_*`` function is pure: it receives a decoded JSON value and returns
the ordered list of problems found (empty when the payload is well formed).
:class:`ShapeValidator` pairs a check with a name and a severity, turns the
list into a :class:`Valid` / :class:`Invalid` result and reports failures to
the telemetry monitor.

Checks are deliberately shallow: presence and primitive type of required
fields, documented numeric ranges, parseable timestamps, and one level of
recursion into arrays of records.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Generic, List, Mapping, Optional, Sequence, TypeVar, Union

from ..core.monitoring import RiskMonitor, Severity, get_monitor

T = TypeVar("T")

Check = Callable[[Any], List[str]]

PROVIDER_STATUSES = ("healthy", "degraded", "critical")
DISRUPTION_SEVERITIES = ("low", "medium", "high", "critical")
ALERT_SEVERITIES = ("critical", "high", "medium", "low")


@dataclass(frozen=True, slots=True)
class Valid(Generic[T]):
    data: T

    @property
    def valid(self) -> bool:
        return True

    @property
    def errors(self) -> tuple[str, ...]:
        return ()


@dataclass(frozen=True, slots=True)
class Invalid:
    errors: tuple[str, ...]

    @property
    def valid(self) -> bool:
        return False

    @property
    def data(self) -> None:
        return None


ValidationResult = Union[Valid[Any], Invalid]


# -- Primitive predicates -----------------------------------------------------


def is_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value)


def is_string(value: object) -> bool:
    return isinstance(value, str)


def is_array(value: object) -> bool:
    return isinstance(value, (list, tuple))


def is_object(value: object) -> bool:
    return isinstance(value, Mapping)


def is_date_string(value: object) -> bool:
    if not isinstance(value, str) or not value:
        return False
    try:
        datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return False
    return True


def _expect(errors: List[str], record: Mapping[str, Any], key: str, predicate: Callable[[object], bool], label: str, prefix: str = "") -> None:
    if not predicate(record.get(key)):
        errors.append(f"{prefix}{key} must be {label}")


def _expect_optional(errors: List[str], record: Mapping[str, Any], key: str, predicate: Callable[[object], bool], label: str, prefix: str = "") -> None:
    if record.get(key) is not None:
        _expect(errors, record, key, predicate, label, prefix)


def _expect_range(errors: List[str], record: Mapping[str, Any], key: str, low: float, high: float, prefix: str = "") -> None:
    value = record.get(key)
    if not is_number(value):
        errors.append(f"{prefix}{key} must be a number")
    elif not low <= value <= high:
        errors.append(f"{prefix}{key} must be between {low:g} and {high:g}")


def _check_items(errors: List[str], items: Sequence[Any], name: str, item_check: Callable[[Mapping[str, Any], str], List[str]]) -> None:
    for index, item in enumerate(items):
        prefix = f"{name}[{index}]."
        if not is_object(item):
            errors.append(f"{name}[{index}] must be an object")
            continue
        errors.extend(item_check(item, prefix))


# -- Payload checks -----------------------------------------------------------


def check_risk_overview(data: Any) -> List[str]:
    if not is_object(data):
        return ["Risk overview must be an object"]
    errors: List[str] = []
    overview = data.get("overview")
    if not is_object(overview):
        errors.append("overview must be an object")
    else:
        _expect_range(errors, overview, "score", 0, 100, "overview.")
        _expect(errors, overview, "change_24h", is_number, "a number", "overview.")
        _expect(errors, overview, "updated_at", is_date_string, "a valid date string", "overview.")
        _expect(errors, overview, "band", is_string, "a string", "overview.")
        _expect(errors, overview, "drivers", is_array, "an array", "overview.")
    _expect(errors, data, "alerts", is_array, "an array")
    return errors


def _component_item(item: Mapping[str, Any], prefix: str) -> List[str]:
    errors: List[str] = []
    _expect(errors, item, "id", is_string, "a string", prefix)
    _expect(errors, item, "value", is_number, "a number", prefix)
    _expect(errors, item, "z_score", is_number, "a number", prefix)
    return errors


def check_components(data: Any) -> List[str]:
    if not is_object(data):
        return ["Components response must be an object"]
    components = data.get("components")
    if not is_array(components):
        return ["components must be an array"]
    errors: List[str] = []
    _check_items(errors, components, "components", _component_item)
    return errors


def _partner_item(item: Mapping[str, Any], prefix: str) -> List[str]:
    errors: List[str] = []
    for key in ("lab_id", "sector", "status"):
        _expect(errors, item, key, is_string, "a string", prefix)
    _expect(errors, item, "deliverables", is_array, "an array", prefix)
    _expect(errors, item, "showcase_date", is_date_string, "a valid date string", prefix)
    _expect_optional(errors, item, "engagement_score", is_number, "a number", prefix)
    _expect_optional(errors, item, "project_details", is_array, "an array", prefix)
    return errors


def check_partners(data: Any) -> List[str]:
    if not is_object(data):
        return ["Partners response must be an object"]
    partners = data.get("partners")
    if not is_array(partners):
        return ["partners must be an array"]
    errors: List[str] = []
    _check_items(errors, partners, "partners", _partner_item)
    return errors


def _anomaly_item(item: Mapping[str, Any], prefix: str) -> List[str]:
    errors: List[str] = []
    _expect(errors, item, "score", is_number, "a number", prefix)
    _expect(errors, item, "classification", is_string, "a string", prefix)
    _expect(errors, item, "drivers", is_array, "an array", prefix)
    _expect(errors, item, "timestamp", is_date_string, "a valid date string", prefix)
    return errors


def check_anomalies(data: Any) -> List[str]:
    if not is_object(data):
        return ["Alerts response must be an object"]
    anomalies = data.get("anomalies")
    if not is_array(anomalies):
        return ["anomalies must be an array"]
    errors: List[str] = []
    _check_items(errors, anomalies, "anomalies", _anomaly_item)
    return errors


def check_regime(data: Any) -> List[str]:
    if not is_object(data):
        return ["Regime response must be an object"]
    errors: List[str] = []
    _expect(errors, data, "regime", is_string, "a string")
    probabilities = data.get("probabilities")
    if is_object(probabilities):
        for name, probability in probabilities.items():
            if not is_number(probability) or not 0 <= probability <= 1:
                errors.append(f"probabilities.{name} must be a number between 0 and 1")
    elif is_array(probabilities):
        for index, entry in enumerate(probabilities):
            if not is_object(entry):
                errors.append(f"probabilities[{index}] must be an object")
                continue
            _expect(errors, entry, "name", is_string, "a string", f"probabilities[{index}].")
            _expect_range(errors, entry, "probability", 0, 1, f"probabilities[{index}].")
    else:
        errors.append("probabilities must be an object or an array")
    _expect(errors, data, "updated_at", is_date_string, "a valid date string")
    if data.get("confidence") is not None:
        _expect_range(errors, data, "confidence", 0, 1)
    return errors


def check_transparency_status(data: Any) -> List[str]:
    if not is_object(data):
        return ["Transparency status must be an object"]
    errors: List[str] = []
    _expect(errors, data, "timestamp", is_date_string, "a valid date string")
    if data.get("overall_status") not in PROVIDER_STATUSES:
        errors.append(f"overall_status must be one of: {', '.join(PROVIDER_STATUSES)}")
    return errors


def check_pagination(data: Any) -> List[str]:
    """Check the optional ``pagination`` block; absent pagination is fine."""

    if not is_object(data):
        return ["Data must be an object"]
    pagination = data.get("pagination")
    if not is_object(pagination):
        return []
    errors: List[str] = []
    for key in ("total", "page", "pageSize"):
        _expect(errors, pagination, key, is_number, "a number", "pagination.")
    return errors


def _coordinates(value: object) -> bool:
    return is_array(value) and len(value) == 2


def _geopolitical_event(item: Mapping[str, Any], prefix: str) -> List[str]:
    errors: List[str] = []
    _expect(errors, item, "event_id", is_string, "a string", prefix)
    _expect(errors, item, "event_type", is_string, "a string", prefix)
    _expect(errors, item, "location", _coordinates, "an array of two numbers [lat, lng]", prefix)
    _expect(errors, item, "impact_score", is_number, "a number", prefix)
    _expect(errors, item, "confidence", is_number, "a number", prefix)
    return errors


def _supply_chain_disruption(item: Mapping[str, Any], prefix: str) -> List[str]:
    errors: List[str] = []
    _expect(errors, item, "disruption_id", is_string, "a string", prefix)
    if item.get("severity") not in DISRUPTION_SEVERITIES:
        errors.append(f"{prefix}severity must be one of: {', '.join(DISRUPTION_SEVERITIES)}")
    _expect(errors, item, "location", _coordinates, "an array of two numbers [lat, lng]", prefix)
    _expect(errors, item, "description", is_string, "a string", prefix)
    _expect(errors, item, "affected_commodities", is_array, "an array", prefix)
    return errors


def check_geopolitical_disruptions(data: Any) -> List[str]:
    if not is_object(data):
        return ["Data must be an object"]
    errors: List[str] = []
    for key, item_check in (("geopolitical_events", _geopolitical_event), ("supply_chain_disruptions", _supply_chain_disruption)):
        items = data.get(key)
        if is_array(items):
            _check_items(errors, items, key, item_check)
        else:
            errors.append(f"{key} must be an array")
    _expect(errors, data, "data_sources", is_array, "an array")
    errors.extend(check_pagination(data))
    return errors


def _production_alert(item: Mapping[str, Any], prefix: str) -> List[str]:
    errors: List[str] = []
    for key in ("id", "service_name", "message", "timestamp"):
        value = item.get(key)
        if not is_string(value) or not value:
            errors.append(f"{prefix}{key} must be a string")
    if item.get("severity") not in ALERT_SEVERITIES:
        errors.append(f"{prefix}severity must be one of: {', '.join(ALERT_SEVERITIES)}")
    _expect(errors, item, "resolved", lambda value: isinstance(value, bool), "a boolean", prefix)
    return errors


def check_production_alert(data: Any) -> List[str]:
    if not is_object(data):
        return ["Data must be an object"]
    return _production_alert(data, "")


def check_active_alerts(data: Any) -> List[str]:
    if not is_object(data):
        return ["Data must be an object"]
    errors: List[str] = []
    alerts = data.get("active_alerts")
    if is_array(alerts):
        _check_items(errors, alerts, "active_alerts", _production_alert)
    else:
        errors.append("active_alerts must be an array")
    summary = data.get("summary")
    if is_object(summary):
        _expect(errors, summary, "total_alerts", is_number, "a number", "summary.")
        _expect(errors, summary, "critical_alerts", is_number, "a number", "summary.")
    else:
        errors.append("summary must be an object")
    _expect(errors, data, "timestamp", lambda value: is_string(value) and bool(value), "a string")
    errors.extend(check_pagination(data))
    return errors


def check_health_overview(data: Any) -> List[str]:
    if not is_object(data):
        return ["Health overview must be an object"]
    errors: List[str] = []
    _expect(errors, data, "overall_health", lambda value: is_string(value) and bool(value), "a non-empty string")
    _expect_optional(errors, data, "health_score", is_number, "a number")
    return errors


def check_present(data: Any) -> List[str]:
    return ["Received null or undefined data"] if data is None else []


# -- Validator objects --------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ShapeValidator:
    """
    A named payload check with the severity its failures are reported at.

    Calling the validator runs the check and, on failure, emits one
    ``data_quality`` event summarising the errors. :meth:`run` is the
    side-effect-free variant.
    """

    name: str
    check: Check
    severity: Severity = Severity.HIGH

    def run(self, data: Any) -> ValidationResult:
        errors = self.check(data)
        if errors:
            return Invalid(tuple(errors))
        return Valid(data)

    def __call__(self, data: Any, endpoint: str = "", *, monitor: Optional[RiskMonitor] = None) -> ValidationResult:
        result = self.run(data)
        if not result.valid:
            (monitor or get_monitor()).track_data_quality(
                f"{self.name} validation failed: {'; '.join(result.errors)}",
                endpoint or self.name,
                self.severity,
                {"endpoint": endpoint, "validator": self.name, "errors": list(result.errors)},
            )
        return result


RISK_OVERVIEW = ShapeValidator("risk overview", check_risk_overview, Severity.HIGH)
COMPONENTS = ShapeValidator("components", check_components, Severity.HIGH)
PARTNERS = ShapeValidator("partners", check_partners, Severity.HIGH)
ANOMALIES = ShapeValidator("alerts", check_anomalies, Severity.HIGH)
REGIME = ShapeValidator("regime", check_regime, Severity.MEDIUM)
TRANSPARENCY_STATUS = ShapeValidator("transparency status", check_transparency_status, Severity.MEDIUM)
GEOPOLITICAL_DISRUPTIONS = ShapeValidator("geopolitical disruptions", check_geopolitical_disruptions, Severity.MEDIUM)
ACTIVE_ALERTS = ShapeValidator("active alerts", check_active_alerts, Severity.HIGH)
HEALTH_OVERVIEW = ShapeValidator("health overview", check_health_overview, Severity.MEDIUM)
PAGINATION = ShapeValidator("pagination", check_pagination, Severity.LOW)
GENERIC = ShapeValidator("generic", check_present, Severity.HIGH)


def generate_validation_report(endpoint: str, data: Any, validators: Sequence[ShapeValidator]) -> dict[str, Any]:
    """Run several validators without telemetry and summarise the outcome per validator."""

    validations = []
    for validator in validators:
        result = validator.run(data)
        validations.append({"name": validator.name, "valid": result.valid, "errors": list(result.errors)})
    return {"endpoint": endpoint, "validations": validations}
