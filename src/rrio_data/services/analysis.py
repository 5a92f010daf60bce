"""
Derived analytics computed client-side from already fetched dashboard values.

Both helpers are pure: they take the outputs of the risk, regime, forecast and
components fetches and never call the backend.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

DEFAULT_FACTORS: tuple[str, ...] = ("VIX", "Credit_Spreads", "Oil_Prices", "USD_Index")

# Reference correlations between common market factors, used when component data is missing.
_REFERENCE_CORRELATIONS: Mapping[str, Mapping[str, float]] = {
    "VIX": {"Credit_Spreads": 0.65, "Oil_Prices": -0.2, "USD_Index": -0.3, "YIELD_CURVE": -0.4},
    "Credit_Spreads": {"VIX": 0.65, "Oil_Prices": 0.1, "USD_Index": -0.15, "YIELD_CURVE": -0.7},
    "Oil_Prices": {"VIX": -0.2, "Credit_Spreads": 0.1, "USD_Index": -0.5, "YIELD_CURVE": 0.2},
    "USD_Index": {"VIX": -0.3, "Credit_Spreads": -0.15, "Oil_Prices": -0.5, "YIELD_CURVE": 0.3},
    "YIELD_CURVE": {"VIX": -0.4, "Credit_Spreads": -0.7, "Oil_Prices": 0.2, "USD_Index": 0.3},
}
_FALLBACK_CORRELATION = 0.1


def _first_present(mapping: Optional[Mapping[str, Any]], *keys: str, default: Any) -> Any:
    for key in keys:
        value = (mapping or {}).get(key)
        if value is not None:
            return value
    return default


def create_scenario_analysis(
    risk: Optional[Mapping[str, Any]],
    regime: Optional[Mapping[str, Any]],
    forecast: Optional[Mapping[str, Any]],
) -> Dict[str, Any]:
    """
    Build the three-scenario outlook from the current score, regime and 24h forecast.

    Parameters
    ----------
    risk:
        Risk overview values; ``score`` defaults to 50.
    regime:
        Normalised regime data (``current`` and ``probabilities`` records).
    forecast:
        Forecast values; ``delta`` or ``delta24h`` is the expected move.

    Returns
    -------
    dict
        ``currentState`` plus the current-trajectory, stress and recovery
        scenarios with probabilities 0.6, 0.25 and 0.15.
    """

    score = float(_first_present(risk, "score", default=50))
    current = _first_present(regime, "current", default="Unknown")
    delta = float(_first_present(forecast, "delta", "delta24h", default=0))

    probability = 0.5
    for entry in (regime or {}).get("probabilities") or []:
        if entry.get("name") == current and entry.get("probability") is not None:
            probability = entry["probability"]
            break

    return {
        "currentState": {"grii": score, "regime": current, "probability": probability},
        "scenarios": [
            {
                "name": "Current Trajectory",
                "grii": score + delta,
                "probability": 0.6,
                "description": "Continuation of current regime and trends",
            },
            {
                "name": "Stress Scenario",
                "grii": min(100.0, score + abs(delta) * 2),
                "probability": 0.25,
                "description": "Amplified stress factors from regime analysis",
            },
            {
                "name": "Recovery Scenario",
                "grii": max(0.0, score - abs(delta)),
                "probability": 0.15,
                "description": "Risk mitigation and regime stabilization",
            },
        ],
        "updatedAt": datetime.now(UTC).isoformat(),
    }


def reference_correlation(first: str, second: str) -> float:
    return (
        _REFERENCE_CORRELATIONS.get(first, {}).get(second)
        or _REFERENCE_CORRELATIONS.get(second, {}).get(first)
        or _FALLBACK_CORRELATION
    )


def _adjust_for_factor_type(first: str, second: str, correlation: float) -> float:
    stress = ("VIX", "Credit")
    if any(tag in first for tag in stress) and any(tag in second for tag in stress):
        return max(0.3, correlation)
    if ("VIX" in first and "USD" in second) or ("USD" in first and "VIX" in second):
        return -abs(correlation)
    return max(-0.95, min(0.95, correlation))


def create_correlation_analysis(components: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Approximate a factor correlation matrix from component z-scores.

    Pairs with z-score data use ``max(0.1, 1 - |dz| / 2)`` adjusted by factor
    type; pairs missing data fall back to reference correlations and are
    marked not significant.
    """

    records: Sequence[Mapping[str, Any]] = (components or {}).get("components") or []
    factors: List[str] = [record.get("id") for record in records] if records else list(DEFAULT_FACTORS)

    by_id: Dict[str, Mapping[str, Any]] = {}
    for record in records:
        by_id.setdefault(record.get("id"), record)

    matrix: List[List[float]] = []
    significance: List[List[bool]] = []
    for i, first in enumerate(factors):
        row: List[float] = []
        flags: List[bool] = []
        for j, second in enumerate(factors):
            left, right = by_id.get(first), by_id.get(second)
            if i == j:
                row.append(1.0)
                flags.append(True)
                continue
            if left is None or right is None:
                row.append(reference_correlation(first, second))
                flags.append(False)
                continue
            spread = abs(float(left.get("z_score") or 0) - float(right.get("z_score") or 0))
            row.append(_adjust_for_factor_type(first, second, max(0.1, 1 - spread / 2)))
            flags.append(True)
        matrix.append(row)
        significance.append(flags)

    return {
        "factors": factors,
        "matrix": matrix,
        "significance": significance,
        "updatedAt": datetime.now(UTC).isoformat(),
    }
