"""
Wellbeing Scoring

Score Normalizer:
- Maps raw 1-10 check-in metrics onto a uniform 0-100 scale
- Clamps out-of-range input instead of failing
- Missing input defaults to the neutral raw value 5 (about 44.4)
- Legacy "stress" (higher = worse) is inverted as 100 - normalize(stress)

Wellbeing Aggregator:
- Averages 8 normalized sub-metrics (mood, stress management, energy,
  motivation, confidence, focus, recovery, sleep) into one 0-100 integer
- Missing motivation is derived from the mood/energy average
- Total: always returns a score, never raises
"""

import logging
import math
import warnings
from typing import Any, Iterable, Mapping, Optional, Union

from src.models.checkin import CheckInRecord, coerce_metric

logger = logging.getLogger(__name__)

NEUTRAL_RAW_SCORE = 5.0

# Accepted input names per metric, first match wins
METRIC_ALIASES: dict[str, tuple[str, ...]] = {
    "mood": ("mood", "mood_rating"),
    "stress_management": ("stress_management", "stressManagement"),
    "energy": ("energy", "energy_level"),
    "motivation": ("motivation",),
    "confidence": ("confidence",),
    "focus": ("focus",),
    "recovery": ("recovery",),
    "sleep": ("sleep", "sleep_hours"),
}

WELLBEING_METRICS = (
    "mood",
    "stress_management",
    "energy",
    "motivation",
    "confidence",
    "focus",
    "recovery",
    "sleep",
)


def normalize(raw_value: Any, scale_min: float = 1, scale_max: float = 10) -> float:
    """
    Map a raw value onto 0-100.

    clamp(((raw - scale_min) / (scale_max - scale_min)) * 100, 0, 100)

    Non-numeric or missing input is treated as the neutral raw value 5.
    A degenerate scale (max <= min) yields 0.
    """
    value = _to_number(raw_value)
    if value is None:
        value = NEUTRAL_RAW_SCORE
    if scale_max <= scale_min:
        return 0.0
    scaled = ((value - scale_min) / (scale_max - scale_min)) * 100
    return max(0.0, min(100.0, scaled))


def invert_stress(stress: Any) -> float:
    """Normalized stress management derived from a legacy stress rating"""
    return 100.0 - normalize(stress)


def legacy_stress_to_management(stress: float) -> float:
    """
    Deprecated raw-scale conversion of the old 1-5 stress scale.

    Use invert_stress(); this formula disagrees with the normalized
    inversion and is kept only for stored data that still relies on it.
    """
    warnings.warn(
        "legacy_stress_to_management() is deprecated, use invert_stress()",
        DeprecationWarning,
        stacklevel=2,
    )
    return 11 - stress * 2


def round_half_up(value: float) -> int:
    """Round to nearest integer with .5 going up"""
    return int(math.floor(value + 0.5))


def _to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _as_mapping(record: Union[CheckInRecord, Mapping[str, Any], None]) -> Mapping[str, Any]:
    if record is None:
        return {}
    if isinstance(record, CheckInRecord):
        return record.metrics()
    if isinstance(record, Mapping):
        return record
    logger.debug(f"Unsupported wellbeing input {type(record).__name__}, using defaults")
    return {}


def _pick(source: Mapping[str, Any], metric: str) -> Optional[float]:
    for name in METRIC_ALIASES[metric]:
        value = coerce_metric(source.get(name))
        if value is not None:
            return value
    return None


def observed_metrics(record: Union[CheckInRecord, Mapping[str, Any], None]) -> dict[str, Optional[float]]:
    """
    Raw metrics (1-10) actually present on a record, None where missing.

    A legacy stress rating fills stress_management as 11 - stress, the
    raw-scale equivalent of 100 - normalize(stress).
    """
    source = _as_mapping(record)
    observed = {metric: _pick(source, metric) for metric in WELLBEING_METRICS}

    if observed["stress_management"] is None:
        legacy_stress = coerce_metric(source.get("stress"))
        if legacy_stress is not None:
            observed["stress_management"] = 11 - legacy_stress

    return observed


def extract_raw_metrics(record: Union[CheckInRecord, Mapping[str, Any], None]) -> dict[str, float]:
    """
    Resolve the 8 raw metrics (1-10) of a record, applying defaults.

    Missing metrics use the neutral 5, except motivation which falls back
    to the average of mood and energy, rounded half up.
    """
    observed = observed_metrics(record)
    raw: dict[str, float] = {}

    for metric in WELLBEING_METRICS:
        if metric == "motivation":
            continue
        value = observed[metric]
        raw[metric] = value if value is not None else NEUTRAL_RAW_SCORE

    motivation = observed["motivation"]
    if motivation is None:
        motivation = float(round_half_up((raw["mood"] + raw["energy"]) / 2))
    raw["motivation"] = motivation

    return {metric: raw[metric] for metric in WELLBEING_METRICS}


def normalized_metrics(record: Union[CheckInRecord, Mapping[str, Any], None]) -> dict[str, float]:
    """All 8 sub-metrics on the 0-100 scale"""
    source = _as_mapping(record)
    raw = extract_raw_metrics(source)
    normalized = {metric: normalize(raw[metric]) for metric in WELLBEING_METRICS}

    # Only the legacy field present: use the canonical normalized inversion
    if _pick(source, "stress_management") is None:
        legacy_stress = coerce_metric(source.get("stress"))
        if legacy_stress is not None:
            normalized["stress_management"] = invert_stress(legacy_stress)

    return normalized


def compute_wellbeing(record: Union[CheckInRecord, Mapping[str, Any], None] = None) -> int:
    """
    Overall wellbeing score (0-100) for one check-in.

    Args:
        record: CheckInRecord or mapping using either naming convention
                (mood/mood_rating, energy/energy_level, stress_management or
                legacy stress, motivation, confidence, focus, recovery,
                sleep/sleep_hours). Missing metrics use the neutral default.

    Returns:
        Average of the 8 normalized sub-metrics, rounded half up

    Example:
        >>> compute_wellbeing({})
        44
        >>> compute_wellbeing({"mood": 10, "stress_management": 10, "energy": 10,
        ...                    "motivation": 10, "confidence": 10, "focus": 10,
        ...                    "recovery": 10, "sleep": 10})
        100
    """
    values = normalized_metrics(record)
    score = sum(values.values()) / len(values)
    return max(0, min(100, round_half_up(score)))


def wellbeing_scores(records: Iterable[Union[CheckInRecord, Mapping[str, Any]]]) -> list[int]:
    """Wellbeing score per record, preserving order"""
    return [compute_wellbeing(record) for record in records]
