"""
Progress Dashboards

Builds the numbers behind the progress screens from a user's check-ins:
- Check-in statistics for a window (averages, deltas vs the previous
  window, variability, sleep/stress management correlation, 7-day trends,
  consistency score)
- Daily wellbeing series with a rolling 7-day average
- Weekly averages with personal bests and week-over-week swings

All functions are pure: they take records and an evaluation date and
never touch storage.
"""

import logging
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from src.gamification.scoring import compute_wellbeing, observed_metrics, round_half_up
from src.models.checkin import CheckInRecord
from src.services.statistical_analysis import (
    average,
    coefficient_of_variation,
    is_statistically_significant,
    linear_slope,
    pearson_correlation,
    simple_correlation,
)
from src.utils.datetime_helpers import date_range, iso_week_label, parse_calendar_date, today_in_timezone

logger = logging.getLogger(__name__)

STATS_METRICS = (
    "mood",
    "stress_management",
    "energy",
    "motivation",
    "sleep",
    "confidence",
    "focus",
    "recovery",
)

TREND_WINDOW = 7
ROLLING_WINDOW = 7

RecordLike = Union[CheckInRecord, Mapping[str, Any]]


def _record_date(record: RecordLike) -> Optional[date]:
    if isinstance(record, CheckInRecord):
        return record.date
    return parse_calendar_date(record.get("date"))


def _by_date(records: Iterable[RecordLike]) -> List[Tuple[date, RecordLike]]:
    """Records keyed by calendar date, ascending; the last record per date wins"""
    latest: Dict[date, RecordLike] = {}
    for record in records:
        day = _record_date(record)
        if day is None:
            logger.debug("Skipping check-in without a parseable date")
            continue
        latest[day] = record
    return sorted(latest.items(), key=lambda item: item[0])


def _metric_values(rows: List[Tuple[date, RecordLike]], metric: str) -> List[float]:
    values = []
    for _, record in rows:
        value = observed_metrics(record)[metric]
        if value is not None:
            values.append(value)
    return values


def _empty_stats(days: int) -> Dict[str, Any]:
    zeros = {metric: 0.0 for metric in STATS_METRICS}
    return {
        "days": days,
        "check_in_count": 0,
        "averages": dict(zeros),
        "deltas": dict(zeros),
        "variability": dict(zeros),
        "average_wellbeing": 0,
        "correlations": {"sleep_stress_management": 0.0, "sleep_stress_management_significant": False},
        "trends": {"stress_management": 0.0, "motivation": 0.0},
        "consistency_score": 0,
    }


def calculate_check_in_stats(
    records: Iterable[RecordLike],
    days: int = 30,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """
    Calculate check-in statistics for the last `days` calendar days

    Args:
        records: Check-ins (any order); records outside the window and the
                 window before it are ignored
        days: Window length in days, ending at today (inclusive)
        today: Evaluation date in the user's local calendar

    Returns:
        {
            'days': int,
            'check_in_count': int,
            'averages': {metric: float},
            'deltas': {metric: float},          # vs the previous window
            'variability': {metric: float},     # coefficient of variation
            'average_wellbeing': int,
            'correlations': {'sleep_stress_management': float,
                             'sleep_stress_management_significant': bool},
            'trends': {'stress_management': float, 'motivation': float},
            'consistency_score': int (1-100, 0 when there is no data)
        }
    """
    if today is None:
        today = today_in_timezone()
    days = max(1, int(days))

    window_start = today - timedelta(days=days - 1)
    previous_start = window_start - timedelta(days=days)

    rows = _by_date(records)
    current = [(day, record) for day, record in rows if window_start <= day <= today]
    previous = [(day, record) for day, record in rows if previous_start <= day < window_start]

    if not current:
        return _empty_stats(days)

    averages = {metric: average(_metric_values(current, metric)) for metric in STATS_METRICS}

    # Without a previous window the deltas are zero
    if previous:
        previous_averages = {metric: average(_metric_values(previous, metric)) for metric in STATS_METRICS}
    else:
        previous_averages = averages
    deltas = {metric: averages[metric] - previous_averages[metric] for metric in STATS_METRICS}

    variability = {
        metric: coefficient_of_variation(_metric_values(current, metric))
        for metric in STATS_METRICS
    }

    # Sleep vs stress management, over days where both were reported
    pairs = [
        (metrics["sleep"], metrics["stress_management"])
        for metrics in (observed_metrics(record) for _, record in current)
        if metrics["sleep"] is not None and metrics["stress_management"] is not None
    ]
    sleep_values = [pair[0] for pair in pairs]
    stress_values = [pair[1] for pair in pairs]
    correlation = simple_correlation(sleep_values, stress_values)
    significant = False
    if len(pairs) >= 3:
        _, p_value = pearson_correlation(sleep_values, stress_values)
        significant = correlation != 0 and is_statistically_significant(p_value)

    recent = current[-TREND_WINDOW:]
    trends = {
        "stress_management": linear_slope(_metric_values(recent, "stress_management")),
        "motivation": linear_slope(_metric_values(recent, "motivation")),
    }

    reported = [
        variability[metric] for metric in STATS_METRICS
        if _metric_values(current, metric)
    ]
    mean_cv = average(reported)
    consistency_score = max(1, min(100, round_half_up(100 - mean_cv * 100)))

    return {
        "days": days,
        "check_in_count": len(current),
        "averages": averages,
        "deltas": deltas,
        "variability": variability,
        "average_wellbeing": round_half_up(average([compute_wellbeing(record) for _, record in current])),
        "correlations": {
            "sleep_stress_management": correlation,
            "sleep_stress_management_significant": significant,
        },
        "trends": trends,
        "consistency_score": consistency_score,
    }


def build_wellbeing_series(
    records: Iterable[RecordLike],
    days: int = 30,
    today: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """
    Daily wellbeing points for the last `days` days

    Days without a check-in have value None. rolling7 averages the
    reported values of that day and the 6 before it (None on empty days).

    Returns:
        [{'date': 'YYYY-MM-DD', 'value': int | None, 'rolling7': float | None}, ...]
    """
    if today is None:
        today = today_in_timezone()

    scores = {day: compute_wellbeing(record) for day, record in _by_date(records)}
    series: List[Dict[str, Any]] = []

    for day in date_range(today, max(1, int(days))):
        value = scores.get(day)
        rolling = None
        if value is not None:
            window = [
                scores[d] for d in date_range(day, ROLLING_WINDOW)
                if d in scores
            ]
            rolling = round(average(window), 2)
        series.append({"date": day.isoformat(), "value": value, "rolling7": rolling})

    return series


def weekly_averages(records: Iterable[RecordLike]) -> Dict[str, Any]:
    """
    Average each metric (and wellbeing) per ISO week

    Returns:
        {
            'labels': ['2024-W01', ...],
            'by_metric': {metric: [float | None per label]},
            'personal_bests': {metric: float},     # best weekly average
            'variations': {metric: {'max_spike': float, 'max_drop': float}}
        }
    """
    weeks: Dict[str, List[RecordLike]] = {}
    for day, record in _by_date(records):
        weeks.setdefault(iso_week_label(day), []).append(record)

    labels = sorted(weeks)
    metrics = STATS_METRICS + ("wellbeing",)
    by_metric: Dict[str, List[Optional[float]]] = {metric: [] for metric in metrics}

    for label in labels:
        week_records = weeks[label]
        for metric in STATS_METRICS:
            values = [
                value for value in (observed_metrics(record)[metric] for record in week_records)
                if value is not None
            ]
            by_metric[metric].append(round(average(values), 2) if values else None)
        by_metric["wellbeing"].append(
            round(average([compute_wellbeing(record) for record in week_records]), 2)
        )

    personal_bests: Dict[str, float] = {}
    variations: Dict[str, Dict[str, float]] = {}
    for metric, weekly in by_metric.items():
        reported = [value for value in weekly if value is not None]
        personal_bests[metric] = max(reported) if reported else 0.0

        max_spike = 0.0
        max_drop = 0.0
        for before, after in zip(reported, reported[1:]):
            diff = round(after - before, 2)
            max_spike = max(max_spike, diff)
            max_drop = min(max_drop, diff)
        variations[metric] = {"max_spike": max_spike, "max_drop": max_drop}

    return {
        "labels": labels,
        "by_metric": by_metric,
        "personal_bests": personal_bests,
        "variations": variations,
    }
