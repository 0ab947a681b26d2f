"""Check-in models"""
import datetime
import math
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

METRIC_MIN = 1
METRIC_MAX = 10


def coerce_metric(value: Any) -> Optional[float]:
    """
    Lenient conversion of a raw 1-10 metric.

    Non-numeric input (including booleans and NaN) becomes None so that
    scoring falls back to its neutral default. Numeric input is clamped
    into the 1-10 scale.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return max(float(METRIC_MIN), min(float(METRIC_MAX), number))


class CheckInRecord(BaseModel):
    """
    One daily check-in (unique per user and local calendar date).

    Both the storage column names (mood_rating, energy_level, sleep_hours,
    notes) and the short client names (mood, energy, sleep, note) are
    accepted on input.
    """
    model_config = ConfigDict(populate_by_name=True)

    date: datetime.date
    mood_rating: Optional[float] = Field(default=None, alias="mood")
    energy_level: Optional[float] = Field(default=None, alias="energy")
    stress_management: Optional[float] = None
    # Legacy scale where higher means more stressed
    stress: Optional[float] = None
    motivation: Optional[float] = None
    sleep_hours: Optional[float] = Field(default=None, alias="sleep")
    confidence: Optional[float] = None
    focus: Optional[float] = None
    recovery: Optional[float] = None
    notes: Optional[str] = Field(default=None, alias="note")

    @field_validator(
        "mood_rating", "energy_level", "stress_management", "stress", "motivation",
        "sleep_hours", "confidence", "focus", "recovery",
        mode="before",
    )
    @classmethod
    def _lenient_metric(cls, value: Any) -> Optional[float]:
        return coerce_metric(value)

    @field_validator("date", mode="before")
    @classmethod
    def _strip_time(cls, value: Any) -> Any:
        # Accept full ISO timestamps, keep the calendar date only
        if isinstance(value, str) and len(value) > 10 and value[4] == "-":
            return value[:10]
        return value

    def metrics(self) -> dict[str, Optional[float]]:
        """Raw metric values keyed by storage column name"""
        return {
            "mood_rating": self.mood_rating,
            "energy_level": self.energy_level,
            "stress_management": self.stress_management,
            "stress": self.stress,
            "motivation": self.motivation,
            "sleep_hours": self.sleep_hours,
            "confidence": self.confidence,
            "focus": self.focus,
            "recovery": self.recovery,
        }


class StoredCheckIn(CheckInRecord):
    """Check-in as returned by a backend"""
    user_id: str
