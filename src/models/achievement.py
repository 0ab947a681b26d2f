"""Achievement models for gamification"""
import math
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AchievementGroup(str, Enum):
    """Which activity counter an achievement is measured against"""
    CHECKINS = "checkins"
    EXERCISE = "exercise"
    RESOURCE = "resource"
    EDUCATION = "education"


class Achievement(BaseModel):
    """Achievement definition (static catalog entry)"""
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    group: AchievementGroup
    target: int = Field(gt=0)
    xp_reward: int = Field(default=0, ge=0)
    icon: str = "award"
    description: str = ""


class UnlockEvent(BaseModel):
    """Achievement newly unlocked by an evaluation"""
    id: str
    label: str
    xp_reward: int


def coerce_counter(value: Any) -> int:
    """Negative, non-numeric or missing counters count as zero"""
    if value is None or isinstance(value, bool):
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(number) or math.isinf(number) or number < 0:
        return 0
    return int(number)


class AchievementCounts(BaseModel):
    """
    Current counters an evaluation compares against catalog targets.

    Accepts snake_case or the camelCase names UI clients send.
    """
    model_config = ConfigDict(populate_by_name=True)

    checkins_streak: int = Field(default=0, alias="checkinsStreak")
    exercises_completed: int = Field(default=0, alias="exercisesCompleted")
    resources_viewed: int = Field(default=0, alias="resourcesViewed")
    education_viewed: int = Field(default=0, alias="educationViewed")

    @field_validator(
        "checkins_streak", "exercises_completed", "resources_viewed", "education_viewed",
        mode="before",
    )
    @classmethod
    def _best_effort(cls, value: Any) -> int:
        return coerce_counter(value)
