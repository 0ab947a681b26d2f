"""Progress, streak and daily task models"""
from datetime import date
from enum import Enum
from typing import NamedTuple

from pydantic import BaseModel, Field


class DailyTaskType(str, Enum):
    """Activities that grant XP at most once per user per day"""
    CHECKIN = "checkin"
    EXERCISE = "exercise"
    EDUCATION = "education"
    RESOURCE = "resource"


class DailyTaskKey(NamedTuple):
    """Idempotency key for a daily XP grant"""
    user_id: str
    day: date
    task_type: DailyTaskType

    def as_source_id(self) -> str:
        """Stable identifier used for ledger rows and store keys"""
        return f"{self.user_id}:{self.day.isoformat()}:{self.task_type.value}"


class StreakSummary(BaseModel):
    """Streaks derived from a user's check-in dates"""
    current_streak: int = 0
    longest_streak: int = 0
    total_check_ins: int = 0


class LoginStreak(BaseModel):
    """Result of recording a daily login"""
    awarded: bool
    streak: int
    longest: int


class ProgressState(BaseModel):
    """Aggregate progress for one user"""
    user_id: str
    total_xp: int = 0
    level: int = 1
    xp_in_current_level: int = 0
    xp_to_next_level: int = 100
    rank_title: str = "Bronze I"
    rank_tier: str = "bronze"
    current_streak: int = 0
    longest_streak: int = 0
    total_check_ins: int = 0
    unlocked_achievements: list[str] = Field(default_factory=list)
