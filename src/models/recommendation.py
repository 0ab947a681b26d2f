"""Exercise recommendation models"""
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class Priority(str, Enum):
    """Recommendation priority, highest first"""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


class Exercise(BaseModel):
    """Guided mental-skills exercise"""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str
    category: str  # breathing, confidence, mindfulness, visualization, recovery
    duration_minutes: int = Field(gt=0)
    difficulty: str = "beginner"
    instructions: List[str] = Field(default_factory=list)
    benefits: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)


class Recommendation(BaseModel):
    """Exercise suggested for a check-in, with the reason it fired"""
    exercise: Exercise
    reason: str
    priority: Priority
