"""Pydantic models for API request/response validation"""
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime


class MetricsPayload(BaseModel):
    """
    Raw check-in metrics (1-10).

    Values are passed through untouched: scoring clamps out-of-range
    numbers and treats non-numeric values as missing.
    """
    model_config = ConfigDict(populate_by_name=True)

    mood: Optional[Any] = None
    stress_management: Optional[Any] = Field(default=None, alias="stressManagement")
    stress: Optional[Any] = Field(default=None, description="Legacy scale, higher = more stressed")
    energy: Optional[Any] = None
    motivation: Optional[Any] = None
    sleep: Optional[Any] = None
    confidence: Optional[Any] = None
    focus: Optional[Any] = None
    recovery: Optional[Any] = None

    def metrics(self) -> Dict[str, Any]:
        return self.model_dump(
            include={
                "mood", "stress_management", "stress", "energy", "motivation",
                "sleep", "confidence", "focus", "recovery",
            },
            exclude_none=True,
        )


class CheckInRequest(MetricsPayload):
    """Request to submit a daily check-in"""
    date: Optional[str] = Field(
        default=None,
        description="Local calendar date YYYY-MM-DD (defaults to today in `timezone`)"
    )
    notes: Optional[str] = Field(default=None, alias="note")
    timezone: Optional[str] = Field(default=None, description="IANA timezone of the user")


class ActivityRequest(BaseModel):
    """Request to record an exercise, education item or resource"""
    activity_type: str = Field(..., description="exercise, education or resource")
    item_id: str = Field(..., min_length=1, description="Exercise/content identifier")
    timezone: Optional[str] = Field(default=None, description="IANA timezone of the user")


class LoginRequest(BaseModel):
    """Request to record a daily login"""
    timezone: Optional[str] = Field(default=None, description="IANA timezone of the user")


class LoginResponse(BaseModel):
    """Login streak after recording today's login"""
    user_id: str
    awarded: bool
    streak: int
    longest: int


class WellbeingResponse(BaseModel):
    """Wellbeing score for one set of metrics"""
    wellbeing_score: int
    normalized: Dict[str, float]


class RecommendationsResponse(BaseModel):
    """Recommended exercises for one set of metrics"""
    recommendations: List[Dict[str, Any]]
    message: Optional[str] = None


class HealthCheckResponse(BaseModel):
    """Health check response"""
    status: str
    database: str
    cache: str
    cache_stats: Optional[Dict[str, Any]] = None
    timestamp: datetime


class ErrorResponse(BaseModel):
    """Error response"""
    error: str
    detail: Optional[str] = None
    request_id: Optional[str] = None
