"""API routes for the athlete mindset progress engine"""
import logging
from datetime import datetime, timezone
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from src.api.models import (
    CheckInRequest, ActivityRequest, LoginRequest, LoginResponse,
    MetricsPayload, WellbeingResponse, RecommendationsResponse,
    HealthCheckResponse,
)
from src.api.auth import verify_api_key
from src.api.middleware import limiter
from src.cache.redis_client import RedisCache
from src.db.backend import PostgresProgressBackend
from src.db.connection import db
from src.exceptions import MindsetError
from src.gamification.recommendations import POSITIVE_REINFORCEMENT_MESSAGE, recommend
from src.gamification.scoring import compute_wellbeing, normalized_metrics
from src.models.progress import ProgressState
from src.services.container import get_container
from src.utils.datetime_helpers import today_in_timezone

logger = logging.getLogger(__name__)

router = APIRouter()


def get_gamification_service():
    """Service dependency (overridden in tests)"""
    return get_container().gamification_service


def _unexpected(operation: str, error: Exception) -> HTTPException:
    logger.error(f"Error in {operation}: {error}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {operation}"
    )


@router.post("/api/v1/users/{user_id}/checkins")
@limiter.limit("30/minute")
async def submit_check_in(
    request: Request,
    user_id: str,
    payload: CheckInRequest,
    service=Depends(get_gamification_service),
    api_key: str = Depends(verify_api_key)
):
    """
    Submit a daily check-in

    Scores the check-in, grants the daily XP once per date, updates
    streaks and achievements and returns exercise recommendations.
    Rate limit: 30 requests per minute
    """
    try:
        today = today_in_timezone(payload.timezone)
        record = payload.metrics()
        record["date"] = payload.date or today.isoformat()
        if payload.notes:
            record["notes"] = payload.notes

        return await service.process_check_in(user_id, record, today=today)

    except MindsetError:
        raise
    except Exception as e:
        raise _unexpected("process check-in", e)


@router.post("/api/v1/users/{user_id}/activities")
@limiter.limit("30/minute")
async def record_activity(
    request: Request,
    user_id: str,
    payload: ActivityRequest,
    service=Depends(get_gamification_service),
    api_key: str = Depends(verify_api_key)
):
    """Record a completed exercise or a viewed education item/resource"""
    try:
        return await service.process_activity(
            user_id,
            payload.activity_type,
            payload.item_id,
            today=today_in_timezone(payload.timezone)
        )

    except MindsetError:
        raise
    except Exception as e:
        raise _unexpected("record activity", e)


@router.post("/api/v1/users/{user_id}/login", response_model=LoginResponse)
@limiter.limit("30/minute")
async def record_login(
    request: Request,
    user_id: str,
    payload: Optional[LoginRequest] = None,
    service=Depends(get_gamification_service),
    api_key: str = Depends(verify_api_key)
):
    """Record today's login and return the login streak"""
    try:
        today = today_in_timezone(payload.timezone if payload else None)
        streak = await service.record_daily_login(user_id, today=today)
        return LoginResponse(user_id=user_id, **streak.model_dump())

    except MindsetError:
        raise
    except Exception as e:
        raise _unexpected("record login", e)


@router.get("/api/v1/users/{user_id}/progress", response_model=ProgressState)
@limiter.limit("60/minute")
async def get_progress(
    request: Request,
    user_id: str,
    tz: Optional[str] = Query(default=None, description="IANA timezone of the user"),
    service=Depends(get_gamification_service),
    api_key: str = Depends(verify_api_key)
):
    """Get XP, level, rank, streaks and unlocked achievement ids"""
    try:
        return await service.get_progress(user_id, today=today_in_timezone(tz))

    except MindsetError:
        raise
    except Exception as e:
        raise _unexpected("get progress", e)


@router.get("/api/v1/users/{user_id}/achievements")
@limiter.limit("60/minute")
async def get_achievements(
    request: Request,
    user_id: str,
    tz: Optional[str] = Query(default=None, description="IANA timezone of the user"),
    service=Depends(get_gamification_service),
    api_key: str = Depends(verify_api_key)
):
    """Get unlocked and locked achievements with progress"""
    try:
        return await service.get_achievements(user_id, today=today_in_timezone(tz))

    except MindsetError:
        raise
    except Exception as e:
        raise _unexpected("get achievements", e)


@router.get("/api/v1/users/{user_id}/stats")
@limiter.limit("30/minute")
async def get_check_in_stats(
    request: Request,
    user_id: str,
    days: int = Query(default=30, ge=1, le=365),
    tz: Optional[str] = Query(default=None, description="IANA timezone of the user"),
    service=Depends(get_gamification_service),
    api_key: str = Depends(verify_api_key)
):
    """Get check-in statistics, wellbeing series and weekly averages"""
    try:
        return await service.get_check_in_stats(user_id, days=days, today=today_in_timezone(tz))

    except MindsetError:
        raise
    except Exception as e:
        raise _unexpected("get check-in stats", e)


@router.post("/api/v1/wellbeing", response_model=WellbeingResponse)
@limiter.limit("60/minute")
async def score_wellbeing(
    request: Request,
    payload: MetricsPayload,
    api_key: str = Depends(verify_api_key)
):
    """Score a set of metrics without storing anything"""
    metrics = payload.metrics()
    return WellbeingResponse(
        wellbeing_score=compute_wellbeing(metrics),
        normalized=normalized_metrics(metrics),
    )


@router.post("/api/v1/recommendations", response_model=RecommendationsResponse)
@limiter.limit("60/minute")
async def get_recommendations(
    request: Request,
    payload: MetricsPayload,
    api_key: str = Depends(verify_api_key)
):
    """Recommend exercises for a set of metrics without storing anything"""
    recommendations = recommend(payload.metrics())
    return RecommendationsResponse(
        recommendations=[rec.model_dump(mode="json") for rec in recommendations],
        message=None if recommendations else POSITIVE_REINFORCEMENT_MESSAGE,
    )


@router.get("/api/health", response_model=HealthCheckResponse)
@limiter.limit("60/minute")
async def health_check(request: Request):
    """Health check endpoint (Rate limit: 60/minute for monitoring systems)"""
    try:
        container = get_container()
    except RuntimeError:
        container = None

    cache_stats = None
    if container is None:
        db_status = "disconnected"
        cache_status = "disconnected"
    else:
        if isinstance(container.backend, PostgresProgressBackend):
            db_status = "connected" if await db.ping() else "disconnected"
        else:
            db_status = "memory"

        if isinstance(container.store, RedisCache):
            cache_status = "connected" if await container.store.ping() else "disconnected"
            cache_stats = container.store.get_stats()
        else:
            cache_status = "memory"

    healthy = db_status in ("connected", "memory")
    return HealthCheckResponse(
        status="healthy" if healthy and cache_status != "disconnected" else "degraded",
        database=db_status,
        cache=cache_status,
        cache_stats=cache_stats,
        timestamp=datetime.now(timezone.utc)
    )
