"""
Prometheus metrics definitions for the athlete mindset progress engine.

Metrics are organized by category:
- HTTP/API metrics: Request counts, latency
- Gamification metrics: XP grants, achievement unlocks, check-ins, wellbeing
- Persistence metrics: Failed writes and retry attempts

Metrics are exposed at the /metrics endpoint for Prometheus scraping.
"""

import logging
import os
import sys

from prometheus_client import Counter, Histogram, Info

logger = logging.getLogger(__name__)

# =============================================================================
# HTTP/API Metrics
# =============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests received",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0],
)

# =============================================================================
# Gamification Metrics
# =============================================================================

gamification_xp_awarded_total = Counter(
    "gamification_xp_awarded_total",
    "Total XP awarded",
    ["source"],  # checkin/exercise/education/resource/achievement
)

gamification_achievements_unlocked_total = Counter(
    "gamification_achievements_unlocked_total",
    "Total achievements unlocked",
    ["group"],  # checkins/exercise/resource/education
)

checkins_processed_total = Counter(
    "checkins_processed_total",
    "Total check-ins processed",
    ["status"],  # created/updated
)

wellbeing_score = Histogram(
    "wellbeing_score",
    "Distribution of computed wellbeing scores (0-100)",
    buckets=[10, 20, 30, 40, 50, 60, 70, 80, 90, 100],
)

# =============================================================================
# Persistence Metrics
# =============================================================================

persistence_failures_total = Counter(
    "persistence_failures_total",
    "Persistence writes that failed after retries",
    ["operation"],  # grant_xp/record_unlock/upsert_check_in/record_activity
)

persistence_retries_total = Counter(
    "persistence_retries_total",
    "Retry attempts for transient persistence errors",
    ["operation"],
)

# =============================================================================
# Application Info
# =============================================================================

app_info = Info(
    "app_info",
    "Application information",
)


def init_metrics():
    """
    Initialize metrics with application information.

    Called once at application startup.
    """
    from src.config import STORAGE_BACKEND

    app_info.info(
        {
            "version": os.getenv("GIT_COMMIT_SHA", "dev")[:7],
            "storage_backend": STORAGE_BACKEND,
            "python_version": f"{sys.version_info.major}.{sys.version_info.minor}",
        }
    )

    logger.info("Prometheus metrics initialized")


# =============================================================================
# Helper Functions
# =============================================================================


def record_xp_awarded(source: str, amount: int) -> None:
    """Count XP granted by source type"""
    if amount <= 0:
        return
    try:
        gamification_xp_awarded_total.labels(source=source).inc(amount)
    except Exception as e:
        logger.error(f"Failed to record XP metric: {e}")


def record_achievement_unlocked(group: str) -> None:
    """Count an achievement unlock by group"""
    try:
        gamification_achievements_unlocked_total.labels(group=group).inc()
    except Exception as e:
        logger.error(f"Failed to record achievement metric: {e}")


def record_check_in(score: int, created: bool) -> None:
    """Count a processed check-in and observe its wellbeing score"""
    try:
        checkins_processed_total.labels(status="created" if created else "updated").inc()
        wellbeing_score.observe(score)
    except Exception as e:
        logger.error(f"Failed to record check-in metric: {e}")


def record_persistence_failure(operation: str) -> None:
    """Count a write that is still failing after retries"""
    try:
        persistence_failures_total.labels(operation=operation).inc()
        logger.debug(f"[METRICS] Persistence failure: {operation}")
    except Exception as e:
        logger.error(f"Failed to record persistence failure: {e}")


def record_retry(operation: str) -> None:
    """Count a retry attempt"""
    try:
        persistence_retries_total.labels(operation=operation).inc()
        logger.debug(f"[METRICS] Retry attempt: {operation}")
    except Exception as e:
        logger.error(f"Failed to record retry: {e}")


def record_http_request(method: str, endpoint: str, status: int, duration: float) -> None:
    """Count an HTTP request and observe its latency"""
    try:
        http_requests_total.labels(method=method, endpoint=endpoint, status=str(status)).inc()
        http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(duration)
    except Exception as e:
        logger.error(f"Failed to record HTTP metric: {e}")
