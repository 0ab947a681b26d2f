"""Tests for the REST endpoints (check-ins, activities, progress, scoring)"""
import pytest
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient

from src import config
from src.api.middleware import limiter
from src.api.routes import get_gamification_service
from src.api.server import create_api_application
from src.cache.redis_client import RedisCache
from src.cache.store import InMemoryStore
from src.db.memory_backend import InMemoryProgressBackend
from src.exceptions import DatabaseError
from src.gamification.recommendations import POSITIVE_REINFORCEMENT_MESSAGE
from src.services.container import init_container, reset_container


API_KEY = "test_api_key_12345"
HEADERS = {"Authorization": f"Bearer {API_KEY}"}

ALL_TENS = {
    "mood": 10, "stressManagement": 10, "energy": 10, "motivation": 10,
    "sleep": 10, "confidence": 10, "focus": 10, "recovery": 10,
}


@pytest.fixture
def app(monkeypatch):
    monkeypatch.setattr(config, "API_KEYS", [API_KEY])
    limiter.enabled = False
    init_container(InMemoryProgressBackend(), InMemoryStore())

    yield create_api_application(use_lifespan=False)

    reset_container()
    limiter.enabled = True


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


# ============================================================================
# Authentication
# ============================================================================

def test_missing_api_key_rejected(client):
    response = client.get("/api/v1/users/athlete-42/progress")
    assert response.status_code in (401, 403)


def test_invalid_api_key_rejected(client):
    response = client.get(
        "/api/v1/users/athlete-42/progress",
        headers={"Authorization": "Bearer wrong"}
    )
    assert response.status_code == 401
    assert response.json()["error"] == "AuthenticationError"


def test_unconfigured_api_keys(client, monkeypatch):
    monkeypatch.setattr(config, "API_KEYS", [])

    response = client.get("/api/v1/users/athlete-42/progress", headers=HEADERS)
    assert response.status_code == 503
    assert response.json()["error"] == "ConfigurationError"


# ============================================================================
# Check-ins
# ============================================================================

def test_submit_check_in(client):
    response = client.post(
        "/api/v1/users/athlete-42/checkins",
        json={"date": "2024-01-10", **ALL_TENS, "note": "felt sharp"},
        headers=HEADERS
    )

    assert response.status_code == 200
    data = response.json()
    assert data["date"] == "2024-01-10"
    assert data["wellbeing_score"] == 100
    assert data["created"] is True
    assert data["xp_awarded"] == 30  # 10 base + (40 - 20)
    assert data["recommendations"] == []
    assert POSITIVE_REINFORCEMENT_MESSAGE in data["message"]


def test_check_in_resubmission_grants_no_xp(client):
    body = {"date": "2024-01-10", "mood": 6}
    client.post("/api/v1/users/athlete-42/checkins", json=body, headers=HEADERS)

    response = client.post("/api/v1/users/athlete-42/checkins", json=body, headers=HEADERS)

    assert response.status_code == 200
    assert response.json()["created"] is False
    assert response.json()["xp_awarded"] == 0


def test_check_in_defaults_to_today(client):
    response = client.post(
        "/api/v1/users/athlete-42/checkins",
        json={"mood": 6, "timezone": "UTC"},
        headers=HEADERS
    )

    assert response.status_code == 200
    assert response.json()["current_streak"] == 1


def test_check_in_bad_date(client):
    response = client.post(
        "/api/v1/users/athlete-42/checkins",
        json={"date": "yesterday", "mood": 6},
        headers=HEADERS
    )

    assert response.status_code == 422
    data = response.json()
    assert data["error"] == "ValidationError"
    assert "request_id" in data


def test_check_in_future_date_rejected(client):
    response = client.post(
        "/api/v1/users/athlete-42/checkins",
        json={"date": "2999-01-01", "mood": 6, "timezone": "UTC"},
        headers=HEADERS
    )

    assert response.status_code == 422
    assert response.json()["error"] == "ValidationError"

    progress = client.get("/api/v1/users/athlete-42/progress", headers=HEADERS).json()
    assert progress["total_xp"] == 0


def test_check_in_lenient_metrics(client):
    response = client.post(
        "/api/v1/users/athlete-42/checkins",
        json={"date": "2024-01-10", "mood": "great", "energy": None, "sleep": 42},
        headers=HEADERS
    )

    assert response.status_code == 200
    assert 0 <= response.json()["wellbeing_score"] <= 100


# ============================================================================
# Activities and login
# ============================================================================

def test_record_activity(client):
    response = client.post(
        "/api/v1/users/athlete-42/activities",
        json={"activity_type": "exercise", "item_id": "breathing-1"},
        headers=HEADERS
    )

    assert response.status_code == 200
    data = response.json()
    assert data["new_item"] is True
    assert [a["id"] for a in data["achievements_unlocked"]] == ["ex-1"]


def test_record_activity_unknown_type(client):
    response = client.post(
        "/api/v1/users/athlete-42/activities",
        json={"activity_type": "nap", "item_id": "x"},
        headers=HEADERS
    )

    assert response.status_code == 422


def test_record_activity_empty_item(client):
    response = client.post(
        "/api/v1/users/athlete-42/activities",
        json={"activity_type": "resource", "item_id": ""},
        headers=HEADERS
    )

    assert response.status_code == 422


def test_record_login(client):
    first = client.post("/api/v1/users/athlete-42/login", headers=HEADERS)
    again = client.post("/api/v1/users/athlete-42/login", json={"timezone": "UTC"}, headers=HEADERS)

    assert first.status_code == 200
    assert first.json() == {"user_id": "athlete-42", "awarded": True, "streak": 1, "longest": 1}
    assert again.json()["awarded"] is False


# ============================================================================
# Reads
# ============================================================================

def test_get_progress_new_user(client):
    response = client.get("/api/v1/users/nobody/progress", headers=HEADERS)

    assert response.status_code == 200
    data = response.json()
    assert data["total_xp"] == 0
    assert data["level"] == 1
    assert data["current_streak"] == 0
    assert data["unlocked_achievements"] == []


def test_get_progress_after_activity(client):
    client.post(
        "/api/v1/users/athlete-42/activities",
        json={"activity_type": "education", "item_id": "lesson-1"},
        headers=HEADERS
    )

    data = client.get("/api/v1/users/athlete-42/progress", headers=HEADERS).json()

    assert data["total_xp"] == 25 + 13
    assert data["unlocked_achievements"] == ["edu-1"]


def test_get_achievements(client):
    response = client.get("/api/v1/users/athlete-42/achievements", headers=HEADERS)

    assert response.status_code == 200
    data = response.json()
    assert data["total_unlocked"] == 0
    assert len(data["locked"]) > 0
    assert data["counts"]["checkins_streak"] == 0


def test_get_stats(client):
    client.post(
        "/api/v1/users/athlete-42/checkins",
        json={"mood": 7, "timezone": "UTC"},
        headers=HEADERS
    )

    response = client.get("/api/v1/users/athlete-42/stats?days=7&tz=UTC", headers=HEADERS)

    assert response.status_code == 200
    data = response.json()
    assert data["stats"]["check_in_count"] == 1
    assert len(data["series"]) == 7
    assert data["next_badge"]["target"] == 3


def test_get_stats_window_bounds(client):
    response = client.get("/api/v1/users/athlete-42/stats?days=0", headers=HEADERS)
    assert response.status_code == 422


def test_read_failure_maps_to_503(app):
    service = AsyncMock()
    service.get_progress.side_effect = DatabaseError("pool exhausted", operation="get_total_xp")
    app.dependency_overrides[get_gamification_service] = lambda: service

    with TestClient(app) as client:
        response = client.get("/api/v1/users/athlete-42/progress", headers=HEADERS)

    assert response.status_code == 503
    assert response.json()["error"] == "DatabaseError"


# ============================================================================
# Stateless scoring
# ============================================================================

def test_score_wellbeing(client):
    response = client.post("/api/v1/wellbeing", json=ALL_TENS, headers=HEADERS)

    assert response.status_code == 200
    data = response.json()
    assert data["wellbeing_score"] == 100
    assert data["normalized"]["stress_management"] == 100.0


def test_score_wellbeing_empty_payload(client):
    response = client.post("/api/v1/wellbeing", json={}, headers=HEADERS)

    assert response.status_code == 200
    assert response.json()["wellbeing_score"] == 44


def test_recommendations_for_low_metrics(client):
    response = client.post(
        "/api/v1/recommendations",
        json={"mood": 1, "stressManagement": 1, "energy": 1, "motivation": 1},
        headers=HEADERS
    )

    assert response.status_code == 200
    data = response.json()
    ids = [rec["exercise"]["id"] for rec in data["recommendations"]]
    assert ids == ["breathing-1", "confidence-1", "recovery-1"]
    assert data["message"] is None


def test_recommendations_positive_reinforcement(client):
    response = client.post("/api/v1/recommendations", json=ALL_TENS, headers=HEADERS)

    data = response.json()
    assert data["recommendations"] == []
    assert data["message"] == POSITIVE_REINFORCEMENT_MESSAGE


# ============================================================================
# Health and metrics
# ============================================================================

def test_health_with_memory_storage(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["database"] == "memory"
    assert data["cache"] == "memory"
    assert data["cache_stats"] is None


def test_health_reports_redis_stats(client):
    cache = RedisCache(enabled=True)
    cache._client = AsyncMock()
    cache._client.ping.return_value = True
    init_container(InMemoryProgressBackend(), cache)

    data = client.get("/api/health").json()

    assert data["cache"] == "connected"
    assert data["cache_stats"]["enabled"] is True
    assert data["cache_stats"]["claims"] == 0


def test_health_without_container(client):
    reset_container()

    data = client.get("/api/health").json()

    assert data["status"] == "degraded"
    assert data["database"] == "disconnected"


def test_metrics_endpoint(client):
    client.post("/api/v1/wellbeing", json={}, headers=HEADERS)

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "http_requests_total" in response.text
