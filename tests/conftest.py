"""Global test fixtures and utilities for athlete mindset tests"""
import pytest
from unittest.mock import AsyncMock, MagicMock
from datetime import date, timedelta

from src.cache.store import InMemoryStore
from src.db.memory_backend import InMemoryProgressBackend
from src.services.gamification_service import GamificationService


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def mock_db_cursor():
    """Mock database cursor with standard query results"""
    cursor = AsyncMock()
    cursor.fetchone = AsyncMock(return_value=None)
    cursor.fetchall = AsyncMock(return_value=[])
    cursor.execute = AsyncMock()
    return cursor


@pytest.fixture
def mock_db_connection(mock_db_cursor):
    """Mock connection whose cursor() works as an async context manager"""
    conn = MagicMock()
    conn.cursor.return_value.__aenter__.return_value = mock_db_cursor
    conn.commit = AsyncMock()
    conn.rollback = AsyncMock()
    return conn


# ============================================================================
# User & Auth Fixtures
# ============================================================================

@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "athlete-42"


@pytest.fixture
def test_api_key():
    """Standard test API key"""
    return "test_api_key_12345"


# ============================================================================
# Date Fixtures
# ============================================================================

@pytest.fixture
def today():
    """Fixed evaluation date"""
    return date(2024, 1, 10)


@pytest.fixture
def consecutive_days(today):
    """Factory for the n calendar days ending today, ascending"""
    def _days(n: int):
        return [today - timedelta(days=offset) for offset in range(n - 1, -1, -1)]
    return _days


# ============================================================================
# Check-in Fixtures
# ============================================================================

@pytest.fixture
def good_check_in(today):
    """Check-in where every metric looks fine"""
    return {
        "date": today.isoformat(),
        "mood": 8,
        "stress_management": 7,
        "energy": 8,
        "motivation": 9,
        "sleep": 7,
        "confidence": 8,
        "focus": 7,
        "recovery": 8,
    }


@pytest.fixture
def low_check_in(today):
    """Check-in where the four core metrics are at the bottom of the scale"""
    return {
        "date": today.isoformat(),
        "mood": 1,
        "stress_management": 1,
        "energy": 1,
        "motivation": 1,
    }


# ============================================================================
# Storage & Service Fixtures
# ============================================================================

@pytest.fixture
def memory_backend():
    """Fresh in-memory progress backend"""
    return InMemoryProgressBackend()


@pytest.fixture
def memory_store():
    """Fresh in-memory key-value store"""
    return InMemoryStore()


@pytest.fixture
def service(memory_backend, memory_store):
    """GamificationService over in-memory storage"""
    return GamificationService(memory_backend, memory_store)


@pytest.fixture
def no_backoff(monkeypatch):
    """Skip retry sleeps"""
    sleep = AsyncMock()
    monkeypatch.setattr("src.resilience.retry.asyncio.sleep", sleep)
    return sleep
