"""Unit tests for the service container"""
import pytest
from unittest.mock import AsyncMock, patch

from src import config
from src.cache.store import InMemoryStore
from src.db.backend import PostgresProgressBackend
from src.db.memory_backend import InMemoryProgressBackend
from src.services.container import (
    build_infrastructure,
    get_container,
    init_container,
    reset_container,
    shutdown_infrastructure,
)
from src.services.gamification_service import GamificationService


@pytest.fixture(autouse=True)
def clean_container():
    reset_container()
    yield
    reset_container()


def test_get_container_before_init():
    with pytest.raises(RuntimeError):
        get_container()


def test_gamification_service_is_lazy_singleton():
    container = init_container(InMemoryProgressBackend(), InMemoryStore())

    service = container.gamification_service

    assert isinstance(service, GamificationService)
    assert container.gamification_service is service
    assert get_container() is container


@pytest.mark.asyncio
async def test_build_memory_infrastructure():
    container = await build_infrastructure("memory")

    assert isinstance(container.backend, InMemoryProgressBackend)
    assert isinstance(container.store, InMemoryStore)

    await shutdown_infrastructure()
    with pytest.raises(RuntimeError):
        get_container()


@pytest.mark.asyncio
async def test_build_postgres_infrastructure_without_cache(monkeypatch):
    monkeypatch.setattr(config, "ENABLE_CACHE", False)

    with patch("src.services.container.db") as mock_db, \
         patch("src.services.container.ensure_schema", new_callable=AsyncMock) as mock_schema:
        mock_db.init_pool = AsyncMock()
        container = await build_infrastructure("postgres")

    mock_db.init_pool.assert_awaited_once()
    mock_schema.assert_awaited_once()
    assert isinstance(container.backend, PostgresProgressBackend)
    assert isinstance(container.store, InMemoryStore)


@pytest.mark.asyncio
async def test_build_postgres_infrastructure_redis_unavailable(monkeypatch):
    """Claims fall back to the process-local store"""
    monkeypatch.setattr(config, "ENABLE_CACHE", True)
    monkeypatch.setattr(config, "REDIS_URL", "redis://localhost:6399/0")

    with patch("src.services.container.db") as mock_db, \
         patch("src.services.container.ensure_schema", new_callable=AsyncMock), \
         patch("src.services.container.RedisCache") as mock_cache_cls:
        mock_db.init_pool = AsyncMock()
        mock_cache = mock_cache_cls.return_value
        mock_cache.connect = AsyncMock()
        mock_cache.available = False

        container = await build_infrastructure("postgres")

    assert isinstance(container.store, InMemoryStore)
