"""
Service Container - Dependency Injection Container

Simple DI container for managing service instances and their dependencies.
Uses lazy loading to only instantiate services when first accessed.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging

from src import config
from src.cache.redis_client import RedisCache
from src.cache.store import InMemoryStore
from src.db.backend import PostgresProgressBackend
from src.db.connection import db
from src.db.memory_backend import InMemoryProgressBackend
from src.db.schema import ensure_schema

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """
    Simple dependency injection container for services.

    Services are lazy-loaded on first access via properties.
    Infrastructure dependencies (backend, store) are injected.
    """

    # Infrastructure dependencies (injected)
    backend: object  # ProgressBackend
    store: object  # KeyValueStore

    # Services (lazy-loaded via properties)
    _gamification_service: Optional[object] = field(default=None, init=False, repr=False)

    @property
    def gamification_service(self):
        """Get GamificationService instance (lazy-loaded)"""
        if self._gamification_service is None:
            from src.services.gamification_service import GamificationService
            self._gamification_service = GamificationService(self.backend, self.store)
            logger.debug("GamificationService instantiated")
        return self._gamification_service


# Global container instance (initialized at startup)
_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """
    Get the global service container.

    Returns:
        ServiceContainer: The global container instance

    Raises:
        RuntimeError: If container not initialized (call init_container first)
    """
    if _container is None:
        raise RuntimeError(
            "Service container not initialized. "
            "Call init_container() at startup before using services."
        )
    return _container


def init_container(backend: object, store: object) -> ServiceContainer:
    """
    Initialize the global service container.

    Args:
        backend: ProgressBackend instance
        store: KeyValueStore instance

    Returns:
        ServiceContainer: The initialized container
    """
    global _container

    _container = ServiceContainer(backend=backend, store=store)

    logger.info(f"Service container initialized ({type(backend).__name__}, {type(store).__name__})")
    return _container


def reset_container() -> None:
    """Forget the global container (shutdown and tests)"""
    global _container
    _container = None


async def build_infrastructure(storage_backend: Optional[str] = None) -> ServiceContainer:
    """
    Create backend and store from configuration and initialize the container.

    STORAGE_BACKEND=memory uses in-process implementations for both.
    STORAGE_BACKEND=postgres opens the connection pool, ensures the schema
    and uses Redis for the key-value store when ENABLE_CACHE is on.
    """
    storage_backend = storage_backend or config.STORAGE_BACKEND

    if storage_backend == "memory":
        return init_container(InMemoryProgressBackend(), InMemoryStore())

    await db.init_pool()
    await ensure_schema()

    store = InMemoryStore()
    if config.ENABLE_CACHE:
        redis_cache = RedisCache(redis_url=config.REDIS_URL, enabled=True)
        await redis_cache.connect()
        if redis_cache.available:
            store = redis_cache
        else:
            logger.warning("Redis unavailable, using process-local store for daily task claims")

    return init_container(PostgresProgressBackend(), store)


async def shutdown_infrastructure() -> None:
    """Close connections opened by build_infrastructure()"""
    if _container is not None and isinstance(_container.store, RedisCache):
        await _container.store.close()
    if db.is_initialized:
        await db.close_pool()
    reset_container()
