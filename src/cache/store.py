"""
Key-value store abstraction

Idempotency keys and small bookkeeping records (login streaks) live in a
key-value store. Production uses RedisCache; tests and local runs use
InMemoryStore. Values are JSON-compatible.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional, Protocol, Tuple, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class KeyValueStore(Protocol):
    async def get(self, key: str) -> Optional[Any]:
        ...

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        ...

    async def set_if_absent(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Store value only if key is absent; True if this call stored it"""
        ...

    async def delete(self, key: str) -> bool:
        ...


class InMemoryStore:
    """Process-local KeyValueStore with optional per-key TTL"""

    def __init__(self):
        self._data: Dict[str, Tuple[Any, Optional[float]]] = {}
        self._lock = asyncio.Lock()

    def _expired(self, key: str) -> bool:
        entry = self._data.get(key)
        if entry is None:
            return True
        _, expires_at = entry
        if expires_at is not None and time.monotonic() >= expires_at:
            del self._data[key]
            return True
        return False

    @staticmethod
    def _expiry(ttl: Optional[int]) -> Optional[float]:
        return time.monotonic() + ttl if ttl else None

    async def get(self, key: str) -> Optional[Any]:
        if self._expired(key):
            return None
        return self._data[key][0]

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        self._data[key] = (value, self._expiry(ttl))
        return True

    async def set_if_absent(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        async with self._lock:
            if not self._expired(key):
                return False
            self._data[key] = (value, self._expiry(ttl))
            return True

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None
