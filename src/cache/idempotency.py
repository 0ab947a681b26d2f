"""
Daily task idempotency

Each daily task (check-in, exercise, education, resource) grants XP at most
once per user per calendar day. The key is a typed DailyTaskKey. It is
rendered to a store key here and nowhere else.

The store claim is a fast pre-check. The XP ledger's unique
(user, source, source_id) key stays authoritative, so a store outage never
double-grants: it only skips the pre-check.
"""

import logging
from datetime import date
from typing import Optional

from src.config import DAILY_TASK_TTL_SECONDS
from src.exceptions import CacheError
from src.models.progress import DailyTaskKey, DailyTaskType

logger = logging.getLogger(__name__)

KEY_PREFIX = "daily_task"


def daily_task_key(user_id: str, day: date, task_type: DailyTaskType) -> DailyTaskKey:
    return DailyTaskKey(user_id=user_id, day=day, task_type=DailyTaskType(task_type))


def store_key(key: DailyTaskKey) -> str:
    """Store key for a daily task, e.g. daily_task:athlete-42:2024-01-03:checkin"""
    return f"{KEY_PREFIX}:{key.as_source_id()}"


class DailyTaskLedger:
    """Claims daily tasks in a KeyValueStore"""

    def __init__(self, store, ttl_seconds: Optional[int] = DAILY_TASK_TTL_SECONDS):
        self.store = store
        self.ttl_seconds = ttl_seconds

    async def is_claimed(self, key: DailyTaskKey) -> bool:
        return await self.store.get(store_key(key)) is not None

    async def claim(self, key: DailyTaskKey) -> bool:
        """
        Claim a daily task

        Returns:
            True if this is the first claim today (XP may be granted),
            False if it was already claimed. When the store is unavailable
            the claim is allowed and the XP ledger deduplicates.
        """
        try:
            claimed = await self.store.set_if_absent(store_key(key), True, ttl=self.ttl_seconds)
        except CacheError as e:
            logger.warning(
                f"Daily task store unavailable for {key.as_source_id()}, "
                f"deferring to XP ledger: {e.message}"
            )
            return True

        if not claimed:
            logger.debug(f"Daily task already claimed: {key.as_source_id()}")
        return claimed

    async def release(self, key: DailyTaskKey) -> None:
        """Drop a claim whose XP grant could not be written, so it can be retried"""
        try:
            await self.store.delete(store_key(key))
        except CacheError as e:
            logger.warning(f"Could not release daily task {key.as_source_id()}: {e.message}")
