"""
Progress backend capability

The gamification service never reaches for a global client: it receives a
ProgressBackend and calls only the operations below. XP grants, unlocks
and activity records are idempotent, so any of them can be retried.
"""

import logging
from datetime import date
from typing import List, Optional, Protocol, Set, runtime_checkable

import psycopg

from src.db import queries
from src.exceptions import wrap_external_exception
from src.models.checkin import CheckInRecord, StoredCheckIn

logger = logging.getLogger(__name__)


@runtime_checkable
class ProgressBackend(Protocol):
    """Storage operations the gamification service depends on"""

    async def fetch_check_ins(
        self, user_id: str, start: Optional[date] = None, end: Optional[date] = None
    ) -> List[StoredCheckIn]:
        """Check-ins ascending by date, optionally bounded (inclusive)"""
        ...

    async def upsert_check_in(self, user_id: str, record: CheckInRecord) -> bool:
        """Store the day's check-in; True if created, False if replaced"""
        ...

    async def grant_xp(
        self, user_id: str, amount: int, source: str, source_id: str, reason: Optional[str] = None
    ) -> bool:
        """Additive XP grant; repeats of (user_id, source, source_id) are no-ops"""
        ...

    async def get_total_xp(self, user_id: str) -> int:
        ...

    async def record_unlock(self, user_id: str, achievement_id: str) -> bool:
        """Append-only unlock; True if newly recorded"""
        ...

    async def get_unlocked_achievements(self, user_id: str) -> Set[str]:
        ...

    async def record_activity(self, user_id: str, activity_type: str, item_id: str) -> bool:
        """Record a distinct item; True if it was not seen before"""
        ...

    async def get_activity_counts(self, user_id: str) -> dict:
        """Distinct items per activity type (exercise, education, resource)"""
        ...


class PostgresProgressBackend:
    """ProgressBackend over the PostgreSQL queries module"""

    async def fetch_check_ins(
        self, user_id: str, start: Optional[date] = None, end: Optional[date] = None
    ) -> List[StoredCheckIn]:
        try:
            rows = await queries.get_check_ins(user_id, start, end)
        except psycopg.Error as e:
            raise wrap_external_exception(e, "fetch_check_ins", user_id) from e
        return [StoredCheckIn.model_validate(row) for row in rows]

    async def upsert_check_in(self, user_id: str, record: CheckInRecord) -> bool:
        try:
            return await queries.upsert_check_in(user_id, record)
        except psycopg.Error as e:
            raise wrap_external_exception(
                e, "upsert_check_in", user_id, {"date": record.date.isoformat()}
            ) from e

    async def grant_xp(
        self, user_id: str, amount: int, source: str, source_id: str, reason: Optional[str] = None
    ) -> bool:
        try:
            return await queries.add_xp_transaction(user_id, amount, source, source_id, reason)
        except psycopg.Error as e:
            raise wrap_external_exception(
                e, "grant_xp", user_id, {"source": source, "source_id": source_id}
            ) from e

    async def get_total_xp(self, user_id: str) -> int:
        try:
            return await queries.get_total_xp(user_id)
        except psycopg.Error as e:
            raise wrap_external_exception(e, "get_total_xp", user_id) from e

    async def record_unlock(self, user_id: str, achievement_id: str) -> bool:
        try:
            return await queries.unlock_achievement(user_id, achievement_id)
        except psycopg.Error as e:
            raise wrap_external_exception(
                e, "record_unlock", user_id, {"achievement_id": achievement_id}
            ) from e

    async def get_unlocked_achievements(self, user_id: str) -> Set[str]:
        try:
            rows = await queries.get_user_achievement_unlocks(user_id)
        except psycopg.Error as e:
            raise wrap_external_exception(e, "get_unlocked_achievements", user_id) from e
        return {row["achievement_id"] for row in rows}

    async def record_activity(self, user_id: str, activity_type: str, item_id: str) -> bool:
        try:
            return await queries.record_activity(user_id, activity_type, item_id)
        except psycopg.Error as e:
            raise wrap_external_exception(
                e, "record_activity", user_id, {"activity_type": activity_type, "item_id": item_id}
            ) from e

    async def get_activity_counts(self, user_id: str) -> dict:
        try:
            return await queries.get_activity_counts(user_id)
        except psycopg.Error as e:
            raise wrap_external_exception(e, "get_activity_counts", user_id) from e
