"""
In-memory progress backend

Same contract as PostgresProgressBackend, kept in process memory. Used
by tests and by STORAGE_BACKEND=memory for local runs. Nothing is
persisted across restarts.
"""

import asyncio
import logging
from datetime import date
from typing import Dict, List, Optional, Set, Tuple

from src.models.checkin import CheckInRecord, StoredCheckIn

logger = logging.getLogger(__name__)


class InMemoryProgressBackend:
    """ProgressBackend backed by dictionaries"""

    def __init__(self):
        self._check_ins: Dict[str, Dict[date, StoredCheckIn]] = {}
        self._xp_ledger: Dict[Tuple[str, str, str], dict] = {}
        self._unlocks: Dict[str, List[str]] = {}
        self._activities: Dict[str, Set[Tuple[str, str]]] = {}
        self._lock = asyncio.Lock()
        logger.info("InMemoryProgressBackend initialized - progress is NOT persisted")

    async def fetch_check_ins(
        self, user_id: str, start: Optional[date] = None, end: Optional[date] = None
    ) -> List[StoredCheckIn]:
        by_date = self._check_ins.get(user_id, {})
        return [
            by_date[day]
            for day in sorted(by_date)
            if (start is None or day >= start) and (end is None or day <= end)
        ]

    async def upsert_check_in(self, user_id: str, record: CheckInRecord) -> bool:
        async with self._lock:
            by_date = self._check_ins.setdefault(user_id, {})
            created = record.date not in by_date
            by_date[record.date] = StoredCheckIn(user_id=user_id, **record.model_dump(exclude={"user_id"}))
        logger.debug(f"{'Saved' if created else 'Updated'} check-in for user {user_id} on {record.date}")
        return created

    async def grant_xp(
        self, user_id: str, amount: int, source: str, source_id: str, reason: Optional[str] = None
    ) -> bool:
        key = (user_id, source, source_id)
        async with self._lock:
            if key in self._xp_ledger:
                return False
            self._xp_ledger[key] = {"amount": max(0, int(amount)), "reason": reason}
        return True

    async def get_total_xp(self, user_id: str) -> int:
        return sum(
            entry["amount"]
            for (owner, _, _), entry in self._xp_ledger.items()
            if owner == user_id
        )

    async def record_unlock(self, user_id: str, achievement_id: str) -> bool:
        async with self._lock:
            unlocked = self._unlocks.setdefault(user_id, [])
            if achievement_id in unlocked:
                return False
            unlocked.append(achievement_id)
        return True

    async def get_unlocked_achievements(self, user_id: str) -> Set[str]:
        return set(self._unlocks.get(user_id, []))

    async def record_activity(self, user_id: str, activity_type: str, item_id: str) -> bool:
        key = (activity_type, item_id)
        async with self._lock:
            seen = self._activities.setdefault(user_id, set())
            if key in seen:
                return False
            seen.add(key)
        return True

    async def get_activity_counts(self, user_id: str) -> dict:
        counts = {"exercise": 0, "education": 0, "resource": 0}
        for activity_type, _ in self._activities.get(user_id, set()):
            counts[activity_type] = counts.get(activity_type, 0) + 1
        return counts
