"""Gamification database queries"""
import logging
from typing import Optional
from src.db.connection import db

logger = logging.getLogger(__name__)


# ==========================================
# XP Ledger Functions
# ==========================================

async def add_xp_transaction(
    user_id: str,
    amount: int,
    source_type: str,
    source_id: str,
    reason: Optional[str] = None
) -> bool:
    """
    Add XP ledger row, once per (user_id, source_type, source_id)

    Args:
        user_id: User identifier
        amount: XP amount (non-negative)
        source_type: 'checkin', 'exercise', 'education', 'resource', 'achievement'
        source_id: Idempotency key of the source event
        reason: Human-readable description

    Returns:
        True if the grant was recorded, False if it already existed
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO xp_ledger (user_id, amount, source_type, source_id, reason)
                VALUES (%s, %s, %s, %s, %s)
                ON CONFLICT (user_id, source_type, source_id) DO NOTHING
                RETURNING id
                """,
                (user_id, amount, source_type, source_id, reason)
            )
            result = await cur.fetchone()
            await conn.commit()
            return result is not None


async def get_total_xp(user_id: str) -> int:
    """Sum of all XP granted to a user (0 when none)"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT COALESCE(SUM(amount), 0) AS total_xp
                FROM xp_ledger
                WHERE user_id = %s
                """,
                (user_id,)
            )
            row = await cur.fetchone()
            return int(row["total_xp"]) if row else 0


# ==========================================
# Achievement Functions
# ==========================================

async def unlock_achievement(user_id: str, achievement_id: str) -> bool:
    """
    Unlock an achievement for a user

    Returns True if unlocked (new), False if already unlocked
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO user_achievements (user_id, achievement_id)
                VALUES (%s, %s)
                ON CONFLICT (user_id, achievement_id) DO NOTHING
                RETURNING achievement_id
                """,
                (user_id, achievement_id)
            )
            result = await cur.fetchone()
            await conn.commit()

            if result:
                logger.info(f"User {user_id} unlocked achievement {achievement_id}")
            return result is not None


async def get_user_achievement_unlocks(user_id: str) -> list[dict]:
    """
    Get achievements unlocked by a user

    Returns:
        List of {'achievement_id', 'unlocked_at'} ordered by unlock time
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT achievement_id, unlocked_at
                FROM user_achievements
                WHERE user_id = %s
                ORDER BY unlocked_at ASC
                """,
                (user_id,)
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]


# ==========================================
# Activity Functions
# ==========================================

async def record_activity(user_id: str, activity_type: str, item_id: str) -> bool:
    """
    Record a completed exercise or viewed education item/resource

    Only distinct items count towards achievements.

    Returns:
        True if this item is new for the user, False if already recorded
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO user_activities (user_id, activity_type, item_id)
                VALUES (%s, %s, %s)
                ON CONFLICT (user_id, activity_type, item_id) DO NOTHING
                RETURNING item_id
                """,
                (user_id, activity_type, item_id)
            )
            result = await cur.fetchone()
            await conn.commit()
            return result is not None


async def get_activity_counts(user_id: str) -> dict[str, int]:
    """
    Count distinct items per activity type

    Returns:
        {'exercise': int, 'education': int, 'resource': int} (missing types are 0)
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT activity_type, COUNT(*) AS total
                FROM user_activities
                WHERE user_id = %s
                GROUP BY activity_type
                """,
                (user_id,)
            )
            rows = await cur.fetchall()

    counts = {"exercise": 0, "education": 0, "resource": 0}
    for row in rows:
        counts[row["activity_type"]] = int(row["total"])
    return counts
