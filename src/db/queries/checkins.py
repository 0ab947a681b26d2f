"""Check-in database queries"""
import logging
from datetime import date
from typing import Optional

from src.db.connection import db
from src.models.checkin import CheckInRecord

logger = logging.getLogger(__name__)

CHECK_IN_COLUMNS = (
    "mood_rating",
    "energy_level",
    "stress_management",
    "stress",
    "motivation",
    "sleep_hours",
    "confidence",
    "focus",
    "recovery",
    "notes",
)


async def upsert_check_in(user_id: str, record: CheckInRecord) -> bool:
    """
    Insert or update the check-in for (user_id, record.date)

    A same-day resubmission replaces the stored metrics.

    Returns:
        True if a new row was created, False if an existing row was updated
    """
    values = record.metrics()
    values["notes"] = record.notes
    columns = ", ".join(CHECK_IN_COLUMNS)
    placeholders = ", ".join(["%s"] * len(CHECK_IN_COLUMNS))
    updates = ", ".join(f"{column} = EXCLUDED.{column}" for column in CHECK_IN_COLUMNS)

    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                INSERT INTO check_ins (user_id, date, {columns})
                VALUES (%s, %s, {placeholders})
                ON CONFLICT (user_id, date) DO UPDATE
                SET {updates}, updated_at = CURRENT_TIMESTAMP
                RETURNING (xmax = 0) AS inserted
                """,
                (user_id, record.date, *(values[column] for column in CHECK_IN_COLUMNS))
            )
            row = await cur.fetchone()
            await conn.commit()

            created = bool(row["inserted"]) if row else False
            logger.info(f"{'Saved' if created else 'Updated'} check-in for user {user_id} on {record.date}")
            return created


async def get_check_ins(
    user_id: str,
    start: Optional[date] = None,
    end: Optional[date] = None
) -> list[dict]:
    """
    Get check-ins for a user, ascending by date

    Args:
        user_id: User identifier
        start: Earliest date (inclusive), unbounded if None
        end: Latest date (inclusive), unbounded if None

    Returns:
        List of rows with user_id, date and the metric columns
    """
    columns = ", ".join(CHECK_IN_COLUMNS)
    conditions = ["user_id = %s"]
    params: list = [user_id]

    if start is not None:
        conditions.append("date >= %s")
        params.append(start)
    if end is not None:
        conditions.append("date <= %s")
        params.append(end)

    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT user_id, date, {columns}
                FROM check_ins
                WHERE {' AND '.join(conditions)}
                ORDER BY date ASC
                """,
                tuple(params)
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]
