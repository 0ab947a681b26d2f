"""Database schema for check-ins, the XP ledger, unlocks and activities"""
import logging

from src.db.connection import db

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS check_ins (
        user_id TEXT NOT NULL,
        date DATE NOT NULL,
        mood_rating REAL,
        energy_level REAL,
        stress_management REAL,
        stress REAL,
        motivation REAL,
        sleep_hours REAL,
        confidence REAL,
        focus REAL,
        recovery REAL,
        notes TEXT,
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (user_id, date)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS xp_ledger (
        id BIGSERIAL PRIMARY KEY,
        user_id TEXT NOT NULL,
        amount INTEGER NOT NULL CHECK (amount >= 0),
        source_type TEXT NOT NULL,
        source_id TEXT NOT NULL,
        reason TEXT,
        awarded_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        UNIQUE (user_id, source_type, source_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_achievements (
        user_id TEXT NOT NULL,
        achievement_id TEXT NOT NULL,
        unlocked_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (user_id, achievement_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_activities (
        user_id TEXT NOT NULL,
        activity_type TEXT NOT NULL,
        item_id TEXT NOT NULL,
        first_completed_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (user_id, activity_type, item_id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_check_ins_user_date ON check_ins (user_id, date DESC)",
    "CREATE INDEX IF NOT EXISTS idx_xp_ledger_user ON xp_ledger (user_id)",
]


async def ensure_schema() -> None:
    """Create tables and indexes if they do not exist yet"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            for statement in SCHEMA_STATEMENTS:
                await cur.execute(statement)
            await conn.commit()
    logger.info(f"Database schema ensured ({len(SCHEMA_STATEMENTS)} statements)")
