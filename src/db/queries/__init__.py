"""
Database queries - Re-export all functions.

All imports like 'from src.db.queries import get_total_xp' work unchanged
regardless of which module defines the function.

Module organization:
- checkins.py: Daily check-ins (one per user per calendar day)
- gamification.py: XP ledger, achievement unlocks, activities
"""

# Check-in operations
from src.db.queries.checkins import (
    CHECK_IN_COLUMNS,
    upsert_check_in,
    get_check_ins,
)

# Gamification operations
from src.db.queries.gamification import (
    add_xp_transaction,
    get_total_xp,
    unlock_achievement,
    get_user_achievement_unlocks,
    record_activity,
    get_activity_counts,
)

# Also export db for tests that patch it
from src.db.connection import db

__all__ = [
    "CHECK_IN_COLUMNS",
    "upsert_check_in",
    "get_check_ins",
    "add_xp_transaction",
    "get_total_xp",
    "unlock_achievement",
    "get_user_achievement_unlocks",
    "record_activity",
    "get_activity_counts",
    "db",
]
