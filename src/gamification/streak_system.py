"""
Check-in Streak Tracking System

Streak rules:
- Two check-ins on consecutive calendar days extend the running streak
- A gap of 2 or more days restarts the run at 1
- The current streak only counts while the latest check-in is today or
  yesterday (user's local calendar); after that it reports 0
- Duplicate dates are a no-op

Features:
- Pure recomputation from the full check-in history
- Daily login streak bookkeeping
- Streak messages and next badge target
"""

from typing import Any, Dict, Iterable, Optional
from datetime import date, timedelta
import logging

from src.models.progress import LoginStreak, StreakSummary
from src.utils.datetime_helpers import parse_calendar_date, today_in_timezone

logger = logging.getLogger(__name__)

BADGE_TARGETS = [
    (3, "3-day streak badge"),
    (7, "1-week streak badge"),
    (30, "1-month streak badge"),
    (365, "1-year streak badge"),
]


def compute_streaks(dates: Iterable[Any], today: Optional[date] = None) -> StreakSummary:
    """
    Compute current streak, longest streak and total check-ins

    Args:
        dates: Check-in dates (date objects or YYYY-MM-DD strings),
               expected ascending and unique. Unparseable entries are
               skipped and repeats are ignored.
        today: Evaluation date in the user's local calendar
               (defaults to today in the configured timezone)

    Returns:
        StreakSummary(current_streak, longest_streak, total_check_ins)
    """
    if today is None:
        today = today_in_timezone()

    unique_days = sorted({d for d in (parse_calendar_date(value) for value in dates) if d is not None})
    if not unique_days:
        return StreakSummary()

    longest = 1
    running = 1
    previous = unique_days[0]

    for day in unique_days[1:]:
        if day - previous == timedelta(days=1):
            running += 1
        else:
            # Gap of 2+ days starts a new streak on this date
            running = 1
        longest = max(longest, running)
        previous = day

    last_day = unique_days[-1]
    # Only a latest check-in dated today or yesterday keeps the streak alive
    current = running if 0 <= (today - last_day).days <= 1 else 0

    return StreakSummary(
        current_streak=current,
        longest_streak=longest,
        total_check_ins=len(unique_days),
    )


async def update_login_streak(store, user_id: str, today: Optional[date] = None) -> LoginStreak:
    """
    Record a daily login and update the login streak

    Logic:
    - Same day as the last recorded login: nothing changes
    - Day after the last login: streak continues
    - Any other gap: streak restarts at 1

    Args:
        store: KeyValueStore holding the login bookkeeping
        user_id: User identifier
        today: Login date in the user's local calendar

    Returns:
        LoginStreak(awarded, streak, longest)
    """
    if today is None:
        today = today_in_timezone()

    key = f"login_streak:{user_id}"
    state = await store.get(key) or {}
    last = parse_calendar_date(state.get("last_login_date"))
    streak = int(state.get("streak", 0))
    longest = int(state.get("longest", 0))

    if last == today:
        return LoginStreak(awarded=False, streak=streak, longest=longest)

    if last is not None and today - last == timedelta(days=1):
        streak += 1
    else:
        streak = 1
    longest = max(longest, streak)

    await store.set(key, {
        "last_login_date": today.isoformat(),
        "streak": streak,
        "longest": longest,
    })

    logger.info(f"Recorded daily login for user {user_id}: streak {streak} (longest {longest})")
    return LoginStreak(awarded=True, streak=streak, longest=longest)


def get_streak_message(streak: int) -> str:
    """Encouragement line for a streak length"""
    if streak <= 0:
        return "Start your journey today!"
    if streak == 1:
        return "Great start! Keep it up!"
    if streak < 7:
        return f"{streak} days strong! Keep going!"
    if streak < 30:
        return f"{streak} days streak! Amazing!"
    return f"{streak} days streak! Incredible!"


def get_next_badge_target(streak: int) -> Dict[str, Any]:
    """Next streak badge the user is working towards"""
    for target, message in BADGE_TARGETS:
        if streak < target:
            return {"target": target, "message": message}
    target, message = BADGE_TARGETS[-1]
    return {"target": target, "message": message}
