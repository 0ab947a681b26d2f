"""Unit tests for Streak Tracking System (src/gamification/streak_system.py)"""
import pytest
from datetime import date, timedelta

from src.gamification.streak_system import (
    compute_streaks,
    get_next_badge_target,
    get_streak_message,
    update_login_streak,
)
from src.models.progress import StreakSummary


# ============================================================================
# compute_streaks
# ============================================================================

def test_three_consecutive_days():
    dates = [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)]

    result = compute_streaks(dates, today=date(2024, 1, 3))

    assert result.current_streak == 3
    assert result.longest_streak == 3
    assert result.total_check_ins == 3


def test_gap_breaks_streak():
    dates = [date(2024, 1, 1), date(2024, 1, 5)]

    result = compute_streaks(dates, today=date(2024, 2, 1))

    assert result.longest_streak == 1
    assert result.current_streak == 0
    assert result.total_check_ins == 2


def test_streak_alive_when_last_check_in_was_yesterday():
    dates = [date(2024, 1, 1), date(2024, 1, 2)]
    assert compute_streaks(dates, today=date(2024, 1, 3)).current_streak == 2


def test_streak_broken_after_two_days_without_check_in():
    dates = [date(2024, 1, 1), date(2024, 1, 2)]
    assert compute_streaks(dates, today=date(2024, 1, 4)).current_streak == 0


def test_current_run_after_earlier_longer_run():
    dates = [
        date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3), date(2024, 1, 4),
        date(2024, 1, 8), date(2024, 1, 9),
    ]

    result = compute_streaks(dates, today=date(2024, 1, 9))

    assert result.current_streak == 2
    assert result.longest_streak == 4


def test_latest_check_in_after_today_is_not_current():
    """A check-in dated after the evaluation day does not count as current"""
    result = compute_streaks([date(2024, 1, 10)], today=date(2024, 1, 3))

    assert result.current_streak == 0
    assert result.longest_streak == 1
    assert result.total_check_ins == 1


def test_run_ending_after_today():
    dates = [date(2024, 1, 2), date(2024, 1, 3), date(2024, 1, 4), date(2024, 1, 5)]

    result = compute_streaks(dates, today=date(2024, 1, 3))

    assert result.current_streak == 0
    assert result.longest_streak == 4


def test_past_evaluation_day_keeps_history_totals():
    """Evaluating before the latest check-in keeps history totals intact"""
    dates = [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 9)]

    result = compute_streaks(dates, today=date(2024, 1, 2))

    assert result.current_streak == 0
    assert result.longest_streak == 2
    assert result.total_check_ins == 3


def test_empty_history():
    assert compute_streaks([], today=date(2024, 1, 1)) == StreakSummary()


def test_duplicates_are_a_no_op():
    dates = [date(2024, 1, 1), date(2024, 1, 1), date(2024, 1, 2)]

    result = compute_streaks(dates, today=date(2024, 1, 2))

    assert result.current_streak == 2
    assert result.total_check_ins == 2


def test_unordered_and_string_dates():
    dates = ["2024-01-03", date(2024, 1, 1), "2024-01-02T08:30:00Z", "garbage", None]

    result = compute_streaks(dates, today=date(2024, 1, 3))

    assert result.current_streak == 3
    assert result.total_check_ins == 3


def test_compute_streaks_is_pure():
    dates = [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 6)]
    today = date(2024, 1, 6)
    assert compute_streaks(dates, today) == compute_streaks(dates, today)


def test_long_streak(consecutive_days, today):
    result = compute_streaks(consecutive_days(30), today=today)
    assert result.current_streak == 30
    assert result.longest_streak == 30


# ============================================================================
# Login streak
# ============================================================================

@pytest.mark.asyncio
async def test_first_login(memory_store, test_user_id):
    result = await update_login_streak(memory_store, test_user_id, date(2024, 1, 1))

    assert result.awarded is True
    assert result.streak == 1
    assert result.longest == 1


@pytest.mark.asyncio
async def test_same_day_login_is_not_counted_twice(memory_store, test_user_id):
    await update_login_streak(memory_store, test_user_id, date(2024, 1, 1))
    result = await update_login_streak(memory_store, test_user_id, date(2024, 1, 1))

    assert result.awarded is False
    assert result.streak == 1


@pytest.mark.asyncio
async def test_consecutive_logins_then_gap(memory_store, test_user_id):
    start = date(2024, 1, 1)
    for offset in range(3):
        result = await update_login_streak(memory_store, test_user_id, start + timedelta(days=offset))
    assert result.streak == 3

    result = await update_login_streak(memory_store, test_user_id, start + timedelta(days=5))

    assert result.streak == 1
    assert result.longest == 3


# ============================================================================
# Messages
# ============================================================================

@pytest.mark.parametrize("streak,fragment", [
    (0, "Start your journey"),
    (1, "Great start"),
    (4, "4 days strong"),
    (10, "Amazing"),
    (45, "Incredible"),
])
def test_get_streak_message(streak, fragment):
    assert fragment in get_streak_message(streak)


def test_get_next_badge_target():
    assert get_next_badge_target(0)["target"] == 3
    assert get_next_badge_target(3)["target"] == 7
    assert get_next_badge_target(29)["target"] == 30
    assert get_next_badge_target(1000)["target"] == 365
