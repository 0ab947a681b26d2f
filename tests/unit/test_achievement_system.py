"""Unit tests for Achievement System (src/gamification/achievement_system.py)"""
import pytest
from unittest.mock import AsyncMock

from pydantic import ValidationError as PydanticValidationError

from src.exceptions import DatabaseError, PersistenceError
from src.gamification.achievement_system import (
    ACHIEVEMENTS,
    DEFAULT_CATALOG,
    AchievementCatalog,
    check_and_award_achievements,
    evaluate_achievements,
    get_achievement_progress,
)
from src.models.achievement import AchievementCounts, UnlockEvent


STREAK_7 = {"id": "streak-7", "label": "Week Streak", "group": "checkins", "target": 7, "xp_reward": 50}


@pytest.fixture
def streak_catalog():
    return AchievementCatalog([STREAK_7])


# ============================================================================
# Catalog
# ============================================================================

def test_default_catalog_loads_every_definition():
    assert len(DEFAULT_CATALOG) == len(ACHIEVEMENTS) == 22


def test_catalog_rejects_duplicate_ids():
    with pytest.raises(ValueError, match="Duplicate"):
        AchievementCatalog([STREAK_7, STREAK_7])


def test_catalog_rejects_unknown_group():
    with pytest.raises(PydanticValidationError):
        AchievementCatalog([{**STREAK_7, "group": "sleep"}])


def test_catalog_rejects_non_positive_target():
    with pytest.raises(PydanticValidationError):
        AchievementCatalog([{**STREAK_7, "target": 0}])


def test_catalog_get(streak_catalog):
    assert streak_catalog.get("streak-7").xp_reward == 50
    assert streak_catalog.get("missing") is None


# ============================================================================
# Evaluation
# ============================================================================

def test_evaluate_unlocks_at_target(streak_catalog):
    events = evaluate_achievements("u1", {"checkinsStreak": 7}, [], streak_catalog)

    assert events == [UnlockEvent(id="streak-7", label="Week Streak", xp_reward=50)]


def test_evaluate_skips_prior_unlocks(streak_catalog):
    events = evaluate_achievements("u1", {"checkinsStreak": 7}, ["streak-7"], streak_catalog)
    assert events == []


def test_evaluate_below_target(streak_catalog):
    assert evaluate_achievements("u1", {"checkins_streak": 6}, [], streak_catalog) == []


def test_evaluate_never_repeats_an_id():
    """Feeding results back as prior unlocks returns nothing new"""
    counts = {"checkins_streak": 30, "exercises_completed": 12}
    first = evaluate_achievements("u1", counts)
    second = evaluate_achievements("u1", counts, [event.id for event in first])

    assert second == []
    assert len({event.id for event in first}) == len(first)


def test_evaluate_multiple_thresholds_in_catalog_order():
    events = evaluate_achievements("u1", {"exercises_completed": 10})
    assert [event.id for event in events] == ["ex-1", "ex-5", "ex-10"]


def test_evaluate_malformed_counts_count_as_zero():
    counts = {"checkins_streak": "lots", "exercises_completed": -4, "resources_viewed": None}
    assert evaluate_achievements("u1", counts) == []


def test_evaluate_without_counts():
    assert evaluate_achievements("u1", None) == []


def test_counts_model_accepts_both_naming_conventions():
    counts = AchievementCounts.model_validate({"educationViewed": 3, "resources_viewed": 2})
    assert counts.education_viewed == 3
    assert counts.resources_viewed == 2


# ============================================================================
# Progress
# ============================================================================

def test_get_achievement_progress_splits_locked_and_unlocked():
    progress = get_achievement_progress({"exercises_completed": 3}, {"ex-1"})

    assert progress["total_unlocked"] == 1
    assert progress["total_achievements"] == 22
    assert progress["total_xp_from_achievements"] == 15

    ex5 = next(row for row in progress["locked"] if row["id"] == "ex-5")
    assert ex5["current"] == 3
    assert ex5["progress_percent"] == 60.0


def test_progress_percent_caps_at_100(streak_catalog):
    rows = streak_catalog.progress({"checkins_streak": 20})
    assert rows[0]["progress_percent"] == 100.0


# ============================================================================
# check_and_award_achievements
# ============================================================================

@pytest.mark.asyncio
async def test_check_and_award_persists_unlock_and_xp(memory_backend, test_user_id, streak_catalog):
    result = await check_and_award_achievements(
        memory_backend, test_user_id, {"checkins_streak": 7}, streak_catalog
    )

    assert [a["id"] for a in result["unlocked"]] == ["streak-7"]
    assert result["xp_awarded"] == 50
    assert result["pending"] == []
    assert await memory_backend.get_unlocked_achievements(test_user_id) == {"streak-7"}
    assert await memory_backend.get_total_xp(test_user_id) == 50


@pytest.mark.asyncio
async def test_check_and_award_twice_awards_once(memory_backend, test_user_id, streak_catalog):
    await check_and_award_achievements(memory_backend, test_user_id, {"checkins_streak": 7}, streak_catalog)
    result = await check_and_award_achievements(
        memory_backend, test_user_id, {"checkins_streak": 7}, streak_catalog
    )

    assert result["unlocked"] == []
    assert result["xp_awarded"] == 0
    assert await memory_backend.get_total_xp(test_user_id) == 50


@pytest.mark.asyncio
async def test_check_and_award_failed_unlock_is_pending(test_user_id, streak_catalog, no_backoff):
    backend = AsyncMock()
    backend.get_unlocked_achievements.return_value = set()
    backend.get_total_xp.return_value = 0
    backend.grant_xp.return_value = True
    backend.record_unlock.side_effect = DatabaseError("connection lost", operation="record_unlock")

    result = await check_and_award_achievements(backend, test_user_id, {"checkins_streak": 7}, streak_catalog)

    assert result["unlocked"] == []
    assert [a["id"] for a in result["pending"]] == ["streak-7"]
    assert result["errors"][0]["error"] == "PersistenceError"
    assert result["xp_awarded"] == 0


@pytest.mark.asyncio
async def test_failed_unlock_retried_later_without_double_xp(memory_backend, test_user_id, streak_catalog):
    """The reward is granted once even when the unlock write has to be repeated"""
    original_record_unlock = memory_backend.record_unlock
    memory_backend.record_unlock = AsyncMock(
        side_effect=PersistenceError("write failed", retryable=False)
    )

    first = await check_and_award_achievements(
        memory_backend, test_user_id, {"checkins_streak": 7}, streak_catalog
    )
    assert [a["id"] for a in first["pending"]] == ["streak-7"]

    memory_backend.record_unlock = original_record_unlock
    second = await check_and_award_achievements(
        memory_backend, test_user_id, {"checkins_streak": 7}, streak_catalog
    )

    assert [a["id"] for a in second["unlocked"]] == ["streak-7"]
    assert await memory_backend.get_total_xp(test_user_id) == 50


@pytest.mark.asyncio
async def test_check_and_award_concurrent_unlock_not_reported(test_user_id, streak_catalog):
    """Another client recorded the unlock first"""
    backend = AsyncMock()
    backend.get_unlocked_achievements.return_value = set()
    backend.get_total_xp.return_value = 50
    backend.grant_xp.return_value = False
    backend.record_unlock.return_value = False

    result = await check_and_award_achievements(backend, test_user_id, {"checkins_streak": 7}, streak_catalog)

    assert result["unlocked"] == []
    assert result["pending"] == []
