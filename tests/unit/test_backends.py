"""Unit tests for progress backends (in-memory and PostgreSQL)"""
import pytest
from datetime import date
from unittest.mock import AsyncMock, patch

import psycopg

from src.db.backend import PostgresProgressBackend, ProgressBackend
from src.db.memory_backend import InMemoryProgressBackend
from src.exceptions import ConnectionError as DatabaseConnectionError
from src.exceptions import QueryError
from src.models.checkin import CheckInRecord, StoredCheckIn


# ============================================================================
# InMemoryProgressBackend
# ============================================================================

def test_backends_satisfy_protocol():
    assert isinstance(InMemoryProgressBackend(), ProgressBackend)
    assert isinstance(PostgresProgressBackend(), ProgressBackend)


@pytest.mark.asyncio
async def test_memory_upsert_and_fetch(memory_backend, test_user_id):
    assert await memory_backend.upsert_check_in(test_user_id, CheckInRecord(date="2024-01-02", mood=6)) is True
    assert await memory_backend.upsert_check_in(test_user_id, CheckInRecord(date="2024-01-01", mood=4)) is True
    assert await memory_backend.upsert_check_in(test_user_id, CheckInRecord(date="2024-01-02", mood=9)) is False

    check_ins = await memory_backend.fetch_check_ins(test_user_id)

    assert [c.date for c in check_ins] == [date(2024, 1, 1), date(2024, 1, 2)]
    assert check_ins[1].mood_rating == 9.0
    assert all(isinstance(c, StoredCheckIn) and c.user_id == test_user_id for c in check_ins)


@pytest.mark.asyncio
async def test_memory_fetch_range(memory_backend, test_user_id):
    for day in (1, 5, 9):
        await memory_backend.upsert_check_in(test_user_id, CheckInRecord(date=date(2024, 1, day)))

    check_ins = await memory_backend.fetch_check_ins(test_user_id, start=date(2024, 1, 2), end=date(2024, 1, 9))

    assert [c.date.day for c in check_ins] == [5, 9]


@pytest.mark.asyncio
async def test_memory_xp_ledger_is_idempotent(memory_backend, test_user_id):
    assert await memory_backend.grant_xp(test_user_id, 30, "exercise", "k1") is True
    assert await memory_backend.grant_xp(test_user_id, 30, "exercise", "k1") is False
    assert await memory_backend.grant_xp(test_user_id, 20, "resource", "k1") is True
    assert await memory_backend.grant_xp("someone-else", 99, "exercise", "k1") is True

    assert await memory_backend.get_total_xp(test_user_id) == 50


@pytest.mark.asyncio
async def test_memory_unlocks(memory_backend, test_user_id):
    assert await memory_backend.record_unlock(test_user_id, "ex-1") is True
    assert await memory_backend.record_unlock(test_user_id, "ex-1") is False
    assert await memory_backend.get_unlocked_achievements(test_user_id) == {"ex-1"}


@pytest.mark.asyncio
async def test_memory_activity_counts_distinct_items(memory_backend, test_user_id):
    await memory_backend.record_activity(test_user_id, "exercise", "breathing-1")
    await memory_backend.record_activity(test_user_id, "exercise", "breathing-1")
    await memory_backend.record_activity(test_user_id, "exercise", "recovery-1")
    await memory_backend.record_activity(test_user_id, "resource", "article-9")

    counts = await memory_backend.get_activity_counts(test_user_id)

    assert counts == {"exercise": 2, "education": 0, "resource": 1}


# ============================================================================
# PostgresProgressBackend
# ============================================================================

@pytest.mark.asyncio
async def test_postgres_fetch_check_ins_builds_models(test_user_id):
    rows = [{"user_id": test_user_id, "date": date(2024, 1, 3), "mood_rating": 7.0, "notes": None}]

    with patch("src.db.backend.queries.get_check_ins", AsyncMock(return_value=rows)):
        check_ins = await PostgresProgressBackend().fetch_check_ins(test_user_id)

    assert check_ins[0].date == date(2024, 1, 3)
    assert check_ins[0].mood_rating == 7.0


@pytest.mark.asyncio
async def test_postgres_unlocks_as_set(test_user_id):
    rows = [{"achievement_id": "ex-1"}, {"achievement_id": "res-1"}]

    with patch("src.db.backend.queries.get_user_achievement_unlocks", AsyncMock(return_value=rows)):
        unlocked = await PostgresProgressBackend().get_unlocked_achievements(test_user_id)

    assert unlocked == {"ex-1", "res-1"}


@pytest.mark.asyncio
async def test_postgres_grant_xp_passes_through(test_user_id):
    with patch("src.db.backend.queries.add_xp_transaction", AsyncMock(return_value=True)) as mock_add:
        granted = await PostgresProgressBackend().grant_xp(test_user_id, 30, "exercise", "k", "reason")

    assert granted is True
    mock_add.assert_awaited_once_with(test_user_id, 30, "exercise", "k", "reason")


@pytest.mark.asyncio
async def test_postgres_operational_error_is_wrapped(test_user_id):
    failing = AsyncMock(side_effect=psycopg.OperationalError("server closed the connection"))

    with patch("src.db.backend.queries.get_total_xp", failing):
        with pytest.raises(DatabaseConnectionError) as exc_info:
            await PostgresProgressBackend().get_total_xp(test_user_id)

    assert exc_info.value.operation == "get_total_xp"
    assert exc_info.value.user_id == test_user_id


@pytest.mark.asyncio
async def test_postgres_query_error_is_wrapped(test_user_id):
    failing = AsyncMock(side_effect=psycopg.ProgrammingError("relation \"xp_ledger\" does not exist"))

    with patch("src.db.backend.queries.unlock_achievement", failing):
        with pytest.raises(QueryError) as exc_info:
            await PostgresProgressBackend().record_unlock(test_user_id, "ex-1")

    assert exc_info.value.context["achievement_id"] == "ex-1"
