"""
Day and blocked site store tests, run against the in-memory and SQLite-backed stores
"""

from datetime import date, datetime, timezone

import pytest

from sitepulse.aggregation import merge_visit, new_day
from sitepulse.config import Settings
from sitepulse.database import close_db, create_engine, create_session_maker, init_db
from sitepulse.schemas import BlockedSite, Session, SiteVisitRecord
from sitepulse.store import InMemoryBlockedSiteStore, InMemoryDayStore, SqlBlockedSiteStore, SqlDayStore

NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


def make_day(user_id, key, ms=1000):
    session = Session(
        start_time=NOW,
        end_time=NOW.replace(minute=5),
        duration_ms=300_000,
        idle_time_ms=1000,
    )
    day = new_day(user_id, key, NOW)
    return merge_visit(day, SiteVisitRecord(domain="github.com", time_spent_ms=ms, session=session), NOW)


@pytest.fixture(params=["memory", "sql"])
async def day_store(request, tmp_path):
    if request.param == "memory":
        yield InMemoryDayStore()
        return

    settings = Settings(DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'days.db'}")
    engine = create_engine(settings)
    await init_db(engine)
    yield SqlDayStore(create_session_maker(engine))
    await close_db(engine)


class TestDayStore:

    async def test_missing_day(self, day_store):
        assert await day_store.get("user-1", date(2025, 1, 15)) is None

    async def test_round_trip_preserves_day(self, day_store):
        day = make_day("user-1", "2025-01-15")
        await day_store.set(day)

        loaded = await day_store.get("user-1", date(2025, 1, 15))
        assert loaded == day
        assert loaded.sites[0].sessions[0].idle_time_ms == 1000

    async def test_set_replaces(self, day_store):
        await day_store.set(make_day("user-1", "2025-01-15", ms=1000))
        await day_store.set(make_day("user-1", "2025-01-15", ms=7000))

        loaded = await day_store.get("user-1", date(2025, 1, 15))
        assert loaded.summary.total_time_spent_ms == 7000
        assert len(await day_store.list_range("user-1")) == 1

    async def test_list_range_bounds_and_order(self, day_store):
        for key in ["2025-01-20", "2025-01-10", "2025-01-15", "2025-01-12"]:
            await day_store.set(make_day("user-1", key))
        await day_store.set(make_day("user-2", "2025-01-12"))

        days = await day_store.list_range("user-1", date(2025, 1, 12), date(2025, 1, 15))
        assert [d.date_key for d in days] == ["2025-01-12", "2025-01-15"]

        everything = await day_store.list_range("user-1")
        assert [d.date_key for d in everything] == ["2025-01-10", "2025-01-12", "2025-01-15", "2025-01-20"]

        since = await day_store.list_range("user-1", start=date(2025, 1, 15))
        assert [d.date_key for d in since] == ["2025-01-15", "2025-01-20"]

    async def test_delete(self, day_store):
        await day_store.set(make_day("user-1", "2025-01-15"))

        assert await day_store.delete("user-1", date(2025, 1, 15)) is True
        assert await day_store.delete("user-1", date(2025, 1, 15)) is False
        assert await day_store.get("user-1", date(2025, 1, 15)) is None

    async def test_delete_range_scoped_to_user(self, day_store):
        for key in ["2025-01-10", "2025-01-12", "2025-01-15"]:
            await day_store.set(make_day("user-1", key))
        await day_store.set(make_day("user-2", "2025-01-12"))

        deleted = await day_store.delete_range("user-1", date(2025, 1, 11), date(2025, 1, 20))

        assert deleted == 2
        assert [d.date_key for d in await day_store.list_range("user-1")] == ["2025-01-10"]
        assert len(await day_store.list_range("user-2")) == 1


@pytest.fixture(params=["memory", "sql"])
async def blocked_store(request, tmp_path):
    if request.param == "memory":
        yield InMemoryBlockedSiteStore()
        return

    settings = Settings(DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'blocked.db'}")
    engine = create_engine(settings)
    await init_db(engine)
    yield SqlBlockedSiteStore(create_session_maker(engine))
    await close_db(engine)


class TestBlockedSiteStore:

    async def test_missing_list_is_empty(self, blocked_store):
        assert await blocked_store.get("user-1") == []

    async def test_set_replaces_in_order(self, blocked_store):
        first = BlockedSite(domain="reddit.com", category="Social Media", added_at=NOW)
        second = BlockedSite(domain="youtube.com", category="Entertainment", added_at=NOW)

        await blocked_store.set("user-1", [first])
        await blocked_store.set("user-1", [second, first])

        assert await blocked_store.get("user-1") == [second, first]
        assert await blocked_store.get("user-2") == []

    async def test_set_empty_list(self, blocked_store):
        await blocked_store.set("user-1", [BlockedSite(domain="reddit.com", added_at=NOW)])
        await blocked_store.set("user-1", [])

        assert await blocked_store.get("user-1") == []
