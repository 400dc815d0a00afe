"""
Day and blocked site storage
The aggregation core only needs get/set/delete by (user_id, date); any
key-value or document store can back it.
"""

import logging
from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sitepulse.database import session_scope
from sitepulse.models import BlockedSiteList, TrackingDay
from sitepulse.schemas import BlockedSite, Day

logger = logging.getLogger(__name__)


class DayStore(ABC):
    """Persistence boundary for tracking days"""

    @abstractmethod
    async def get(self, user_id: str, day: date) -> Optional[Day]:
        ...

    @abstractmethod
    async def set(self, day: Day) -> None:
        """Insert or replace the day stored under (day.user_id, day.date)"""
        ...

    @abstractmethod
    async def delete(self, user_id: str, day: date) -> bool:
        ...

    @abstractmethod
    async def list_range(
        self,
        user_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[Day]:
        """Days within [start, end] (either bound optional), oldest first"""
        ...

    async def delete_range(
        self,
        user_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> int:
        deleted = 0
        for day in await self.list_range(user_id, start, end):
            if await self.delete(user_id, day.date):
                deleted += 1
        return deleted


# ============================================================
# IN-MEMORY STORE
# ============================================================

class InMemoryDayStore(DayStore):
    """Process-local store, used for tests and the "memory" backend"""

    def __init__(self):
        self._days: dict[tuple[str, str], dict] = {}

    async def get(self, user_id: str, day: date) -> Optional[Day]:
        payload = self._days.get((user_id, day.isoformat()))
        return Day.model_validate(payload) if payload is not None else None

    async def set(self, day: Day) -> None:
        self._days[(day.user_id, day.date_key)] = day.model_dump(mode="json")

    async def delete(self, user_id: str, day: date) -> bool:
        return self._days.pop((user_id, day.isoformat()), None) is not None

    async def list_range(self, user_id, start=None, end=None) -> list[Day]:
        low = start.isoformat() if start else None
        high = end.isoformat() if end else None
        keys = sorted(
            key for key in self._days
            if key[0] == user_id
            and (low is None or key[1] >= low)
            and (high is None or key[1] <= high)
        )
        return [Day.model_validate(self._days[key]) for key in keys]


# ============================================================
# SQL STORE
# ============================================================

class SqlDayStore(DayStore):
    """Days as JSON documents in the tracking_days table"""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def get(self, user_id: str, day: date) -> Optional[Day]:
        async with session_scope(self._session_maker) as db:
            result = await db.execute(
                select(TrackingDay.payload)
                .where(TrackingDay.user_id == user_id)
                .where(TrackingDay.date_key == day.isoformat())
            )
            payload = result.scalar_one_or_none()
        return Day.model_validate(payload) if payload is not None else None

    async def set(self, day: Day) -> None:
        payload = day.model_dump(mode="json")
        async with session_scope(self._session_maker) as db:
            result = await db.execute(
                select(TrackingDay)
                .where(TrackingDay.user_id == day.user_id)
                .where(TrackingDay.date_key == day.date_key)
            )
            row = result.scalar_one_or_none()
            if row is None:
                db.add(TrackingDay(
                    user_id=day.user_id,
                    date_key=day.date_key,
                    payload=payload,
                    total_time_spent_ms=day.summary.total_time_spent_ms,
                ))
            else:
                row.payload = payload
                row.total_time_spent_ms = day.summary.total_time_spent_ms

    async def delete(self, user_id: str, day: date) -> bool:
        async with session_scope(self._session_maker) as db:
            result = await db.execute(
                delete(TrackingDay)
                .where(TrackingDay.user_id == user_id)
                .where(TrackingDay.date_key == day.isoformat())
            )
        return result.rowcount > 0

    async def list_range(self, user_id, start=None, end=None) -> list[Day]:
        query = select(TrackingDay.payload).where(TrackingDay.user_id == user_id)
        if start is not None:
            query = query.where(TrackingDay.date_key >= start.isoformat())
        if end is not None:
            query = query.where(TrackingDay.date_key <= end.isoformat())

        async with session_scope(self._session_maker) as db:
            result = await db.execute(query.order_by(TrackingDay.date_key))
            payloads = result.scalars().all()
        return [Day.model_validate(payload) for payload in payloads]

    async def delete_range(self, user_id, start=None, end=None) -> int:
        query = delete(TrackingDay).where(TrackingDay.user_id == user_id)
        if start is not None:
            query = query.where(TrackingDay.date_key >= start.isoformat())
        if end is not None:
            query = query.where(TrackingDay.date_key <= end.isoformat())

        async with session_scope(self._session_maker) as db:
            result = await db.execute(query)
        logger.info("Deleted %d tracking days for user %s", result.rowcount, user_id)
        return result.rowcount


# ============================================================
# BLOCKED SITE STORES
# ============================================================

class BlockedSiteStore(ABC):
    """One ordered list of blocked sites per user"""

    @abstractmethod
    async def get(self, user_id: str) -> list[BlockedSite]:
        ...

    @abstractmethod
    async def set(self, user_id: str, sites: list[BlockedSite]) -> None:
        ...


class InMemoryBlockedSiteStore(BlockedSiteStore):

    def __init__(self):
        self._lists: dict[str, list[dict]] = {}

    async def get(self, user_id: str) -> list[BlockedSite]:
        return [BlockedSite.model_validate(site) for site in self._lists.get(user_id, [])]

    async def set(self, user_id: str, sites: list[BlockedSite]) -> None:
        self._lists[user_id] = [site.model_dump(mode="json") for site in sites]


class SqlBlockedSiteStore(BlockedSiteStore):
    """Blocked site lists in the blocked_site_lists table"""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def get(self, user_id: str) -> list[BlockedSite]:
        async with session_scope(self._session_maker) as db:
            result = await db.execute(
                select(BlockedSiteList.sites).where(BlockedSiteList.user_id == user_id)
            )
            sites = result.scalar_one_or_none()
        return [BlockedSite.model_validate(site) for site in sites or []]

    async def set(self, user_id: str, sites: list[BlockedSite]) -> None:
        payload = [site.model_dump(mode="json") for site in sites]
        async with session_scope(self._session_maker) as db:
            result = await db.execute(
                select(BlockedSiteList).where(BlockedSiteList.user_id == user_id)
            )
            row = result.scalar_one_or_none()
            if row is None:
                db.add(BlockedSiteList(user_id=user_id, sites=payload))
            else:
                row.sites = payload
