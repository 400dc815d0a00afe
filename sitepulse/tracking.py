"""
Tracking service
Read-merge-write cycle for tracking days: each mutation of a (user, date)
runs inside that pair's exclusive section so concurrent merges cannot
overwrite each other.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional

from sitepulse import aggregation
from sitepulse.aggregation import parse_date_key
from sitepulse.errors import SitePulseError
from sitepulse.locks import KeyedLock
from sitepulse.schemas import (
    BulkDay,
    Day,
    FocusSession,
    FocusSessionCreate,
    SiteStats,
    SiteVisitRecord,
    SyncDateResult,
    SyncResult,
)
from sitepulse.store import DayStore

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TrackingService:
    """Entry point for every write to a user's tracking days"""

    def __init__(
        self,
        store: DayStore,
        clock: Callable[[], datetime] = utc_now,
        min_visit_ms: int = 1000,
    ):
        self.store = store
        self.clock = clock
        self.min_visit_ms = min_visit_ms
        self._locks = KeyedLock()

    def today(self) -> date:
        return self.clock().date()

    # ============================================================
    # READS
    # ============================================================

    async def get_day(self, user_id: str, day_date) -> Optional[Day]:
        return await self.store.get(user_id, parse_date_key(day_date))

    async def get_or_create_day(self, user_id: str, day_date) -> Day:
        target = parse_date_key(day_date)
        async with self._locks.hold((user_id, target)):
            day = await self.store.get(user_id, target)
            if day is None:
                day = aggregation.new_day(user_id, target, self.clock())
                await self.store.set(day)
        return day

    async def get_range(
        self,
        user_id: str,
        start=None,
        end=None,
        limit: Optional[int] = None,
    ) -> list[Day]:
        days = await self.store.list_range(
            user_id,
            parse_date_key(start) if start is not None else None,
            parse_date_key(end) if end is not None else None,
        )
        return days[:limit] if limit is not None else days

    async def get_recent(self, user_id: str, days: int) -> list[Day]:
        """Days from `days` ago through today"""
        today = self.today()
        return await self.store.list_range(user_id, today - timedelta(days=days), today)

    async def latest_day(self, user_id: str) -> Optional[Day]:
        days = await self.store.list_range(user_id)
        return days[-1] if days else None

    # ============================================================
    # WRITES
    # ============================================================

    async def _mutate(self, user_id: str, day_date, change: Callable[[Day, datetime], Day]) -> Day:
        target = parse_date_key(day_date)
        async with self._locks.hold((user_id, target)):
            now = self.clock()
            day = await self.store.get(user_id, target)
            if day is None:
                day = aggregation.new_day(user_id, target, now)
            updated = change(day, now)
            await self.store.set(updated)
        return updated

    async def record_visit(self, user_id: str, record: SiteVisitRecord, day_date=None) -> Day:
        """Merge one site visit into the given date (today by default)"""
        aggregation.validate_record(record)
        return await self._mutate(
            user_id,
            day_date if day_date is not None else self.today(),
            lambda day, now: aggregation.merge_visit(day, record, now),
        )

    async def record_visits(self, user_id: str, day_date, records: list[SiteVisitRecord]) -> Day:
        """Merge several visits into one date as a single all-or-nothing write"""
        for record in records:
            aggregation.validate_record(record)

        def merge_all(day: Day, now: datetime) -> Day:
            for record in records:
                day = aggregation.merge_visit(day, record, now)
            return day

        return await self._mutate(user_id, day_date, merge_all)

    async def record_focus_session(self, user_id: str, data: FocusSessionCreate) -> Day:
        """Store a focus session under the date it started"""
        end_time = data.end_time or data.start_time + timedelta(milliseconds=data.duration_ms)
        session = FocusSession(
            start_time=data.start_time,
            end_time=end_time,
            duration_ms=data.duration_ms,
            completed=data.completed,
            blocked_attempts=data.blocked_attempts,
        )
        return await self._mutate(
            user_id,
            data.start_time.date(),
            lambda day, now: aggregation.add_focus_session(day, session, now),
        )

    async def record_blocked_attempt(
        self,
        user_id: str,
        domain: str,
        overridden: bool = False,
        timestamp: Optional[datetime] = None,
    ) -> Day:
        aggregation.normalize_domain(domain)
        attempt_time = timestamp or self.clock()
        return await self._mutate(
            user_id,
            attempt_time.date(),
            lambda day, now: aggregation.add_blocked_attempt(
                day, domain, now, overridden=overridden, timestamp=attempt_time
            ),
        )

    async def delete_day(self, user_id: str, day_date) -> bool:
        target = parse_date_key(day_date)
        async with self._locks.hold((user_id, target)):
            return await self.store.delete(user_id, target)

    async def delete_range(self, user_id: str, start=None, end=None) -> int:
        """Delete each stored day in [start, end] under that day's lock"""
        days = await self.store.list_range(
            user_id,
            parse_date_key(start) if start is not None else None,
            parse_date_key(end) if end is not None else None,
        )
        deleted = 0
        for day in days:
            async with self._locks.hold((user_id, day.date)):
                if await self.store.delete(user_id, day.date):
                    deleted += 1
        logger.info("Deleted %d tracking days for user %s", deleted, user_id)
        return deleted

    # ============================================================
    # EXTENSION SYNC
    # ============================================================

    @staticmethod
    def _record_from_stats(domain: str, stats: SiteStats) -> SiteVisitRecord:
        return SiteVisitRecord(
            domain=domain,
            time_spent_ms=stats.time_spent_ms,
            visits=stats.visits,
            category=stats.category,
            productivity_score=stats.productivity_score,
        )

    async def sync_daily_stats(self, user_id: str, daily_stats: dict[str, dict[str, SiteStats]]) -> SyncResult:
        """
        Merge the extension's per-date totals.

        Sites below the minimum visit time are skipped. A date that fails
        validation is reported and left untouched; other dates still sync.
        """
        result = SyncResult()

        for date_string, sites in daily_stats.items():
            try:
                target = parse_date_key(date_string)
            except SitePulseError:
                logger.warning("Skipping invalid date string: %s", date_string)
                result.results.append(SyncDateResult(
                    date=date_string, success=False, error="Invalid date format"
                ))
                continue

            records = [
                self._record_from_stats(domain, stats)
                for domain, stats in sites.items()
                if stats.time_spent_ms >= self.min_visit_ms and stats.time_spent_ms > 0
            ]

            try:
                if records:
                    await self.record_visits(user_id, target, records)
            except SitePulseError as e:
                logger.warning("Sync of %s for user %s rejected: %s", date_string, user_id, e)
                result.results.append(SyncDateResult(date=date_string, success=False, error=str(e)))
                continue

            result.total_time_added_ms += sum(r.time_spent_ms for r in records)
            result.total_sites_added += len(records)
            result.results.append(SyncDateResult(
                date=date_string, success=True, sites_processed=len(sites)
            ))

        logger.info(
            "Synced %d dates for user %s (%d sites, %dms)",
            len(daily_stats), user_id, result.total_sites_added, result.total_time_added_ms,
        )
        return result

    async def bulk_sync(self, user_id: str, data: list[BulkDay], overwrite: bool = False) -> SyncResult:
        """Replace or extend whole days, each with sites, focus sessions and blocked attempts"""
        result = SyncResult()

        for entry in data:
            if not entry.date or entry.sites is None:
                result.results.append(SyncDateResult(
                    date=entry.date, success=False, error="Missing required fields"
                ))
                continue

            try:
                target = parse_date_key(entry.date)
                records = [self._record_from_stats(d, s) for d, s in entry.sites.items()]
                for record in records:
                    aggregation.validate_record(record)

                async with self._locks.hold((user_id, target)):
                    now = self.clock()
                    day = None if overwrite else await self.store.get(user_id, target)
                    if day is None:
                        day = aggregation.new_day(user_id, target, now)

                    for record in records:
                        day = aggregation.merge_visit(day, record, now)
                    for focus in entry.focus_sessions:
                        day = aggregation.add_focus_session(day, FocusSession(
                            start_time=focus.start_time,
                            end_time=focus.end_time or focus.start_time + timedelta(milliseconds=focus.duration_ms),
                            duration_ms=focus.duration_ms,
                            completed=focus.completed,
                            blocked_attempts=focus.blocked_attempts,
                        ), now)
                    for attempt in entry.blocked_attempts:
                        day = aggregation.add_blocked_attempt(
                            day, attempt.domain, now,
                            overridden=attempt.overridden, timestamp=attempt.timestamp,
                        )

                    await self.store.set(day)
            except SitePulseError as e:
                logger.warning("Bulk sync of %s for user %s rejected: %s", entry.date, user_id, e)
                result.results.append(SyncDateResult(date=entry.date, success=False, error=str(e)))
                continue

            result.total_time_added_ms += sum(r.time_spent_ms or 0 for r in records)
            result.total_sites_added += len(records)
            result.results.append(SyncDateResult(
                date=entry.date, success=True, sites_processed=len(entry.sites)
            ))

        return result
