"""
Period Aggregator
Rolls day summaries up into weekly, monthly and custom-range summaries.

Period boundaries only decide which days are passed in; every period
kind goes through the same aggregate().
"""

import calendar
from datetime import date, timedelta
from typing import Iterable, Sequence

from sitepulse.categorization import CATEGORY_KEYS
from sitepulse.errors import ValidationError
from sitepulse.schemas import (
    CategoryBreakdown,
    DailyBreakdownRow,
    Day,
    PeriodSite,
    PeriodSummary,
    UserStats,
    WeeklyBreakdownRow,
)
from sitepulse.summary import js_round

PERIOD_TOP_SITES_LIMIT = 10


# ============================================================
# PERIOD BOUNDARIES
# ============================================================

def week_start(day: date) -> date:
    """Sunday on or before the given date"""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def week_bounds(start: date) -> tuple[date, date]:
    return start, start + timedelta(days=6)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


# ============================================================
# AGGREGATION
# ============================================================

def sum_breakdowns(days: Iterable[Day]) -> CategoryBreakdown:
    totals = dict.fromkeys(CATEGORY_KEYS, 0)
    for day in days:
        breakdown = day.summary.category_breakdown
        for key in CATEGORY_KEYS:
            totals[key] += getattr(breakdown, key)
    return CategoryBreakdown(**totals)


def rank_sites(days: Sequence[Day], limit: int = PERIOD_TOP_SITES_LIMIT) -> list[PeriodSite]:
    """
    Merge site entries by domain across days, busiest first.

    Days are visited in date order and ties keep first-seen order. The
    per-site average score skips entries scored 0.
    """
    merged: dict[str, dict] = {}

    for day in sorted(days, key=lambda d: d.date):
        for site in day.sites:
            row = merged.setdefault(site.domain, {
                "domain": site.domain,
                "time_spent_ms": 0,
                "visits": 0,
                "category": site.category,
                "score_total": 0,
                "score_count": 0,
            })
            row["time_spent_ms"] += site.time_spent_ms
            row["visits"] += site.visits
            if site.productivity_score:
                row["score_total"] += site.productivity_score
                row["score_count"] += 1

    ranked = sorted(merged.values(), key=lambda row: row["time_spent_ms"], reverse=True)

    return [
        PeriodSite(
            domain=row["domain"],
            time_spent_ms=row["time_spent_ms"],
            visits=row["visits"],
            category=row["category"],
            average_productivity_score=(
                js_round(row["score_total"] / row["score_count"]) if row["score_count"] else 0
            ),
        )
        for row in ranked[:limit]
    ]


def daily_breakdown(days: Iterable[Day]) -> list[DailyBreakdownRow]:
    return [
        DailyBreakdownRow(
            date=day.date,
            total_time_ms=day.summary.total_time_spent_ms,
            productivity_score=day.summary.productivity_score,
            sites_visited=day.summary.total_sites_visited,
        )
        for day in sorted(days, key=lambda d: d.date)
    ]


def aggregate(days: Sequence[Day]) -> PeriodSummary:
    """Combine any finite set of one user's days into a period summary"""
    if not days:
        return PeriodSummary()
    if len({day.user_id for day in days}) > 1:
        raise ValidationError("Cannot aggregate days of different users", field="user_id")

    score_total = sum(day.summary.productivity_score for day in days)

    return PeriodSummary(
        total_time_ms=sum(day.summary.total_time_spent_ms for day in days),
        average_productivity_score=js_round(score_total / len(days)),
        category_breakdown=sum_breakdowns(days),
        top_sites=rank_sites(days, PERIOD_TOP_SITES_LIMIT),
        focus_sessions_completed=sum(
            1 for day in days for session in day.summary.focus_sessions if session.completed
        ),
        total_blocked_attempts=sum(len(day.summary.blocked_attempts) for day in days),
        daily_breakdown=daily_breakdown(days),
        active_days=len(days),
    )


def weekly_breakdown(days: Sequence[Day]) -> list[WeeklyBreakdownRow]:
    """Group days by the Sunday that starts their week"""
    weeks: dict[date, dict] = {}

    for day in sorted(days, key=lambda d: d.date):
        start = week_start(day.date)
        week = weeks.setdefault(start, {"total": 0, "scores": 0, "days": 0})
        week["total"] += day.summary.total_time_spent_ms
        week["scores"] += day.summary.productivity_score
        week["days"] += 1

    return [
        WeeklyBreakdownRow(
            week_start=start,
            total_time_ms=week["total"],
            average_productivity_score=js_round(week["scores"] / week["days"]),
            days=week["days"],
        )
        for start, week in weeks.items()
    ]


def category_percentages(breakdown: CategoryBreakdown) -> dict[str, int]:
    totals = breakdown.model_dump()
    total = sum(totals.values())
    return {
        key: js_round(value / total * 100) if total > 0 else 0
        for key, value in totals.items()
    }


def user_stats(days: Sequence[Day]) -> UserStats:
    """Lifetime-style totals over a window of days"""
    if not days:
        return UserStats()

    return UserStats(
        total_time_ms=sum(day.summary.total_time_spent_ms for day in days),
        average_productivity_score=sum(day.summary.productivity_score for day in days) / len(days),
        total_sites=sum(day.summary.total_sites_visited for day in days),
        total_focus_sessions=sum(len(day.summary.focus_sessions) for day in days),
        completed_focus_sessions=sum(
            1 for day in days for session in day.summary.focus_sessions if session.completed
        ),
        total_blocked_attempts=sum(len(day.summary.blocked_attempts) for day in days),
        active_days=len(days),
    )
