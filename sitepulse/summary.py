"""
Summary Calculator
Derives totals, category breakdown, productivity score and top sites from a day's sites
"""

import math

from sitepulse.categorization import category_key
from sitepulse.schemas import (
    CategoryBreakdown,
    Day,
    HourlyBucket,
    Summary,
    TopSite,
)

# Distracting time counts against the score at this weight
DISTRACTION_PENALTY = 0.5
TOP_SITES_LIMIT = 5


def js_round(value: float) -> int:
    """Round half up, the way the extension and historical reports do"""
    return math.floor(value + 0.5)


def productivity_score(breakdown: CategoryBreakdown, total_ms: int) -> int:
    """
    Score in [0, 100]: productive share minus half the distracting share.
    An empty day scores 0.
    """
    if total_ms <= 0:
        return 0

    productive = breakdown.work + breakdown.education
    distracting = breakdown.social_media + breakdown.entertainment
    raw = js_round((productive - distracting * DISTRACTION_PENALTY) / total_ms * 100)
    return max(0, min(100, raw))


def compute_summary(day: Day) -> Summary:
    """
    Rebuild a day's summary from its site list.

    Focus sessions and blocked attempts are carried through unchanged.
    """
    totals = {}
    total_time = 0

    for site in day.sites:
        total_time += site.time_spent_ms
        key = category_key(site.category)
        totals[key] = totals.get(key, 0) + site.time_spent_ms

    breakdown = CategoryBreakdown(**totals)

    # sorted() is stable, so equal times keep insertion order
    ranked = sorted(day.sites, key=lambda site: site.time_spent_ms, reverse=True)
    top_sites = [
        TopSite(
            domain=site.domain,
            time_spent_ms=site.time_spent_ms,
            visits=site.visits,
            category=site.category,
        )
        for site in ranked[:TOP_SITES_LIMIT]
    ]

    return Summary(
        total_time_spent_ms=total_time,
        total_sites_visited=len(day.sites),
        productivity_score=productivity_score(breakdown, total_time),
        category_breakdown=breakdown,
        top_sites=top_sites,
        focus_sessions=[s.model_copy() for s in day.focus_sessions],
        blocked_attempts=[a.model_copy() for a in day.blocked_attempts],
    )


def active_time_ms(day: Day) -> int:
    """Session time minus idle time, over all sites"""
    return sum(
        session.duration_ms - session.idle_time_ms
        for site in day.sites
        for session in site.sessions
    )


def hourly_breakdown(day: Day) -> list[HourlyBucket]:
    """Session durations bucketed by the hour the session started"""
    buckets = [0] * 24
    for site in day.sites:
        for session in site.sessions:
            buckets[session.start_time.hour] += session.duration_ms
    return [HourlyBucket(hour=hour, time_ms=ms) for hour, ms in enumerate(buckets)]
