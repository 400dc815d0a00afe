"""
Summary calculator tests
"""

from datetime import datetime, timedelta, timezone

import pytest

from sitepulse.aggregation import merge_visit, new_day
from sitepulse.categorization import Category
from sitepulse.schemas import CategoryBreakdown, Session, SiteEntry, SiteVisitRecord
from sitepulse.summary import (
    active_time_ms,
    compute_summary,
    hourly_breakdown,
    js_round,
    productivity_score,
)

NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


def day_with(*visits):
    day = new_day("user-1", "2025-01-15", NOW)
    for domain, ms in visits:
        day = merge_visit(day, SiteVisitRecord(domain=domain, time_spent_ms=ms), NOW)
    return day


class TestProductivityScore:

    def test_work_and_social_media_scores_fifty(self):
        day = day_with(("github.com", 3_600_000), ("facebook.com", 1_800_000))
        summary = compute_summary(day)

        assert summary.total_time_spent_ms == 5_400_000
        assert summary.total_sites_visited == 2
        assert summary.category_breakdown.work == 3_600_000
        assert summary.category_breakdown.social_media == 1_800_000
        assert summary.productivity_score == 50

    def test_empty_day_is_all_zero(self):
        summary = compute_summary(new_day("user-1", "2025-01-15", NOW))

        assert summary.total_time_spent_ms == 0
        assert summary.total_sites_visited == 0
        assert summary.productivity_score == 0
        assert summary.category_breakdown == CategoryBreakdown()
        assert summary.top_sites == []

    def test_only_distracting_time_clamps_to_zero(self):
        day = day_with(("youtube.com", 1000), ("twitter.com", 1000))
        assert compute_summary(day).productivity_score == 0

    def test_only_productive_time_scores_hundred(self):
        day = day_with(("github.com", 1000), ("stackoverflow.com", 500))
        assert compute_summary(day).productivity_score == 100

    def test_neutral_time_dilutes_score(self):
        # 1000 work out of 4000 total
        day = day_with(("github.com", 1000), ("cnn.com", 1000), ("example.org", 2000))
        assert compute_summary(day).productivity_score == 25

    def test_education_counts_as_productive(self):
        breakdown = CategoryBreakdown(education=500, other=500)
        assert productivity_score(breakdown, 1000) == 50

    @pytest.mark.parametrize("total", [0, -10])
    def test_non_positive_total_scores_zero(self, total):
        assert productivity_score(CategoryBreakdown(work=100), total) == 0

    def test_rounds_half_up(self):
        assert js_round(2.5) == 3
        assert js_round(-2.5) == -2
        assert js_round(49.4999) == 49


class TestComputeSummary:

    def test_totals_match_sites(self):
        day = day_with(("github.com", 100), ("youtube.com", 250), ("example.org", 50))
        summary = compute_summary(day)

        assert summary.total_time_spent_ms == sum(s.time_spent_ms for s in day.sites)
        assert summary.total_sites_visited == len({s.domain for s in day.sites})
        assert sum(summary.category_breakdown.model_dump().values()) == summary.total_time_spent_ms

    def test_is_idempotent(self):
        day = day_with(("github.com", 100), ("youtube.com", 250))
        assert compute_summary(day) == compute_summary(day)

    def test_top_sites_limited_and_ordered(self):
        day = day_with(*[(f"site{i}.com", (i + 1) * 100) for i in range(7)])
        top = compute_summary(day).top_sites

        assert [site.domain for site in top] == ["site6.com", "site5.com", "site4.com", "site3.com", "site2.com"]
        assert [site.time_spent_ms for site in top] == [700, 600, 500, 400, 300]

    def test_top_sites_ties_keep_insertion_order(self):
        day = day_with(("b.com", 100), ("a.com", 100), ("c.com", 200))
        top = compute_summary(day).top_sites
        assert [site.domain for site in top] == ["c.com", "b.com", "a.com"]

    def test_loose_category_labels_land_in_breakdown(self):
        day = new_day("user-1", "2025-01-15", NOW)
        day.sites.append(SiteEntry(
            domain="example.org",
            time_spent_ms=300,
            category=Category.SOCIAL_MEDIA,
            first_visit=NOW,
            last_visit=NOW,
        ))
        assert compute_summary(day).category_breakdown.social_media == 300


class TestSessionMetrics:

    def setup_method(self):
        morning = NOW.replace(hour=9)
        evening = NOW.replace(hour=21)
        day = new_day("user-1", "2025-01-15", NOW)
        for start, duration, idle in [(morning, 60_000, 10_000), (morning, 30_000, 0), (evening, 5_000, 5_000)]:
            session = Session(
                start_time=start,
                end_time=start + timedelta(milliseconds=duration),
                duration_ms=duration,
                idle_time_ms=idle,
            )
            day = merge_visit(day, SiteVisitRecord(domain="github.com", time_spent_ms=duration, session=session), NOW)
        self.day = day

    def test_active_time_excludes_idle(self):
        assert active_time_ms(self.day) == 80_000

    def test_hourly_breakdown(self):
        buckets = hourly_breakdown(self.day)

        assert len(buckets) == 24
        assert buckets[9].time_ms == 90_000
        assert buckets[21].time_ms == 5_000
        assert sum(bucket.time_ms for bucket in buckets) == 95_000
