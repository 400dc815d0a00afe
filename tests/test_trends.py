"""
Trend calculator tests
"""

from datetime import datetime, timedelta, timezone

import pytest

from sitepulse.aggregation import merge_visit, new_day
from sitepulse.periods import daily_breakdown
from sitepulse.schemas import SiteVisitRecord
from sitepulse.trends import Trend, calculate_trend, category_trends, series_trends

NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


class TestCalculateTrend:

    @pytest.mark.parametrize("values", [[], [42]])
    def test_short_series_is_stable(self, values):
        assert calculate_trend(values) == Trend.STABLE

    def test_flat_series_is_stable(self):
        assert calculate_trend([10, 10, 10, 10]) == Trend.STABLE

    def test_rising_series(self):
        assert calculate_trend([10, 10, 20, 20]) == Trend.INCREASING

    def test_falling_series(self):
        assert calculate_trend([20, 20, 10, 10]) == Trend.DECREASING

    def test_zero_first_half_is_stable(self):
        assert calculate_trend([0, 0, 50, 80]) == Trend.STABLE

    def test_change_within_threshold_is_stable(self):
        # +10% exactly is not above the threshold
        assert calculate_trend([100, 100, 110, 110]) == Trend.STABLE
        assert calculate_trend([100, 100, 111, 111]) == Trend.INCREASING

    def test_odd_length_with_legacy_divisor(self):
        # Second half [10] is divided by 2, halving its mean
        assert calculate_trend([10, 10, 10], legacy_half_divisor=True) == Trend.DECREASING

    def test_odd_length_with_true_means(self):
        assert calculate_trend([10, 10, 10], legacy_half_divisor=False) == Trend.STABLE

    def test_even_length_unaffected_by_divisor(self):
        values = [5, 10, 20, 40]
        assert calculate_trend(values, True) == calculate_trend(values, False) == Trend.INCREASING


class TestSeriesTrends:

    def setup_method(self):
        days = []
        for offset, (work, social) in enumerate([(1000, 1000), (1000, 1000), (4000, 0), (4000, 0)]):
            day = new_day("user-1", NOW.date() + timedelta(days=offset), NOW)
            day = merge_visit(day, SiteVisitRecord(domain="github.com", time_spent_ms=work), NOW)
            if social:
                day = merge_visit(day, SiteVisitRecord(domain="facebook.com", time_spent_ms=social), NOW)
            days.append(day)
        # Out of order on purpose
        self.days = list(reversed(days))

    def test_time_and_productivity(self):
        trends = series_trends(daily_breakdown(self.days))

        assert trends["time_spent_trend"] == Trend.INCREASING
        assert trends["productivity_trend"] == Trend.INCREASING

    def test_category_trends_use_date_order(self):
        trends = category_trends(self.days)

        assert trends["work"] == Trend.INCREASING
        assert trends["social_media"] == Trend.DECREASING
        assert trends["news"] == Trend.STABLE
        assert set(trends) == {"work", "social_media", "entertainment", "news", "shopping", "other"}
