"""
Trend Calculator
Classifies a numeric series as increasing, decreasing or stable
"""

import math
from enum import Enum
from typing import Sequence

from sitepulse.schemas import DailyBreakdownRow, Day

# Historical reports divided both half-means by ceil(n / 2), which
# shrinks the second mean when n is odd. Kept on so trends stay
# comparable with already published reports.
LEGACY_HALF_DIVISOR = True

CHANGE_THRESHOLD_PERCENT = 10

TREND_CATEGORY_KEYS = ("work", "social_media", "entertainment", "news", "shopping", "other")


class Trend(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


def calculate_trend(values: Sequence[float], legacy_half_divisor: bool = LEGACY_HALF_DIVISOR) -> Trend:
    """Compare the mean of the second half of a series with the first half"""
    n = len(values)
    if n < 2:
        return Trend.STABLE

    half = math.ceil(n / 2)
    first, second = values[:half], values[half:]

    if legacy_half_divisor:
        first_mean = sum(first) / half
        second_mean = sum(second) / half
    else:
        first_mean = sum(first) / len(first)
        second_mean = sum(second) / len(second)

    if first_mean == 0:
        return Trend.STABLE

    change = (second_mean - first_mean) / first_mean * 100
    if change > CHANGE_THRESHOLD_PERCENT:
        return Trend.INCREASING
    if change < -CHANGE_THRESHOLD_PERCENT:
        return Trend.DECREASING
    return Trend.STABLE


def series_trends(rows: Sequence[DailyBreakdownRow], legacy_half_divisor: bool = LEGACY_HALF_DIVISOR) -> dict:
    """Time spent and productivity trends of a daily breakdown"""
    return {
        "time_spent_trend": calculate_trend(
            [row.total_time_ms for row in rows], legacy_half_divisor
        ),
        "productivity_trend": calculate_trend(
            [row.productivity_score for row in rows], legacy_half_divisor
        ),
    }


def category_trends(days: Sequence[Day], legacy_half_divisor: bool = LEGACY_HALF_DIVISOR) -> dict[str, Trend]:
    ordered = sorted(days, key=lambda day: day.date)
    return {
        key: calculate_trend(
            [getattr(day.summary.category_breakdown, key) for day in ordered],
            legacy_half_divisor,
        )
        for key in TREND_CATEGORY_KEYS
    }
