"""
Reports API endpoints
Daily, weekly, monthly and custom-range reports with trends
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from sitepulse.aggregation import parse_date_key
from sitepulse.api.deps import get_app_settings, get_tracking_service, user_rate_limit
from sitepulse.api.tracking import parse_range
from sitepulse.config import Settings
from sitepulse.periods import (
    aggregate,
    month_bounds,
    week_bounds,
    week_start as start_of_week,
    weekly_breakdown,
)
from sitepulse.schemas import CategoryBreakdown, TokenData
from sitepulse.summary import hourly_breakdown
from sitepulse.tracking import TrackingService
from sitepulse.trends import category_trends, series_trends

router = APIRouter()

rate_limited = user_rate_limit("reports")


@router.get("/daily/{day_date}")
async def daily_report(
    day_date: str,
    current_user: TokenData = Depends(rate_limited),
    service: TrackingService = Depends(get_tracking_service),
):
    """Summary, top sites, categories and hourly breakdown for one day"""
    target = parse_date_key(day_date)
    day = await service.get_day(current_user.user_id, target)

    if day is None:
        return {
            "success": True,
            "data": {
                "date": target,
                "summary": {
                    "total_time_spent_ms": 0,
                    "total_sites_visited": 0,
                    "productivity_score": 0,
                    "focus_sessions_completed": 0,
                    "blocked_attempts": 0,
                },
                "top_sites": [],
                "category_breakdown": CategoryBreakdown(),
                "hourly_breakdown": [],
                "focus_sessions": [],
                "blocked_attempts": [],
            },
        }

    summary = day.summary
    return {
        "success": True,
        "data": {
            "date": day.date,
            "summary": {
                "total_time_spent_ms": summary.total_time_spent_ms,
                "total_sites_visited": summary.total_sites_visited,
                "productivity_score": summary.productivity_score,
                "focus_sessions_completed": sum(1 for s in summary.focus_sessions if s.completed),
                "blocked_attempts": len(summary.blocked_attempts),
            },
            "top_sites": summary.top_sites,
            "category_breakdown": summary.category_breakdown,
            "hourly_breakdown": hourly_breakdown(day),
            "focus_sessions": summary.focus_sessions,
            "blocked_attempts": summary.blocked_attempts,
        },
    }


@router.get("/weekly")
async def weekly_report(
    week_start: Optional[str] = None,
    current_user: TokenData = Depends(rate_limited),
    service: TrackingService = Depends(get_tracking_service),
    settings: Settings = Depends(get_app_settings),
):
    """Seven days from week_start (default: the current Sunday-based week)"""
    first = parse_date_key(week_start) if week_start else start_of_week(service.today())
    start, end = week_bounds(first)
    days = await service.get_range(current_user.user_id, start, end)
    period = aggregate(days)

    return {
        "success": True,
        "data": {
            "week_start": start,
            "week_end": end,
            "summary": {
                "total_time_ms": period.total_time_ms,
                "average_productivity_score": period.average_productivity_score,
                "focus_sessions_completed": period.focus_sessions_completed,
                "total_blocked_attempts": period.total_blocked_attempts,
                "active_days": period.active_days,
            },
            "daily_breakdown": period.daily_breakdown,
            "top_sites": period.top_sites,
            "category_breakdown": period.category_breakdown,
            "trends": series_trends(period.daily_breakdown, settings.TREND_LEGACY_HALF_DIVISOR),
        },
    }


@router.get("/monthly")
async def monthly_report(
    year: Optional[int] = Query(default=None, ge=1970, le=9999),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    current_user: TokenData = Depends(rate_limited),
    service: TrackingService = Depends(get_tracking_service),
    settings: Settings = Depends(get_app_settings),
):
    """Calendar month report (default: current month)"""
    today = service.today()
    target_year = year or today.year
    target_month = month or today.month

    start, end = month_bounds(target_year, target_month)
    days = await service.get_range(current_user.user_id, start, end)
    period = aggregate(days)

    return {
        "success": True,
        "data": {
            "month": target_month,
            "year": target_year,
            "month_start": start,
            "month_end": end,
            "summary": period,
            "weekly_breakdown": weekly_breakdown(days),
            "top_sites": period.top_sites,
            "category_breakdown": period.category_breakdown,
            "trends": series_trends(period.daily_breakdown, settings.TREND_LEGACY_HALF_DIVISOR),
        },
    }


@router.get("/custom")
async def custom_report(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    current_user: TokenData = Depends(rate_limited),
    service: TrackingService = Depends(get_tracking_service),
    settings: Settings = Depends(get_app_settings),
):
    """Report over an arbitrary inclusive date range"""
    start, end = parse_range(start_date, end_date)
    days = await service.get_range(current_user.user_id, start, end)
    period = aggregate(days)

    return {
        "success": True,
        "data": {
            "start_date": start,
            "end_date": end,
            "day_count": (end - start).days + 1,
            "summary": period,
            "daily_breakdown": period.daily_breakdown,
            "top_sites": period.top_sites,
            "category_breakdown": period.category_breakdown,
            "trends": series_trends(period.daily_breakdown, settings.TREND_LEGACY_HALF_DIVISOR),
        },
    }


@router.get("/productivity-trends")
async def productivity_trends(
    days: int = Query(default=30, ge=1, le=366),
    current_user: TokenData = Depends(rate_limited),
    service: TrackingService = Depends(get_tracking_service),
    settings: Settings = Depends(get_app_settings),
):
    """Daily score and time series over the last `days` days"""
    recent = await service.get_recent(current_user.user_id, days)
    count = len(recent)

    return {
        "success": True,
        "data": {
            "productivity_scores": [
                {"date": day.date, "score": day.summary.productivity_score} for day in recent
            ],
            "time_spent": [
                {"date": day.date, "time_ms": day.summary.total_time_spent_ms} for day in recent
            ],
            "category_trends": category_trends(recent, settings.TREND_LEGACY_HALF_DIVISOR),
            "averages": {
                "productivity_score": (
                    sum(day.summary.productivity_score for day in recent) / count if count else 0
                ),
                "daily_time_ms": (
                    sum(day.summary.total_time_spent_ms for day in recent) / count if count else 0
                ),
            },
        },
    }
