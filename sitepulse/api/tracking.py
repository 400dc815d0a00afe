"""
Tracking API endpoints
Per-day site data, ranges and quick rollups for the extension popup
"""

from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query

from sitepulse.aggregation import parse_date_key
from sitepulse.api.deps import get_tracking_service, user_rate_limit
from sitepulse.errors import ValidationError
from sitepulse.periods import (
    aggregate,
    category_percentages,
    rank_sites,
    sum_breakdowns,
    user_stats,
    week_bounds,
)
from sitepulse.schemas import Day, SiteVisitCreate, SiteVisitRecord, Summary, TokenData
from sitepulse.summary import active_time_ms
from sitepulse.tracking import TrackingService

router = APIRouter()

rate_limited = user_rate_limit("tracking")


def day_payload(day: Day) -> dict:
    return {
        "date": day.date,
        "sites": day.sites,
        "summary": day.summary,
        "active_time_ms": active_time_ms(day),
    }


def empty_day_payload(target: date) -> dict:
    return {
        "date": target,
        "sites": [],
        "summary": Summary(),
        "active_time_ms": 0,
    }


def parse_range(start_date: Optional[str], end_date: Optional[str]) -> tuple[date, date]:
    """Both bounds required, start not after end"""
    if not start_date or not end_date:
        raise ValidationError("Start date and end date are required")
    start, end = parse_date_key(start_date), parse_date_key(end_date)
    if start > end:
        raise ValidationError("Start date must be before end date")
    return start, end


def parse_optional_range(
    start_date: Optional[str],
    end_date: Optional[str],
    today: date,
) -> tuple[date, date]:
    """Missing bounds default to the last seven days"""
    start = parse_date_key(start_date) if start_date else today - timedelta(days=7)
    end = parse_date_key(end_date) if end_date else today
    return start, end


@router.get("/today")
async def get_today(
    current_user: TokenData = Depends(rate_limited),
    service: TrackingService = Depends(get_tracking_service),
):
    """Today's tracking data, created empty on first access"""
    day = await service.get_or_create_day(current_user.user_id, service.today())
    return {"success": True, "data": day_payload(day)}


@router.get("/date/{day_date}")
async def get_date(
    day_date: str,
    current_user: TokenData = Depends(rate_limited),
    service: TrackingService = Depends(get_tracking_service),
):
    """Tracking data for a specific date"""
    target = parse_date_key(day_date)
    day = await service.get_day(current_user.user_id, target)
    if day is None:
        return {"success": True, "data": empty_day_payload(target)}
    return {"success": True, "data": day_payload(day)}


@router.get("/range")
async def get_range(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    limit: int = Query(default=30, ge=1, le=366),
    current_user: TokenData = Depends(rate_limited),
    service: TrackingService = Depends(get_tracking_service),
):
    """Days in a date range, newest first"""
    start, end = parse_range(start_date, end_date)
    days = await service.get_range(current_user.user_id, start, end)
    days = sorted(days, key=lambda d: d.date, reverse=True)[:limit]
    return {"success": True, "data": [day_payload(day) for day in days]}


@router.get("/weekly/{week_start}")
async def get_weekly(
    week_start: str,
    current_user: TokenData = Depends(rate_limited),
    service: TrackingService = Depends(get_tracking_service),
):
    """Seven-day summary starting at week_start"""
    start, end = week_bounds(parse_date_key(week_start))
    days = await service.get_range(current_user.user_id, start, end)
    return {"success": True, "data": aggregate(days)}


@router.post("/site")
async def add_site(
    data: SiteVisitCreate,
    current_user: TokenData = Depends(rate_limited),
    service: TrackingService = Depends(get_tracking_service),
):
    """Add or update site tracking data"""
    record = SiteVisitRecord.model_validate(data.model_dump(exclude={"date"}))
    day = await service.record_visit(current_user.user_id, record, day_date=data.date)

    return {
        "success": True,
        "message": "Site data added successfully",
        "data": {
            "domain": data.domain.strip().lower(),
            "time_spent_ms": data.time_spent_ms,
            "date": day.date,
            "added_at": day.updated_at,
            "summary": day.summary,
        },
    }


@router.get("/stats")
async def get_stats(
    days: int = Query(default=30, ge=1, le=366),
    current_user: TokenData = Depends(rate_limited),
    service: TrackingService = Depends(get_tracking_service),
):
    """Totals over the last `days` days"""
    recent = await service.get_recent(current_user.user_id, days)
    stats = user_stats(recent)
    return {"success": True, "data": {"period": {"days": days, **stats.model_dump()}}}


@router.get("/categories")
async def get_categories(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    current_user: TokenData = Depends(rate_limited),
    service: TrackingService = Depends(get_tracking_service),
):
    """Category breakdown and percentages over a range (default: last 7 days)"""
    start, end = parse_optional_range(start_date, end_date, service.today())
    days = await service.get_range(current_user.user_id, start, end)
    breakdown = sum_breakdowns(days)

    return {
        "success": True,
        "data": {
            "breakdown": breakdown,
            "percentages": category_percentages(breakdown),
            "total_time_ms": sum(breakdown.model_dump().values()),
            "date_range": {"start": start, "end": end},
        },
    }


@router.get("/top-sites")
async def get_top_sites(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    limit: int = Query(default=10, ge=1, le=100),
    current_user: TokenData = Depends(rate_limited),
    service: TrackingService = Depends(get_tracking_service),
):
    """Busiest sites over a range (default: last 7 days)"""
    start, end = parse_optional_range(start_date, end_date, service.today())
    days = await service.get_range(current_user.user_id, start, end)

    return {
        "success": True,
        "data": {
            "top_sites": rank_sites(days, limit),
            "date_range": {"start": start, "end": end},
            "total_sites": len({site.domain for day in days for site in day.sites}),
        },
    }


@router.delete("/date/{day_date}")
async def delete_date(
    day_date: str,
    current_user: TokenData = Depends(rate_limited),
    service: TrackingService = Depends(get_tracking_service),
):
    """Delete tracking data for a specific date"""
    target = parse_date_key(day_date)
    deleted = await service.delete_day(current_user.user_id, target)

    return {
        "success": True,
        "message": "Tracking data deleted successfully" if deleted else "No data found for the specified date",
        "data": {"deleted_count": int(deleted), "date": target},
    }
