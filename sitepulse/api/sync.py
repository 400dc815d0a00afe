"""
Extension Sync API - Handles daily stats, focus sessions and blocked attempts from the browser extension
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from sitepulse.api.deps import get_tracking_service, user_rate_limit
from sitepulse.schemas import (
    BlockedAttemptCreate,
    BulkSyncRequest,
    DeleteDataRequest,
    FocusSessionCreate,
    SyncRequest,
    TokenData,
)
from sitepulse.tracking import TrackingService

router = APIRouter()

rate_limited = user_rate_limit("sync")


@router.post("")
async def sync_daily_stats(
    data: SyncRequest,
    current_user: TokenData = Depends(rate_limited),
    service: TrackingService = Depends(get_tracking_service),
):
    """
    Merge the extension's accumulated per-date site totals.

    Request body:
    ```json
    {
        "daily_stats": {
            "2025-01-15": {
                "github.com": {"time_spent_ms": 3600000, "visits": 4, "category": "Work"}
            }
        }
    }
    ```
    """
    result = await service.sync_daily_stats(current_user.user_id, data.daily_stats)

    return {
        "success": True,
        "message": "Data synced successfully",
        "data": {
            "sync_results": result.results,
            "total_time_added_ms": result.total_time_added_ms,
            "total_sites_added": result.total_sites_added,
            "synced_at": datetime.now(timezone.utc),
        },
    }


@router.get("/data")
async def get_sync_data(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    limit: int = Query(default=30, ge=1, le=366),
    current_user: TokenData = Depends(rate_limited),
    service: TrackingService = Depends(get_tracking_service),
):
    """Stored days in the extension's {date: {domain: stats}} shape, newest first"""
    days = await service.get_range(current_user.user_id, start_date, end_date)
    days = sorted(days, key=lambda d: d.date, reverse=True)[:limit]

    daily_stats = {
        day.date_key: {
            site.domain: {
                "time_spent_ms": site.time_spent_ms,
                "visits": site.visits,
                "category": site.category,
                "productivity_score": site.productivity_score,
            }
            for site in day.sites
        }
        for day in days
    }

    return {
        "success": True,
        "data": {
            "daily_stats": daily_stats,
            "last_synced_at": datetime.now(timezone.utc),
        },
    }


@router.post("/focus-session")
async def sync_focus_session(
    data: FocusSessionCreate,
    current_user: TokenData = Depends(rate_limited),
    service: TrackingService = Depends(get_tracking_service),
):
    """Store a focus session under the date it started"""
    day = await service.record_focus_session(current_user.user_id, data)

    return {
        "success": True,
        "message": "Focus session synced successfully",
        "data": {
            "date": day.date,
            "focus_sessions": len(day.focus_sessions),
            "synced_at": day.updated_at,
        },
    }


@router.post("/blocked-attempt")
async def log_blocked_attempt(
    data: BlockedAttemptCreate,
    current_user: TokenData = Depends(rate_limited),
    service: TrackingService = Depends(get_tracking_service),
):
    """Log an attempt to open a blocked site"""
    day = await service.record_blocked_attempt(
        current_user.user_id,
        data.domain,
        overridden=data.overridden,
        timestamp=data.timestamp,
    )
    attempt = day.blocked_attempts[-1]

    return {
        "success": True,
        "message": "Blocked attempt logged successfully",
        "data": {
            "domain": attempt.domain,
            "overridden": attempt.overridden,
            "logged_at": attempt.timestamp,
        },
    }


@router.get("/status")
async def get_sync_status(
    current_user: TokenData = Depends(rate_limited),
    service: TrackingService = Depends(get_tracking_service),
):
    """Server time and the last time any of the user's days changed"""
    latest = await service.latest_day(current_user.user_id)
    now = datetime.now(timezone.utc)

    return {
        "success": True,
        "data": {
            "server_time": now,
            "server_timestamp": int(now.timestamp() * 1000),
            "last_data_sync": latest.updated_at if latest else None,
            "last_active_date": latest.date if latest else None,
        },
    }


@router.delete("/data")
async def delete_sync_data(
    data: Optional[DeleteDataRequest] = None,
    current_user: TokenData = Depends(rate_limited),
    service: TrackingService = Depends(get_tracking_service),
):
    """Delete the user's days, optionally limited to a date range"""
    if data is None or not data.confirm_delete:
        raise HTTPException(status_code=400, detail="Confirmation required to delete data")

    date_range = data.date_range
    deleted = await service.delete_range(
        current_user.user_id,
        date_range.start_date if date_range else None,
        date_range.end_date if date_range else None,
    )

    return {
        "success": True,
        "message": "Data deleted successfully",
        "data": {"deleted_count": deleted, "deleted_at": datetime.now(timezone.utc)},
    }


@router.post("/bulk")
async def bulk_sync(
    data: BulkSyncRequest,
    current_user: TokenData = Depends(rate_limited),
    service: TrackingService = Depends(get_tracking_service),
):
    """Sync several whole days at once; overwrite replaces existing days"""
    result = await service.bulk_sync(current_user.user_id, data.data, overwrite=data.overwrite)
    failed = sum(1 for r in result.results if not r.success)

    return {
        "success": True,
        "message": "Bulk sync completed",
        "data": {
            "total_processed": len(result.results) - failed,
            "total_errors": failed,
            "results": result.results,
            "synced_at": datetime.now(timezone.utc),
        },
    }
