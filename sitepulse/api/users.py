"""
User API endpoints
Blocked site list management and the extension dashboard rollup
"""

from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException

from sitepulse.api.deps import get_blocklist_service, get_tracking_service, user_rate_limit
from sitepulse.blocklist import BlocklistService, clean_blocked_domain
from sitepulse.periods import aggregate, user_stats, week_start
from sitepulse.schemas import BlockedSiteCreate, BlockedSitesUpdate, TokenData
from sitepulse.summary import TOP_SITES_LIMIT
from sitepulse.tracking import TrackingService

router = APIRouter()

rate_limited = user_rate_limit("users")

DASHBOARD_RECENT_DAYS = 7


# ============================================================
# BLOCKED SITES
# ============================================================

@router.get("/blocked-sites")
async def get_blocked_sites(
    current_user: TokenData = Depends(rate_limited),
    blocklist: BlocklistService = Depends(get_blocklist_service),
):
    sites = await blocklist.list_sites(current_user.user_id)
    return {"success": True, "data": {"blocked_sites": sites}}


@router.post("/blocked-sites")
async def add_blocked_site(
    data: BlockedSiteCreate,
    current_user: TokenData = Depends(rate_limited),
    blocklist: BlocklistService = Depends(get_blocklist_service),
):
    """Block a domain; blocking it twice is a 400"""
    site = await blocklist.add_site(current_user.user_id, data.domain, data.category)
    return {
        "success": True,
        "message": "Site blocked successfully",
        "data": site,
    }


@router.put("/blocked-sites")
async def replace_blocked_sites(
    data: BlockedSitesUpdate,
    current_user: TokenData = Depends(rate_limited),
    blocklist: BlocklistService = Depends(get_blocklist_service),
):
    """
    Replace the whole list.

    Request body:
    ```json
    {"blocked_sites": ["reddit.com", {"domain": "https://www.youtube.com", "category": "Entertainment"}]}
    ```
    """
    sites = await blocklist.replace_sites(current_user.user_id, data.blocked_sites)
    return {
        "success": True,
        "message": "Blocked sites updated successfully",
        "data": {"blocked_sites": sites},
    }


@router.delete("/blocked-sites/{domain}")
async def remove_blocked_site(
    domain: str,
    current_user: TokenData = Depends(rate_limited),
    blocklist: BlocklistService = Depends(get_blocklist_service),
):
    removed = await blocklist.remove_site(current_user.user_id, domain)
    if not removed:
        raise HTTPException(status_code=404, detail="Site not found in blocked list")

    return {
        "success": True,
        "message": "Site unblocked successfully",
        "data": {"domain": clean_blocked_domain(domain)},
    }


# ============================================================
# DASHBOARD
# ============================================================

@router.get("/dashboard")
async def get_dashboard(
    current_user: TokenData = Depends(rate_limited),
    service: TrackingService = Depends(get_tracking_service),
    blocklist: BlocklistService = Depends(get_blocklist_service),
):
    """Today, the current Sunday-based week and the last seven days at a glance"""
    user_id = current_user.user_id
    today = service.today()

    day = await service.get_or_create_day(user_id, today)
    first = week_start(today)
    week = aggregate(await service.get_range(user_id, first, first + timedelta(days=6)))
    recent = user_stats(await service.get_recent(user_id, DASHBOARD_RECENT_DAYS))
    blocked_sites = await blocklist.list_sites(user_id)

    return {
        "success": True,
        "data": {
            "today": {
                "total_time_ms": day.summary.total_time_spent_ms,
                "sites_visited": day.summary.total_sites_visited,
                "productivity_score": day.summary.productivity_score,
                "top_sites": day.summary.top_sites[:TOP_SITES_LIMIT],
                "focus_sessions": len(day.summary.focus_sessions),
                "blocked_attempts": len(day.summary.blocked_attempts),
            },
            "this_week": {
                "week_start": first,
                "total_time_ms": week.total_time_ms,
                "average_productivity_score": week.average_productivity_score,
                "focus_sessions_completed": week.focus_sessions_completed,
                "active_days": week.active_days,
            },
            "recent": recent,
            "blocked_sites_count": len(blocked_sites),
        },
    }
