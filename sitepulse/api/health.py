"""Health check endpoints"""

from fastapi import APIRouter, Request
from datetime import datetime, timezone

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check"""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/ready")
async def readiness_check(request: Request):
    """Readiness check - reports which storage backend and limiters are wired"""
    limiters = request.app.state.limiters
    return {
        "status": "ready",
        "checks": {
            "storage": type(request.app.state.tracking_service.store).__name__,
            "rate_limiters": sorted(limiters),
        },
    }
