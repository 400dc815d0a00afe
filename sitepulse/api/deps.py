"""Shared FastAPI dependencies: service access and per-user rate limits"""

from fastapi import Depends, HTTPException, Request, status

from sitepulse.auth import get_current_user
from sitepulse.blocklist import BlocklistService
from sitepulse.config import Settings
from sitepulse.rate_limit import AdmissionLimiter
from sitepulse.schemas import TokenData
from sitepulse.tracking import TrackingService


def get_tracking_service(request: Request) -> TrackingService:
    return request.app.state.tracking_service


def get_blocklist_service(request: Request) -> BlocklistService:
    return request.app.state.blocklist_service


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def user_rate_limit(scope: str):
    """
    Dependency factory: authenticate, then admit the request through the
    limiter registered for `scope` on app.state.limiters.
    """

    async def check_rate_limit(
        request: Request,
        current_user: TokenData = Depends(get_current_user),
    ) -> TokenData:
        limiter: AdmissionLimiter = request.app.state.limiters[scope]

        if not limiter.allow(current_user.user_id):
            retry_after = limiter.retry_after_seconds
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={
                    "message": "Too many requests, please try again later",
                    "retry_after": retry_after,
                },
                headers={"Retry-After": str(retry_after)},
            )

        return current_user

    return check_rate_limit
