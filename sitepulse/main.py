"""
FastAPI Backend - SitePulse
Browser activity aggregation and productivity reports
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sitepulse.api import health, reports, sync, tracking, users
from sitepulse.blocklist import BlocklistService
from sitepulse.config import Settings, get_settings
from sitepulse.database import close_db, create_engine, create_session_maker, init_db
from sitepulse.errors import ValidationError
from sitepulse.rate_limit import AdmissionLimiter
from sitepulse.store import (
    DayStore,
    InMemoryBlockedSiteStore,
    InMemoryDayStore,
    SqlBlockedSiteStore,
    SqlDayStore,
)
from sitepulse.tracking import TrackingService

logger = logging.getLogger("sitepulse")


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_limiters(settings: Settings) -> dict[str, AdmissionLimiter]:
    """One limiter per router, shared by every request the process serves"""
    scopes = {
        "tracking": (settings.TRACKING_RATE_LIMIT, settings.TRACKING_RATE_WINDOW_MS),
        "reports": (settings.REPORTS_RATE_LIMIT, settings.REPORTS_RATE_WINDOW_MS),
        "sync": (settings.SYNC_RATE_LIMIT, settings.SYNC_RATE_WINDOW_MS),
        "users": (settings.USERS_RATE_LIMIT, settings.USERS_RATE_WINDOW_MS),
    }
    return {
        scope: AdmissionLimiter(
            max_requests=max_requests,
            window_ms=window_ms,
            cleanup_probability=settings.RATE_LIMIT_CLEANUP_PROBABILITY,
            name=scope,
        )
        for scope, (max_requests, window_ms) in scopes.items()
    }


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[DayStore] = None,
    tracking_service: Optional[TrackingService] = None,
    limiters: Optional[dict[str, AdmissionLimiter]] = None,
    blocklist_service: Optional[BlocklistService] = None,
) -> FastAPI:
    """
    Build the API. Tests pass their own store, services or limiters;
    otherwise they are created from settings.
    """
    settings = settings or get_settings()
    engine = None
    session_maker = None

    needs_storage = (tracking_service is None and store is None) or blocklist_service is None
    if needs_storage and settings.STORAGE_BACKEND != "memory":
        engine = create_engine(settings)
        session_maker = create_session_maker(engine)

    if tracking_service is None:
        if store is None:
            store = SqlDayStore(session_maker) if session_maker else InMemoryDayStore()
        tracking_service = TrackingService(store, min_visit_ms=settings.MIN_VISIT_MS)
    if blocklist_service is None:
        blocked_store = SqlBlockedSiteStore(session_maker) if session_maker else InMemoryBlockedSiteStore()
        blocklist_service = BlocklistService(blocked_store, clock=tracking_service.clock)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown events"""
        logger.info("Starting SitePulse API v%s", settings.VERSION)
        logger.info("Environment: %s, storage: %s", settings.ENVIRONMENT, type(tracking_service.store).__name__)

        if engine is not None:
            await init_db(engine)
            logger.info("Database initialized")

        yield

        if engine is not None:
            await close_db(engine)
        logger.info("Shutting down...")

    app = FastAPI(
        title="SitePulse API",
        description="Aggregates browser site usage into daily, weekly and monthly productivity reports",
        version=settings.VERSION,
        lifespan=lifespan,
        docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None,
    )

    app.state.settings = settings
    app.state.tracking_service = tracking_service
    app.state.blocklist_service = blocklist_service
    app.state.limiters = limiters if limiters is not None else build_limiters(settings)

    # CORS Configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": exc.message, "field": exc.field},
        )

    # Include routers
    app.include_router(health.router, tags=["Health"])
    app.include_router(tracking.router, prefix="/api/tracking", tags=["Tracking"])
    app.include_router(reports.router, prefix="/api/reports", tags=["Reports"])
    app.include_router(sync.router, prefix="/api/sync", tags=["Extension Sync"])
    app.include_router(users.router, prefix="/api/users", tags=["Users"])

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "name": "SitePulse API",
            "version": settings.VERSION,
            "status": "running",
        }

    return app


def run() -> None:
    import uvicorn

    settings = get_settings()
    configure_logging(settings)
    uvicorn.run(create_app(settings), host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
