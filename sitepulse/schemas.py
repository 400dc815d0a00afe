"""
Pydantic schemas for the tracking domain and API request/response validation
All durations are integer milliseconds.
"""

from pydantic import BaseModel, Field
from typing import Optional, Union
from datetime import date as date_type, datetime

from sitepulse.categorization import Category


# ============================================================
# AUTH SCHEMAS
# ============================================================

class TokenData(BaseModel):
    """Decoded token payload"""
    user_id: str
    email: Optional[str] = None


# ============================================================
# TRACKING DOMAIN
# ============================================================

class Session(BaseModel):
    """One contiguous stay on a site"""
    start_time: datetime
    end_time: datetime
    duration_ms: int
    idle_time_ms: int = 0
    is_active: bool = True


class SiteVisitRecord(BaseModel):
    """Incremental usage reported by the client for a single domain"""
    domain: str
    time_spent_ms: Optional[int] = None
    visits: Optional[int] = None
    category: Optional[str] = None
    productivity_score: Optional[int] = None
    session: Optional[Session] = None


class SiteEntry(BaseModel):
    """Per-domain accumulation within a day"""
    domain: str
    time_spent_ms: int = 0
    visits: int = 0
    category: Category = Category.OTHER
    productivity_score: int = 50
    sessions: list[Session] = Field(default_factory=list)
    first_visit: datetime
    last_visit: datetime


class FocusSession(BaseModel):
    start_time: datetime
    end_time: datetime
    duration_ms: int
    completed: bool = False
    blocked_attempts: int = 0


class BlockedAttempt(BaseModel):
    domain: str
    timestamp: datetime
    overridden: bool = False


class CategoryBreakdown(BaseModel):
    """Milliseconds per category key"""
    work: int = 0
    social_media: int = 0
    entertainment: int = 0
    news: int = 0
    shopping: int = 0
    education: int = 0
    health: int = 0
    finance: int = 0
    other: int = 0


class TopSite(BaseModel):
    domain: str
    time_spent_ms: int
    visits: int
    category: Category


class Summary(BaseModel):
    """Derived from a Day's sites; never edited directly"""
    total_time_spent_ms: int = 0
    total_sites_visited: int = 0
    productivity_score: int = 0
    category_breakdown: CategoryBreakdown = Field(default_factory=CategoryBreakdown)
    top_sites: list[TopSite] = Field(default_factory=list)
    focus_sessions: list[FocusSession] = Field(default_factory=list)
    blocked_attempts: list[BlockedAttempt] = Field(default_factory=list)


class Day(BaseModel):
    """All tracking data of one user for one calendar date"""
    user_id: str
    date: date_type
    sites: list[SiteEntry] = Field(default_factory=list)
    focus_sessions: list[FocusSession] = Field(default_factory=list)
    blocked_attempts: list[BlockedAttempt] = Field(default_factory=list)
    summary: Summary = Field(default_factory=Summary)
    created_at: datetime
    updated_at: datetime

    @property
    def date_key(self) -> str:
        return self.date.isoformat()


# ============================================================
# BLOCKLIST
# ============================================================

class BlockedSite(BaseModel):
    """A domain the user asked the extension to block"""
    domain: str
    category: Category = Category.OTHER
    added_at: datetime


# ============================================================
# PERIOD SCHEMAS
# ============================================================

class DailyBreakdownRow(BaseModel):
    date: date_type
    total_time_ms: int
    productivity_score: int
    sites_visited: int


class PeriodSite(BaseModel):
    """A domain's usage merged across several days"""
    domain: str
    time_spent_ms: int = 0
    visits: int = 0
    category: Category
    average_productivity_score: int = 0


class PeriodSummary(BaseModel):
    total_time_ms: int = 0
    average_productivity_score: int = 0
    category_breakdown: CategoryBreakdown = Field(default_factory=CategoryBreakdown)
    top_sites: list[PeriodSite] = Field(default_factory=list)
    focus_sessions_completed: int = 0
    total_blocked_attempts: int = 0
    daily_breakdown: list[DailyBreakdownRow] = Field(default_factory=list)
    active_days: int = 0


class WeeklyBreakdownRow(BaseModel):
    week_start: date_type
    total_time_ms: int
    average_productivity_score: int
    days: int


class HourlyBucket(BaseModel):
    hour: int
    time_ms: int


class UserStats(BaseModel):
    total_time_ms: int = 0
    average_productivity_score: float = 0
    total_sites: int = 0
    total_focus_sessions: int = 0
    completed_focus_sessions: int = 0
    total_blocked_attempts: int = 0
    active_days: int = 0


# ============================================================
# TRACKING API SCHEMAS
# ============================================================

class SiteVisitCreate(SiteVisitRecord):
    """POST /api/tracking/site"""
    time_spent_ms: int
    date: Optional[str] = None


# ============================================================
# SYNC API SCHEMAS
# ============================================================

class SiteStats(BaseModel):
    """Per-domain totals kept by the extension for one date"""
    time_spent_ms: int = 0
    visits: Optional[int] = None
    category: Optional[str] = None
    productivity_score: Optional[int] = None


class SyncRequest(BaseModel):
    """Extension daily stats: {date: {domain: stats}}"""
    daily_stats: dict[str, dict[str, SiteStats]]
    timestamp: Optional[int] = None


class FocusSessionCreate(BaseModel):
    start_time: datetime
    end_time: Optional[datetime] = None
    duration_ms: int
    completed: bool = False
    blocked_attempts: int = 0


class BlockedAttemptCreate(BaseModel):
    domain: str
    overridden: bool = False
    timestamp: Optional[datetime] = None


class BulkDay(BaseModel):
    date: Optional[str] = None
    sites: Optional[dict[str, SiteStats]] = None
    focus_sessions: list[FocusSessionCreate] = Field(default_factory=list)
    blocked_attempts: list[BlockedAttemptCreate] = Field(default_factory=list)


class BulkSyncRequest(BaseModel):
    data: list[BulkDay]
    overwrite: bool = False


class DateRange(BaseModel):
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class DeleteDataRequest(BaseModel):
    confirm_delete: bool = False
    date_range: Optional[DateRange] = None


class SyncDateResult(BaseModel):
    """Outcome of syncing one date"""
    date: Optional[str]
    success: bool
    sites_processed: Optional[int] = None
    error: Optional[str] = None


class SyncResult(BaseModel):
    results: list[SyncDateResult] = Field(default_factory=list)
    total_time_added_ms: int = 0
    total_sites_added: int = 0


# ============================================================
# USER API SCHEMAS
# ============================================================

class BlockedSiteCreate(BaseModel):
    domain: str
    category: Optional[str] = None


class BlockedSiteItem(BlockedSiteCreate):
    added_at: Optional[datetime] = None


class BlockedSitesUpdate(BaseModel):
    """Full replacement list; plain domain strings are accepted"""
    blocked_sites: list[Union[str, BlockedSiteItem]]
