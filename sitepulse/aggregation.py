"""
Day Aggregator
Merges incoming site visits, focus sessions and blocked attempts into a day.

Every operation validates its input first, works on a copy of the day and
rebuilds the summary before returning, so a caller never sees a half-merged
day or a stale summary.
"""

import logging
from datetime import date, datetime
from typing import Optional

from sitepulse.categorization import classify, parse_category
from sitepulse.errors import ValidationError
from sitepulse.schemas import (
    BlockedAttempt,
    Day,
    FocusSession,
    Session,
    SiteEntry,
    SiteVisitRecord,
)
from sitepulse.summary import compute_summary

logger = logging.getLogger(__name__)

DEFAULT_VISITS = 1
DEFAULT_SITE_SCORE = 50


# ============================================================
# VALIDATION
# ============================================================

def normalize_domain(domain: Optional[str]) -> str:
    normalized = (domain or "").strip().lower()
    if not normalized:
        raise ValidationError("Domain is required", field="domain")
    return normalized


def parse_date_key(value) -> date:
    """
    Calendar date from "YYYY-MM-DD" or an ISO timestamp ("...Z" allowed).
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Invalid date format", field="date")

    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        raise ValidationError(f"Invalid date format: {value}", field="date")


def validate_session(session: Session) -> None:
    if session.start_time >= session.end_time:
        raise ValidationError("Session must end after it starts", field="session")
    if session.duration_ms < 0:
        raise ValidationError("Session duration cannot be negative", field="session")
    if session.idle_time_ms < 0:
        raise ValidationError("Idle time cannot be negative", field="session")
    if session.idle_time_ms > session.duration_ms:
        raise ValidationError("Idle time cannot exceed session duration", field="session")


def validate_record(record: SiteVisitRecord) -> None:
    normalize_domain(record.domain)
    if record.time_spent_ms is not None and record.time_spent_ms < 0:
        raise ValidationError("Time spent cannot be negative", field="time_spent_ms")
    if record.visits is not None and record.visits < 0:
        raise ValidationError("Visits cannot be negative", field="visits")
    if record.productivity_score is not None and not 0 <= record.productivity_score <= 100:
        raise ValidationError("Productivity score must be between 0 and 100", field="productivity_score")
    parse_category(record.category)
    if record.session is not None:
        validate_session(record.session)


# ============================================================
# DAY OPERATIONS
# ============================================================

def new_day(user_id: str, day_date, now: datetime) -> Day:
    """Empty day with an all-zero summary"""
    if not user_id:
        raise ValidationError("User ID is required", field="user_id")
    day = Day(
        user_id=user_id,
        date=parse_date_key(day_date),
        created_at=now,
        updated_at=now,
    )
    day.summary = compute_summary(day)
    return day


def _touch(day: Day, now: datetime) -> Day:
    day.updated_at = now
    day.summary = compute_summary(day)
    return day


def merge_visit(day: Day, record: SiteVisitRecord, now: datetime) -> Day:
    """
    Add one site visit record to a day and return the updated copy.

    An existing entry for the domain accumulates time, visits and the
    session; otherwise a new entry is created, classified from the domain
    when the record carries no category.
    """
    validate_record(record)

    domain = normalize_domain(record.domain)
    time_spent = record.time_spent_ms if record.time_spent_ms is not None else 0
    visits = record.visits if record.visits is not None else DEFAULT_VISITS

    merged = day.model_copy(deep=True)
    existing = next((site for site in merged.sites if site.domain == domain), None)

    if existing is not None:
        existing.time_spent_ms += time_spent
        existing.visits += visits
        existing.last_visit = now
        if record.session is not None:
            existing.sessions.append(record.session.model_copy())
    else:
        category = parse_category(record.category) or classify(domain)
        score = record.productivity_score
        merged.sites.append(SiteEntry(
            domain=domain,
            time_spent_ms=time_spent,
            visits=visits,
            category=category,
            productivity_score=DEFAULT_SITE_SCORE if score is None else score,
            sessions=[record.session.model_copy()] if record.session is not None else [],
            first_visit=now,
            last_visit=now,
        ))

    logger.debug("Merged %sms on %s into %s/%s", time_spent, domain, day.user_id, day.date_key)
    return _touch(merged, now)


def add_focus_session(day: Day, session: FocusSession, now: datetime) -> Day:
    if session.duration_ms < 0:
        raise ValidationError("Focus session duration cannot be negative", field="duration_ms")
    if session.blocked_attempts < 0:
        raise ValidationError("Blocked attempts cannot be negative", field="blocked_attempts")
    if session.end_time < session.start_time:
        raise ValidationError("Focus session must end after it starts", field="end_time")

    updated = day.model_copy(deep=True)
    updated.focus_sessions.append(session.model_copy())
    return _touch(updated, now)


def add_blocked_attempt(
    day: Day,
    domain: str,
    now: datetime,
    overridden: bool = False,
    timestamp: Optional[datetime] = None,
) -> Day:
    attempt = BlockedAttempt(
        domain=normalize_domain(domain),
        timestamp=timestamp or now,
        overridden=overridden,
    )

    updated = day.model_copy(deep=True)
    updated.blocked_attempts.append(attempt)
    return _touch(updated, now)
