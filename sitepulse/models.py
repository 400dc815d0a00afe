"""
SQLAlchemy Models
Persisted tracking days and blocked site lists
"""

from datetime import datetime, timezone
from sqlalchemy import JSON, BigInteger, DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from sitepulse.database import Base


# ============================================================
# TRACKING DAY MODEL
# ============================================================

class TrackingDay(Base):
    """One user's tracking data for one calendar date, stored as a JSON document"""
    __tablename__ = "tracking_days"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    date_key: Mapped[str] = mapped_column(String(10), nullable=False)  # YYYY-MM-DD

    # Full Day document: sites, sessions, focus sessions, blocked attempts, summary
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)

    # Denormalized for sorting and range queries
    total_time_spent_ms: Mapped[int] = mapped_column(BigInteger, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        UniqueConstraint("user_id", "date_key", name="uq_tracking_day_user_date"),
        Index("ix_tracking_day_user_date", "user_id", "date_key"),
    )


# ============================================================
# BLOCKED SITE LIST MODEL
# ============================================================

class BlockedSiteList(Base):
    """A user's blocked domains, stored as one JSON list per user"""
    __tablename__ = "blocked_site_lists"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, unique=True, index=True)
    sites: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )
