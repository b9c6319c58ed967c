from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for all database models."""


class PlanSession(Base):
    """Planned training session (target metrics, not yet performed).

    A plan session is superseded, not deleted, once it is completed: a Workout
    row referencing it through ``plan_session_id`` becomes the authoritative
    record and the plan stops appearing in unified listings.

    Target units:
    - target_duration: minutes
    - target_distance: kilometers
    - target_pace: "MM:SS" per km (target_pace_seconds is derived from it)
    - target_heart_rate_bpm: free text ("150", "150-160", "Z2"); target_heart_rate_value
      is the parsed numeric value used for sorting

    session_number and week are owned by the numbering service.
    """

    __tablename__ = "plan_sessions"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)

    planned_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="planned")  # planned, completed
    session_type: Mapped[str] = mapped_column(String, nullable=False, default="")
    comments: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Numbering (written only by SessionNumberingService)
    session_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    week: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Targets
    target_duration: Mapped[int | None] = mapped_column(Integer, nullable=True)
    target_distance: Mapped[float | None] = mapped_column(Float, nullable=True)
    target_pace: Mapped[str | None] = mapped_column(String, nullable=True)
    target_pace_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    target_heart_rate_bpm: Mapped[str | None] = mapped_column(String, nullable=True)
    target_heart_rate_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    target_rpe: Mapped[int | None] = mapped_column(Integer, nullable=True)

    interval_details: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    recommendation_id: Mapped[str | None] = mapped_column(String, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (Index("idx_plan_sessions_user_planned_date", "user_id", "planned_date"),)


class Workout(Base):
    """Realized training session with measured metrics.

    Units:
    - duration_seconds: seconds
    - distance_meters: meters
    - avg_pace: "MM:SS" per km (avg_pace_seconds is derived from it)
    - avg_heart_rate: bpm
    - perceived_exertion: 1-10

    plan_session_id back-references the plan session this workout completed, if any.
    session_number and week are owned by the numbering service.
    """

    __tablename__ = "workouts"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    plan_session_id: Mapped[str | None] = mapped_column(
        String,
        ForeignKey("plan_sessions.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
        index=True,
    )

    date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="completed")
    session_type: Mapped[str] = mapped_column(String, nullable=False, default="")
    comments: Mapped[str] = mapped_column(Text, nullable=False, default="")
    perceived_exertion: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Numbering (written only by SessionNumberingService)
    session_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    week: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Measured metrics
    duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    distance_meters: Mapped[float | None] = mapped_column(Float, nullable=True)
    avg_pace: Mapped[str | None] = mapped_column(String, nullable=True)
    avg_pace_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    avg_heart_rate: Mapped[int | None] = mapped_column(Integer, nullable=True)
    elevation_gain: Mapped[float | None] = mapped_column(Float, nullable=True)
    average_cadence: Mapped[float | None] = mapped_column(Float, nullable=True)
    calories: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Import provenance
    source: Mapped[str | None] = mapped_column(String, nullable=True)
    external_id: Mapped[str | None] = mapped_column(String, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index("idx_workouts_user_date", "user_id", "date"),  # Common query: user workouts by date
    )
