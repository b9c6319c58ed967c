"""API contract schemas for the sessions endpoints.

Field names are camelCase on the wire and snake_case in Python. Request
models convert API units (``duration`` as ``HH:MM:SS``, distances in km) to
storage units through ``to_values``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.sessions.models import SessionKind, SessionStatus, UnifiedSession
from app.utils.duration import format_duration, parse_duration
from app.utils.timezone import to_naive_utc


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


def _validate_duration_text(value: str | None) -> str | None:
    if value is None or value == "":
        return None
    if parse_duration(value) is None:
        raise ValueError("must be MM:SS or HH:MM:SS")
    return value


# ============================================================================
# Responses
# ============================================================================


class SessionResponse(_CamelModel):
    """One entry of the unified session timeline."""

    id: str = Field(description="Session identifier")
    kind: SessionKind = Field(description="realized | planned")
    status: SessionStatus = Field(description="completed | planned")
    session_number: int | None = Field(default=None, alias="sessionNumber")
    week: int | None = Field(default=None, description="Training week, 1 = user's first dated week")
    date: datetime | None = Field(default=None, description="Date performed (completed sessions)")
    planned_date: datetime | None = Field(default=None, alias="plannedDate")
    session_type: str = Field(default="", alias="sessionType")
    comments: str = ""

    duration: str | None = Field(default=None, description="Duration as MM:SS or HH:MM:SS")
    duration_seconds: int | None = Field(default=None, alias="durationSeconds")
    distance: float | None = Field(default=None, description="Distance in km")
    avg_pace: str | None = Field(default=None, alias="avgPace")
    avg_heart_rate: int | None = Field(default=None, alias="avgHeartRate")
    perceived_exertion: int | None = Field(default=None, alias="perceivedExertion")
    elevation_gain: float | None = Field(default=None, alias="elevationGain")
    average_cadence: float | None = Field(default=None, alias="averageCadence")
    calories: int | None = None

    target_duration: int | None = Field(default=None, alias="targetDuration", description="Minutes")
    target_distance: float | None = Field(default=None, alias="targetDistance", description="Kilometers")
    target_pace: str | None = Field(default=None, alias="targetPace")
    target_heart_rate_bpm: str | None = Field(default=None, alias="targetHeartRateBpm")
    target_rpe: int | None = Field(default=None, alias="targetRPE")
    interval_details: dict | None = Field(default=None, alias="intervalDetails")
    recommendation_id: str | None = Field(default=None, alias="recommendationId")

    plan_session_id: str | None = Field(default=None, alias="planSessionId")
    source: str | None = None
    external_id: str | None = Field(default=None, alias="externalId")

    @classmethod
    def from_session(cls, record: UnifiedSession) -> SessionResponse:
        return cls(
            id=record.id,
            kind=record.kind,
            status=record.status,
            session_number=record.session_number,
            week=record.week,
            date=record.date,
            planned_date=record.planned_date,
            session_type=record.session_type,
            comments=record.comments,
            duration=format_duration(record.duration_seconds),
            duration_seconds=record.duration_seconds,
            distance=record.distance_meters / 1000 if record.distance_meters is not None else None,
            avg_pace=record.avg_pace,
            avg_heart_rate=record.avg_heart_rate,
            perceived_exertion=record.perceived_exertion,
            elevation_gain=record.elevation_gain,
            average_cadence=record.average_cadence,
            calories=record.calories,
            target_duration=record.target_duration,
            target_distance=record.target_distance,
            target_pace=record.target_pace,
            target_heart_rate_bpm=record.target_heart_rate_bpm,
            target_rpe=record.target_rpe,
            interval_details=record.interval_details,
            recommendation_id=record.recommendation_id,
            plan_session_id=record.plan_session_id,
            source=record.source,
            external_id=record.external_id,
        )


class SessionListResponse(_CamelModel):
    """Response for GET /sessions."""

    sessions: list[SessionResponse]
    total: int = Field(description="Number of sessions matching the filters")
    next_offset: int | None = Field(default=None, alias="nextOffset")


class SessionTypesResponse(_CamelModel):
    """Response for GET /sessions/types."""

    types: list[str]


class BulkPlannedSessionsResponse(_CamelModel):
    """Response for POST /sessions/planned/bulk."""

    sessions: list[SessionResponse]
    count: int


class BulkDeleteResponse(_CamelModel):
    deleted: int


# ============================================================================
# Requests
# ============================================================================


class _RealizedFields(_CamelModel):
    session_type: str | None = Field(default=None, alias="sessionType")
    comments: str | None = None
    duration: str | None = Field(default=None, description="MM:SS or HH:MM:SS")
    distance: float | None = Field(default=None, ge=0, description="Kilometers")
    avg_pace: str | None = Field(default=None, alias="avgPace", description="MM:SS per km")
    avg_heart_rate: int | None = Field(default=None, alias="avgHeartRate", gt=0)
    perceived_exertion: int | None = Field(default=None, alias="perceivedExertion", ge=1, le=10)
    elevation_gain: float | None = Field(default=None, alias="elevationGain")
    average_cadence: float | None = Field(default=None, alias="averageCadence")
    calories: int | None = Field(default=None, ge=0)
    source: str | None = None
    external_id: str | None = Field(default=None, alias="externalId")

    @field_validator("duration", "avg_pace")
    @classmethod
    def _check_duration(cls, value: str | None) -> str | None:
        return _validate_duration_text(value)

    def to_values(self) -> dict[str, Any]:
        """Explicitly set fields, keyed by storage field name in storage units."""
        values = self.model_dump(exclude_unset=True)
        if "date" in values:
            values["date"] = to_naive_utc(values["date"])
        if "duration" in values:
            values["duration_seconds"] = parse_duration(values.pop("duration"))
        if "distance" in values:
            km = values.pop("distance")
            values["distance_meters"] = km * 1000 if km is not None else None
        return values


class CompletedSessionRequest(_RealizedFields):
    """Request for POST /sessions."""

    date: datetime


class CompleteSessionRequest(_RealizedFields):
    """Request for PATCH /sessions/{id}/complete. ``date`` defaults to the planned date."""

    date: datetime | None = None


class PlannedSessionRequest(_CamelModel):
    """Request for POST /sessions/planned."""

    planned_date: datetime | None = Field(default=None, alias="plannedDate")
    session_type: str | None = Field(default=None, alias="sessionType")
    comments: str | None = None
    target_duration: int | None = Field(default=None, alias="targetDuration", ge=0, description="Minutes")
    target_distance: float | None = Field(default=None, alias="targetDistance", ge=0, description="Kilometers")
    target_pace: str | None = Field(default=None, alias="targetPace", description="MM:SS per km")
    target_heart_rate_bpm: str | None = Field(default=None, alias="targetHeartRateBpm")
    target_rpe: int | None = Field(default=None, alias="targetRPE", ge=1, le=10)
    interval_details: dict | None = Field(default=None, alias="intervalDetails")
    recommendation_id: str | None = Field(default=None, alias="recommendationId")

    @field_validator("target_pace")
    @classmethod
    def _check_pace(cls, value: str | None) -> str | None:
        return _validate_duration_text(value)

    def to_values(self) -> dict[str, Any]:
        values = self.model_dump(exclude_unset=True)
        if "planned_date" in values:
            values["planned_date"] = to_naive_utc(values["planned_date"])
        return values


class BulkPlannedSessionsRequest(_CamelModel):
    """Request for POST /sessions/planned/bulk; an empty list is rejected with 400."""

    sessions: list[PlannedSessionRequest]


class UpdateSessionRequest(_RealizedFields, PlannedSessionRequest):
    """Request for PUT /sessions/{id}.

    Carries both field sets; realized fields apply to completed sessions and
    planned fields to planned ones. Only fields present in the body change.
    """

    date: datetime | None = None

    def to_values(self) -> dict[str, Any]:
        values = _RealizedFields.to_values(self)
        if "planned_date" in values:
            values["planned_date"] = to_naive_utc(values["planned_date"])
        return values


class BulkDeleteRequest(_CamelModel):
    """Request for POST /sessions/bulk-delete."""

    ids: list[str] = Field(min_length=1)
