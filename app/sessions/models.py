"""Unified session types.

Realized workouts and planned sessions live in two different tables with
different field sets. Every read path maps both into ``UnifiedSession``, a
tagged record whose ``kind`` says which field set is authoritative.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from app.utils.duration import parse_duration
from app.utils.heart_rate import parse_hr_value


class SessionKind(StrEnum):
    """Which underlying collection a session comes from."""

    REALIZED = "realized"
    PLANNED = "planned"


class SessionStatus(StrEnum):
    """Lifecycle status exposed to callers."""

    COMPLETED = "completed"
    PLANNED = "planned"


class StatusFilter(StrEnum):
    """Restricts a listing to one side of the union."""

    ALL = "all"
    COMPLETED = "completed"
    PLANNED = "planned"


@dataclass(frozen=True)
class SessionRef:
    """Lightweight reference returned by the query planner."""

    id: str
    kind: SessionKind


@dataclass(frozen=True)
class SessionFilters:
    """Filters applied identically to both collections.

    Attributes:
        session_type: Exact session type match ("all" or None disables it)
        search: Case-insensitive substring over session type and comments
        date_from: Minimum date; only applies to dated (realized) records
        status: Restrict to completed or planned sessions
        planned_date_as_date: Expose a planned session's planned date as its
            date, for sorting and display
    """

    session_type: str | None = None
    search: str | None = None
    date_from: datetime | None = None
    status: StatusFilter = StatusFilter.ALL
    planned_date_as_date: bool = False

    @property
    def normalized_session_type(self) -> str | None:
        if not self.session_type or self.session_type == "all":
            return None
        return self.session_type

    @property
    def normalized_search(self) -> str | None:
        if not self.search or not self.search.strip():
            return None
        return self.search.strip()

    @property
    def include_realized(self) -> bool:
        return self.status in (StatusFilter.ALL, StatusFilter.COMPLETED)

    @property
    def include_planned(self) -> bool:
        return self.status in (StatusFilter.ALL, StatusFilter.PLANNED)


@dataclass
class UnifiedSession:
    """One entry of the unified training timeline.

    Realized-only metrics are None on planned sessions and planned targets
    are None on realized sessions, except that a realized session completing
    a plan carries that plan's targets for comparison.
    """

    id: str
    user_id: str
    kind: SessionKind
    status: SessionStatus
    session_number: int | None
    week: int | None
    date: datetime | None
    planned_date: datetime | None
    session_type: str
    comments: str = ""

    # Realized metrics
    duration_seconds: int | None = None
    distance_meters: float | None = None
    avg_pace: str | None = None
    avg_heart_rate: int | None = None
    perceived_exertion: int | None = None
    elevation_gain: float | None = None
    average_cadence: float | None = None
    calories: int | None = None

    # Planned targets
    target_duration: int | None = None
    target_distance: float | None = None
    target_pace: str | None = None
    target_heart_rate_bpm: str | None = None
    target_rpe: int | None = None
    interval_details: dict | None = None
    recommendation_id: str | None = None

    # Links and provenance
    plan_session_id: str | None = None
    source: str | None = None
    external_id: str | None = None
    created_at: datetime | None = field(default=None, compare=False)

    @property
    def is_planned(self) -> bool:
        return self.status == SessionStatus.PLANNED

    @property
    def avg_pace_seconds(self) -> int | None:
        return parse_duration(self.avg_pace)

    @property
    def target_pace_seconds(self) -> int | None:
        return parse_duration(self.target_pace)

    @property
    def target_heart_rate_value(self) -> float | None:
        return parse_hr_value(self.target_heart_rate_bpm)

    @property
    def ref(self) -> SessionRef:
        return SessionRef(id=self.id, kind=self.kind)


@dataclass
class SessionPage:
    """A page of the unified listing."""

    items: list[UnifiedSession]
    total: int
    next_offset: int | None = None
