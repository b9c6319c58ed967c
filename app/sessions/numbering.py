"""Session numbering recomputation.

``SessionNumberingService`` is the only writer of ``session_number`` and
``week`` on both collections. After any mutation that can change the order
of dated sessions it recomputes the whole history of one user:

1. Dated sessions (realized by ``date``, planned by ``planned_date``) are
   grouped by Monday-aligned calendar week. Week groups are numbered
   1, 2, 3... in chronological order; this is a training week relative to
   the user's first dated week, not the ISO week of year.
2. A single counter walks the week groups in order, numbering sessions by
   date ascending (ties by creation order).
3. Planned sessions without a date take the remaining numbers in their
   existing relative order, with ``week = None``.
4. Plan sessions superseded by a workout are not part of the timeline and
   mirror the number and week of the workout that completed them.

The computed assignment is diffed against stored values and only changed
rows are written, in one batched UPDATE per table inside the caller's
transaction. A second run with no intervening mutation writes nothing.

On PostgreSQL the read-compute-write runs under a transaction-scoped
advisory lock keyed by user, so concurrent renumberings of the same user
are serialized while other users are never blocked. SQLite serializes
writers at the database level.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from loguru import logger
from sqlalchemy import func, select, text, update
from sqlalchemy.orm import Session

from app.config.settings import settings
from app.db.models import PlanSession, Workout
from app.sessions.errors import NumberingInvariantError
from app.sessions.models import SessionKind
from app.utils.calendar import group_by_week

_ADVISORY_LOCK_SQL = text("SELECT pg_advisory_xact_lock(hashtext(:lock_key))")


@dataclass(frozen=True)
class NumberingEntry:
    """Minimal view of one session for numbering."""

    id: str
    kind: SessionKind
    date: datetime | None
    created_at: datetime | None
    session_number: int | None
    week: int | None
    superseded_by: str | None = None


@dataclass(frozen=True)
class Assignment:
    session_number: int
    week: int | None


AssignmentMap = dict[tuple[SessionKind, str], Assignment]


def _dated_sort_key(entry: NumberingEntry) -> tuple:
    return (entry.date, entry.created_at or datetime.min, entry.kind.value, entry.id)


def _undated_sort_key(entry: NumberingEntry) -> tuple:
    return (
        entry.session_number is None,
        entry.session_number or 0,
        entry.created_at or datetime.min,
        entry.id,
    )


def compute_assignment(entries: list[NumberingEntry]) -> AssignmentMap:
    """Compute the numbering of a user's timeline.

    Pure function: ``entries`` must only contain timeline sessions (no
    superseded plan sessions).

    Returns:
        Mapping of (kind, id) to the session's number and week
    """
    dated = [entry for entry in entries if entry.date is not None]
    undated = [entry for entry in entries if entry.date is None]

    assignment: AssignmentMap = {}
    number = 1
    for week_index, week in enumerate(group_by_week(dated, lambda entry: entry.date), start=1):
        for entry in sorted(week, key=_dated_sort_key):
            assignment[(entry.kind, entry.id)] = Assignment(session_number=number, week=week_index)
            number += 1

    for entry in sorted(undated, key=_undated_sort_key):
        assignment[(entry.kind, entry.id)] = Assignment(session_number=number, week=None)
        number += 1

    return assignment


def assert_dense(user_id: str, assignment: AssignmentMap) -> None:
    """Check that assigned numbers form exactly 1..N.

    Raises:
        NumberingInvariantError: On gaps or duplicates
    """
    numbers = sorted(a.session_number for a in assignment.values())
    if numbers != list(range(1, len(numbers) + 1)):
        raise NumberingInvariantError(user_id, f"expected 1..{len(numbers)}, got {numbers}")


class SessionNumberingService:
    """Recomputes session numbers and training weeks for one user at a time."""

    def __init__(self, session: Session, lock_enabled: bool | None = None):
        self.session = session
        self.lock_enabled = settings.numbering_lock_enabled if lock_enabled is None else lock_enabled

    def _acquire_user_lock(self, user_id: str) -> None:
        if not self.lock_enabled:
            return
        if self.session.get_bind().dialect.name != "postgresql":
            return
        self.session.execute(_ADVISORY_LOCK_SQL, {"lock_key": f"session-numbering:{user_id}"})

    def load_entries(self, user_id: str) -> list[NumberingEntry]:
        """Load every session of a user (both kinds) with the fields numbering needs."""
        workouts = self.session.execute(
            select(
                Workout.id,
                Workout.date,
                Workout.created_at,
                Workout.session_number,
                Workout.week,
            ).where(Workout.user_id == user_id)
        ).all()

        plans = self.session.execute(
            select(
                PlanSession.id,
                PlanSession.planned_date,
                PlanSession.created_at,
                PlanSession.session_number,
                PlanSession.week,
                Workout.id.label("superseded_by"),
            )
            .outerjoin(Workout, Workout.plan_session_id == PlanSession.id)
            .where(PlanSession.user_id == user_id)
        ).all()

        entries = [
            NumberingEntry(
                id=row.id,
                kind=SessionKind.REALIZED,
                date=row.date,
                created_at=row.created_at,
                session_number=row.session_number,
                week=row.week,
            )
            for row in workouts
        ]
        entries.extend(
            NumberingEntry(
                id=row.id,
                kind=SessionKind.PLANNED,
                date=row.planned_date,
                created_at=row.created_at,
                session_number=row.session_number,
                week=row.week,
                superseded_by=row.superseded_by,
            )
            for row in plans
        )
        return entries

    def recalculate(self, user_id: str) -> int:
        """Renumber a user's whole history.

        Idempotent. Runs inside the caller's transaction; store errors
        propagate and the caller's rollback leaves the previous numbering
        intact.

        Returns:
            Number of rows whose number or week changed
        """
        self._acquire_user_lock(user_id)

        entries = self.load_entries(user_id)
        timeline = [e for e in entries if e.superseded_by is None]
        assignment = compute_assignment(timeline)
        assert_dense(user_id, assignment)

        # Superseded plans mirror the workout that completed them
        for entry in entries:
            if entry.superseded_by is not None:
                completed = assignment.get((SessionKind.REALIZED, entry.superseded_by))
                if completed is not None:
                    assignment[(entry.kind, entry.id)] = completed

        workout_updates: list[dict] = []
        plan_updates: list[dict] = []
        for entry in entries:
            target = assignment.get((entry.kind, entry.id))
            if target is None:
                continue
            if entry.session_number == target.session_number and entry.week == target.week:
                continue
            row = {"id": entry.id, "session_number": target.session_number, "week": target.week}
            if entry.kind == SessionKind.REALIZED:
                workout_updates.append(row)
            else:
                plan_updates.append(row)

        if workout_updates:
            self.session.execute(update(Workout), workout_updates)
        if plan_updates:
            self.session.execute(update(PlanSession), plan_updates)
        if workout_updates or plan_updates:
            # Bulk UPDATE by primary key does not refresh loaded instances
            self.session.expire_all()

        changed = len(workout_updates) + len(plan_updates)
        if changed:
            logger.bind(user_id=user_id).info(
                f"[NUMBERING] Renumbered user_id={user_id}: sessions={len(timeline)} "
                f"workouts_changed={len(workout_updates)} plans_changed={len(plan_updates)}"
            )
        else:
            logger.debug(f"[NUMBERING] No numbering changes for user_id={user_id}")
        return changed

    def max_session_number(self, user_id: str) -> int:
        """Highest stored session number across both collections (0 when empty)."""
        workout_max = self.session.execute(
            select(func.max(Workout.session_number)).where(Workout.user_id == user_id)
        ).scalar_one()
        plan_max = self.session.execute(
            select(func.max(PlanSession.session_number)).where(PlanSession.user_id == user_id)
        ).scalar_one()
        return max(workout_max or 0, plan_max or 0)
