"""Write side of the unified session timeline.

Every mutation runs in the caller's transaction and ends with
``on_session_mutated`` so numbering is recomputed before the caller
commits. None of these functions set ``session_number`` or ``week``.

Values are passed as dicts keyed by ORM field name in storage units
(seconds, meters, minutes and kilometers for targets). Unknown keys,
including the numbering fields, are ignored.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from loguru import logger
from sqlalchemy import delete, exists, select
from sqlalchemy.orm import Session

from app.db.models import PlanSession, Workout
from app.sessions.errors import SessionNotFoundError, SessionStateError
from app.sessions.hydrator import hydrate
from app.sessions.models import SessionKind, SessionRef, SessionStatus, UnifiedSession
from app.sessions.read_service import get_session_by_id, on_session_mutated
from app.utils.duration import parse_duration
from app.utils.heart_rate import parse_hr_value

WORKOUT_FIELDS = frozenset(
    {
        "date",
        "session_type",
        "comments",
        "perceived_exertion",
        "duration_seconds",
        "distance_meters",
        "avg_pace",
        "avg_heart_rate",
        "elevation_gain",
        "average_cadence",
        "calories",
        "source",
        "external_id",
    }
)

PLAN_FIELDS = frozenset(
    {
        "planned_date",
        "session_type",
        "comments",
        "target_duration",
        "target_distance",
        "target_pace",
        "target_heart_rate_bpm",
        "target_rpe",
        "interval_details",
        "recommendation_id",
    }
)


def _pick(values: dict[str, Any], allowed: frozenset[str]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if key in allowed}


def _apply_workout_values(workout: Workout, values: dict[str, Any]) -> None:
    for key, value in _pick(values, WORKOUT_FIELDS).items():
        if key in {"session_type", "comments"} and value is None:
            value = ""
        setattr(workout, key, value)
    if "avg_pace" in values:
        workout.avg_pace_seconds = parse_duration(workout.avg_pace)


def _apply_plan_values(plan: PlanSession, values: dict[str, Any]) -> None:
    for key, value in _pick(values, PLAN_FIELDS).items():
        if key in {"session_type", "comments"} and value is None:
            value = ""
        setattr(plan, key, value)
    if "target_pace" in values:
        plan.target_pace_seconds = parse_duration(plan.target_pace)
    if "target_heart_rate_bpm" in values:
        plan.target_heart_rate_value = parse_hr_value(plan.target_heart_rate_bpm)


def _get_workout(session: Session, user_id: str, session_id: str) -> Workout | None:
    return session.execute(
        select(Workout).where(Workout.user_id == user_id, Workout.id == session_id)
    ).scalar_one_or_none()


def _get_open_plan(session: Session, user_id: str, session_id: str) -> PlanSession | None:
    superseded = exists().where(Workout.plan_session_id == PlanSession.id)
    return session.execute(
        select(PlanSession).where(
            PlanSession.user_id == user_id,
            PlanSession.id == session_id,
            ~superseded,
        )
    ).scalar_one_or_none()


def _reload(session: Session, user_id: str, session_id: str) -> UnifiedSession:
    record = get_session_by_id(session, user_id, session_id)
    if record is None:
        raise SessionNotFoundError(session_id)
    return record


def create_completed_session(session: Session, user_id: str, values: dict[str, Any]) -> UnifiedSession:
    """Record a realized session that was not planned beforehand.

    Raises:
        SessionStateError: If no date is given
    """
    if values.get("date") is None:
        raise SessionStateError("A completed session requires a date")

    workout = Workout(user_id=user_id, status=SessionStatus.COMPLETED.value)
    _apply_workout_values(workout, values)
    session.add(workout)
    session.flush()

    on_session_mutated(session, user_id)
    logger.info(f"[SESSIONS] Created completed session id={workout.id} user_id={user_id}")
    return _reload(session, user_id, workout.id)


def create_planned_session(session: Session, user_id: str, values: dict[str, Any]) -> UnifiedSession:
    """Add a planned session, with or without a planned date."""
    plan = PlanSession(user_id=user_id, status=SessionStatus.PLANNED.value)
    _apply_plan_values(plan, values)
    session.add(plan)
    session.flush()

    on_session_mutated(session, user_id)
    logger.info(f"[SESSIONS] Created planned session id={plan.id} user_id={user_id}")
    return _reload(session, user_id, plan.id)


def create_planned_sessions(
    session: Session,
    user_id: str,
    values_list: list[dict[str, Any]],
) -> list[UnifiedSession]:
    """Add a batch of planned sessions (e.g. a generated training block).

    All rows are inserted first and the user is renumbered once, so the
    batch lands in the timeline exactly as single inserts would.

    Returns:
        The created sessions, in input order

    Raises:
        SessionStateError: If ``values_list`` is empty
    """
    if not values_list:
        raise SessionStateError("At least one planned session is required")

    # created_at is the tie-break between undated plans; keep the batch in input order
    created_at = datetime.now(timezone.utc).replace(tzinfo=None)
    plans: list[PlanSession] = []
    for position, values in enumerate(values_list):
        plan = PlanSession(
            user_id=user_id,
            status=SessionStatus.PLANNED.value,
            created_at=created_at + timedelta(microseconds=position),
        )
        _apply_plan_values(plan, values)
        plans.append(plan)
    session.add_all(plans)
    session.flush()
    refs = [SessionRef(id=plan.id, kind=SessionKind.PLANNED) for plan in plans]

    on_session_mutated(session, user_id)
    logger.bind(user_id=user_id).info(f"[SESSIONS] Created {len(plans)} planned sessions user_id={user_id}")
    return hydrate(session, refs, user_id)


def complete_planned_session(
    session: Session,
    user_id: str,
    plan_id: str,
    values: dict[str, Any],
) -> UnifiedSession:
    """Turn a planned session into a realized one.

    The workout reuses the plan's id and back-references it, so the session
    keeps its identity; the plan is kept (status ``completed``) for its
    targets and drops out of listings.

    Args:
        session: Database session
        user_id: Owner of the plan
        plan_id: Planned session to complete
        values: Realized metrics; ``date`` defaults to the planned date

    Raises:
        SessionNotFoundError: If the user has no open plan with this id
        SessionStateError: If the plan has no date and none is given
    """
    plan = _get_open_plan(session, user_id, plan_id)
    if plan is None:
        if _get_workout(session, user_id, plan_id) is not None:
            raise SessionStateError(f"Session {plan_id} is already completed")
        raise SessionNotFoundError(plan_id)

    performed_on: datetime | None = values.get("date") or plan.planned_date
    if performed_on is None:
        raise SessionStateError("A completed session requires a date")

    workout = Workout(
        id=plan.id,
        user_id=user_id,
        plan_session_id=plan.id,
        status=SessionStatus.COMPLETED.value,
        session_type=plan.session_type or "",
        comments=plan.comments or "",
    )
    _apply_workout_values(workout, {key: value for key, value in values.items() if value is not None})
    workout.date = performed_on
    plan.status = SessionStatus.COMPLETED.value
    session.add(workout)
    session.flush()

    on_session_mutated(session, user_id)
    logger.info(f"[SESSIONS] Completed planned session id={plan.id} user_id={user_id}")
    return _reload(session, user_id, workout.id)


def update_session(
    session: Session,
    user_id: str,
    session_id: str,
    values: dict[str, Any],
) -> UnifiedSession:
    """Update a realized or planned session in place.

    Only keys present in ``values`` are written; the session is renumbered
    afterwards in case its date moved.

    Raises:
        SessionNotFoundError: If the user owns no such session
        SessionStateError: If the update would clear a realized session's date
    """
    workout = _get_workout(session, user_id, session_id)
    if workout is not None:
        if "date" in values and values["date"] is None:
            raise SessionStateError("A completed session requires a date")
        _apply_workout_values(workout, values)
    else:
        plan = _get_open_plan(session, user_id, session_id)
        if plan is None:
            raise SessionNotFoundError(session_id)
        _apply_plan_values(plan, values)

    session.flush()
    on_session_mutated(session, user_id)
    logger.info(f"[SESSIONS] Updated session id={session_id} user_id={user_id} fields={sorted(values)}")
    return _reload(session, user_id, session_id)


def delete_session(session: Session, user_id: str, session_id: str) -> None:
    """Delete a session from both collections.

    A completed plan shares its workout's id, so both rows go together.

    Raises:
        SessionNotFoundError: If neither collection holds the id for this user
    """
    deleted = delete_sessions(session, user_id, [session_id])
    if not deleted:
        raise SessionNotFoundError(session_id)


def delete_sessions(session: Session, user_id: str, session_ids: list[str]) -> int:
    """Delete several sessions at once and renumber once.

    Ids the user does not own are ignored.

    Returns:
        Number of rows deleted across both collections
    """
    if not session_ids:
        return 0

    ids = list(dict.fromkeys(session_ids))
    workouts_deleted = session.execute(
        delete(Workout).where(Workout.user_id == user_id, Workout.id.in_(ids))
    ).rowcount
    plans_deleted = session.execute(
        delete(PlanSession).where(PlanSession.user_id == user_id, PlanSession.id.in_(ids))
    ).rowcount
    deleted = (workouts_deleted or 0) + (plans_deleted or 0)

    if deleted:
        on_session_mutated(session, user_id)
    logger.info(
        f"[SESSIONS] Deleted sessions user_id={user_id} requested={len(ids)} "
        f"workouts={workouts_deleted} plans={plans_deleted}"
    )
    return deleted
