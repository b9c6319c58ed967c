"""Hydration of session references into full unified records.

Given an ordered page of (id, kind) references, loads realized ids in one
query and planned ids in another, maps both into ``UnifiedSession`` and
re-projects the result onto the input order. References that no longer
resolve (deleted between planning and hydration) are dropped.
"""

from __future__ import annotations

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db.models import PlanSession, Workout
from app.sessions.models import SessionKind, SessionRef, SessionStatus, UnifiedSession


def map_workout_to_session(workout: Workout, plan: PlanSession | None = None) -> UnifiedSession:
    """Map a workout (and the plan it completed, if any) to a unified session.

    The completed plan contributes its planned date and targets so the
    realized session can be compared against what was planned.
    """
    return UnifiedSession(
        id=workout.id,
        user_id=workout.user_id,
        kind=SessionKind.REALIZED,
        status=SessionStatus.COMPLETED,
        session_number=workout.session_number,
        week=workout.week,
        date=workout.date,
        planned_date=plan.planned_date if plan else None,
        session_type=workout.session_type or (plan.session_type if plan else "") or "",
        comments=workout.comments or (plan.comments if plan else "") or "",
        duration_seconds=workout.duration_seconds,
        distance_meters=workout.distance_meters,
        avg_pace=workout.avg_pace,
        avg_heart_rate=workout.avg_heart_rate,
        perceived_exertion=workout.perceived_exertion,
        elevation_gain=workout.elevation_gain,
        average_cadence=workout.average_cadence,
        calories=workout.calories,
        target_duration=plan.target_duration if plan else None,
        target_distance=plan.target_distance if plan else None,
        target_pace=plan.target_pace if plan else None,
        target_heart_rate_bpm=plan.target_heart_rate_bpm if plan else None,
        target_rpe=plan.target_rpe if plan else None,
        interval_details=plan.interval_details if plan else None,
        recommendation_id=plan.recommendation_id if plan else None,
        plan_session_id=workout.plan_session_id,
        source=workout.source,
        external_id=workout.external_id,
        created_at=workout.created_at,
    )


def map_plan_to_session(plan: PlanSession, planned_date_as_date: bool = False) -> UnifiedSession:
    """Map a not-yet-completed plan session to a unified session.

    Args:
        plan: Plan session row (must not be superseded by a workout)
        planned_date_as_date: Expose the planned date as the session date
    """
    return UnifiedSession(
        id=plan.id,
        user_id=plan.user_id,
        kind=SessionKind.PLANNED,
        status=SessionStatus.PLANNED,
        session_number=plan.session_number,
        week=plan.week,
        date=plan.planned_date if planned_date_as_date else None,
        planned_date=plan.planned_date,
        session_type=plan.session_type or "",
        comments=plan.comments or "",
        target_duration=plan.target_duration,
        target_distance=plan.target_distance,
        target_pace=plan.target_pace,
        target_heart_rate_bpm=plan.target_heart_rate_bpm,
        target_rpe=plan.target_rpe,
        interval_details=plan.interval_details,
        recommendation_id=plan.recommendation_id,
        created_at=plan.created_at,
    )


def _load_workouts(session: Session, user_id: str, ids: list[str]) -> dict[str, UnifiedSession]:
    if not ids:
        return {}
    rows = session.execute(
        select(Workout, PlanSession)
        .outerjoin(PlanSession, PlanSession.id == Workout.plan_session_id)
        .where(Workout.user_id == user_id, Workout.id.in_(ids))
    ).all()
    return {workout.id: map_workout_to_session(workout, plan) for workout, plan in rows}


def _load_plans(
    session: Session,
    user_id: str,
    ids: list[str],
    planned_date_as_date: bool,
) -> dict[str, UnifiedSession]:
    if not ids:
        return {}
    plans = session.execute(
        select(PlanSession).where(PlanSession.user_id == user_id, PlanSession.id.in_(ids))
    ).scalars()
    return {plan.id: map_plan_to_session(plan, planned_date_as_date) for plan in plans}


def hydrate(
    session: Session,
    refs: list[SessionRef],
    user_id: str,
    planned_date_as_date: bool = False,
) -> list[UnifiedSession]:
    """Load full records for an ordered page of references.

    Args:
        session: Database session
        refs: Ordered references from the query planner
        user_id: Owner; both fetches are scoped to it
        planned_date_as_date: Expose planned dates as dates on planned sessions

    Returns:
        Unified sessions in the exact order of ``refs``, minus unresolved ids
    """
    if not refs:
        return []

    realized_ids = [ref.id for ref in refs if ref.kind == SessionKind.REALIZED]
    planned_ids = [ref.id for ref in refs if ref.kind == SessionKind.PLANNED]

    by_kind = {
        SessionKind.REALIZED: _load_workouts(session, user_id, realized_ids),
        SessionKind.PLANNED: _load_plans(session, user_id, planned_ids, planned_date_as_date),
    }

    result: list[UnifiedSession] = []
    for ref in refs:
        record = by_kind[ref.kind].get(ref.id)
        if record is not None:
            result.append(record)

    dropped = len(refs) - len(result)
    if dropped:
        logger.debug(f"[HYDRATE] Dropped {dropped} unresolved references for user_id={user_id}")
    return result
