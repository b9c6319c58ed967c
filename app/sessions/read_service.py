"""Read side of the unified session timeline.

``list_sessions`` plans one page of references in SQL and hydrates it;
``get_session_by_id`` resolves a single id against both collections.
``on_session_mutated`` is the hook every write path calls before returning.
"""

from __future__ import annotations

from loguru import logger
from sqlalchemy import exists, select
from sqlalchemy.orm import Session

from app.config.settings import settings
from app.db.models import PlanSession, Workout
from app.sessions.hydrator import hydrate, map_plan_to_session, map_workout_to_session
from app.sessions.models import SessionFilters, SessionPage, UnifiedSession
from app.sessions.numbering import SessionNumberingService
from app.sessions.query_planner import count_sessions, list_session_types, plan_session_page
from app.sessions.sort_spec import SortConfig, parse_sort_param


def _clamp_limit(limit: int | None) -> int | None:
    if limit is None or limit <= 0:
        return None
    return min(limit, settings.sessions_max_page_size)


def list_sessions(
    session: Session,
    user_id: str,
    filters: SessionFilters | None = None,
    sort: str | SortConfig | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> SessionPage:
    """List a user's sessions, realized and planned, as one ordered stream.

    Args:
        session: Database session
        user_id: Owner of the sessions
        filters: Type/search/date/status filters (defaults to none)
        sort: Serialized sort string (``col[:dir],...``) or parsed config
        limit: Page size; None or 0 returns the whole filtered set
        offset: Number of sessions to skip

    Returns:
        SessionPage with ``next_offset`` set only when a further page may exist
    """
    filters = filters or SessionFilters()
    config = parse_sort_param(sort) if isinstance(sort, str) or sort is None else sort
    page_size = _clamp_limit(limit)
    offset = max(offset or 0, 0)

    refs = plan_session_page(session, user_id, filters, config, limit=page_size, offset=offset)
    items = hydrate(session, refs, user_id, filters.planned_date_as_date)
    total = count_sessions(session, user_id, filters)

    next_offset = None
    if page_size is not None and offset + page_size < total:
        next_offset = offset + page_size

    logger.debug(
        f"[SESSIONS] Listed user_id={user_id} items={len(items)} total={total} "
        f"offset={offset} next_offset={next_offset}"
    )
    return SessionPage(items=items, total=total, next_offset=next_offset)


def get_session_by_id(session: Session, user_id: str, session_id: str) -> UnifiedSession | None:
    """Resolve one session by id.

    Realized records win over planned ones; a planned session that has
    been completed is only visible through its workout.

    Returns:
        The unified session, or None if the user owns no such session
    """
    row = session.execute(
        select(Workout, PlanSession)
        .outerjoin(PlanSession, PlanSession.id == Workout.plan_session_id)
        .where(Workout.user_id == user_id, Workout.id == session_id)
    ).first()
    if row is not None:
        workout, plan = row
        return map_workout_to_session(workout, plan)

    superseded = exists().where(Workout.plan_session_id == PlanSession.id)
    plan = session.execute(
        select(PlanSession).where(
            PlanSession.user_id == user_id,
            PlanSession.id == session_id,
            ~superseded,
        )
    ).scalar_one_or_none()
    if plan is not None:
        return map_plan_to_session(plan)
    return None


def list_types(session: Session, user_id: str) -> list[str]:
    return list_session_types(session, user_id)


def on_session_mutated(session: Session, user_id: str) -> int:
    """Renumber a user's sessions after a create, update or delete.

    Runs synchronously in the caller's transaction, so the mutation and its
    renumbering commit or roll back together.

    Returns:
        Number of rows whose number or week changed
    """
    return SessionNumberingService(session).recalculate(user_id)
