"""Pushdown planning of the unified session listing.

Builds one SQL statement over ``workouts UNION ALL plan_sessions`` that
filters both sides identically, orders by the requested sort config and
paginates, returning only (id, kind) references. Full records are loaded
afterwards by the hydrator.

Per-column sort keys come from ``columns.SORTABLE_COLUMNS``: each side of
the union projects ``sort_<n>`` from its own field with its own unit
transform, so the outer ORDER BY sees one normalized value per row.

Store errors propagate to the caller unchanged.
"""

from __future__ import annotations

from loguru import logger
from sqlalchemy import Select, String, exists, func, literal, null, or_, select, union_all
from sqlalchemy.orm import Session, aliased
from sqlalchemy.sql.elements import ColumnElement

from app.db.models import PlanSession, Workout
from app.sessions.columns import FieldRead, resolve_column
from app.sessions.models import SessionFilters, SessionKind, SessionRef, SessionStatus
from app.sessions.sort_spec import SortConfig

LIKE_ESCAPE = "\\"


def _escape_like(term: str) -> str:
    return term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2).replace("%", f"{LIKE_ESCAPE}%").replace("_", f"{LIKE_ESCAPE}_")


def _read_expr(model: type[Workout] | type[PlanSession], read: FieldRead | None) -> ColumnElement:
    if read is None:
        return null()
    return read.transform.to_sql(getattr(model, read.field))


def _apply_common_filters(
    stmt: Select,
    model: type[Workout] | type[PlanSession],
    filters: SessionFilters,
) -> Select:
    session_type = filters.normalized_session_type
    if session_type:
        stmt = stmt.where(model.session_type == session_type)

    search = filters.normalized_search
    if search:
        pattern = f"%{_escape_like(search)}%"
        stmt = stmt.where(
            or_(
                model.comments.ilike(pattern, escape=LIKE_ESCAPE),
                model.session_type.ilike(pattern, escape=LIKE_ESCAPE),
            )
        )
    return stmt


def _realized_select(user_id: str, filters: SessionFilters, config: SortConfig) -> Select:
    columns: list[ColumnElement] = [
        Workout.id.label("id"),
        literal(SessionKind.REALIZED.value, String).label("kind"),
        literal(SessionStatus.COMPLETED.value, String).label("status"),
        Workout.session_number.label("session_number"),
    ]
    for index, item in enumerate(config):
        semantics = resolve_column(item.column, filters.planned_date_as_date)
        columns.append(_read_expr(Workout, semantics.realized).label(f"sort_{index}"))

    stmt = select(*columns).where(Workout.user_id == user_id)
    stmt = _apply_common_filters(stmt, Workout, filters)
    if filters.date_from is not None:
        stmt = stmt.where(Workout.date >= filters.date_from)
    return stmt


def _planned_select(user_id: str, filters: SessionFilters, config: SortConfig) -> Select:
    completing_workout = aliased(Workout)
    superseded = exists().where(completing_workout.plan_session_id == PlanSession.id)

    columns: list[ColumnElement] = [
        PlanSession.id.label("id"),
        literal(SessionKind.PLANNED.value, String).label("kind"),
        literal(SessionStatus.PLANNED.value, String).label("status"),
        PlanSession.session_number.label("session_number"),
    ]
    for index, item in enumerate(config):
        semantics = resolve_column(item.column, filters.planned_date_as_date)
        columns.append(_read_expr(PlanSession, semantics.planned).label(f"sort_{index}"))

    stmt = select(*columns).where(PlanSession.user_id == user_id, ~superseded)
    return _apply_common_filters(stmt, PlanSession, filters)


def build_union(user_id: str, filters: SessionFilters, config: SortConfig | None = None):
    """Build the filtered union of both collections as a subquery.

    Returns None when the status filter excludes both sides.
    """
    config = config or []
    selects: list[Select] = []
    if filters.include_realized:
        selects.append(_realized_select(user_id, filters, config))
    if filters.include_planned:
        selects.append(_planned_select(user_id, filters, config))

    if not selects:
        return None
    if len(selects) == 1:
        return selects[0].subquery("session_union")
    return union_all(*selects).subquery("session_union")


def build_order_by(union, config: SortConfig, planned_date_as_date: bool = False) -> list[ColumnElement]:
    """Compose the ORDER BY clause for the union subquery.

    Empty config falls back to status desc, session number desc. A final
    (kind, id) key makes the order total so pages never overlap.
    """
    order_by: list[ColumnElement] = []
    if not config:
        order_by.extend(
            [
                union.c.status.desc().nulls_last(),
                union.c.session_number.desc().nulls_last(),
            ]
        )
    else:
        for index, item in enumerate(config):
            semantics = resolve_column(item.column, planned_date_as_date)
            column = union.c[f"sort_{index}"]
            if semantics.effective_direction(item.direction) == "asc":
                order_by.append(column.asc().nulls_last())
            else:
                order_by.append(column.desc().nulls_last())

    order_by.extend([union.c.kind.asc(), union.c.id.asc()])
    return order_by


def plan_session_page(
    session: Session,
    user_id: str,
    filters: SessionFilters,
    config: SortConfig,
    limit: int | None = None,
    offset: int | None = None,
) -> list[SessionRef]:
    """Return one ordered page of session references.

    Args:
        session: Database session
        user_id: Owner of the sessions
        filters: Filters applied to both collections
        config: Parsed sort config (unknown columns already dropped)
        limit: Page size; None or 0 returns every matching reference
        offset: Number of references to skip (only with a limit)

    Returns:
        Ordered list of (id, kind) references
    """
    union = build_union(user_id, filters, config)
    if union is None:
        return []

    stmt = select(union.c.id, union.c.kind).order_by(*build_order_by(union, config, filters.planned_date_as_date))
    if limit and limit > 0:
        stmt = stmt.limit(limit).offset(max(offset or 0, 0))

    rows = session.execute(stmt).all()
    logger.debug(
        f"[SESSIONS] Planned page user_id={user_id} sort={[(i.column, i.direction) for i in config]} "
        f"limit={limit} offset={offset} rows={len(rows)}"
    )
    return [SessionRef(id=row.id, kind=SessionKind(row.kind)) for row in rows]


def count_sessions(session: Session, user_id: str, filters: SessionFilters) -> int:
    """Count sessions matching the filters, with the same union semantics as the page query."""
    union = build_union(user_id, filters)
    if union is None:
        return 0
    return int(session.execute(select(func.count()).select_from(union)).scalar_one())


def list_session_types(session: Session, user_id: str) -> list[str]:
    """Return the distinct, non-empty session types used by a user, sorted."""
    stmt = union_all(
        select(Workout.session_type.label("session_type")).where(Workout.user_id == user_id),
        select(PlanSession.session_type.label("session_type")).where(PlanSession.user_id == user_id),
    )
    types = {row.session_type for row in session.execute(stmt) if row.session_type}
    return sorted(types)
