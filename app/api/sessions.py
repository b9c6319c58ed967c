"""Sessions API endpoints.

One timeline of realized and planned sessions per user, sortable by any
column with server-side pagination, plus the write operations that keep
session numbering up to date.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from app.api.dependencies.auth import get_current_user_id
from app.api.schemas.sessions import (
    BulkDeleteRequest,
    BulkDeleteResponse,
    BulkPlannedSessionsRequest,
    BulkPlannedSessionsResponse,
    CompletedSessionRequest,
    CompleteSessionRequest,
    PlannedSessionRequest,
    SessionListResponse,
    SessionResponse,
    SessionTypesResponse,
    UpdateSessionRequest,
)
from app.db.session import get_session
from app.sessions.errors import NumberingInvariantError, SessionNotFoundError, SessionStateError
from app.sessions.models import SessionFilters, StatusFilter
from app.sessions.read_service import get_session_by_id, list_sessions, list_types
from app.sessions.write_service import (
    complete_planned_session,
    create_completed_session,
    create_planned_session,
    create_planned_sessions,
    delete_session,
    delete_sessions,
    update_session,
)
from app.utils.timezone import to_naive_utc

router = APIRouter(prefix="/sessions", tags=["sessions"])

READ_FAILED_DETAIL = "Sessions are temporarily unavailable, please retry"
SAVE_FAILED_DETAIL = "Could not save the session"


def _raise_not_found(session_id: str) -> None:
    """Raise HTTPException for session not found."""
    raise HTTPException(status_code=404, detail=f"Session {session_id} not found")


def _raise_save_failed(action: str, user_id: str, e: Exception) -> None:
    logger.exception(f"[SESSIONS] {action} failed for user_id={user_id}: {e!r}")
    raise HTTPException(status_code=500, detail=SAVE_FAILED_DETAIL) from e


@router.get("", response_model=SessionListResponse)
def get_sessions(
    user_id: str = Depends(get_current_user_id),
    session_type: str | None = Query(default=None, alias="type"),
    search: str | None = Query(default=None),
    date_from: datetime | None = Query(default=None, alias="dateFrom"),
    status_filter: StatusFilter = Query(default=StatusFilter.ALL, alias="status"),
    sort: str | None = Query(default=None, description="col[:dir][,col[:dir]]*"),
    limit: int | None = Query(default=None, ge=0),
    offset: int = Query(default=0, ge=0),
    planned_date_as_date: bool = Query(default=False, alias="plannedDateAsDate"),
):
    """List the user's sessions as one ordered, paginated stream.

    Unknown sort columns and directions are ignored. Without a limit (or
    with ``limit=0``) every matching session is returned.

    Raises:
        HTTPException: 503 if the store is unavailable
    """
    filters = SessionFilters(
        session_type=session_type,
        search=search,
        date_from=to_naive_utc(date_from),
        status=status_filter,
        planned_date_as_date=planned_date_as_date,
    )
    try:
        with get_session() as session:
            page = list_sessions(session, user_id, filters, sort, limit, offset)
            return SessionListResponse(
                sessions=[SessionResponse.from_session(item) for item in page.items],
                total=page.total,
                next_offset=page.next_offset,
            )
    except SQLAlchemyError as e:
        logger.exception(f"[SESSIONS] Listing failed for user_id={user_id}: {e!r}")
        raise HTTPException(status_code=503, detail=READ_FAILED_DETAIL) from e


@router.get("/types", response_model=SessionTypesResponse)
def get_session_types(user_id: str = Depends(get_current_user_id)):
    """List the distinct session types the user has used."""
    try:
        with get_session() as session:
            return SessionTypesResponse(types=list_types(session, user_id))
    except SQLAlchemyError as e:
        logger.exception(f"[SESSIONS] Type listing failed for user_id={user_id}: {e!r}")
        raise HTTPException(status_code=503, detail=READ_FAILED_DETAIL) from e


@router.get("/{session_id}", response_model=SessionResponse)
def get_session_detail(session_id: str, user_id: str = Depends(get_current_user_id)):
    """Get one session, realized or planned.

    Raises:
        HTTPException: 404 if the user owns no such session, 503 if the store is unavailable
    """
    try:
        with get_session() as session:
            record = get_session_by_id(session, user_id, session_id)
            if record is None:
                _raise_not_found(session_id)
            return SessionResponse.from_session(record)
    except SQLAlchemyError as e:
        logger.exception(f"[SESSIONS] Lookup of {session_id} failed for user_id={user_id}: {e!r}")
        raise HTTPException(status_code=503, detail=READ_FAILED_DETAIL) from e


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
def post_completed_session(request: CompletedSessionRequest, user_id: str = Depends(get_current_user_id)):
    """Record a completed session."""
    logger.info(f"[SESSIONS] POST /sessions called for user_id={user_id}")
    try:
        with get_session() as session:
            record = create_completed_session(session, user_id, request.to_values())
            return SessionResponse.from_session(record)
    except SessionStateError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except (SQLAlchemyError, NumberingInvariantError) as e:
        _raise_save_failed("Create completed session", user_id, e)


@router.post("/planned", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
def post_planned_session(request: PlannedSessionRequest, user_id: str = Depends(get_current_user_id)):
    """Add a planned session."""
    logger.info(f"[SESSIONS] POST /sessions/planned called for user_id={user_id}")
    try:
        with get_session() as session:
            record = create_planned_session(session, user_id, request.to_values())
            return SessionResponse.from_session(record)
    except (SQLAlchemyError, NumberingInvariantError) as e:
        _raise_save_failed("Create planned session", user_id, e)


@router.post("/planned/bulk", response_model=BulkPlannedSessionsResponse, status_code=status.HTTP_201_CREATED)
def post_planned_sessions_bulk(request: BulkPlannedSessionsRequest, user_id: str = Depends(get_current_user_id)):
    """Add several planned sessions at once, renumbering the user once.

    Raises:
        HTTPException: 400 if the list is empty
    """
    logger.info(f"[SESSIONS] POST /sessions/planned/bulk called for user_id={user_id} count={len(request.sessions)}")
    try:
        with get_session() as session:
            records = create_planned_sessions(session, user_id, [item.to_values() for item in request.sessions])
            return BulkPlannedSessionsResponse(
                sessions=[SessionResponse.from_session(record) for record in records],
                count=len(records),
            )
    except SessionStateError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except (SQLAlchemyError, NumberingInvariantError) as e:
        _raise_save_failed("Bulk create planned sessions", user_id, e)


@router.patch("/{session_id}/complete", response_model=SessionResponse)
def patch_complete_session(
    session_id: str,
    request: CompleteSessionRequest,
    user_id: str = Depends(get_current_user_id),
):
    """Mark a planned session as completed with its realized metrics.

    Raises:
        HTTPException: 404 if no open plan exists, 400 if it is already completed
    """
    logger.info(f"[SESSIONS] PATCH /sessions/{session_id}/complete called for user_id={user_id}")
    try:
        with get_session() as session:
            record = complete_planned_session(session, user_id, session_id, request.to_values())
            return SessionResponse.from_session(record)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=f"Planned session {session_id} not found") from e
    except SessionStateError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except (SQLAlchemyError, NumberingInvariantError) as e:
        _raise_save_failed("Complete planned session", user_id, e)


@router.put("/{session_id}", response_model=SessionResponse)
def put_session(
    session_id: str,
    request: UpdateSessionRequest,
    user_id: str = Depends(get_current_user_id),
):
    """Update a session; only fields present in the body change."""
    logger.info(f"[SESSIONS] PUT /sessions/{session_id} called for user_id={user_id}")
    try:
        with get_session() as session:
            record = update_session(session, user_id, session_id, request.to_values())
            return SessionResponse.from_session(record)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found") from e
    except SessionStateError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except (SQLAlchemyError, NumberingInvariantError) as e:
        _raise_save_failed("Update session", user_id, e)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_session(session_id: str, user_id: str = Depends(get_current_user_id)):
    """Delete a session and renumber the remaining ones."""
    logger.info(f"[SESSIONS] DELETE /sessions/{session_id} called for user_id={user_id}")
    try:
        with get_session() as session:
            delete_session(session, user_id, session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found") from e
    except (SQLAlchemyError, NumberingInvariantError) as e:
        _raise_save_failed("Delete session", user_id, e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/bulk-delete", response_model=BulkDeleteResponse)
def bulk_delete_sessions(request: BulkDeleteRequest, user_id: str = Depends(get_current_user_id)):
    """Delete several sessions at once; ids the user does not own are ignored."""
    logger.info(f"[SESSIONS] POST /sessions/bulk-delete called for user_id={user_id} count={len(request.ids)}")
    try:
        with get_session() as session:
            deleted = delete_sessions(session, user_id, request.ids)
            return BulkDeleteResponse(deleted=deleted)
    except (SQLAlchemyError, NumberingInvariantError) as e:
        _raise_save_failed("Bulk delete", user_id, e)
