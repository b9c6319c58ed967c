"""Resolve the owner of a sessions request from its bearer token."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from loguru import logger

from app.core.auth_jwt import decode_access_token

SESSION_COOKIE = "session"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user_id(request: Request, token: str | None = Depends(oauth2_scheme)) -> str:
    """Return the user id every session query is scoped to.

    API clients send ``Authorization: Bearer``; the web app sends the same
    token in the ``session`` cookie.

    Raises:
        HTTPException: 401 if no token is present or it does not verify
    """
    auth_token = token or request.cookies.get(SESSION_COOKIE)
    if not auth_token:
        logger.info(f"[AUTH] No token on {request.method} {request.url.path}")
        raise _unauthorized("Not authenticated")

    try:
        return decode_access_token(auth_token)
    except ValueError as e:
        logger.warning(f"[AUTH] {e} on {request.method} {request.url.path}")
        raise _unauthorized("Invalid authentication credentials") from e
