"""Bearer tokens identifying the athlete whose training log is accessed.

Only the ``sub`` claim (the user id that scopes every session query) is
read back. Issuing tokens at login is handled by the accounts service; this
module signs tokens for it and for tests.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from loguru import logger

from app.config.settings import settings

TOKEN_ISSUER = "training-log-api"


def create_access_token(user_id: str, expires_in: timedelta | None = None) -> str:
    """Sign a token for ``user_id``.

    Raises:
        ValueError: If user_id is empty
    """
    if not user_id:
        raise ValueError("user_id cannot be empty")

    issued_at = datetime.now(timezone.utc)
    lifetime = expires_in or timedelta(days=settings.auth_token_expire_days)
    claims = {"sub": str(user_id), "iat": issued_at, "exp": issued_at + lifetime, "iss": TOKEN_ISSUER}
    return jwt.encode(claims, settings.auth_secret_key, algorithm=settings.auth_algorithm)


def decode_access_token(token: str) -> str:
    """Verify ``token`` and return the user id it was issued for.

    Raises:
        ValueError: If the signature, expiry or issuer is wrong, or ``sub`` is missing
    """
    try:
        claims = jwt.decode(
            token,
            settings.auth_secret_key,
            algorithms=[settings.auth_algorithm],
            issuer=TOKEN_ISSUER,
        )
    except JWTError as e:
        logger.warning(f"[AUTH] Rejected token: {e}")
        raise ValueError("Invalid or expired token") from e

    user_id = claims.get("sub")
    if not user_id:
        raise ValueError("Token missing user ID")
    return str(user_id)
