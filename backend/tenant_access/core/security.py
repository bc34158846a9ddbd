# tenant_access/core/security.py
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import HTTPException, status
from fastapi.security import HTTPBearer
from jose import JWTError, jwt

from tenant_access.core.config import settings

bearer_scheme = HTTPBearer(auto_error=True)


def _unauthorized(detail: str = "Invalid token") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _clean_credentials(raw: Optional[str]) -> str:
    # pasted tokens often arrive quoted or with the scheme still attached
    token = (raw or "").strip().strip("\"'").strip()
    scheme, _, rest = token.partition(" ")
    if rest and scheme.lower() == "bearer":
        token = rest.strip()
    return token


def create_access_token(account_id: uuid.UUID | str, expires_minutes: Optional[int] = None) -> str:
    """
    Sign a bearer token for `account_id`. Sign-in belongs to the identity
    system; this is for operator tooling and tests.
    """
    issued_at = datetime.now(timezone.utc)
    ttl = timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims: dict[str, Any] = {
        "sub": str(account_id),
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + ttl).timestamp()),
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> uuid.UUID:
    """
    Verify signature and expiry; return the account id carried in `sub`.
    Every failure is a 401.
    """
    token = _clean_credentials(token)
    if not token:
        raise _unauthorized()

    try:
        claims = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require_sub": True, "require_exp": True},
        )
    except JWTError:
        raise _unauthorized()

    try:
        return uuid.UUID(str(claims["sub"]))
    except (KeyError, ValueError):
        raise _unauthorized("Invalid token subject")
