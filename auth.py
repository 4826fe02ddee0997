"""
Bearer-token authentication and role checks.

Provides:
 - create_access_token(data, expires_delta=None) -> str
 - decode_access_token(token) -> dict
 - get_current_user: dependency returning the decoded claims
 - require_role(*roles): dependency factory for role-gated routes

Issuance signs whatever payload the caller sends. Nothing checks that the
caller owns the email it claims, so role checks always re-read the stored
user instead of trusting claims.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, Header, HTTPException, status
from jose import JWTError, jwt

import config
from repository import NinjaSchoolRepository, get_repository

logger = logging.getLogger(__name__)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    to_encode = dict(data)
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"iat": now, "exp": expire})
    return jwt.encode(to_encode, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Verify signature and expiry; any failure becomes a 401."""
    try:
        return jwt.decode(
            token,
            config.JWT_SECRET_KEY,
            algorithms=[config.JWT_ALGORITHM],
            # issued payloads are caller-defined; only signature and expiry count
            options={"verify_aud": False, "verify_sub": False},
        )
    except JWTError as e:
        raise _unauthorized(f"Invalid or expired token: {e}")


async def get_current_user(authorization: Optional[str] = Header(None)) -> Dict[str, Any]:
    if not authorization:
        raise _unauthorized("Missing authorization header")
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise _unauthorized("Invalid authorization header format")
    return decode_access_token(parts[1])


def require_role(*roles: str):
    """Build a dependency that lets through only users whose stored role is in ``roles``."""

    def checker(
        current: Dict[str, Any] = Depends(get_current_user),
        repo: NinjaSchoolRepository = Depends(get_repository),
    ) -> Dict[str, Any]:
        email = current.get("email")
        user = repo.get_user_by_email(email) if email else None
        if not user or user.get("role") not in roles:
            logger.warning("Role check failed for %s (need one of %s)", email, ", ".join(roles))
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="forbidden message")
        return current

    return checker


require_admin = require_role("admin")
