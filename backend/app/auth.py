"""
PlantLog Backend — Session Context
====================================

What:  Per-request caller identity derived from the bearer token.
How:   The identity provider signs access tokens (HS256) with a shared secret.
       `require_session` verifies the signature, expiry and audience and
       returns an explicit SessionContext that routes pass on to services.
Who:   Every /api route depends on `require_session`.

Token claims used:
    sub    identity id, matched against researcher.auth_id
    email  optional, copied into the context
    role   "service_role" marks an administrator (server-side callers)
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt

from app.config import settings
from app.exceptions import AuthenticationError, AuthorizationError

logger = logging.getLogger(__name__)

ADMIN_ROLES = frozenset({"service_role", "admin"})

# auto_error=False: a missing header becomes our 401 envelope, not FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class SessionContext:
    """The authenticated caller of one request."""

    auth_id: str
    email: Optional[str] = None
    role: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


def decode_access_token(token: str) -> SessionContext:
    """
    Verify a bearer token and build the session from its claims.

    Raises:
        AuthenticationError: secret not configured, bad signature, expired,
                             wrong audience, or no `sub` claim
    """
    if not settings.auth_jwt_secret:
        logger.error("AUTH_JWT_SECRET is not set; rejecting all bearer tokens")
        raise AuthenticationError("Authentication is not configured")

    try:
        claims = jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=[settings.auth_jwt_algorithm],
            audience=settings.auth_jwt_audience,
        )
    except ExpiredSignatureError:
        raise AuthenticationError("Session expired, please sign in again")
    except JWTError as e:
        logger.info("Rejected bearer token: %s", str(e))
        raise AuthenticationError("Invalid authentication token")

    subject = claims.get("sub")
    if not subject:
        raise AuthenticationError("Invalid authentication token")
    return SessionContext(
        auth_id=str(subject),
        email=claims.get("email"),
        role=claims.get("role"),
    )


async def require_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> SessionContext:
    """FastAPI dependency: 401 unless a valid bearer token is present."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError()
    return decode_access_token(credentials.credentials)


def ensure_can_modify_researcher(session: SessionContext, researcher: Any) -> None:
    """
    A researcher row linked to an identity may only be changed by that
    identity or an administrator. Unlinked rows are open to any signed-in user.
    """
    owner = getattr(researcher, "auth_id", None)
    if owner is None or session.is_admin or owner == session.auth_id:
        return
    raise AuthorizationError(
        "You can only modify your own researcher profile",
        context={"researcher_id": str(getattr(researcher, "researcher_id", ""))},
    )
