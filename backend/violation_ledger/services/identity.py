"""Acting-user identity resolved from identity provider tokens.

The identity provider issues signed bearer tokens whose ``sub`` claim is the
user id and whose ``role`` claim is one of guard, bpso or admin. This module
only verifies tokens and turns them into an ``Actor``; the actor is then
passed explicitly into every service call that needs one.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from violation_ledger.config import Settings, get_settings
from violation_ledger.core.errors import NotAuthenticatedError
from violation_ledger.models.enums import UserRole

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Actor:
    """The authenticated user performing an operation."""
    uid: str
    role: UserRole = UserRole.UNRECOGNIZED


def parse_role(claim: Any) -> UserRole:
    """Map a raw role claim to a UserRole; anything unknown is UNRECOGNIZED."""
    if isinstance(claim, str):
        try:
            role = UserRole(claim.strip().lower())
        except ValueError:
            return UserRole.UNRECOGNIZED
        return role
    return UserRole.UNRECOGNIZED


def decode_actor(token: str, settings: Optional[Settings] = None) -> Actor:
    """Verify a bearer token and build the Actor it identifies.

    Raises:
        NotAuthenticatedError: If the token is invalid, expired, or has no subject.
    """
    settings = settings or get_settings()
    try:
        claims = jwt.decode(token, settings.auth_secret_key, algorithms=[settings.auth_algorithm])
    except JWTError as e:
        logger.warning(f"Rejected bearer token: {e}")
        raise NotAuthenticatedError("Invalid authentication token") from e

    uid = claims.get("sub")
    if not uid:
        raise NotAuthenticatedError("Authentication token has no subject")

    return Actor(uid=str(uid), role=parse_role(claims.get("role")))


def issue_token(
    uid: str,
    role: UserRole,
    settings: Optional[Settings] = None,
    expires_minutes: Optional[int] = None,
) -> str:
    """Sign a token the way the identity provider does. Used by tests and the demo seed."""
    settings = settings or get_settings()
    minutes = expires_minutes if expires_minutes is not None else settings.access_token_expire_minutes
    expire = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    claims = {"sub": uid, "role": role.value, "exp": expire}
    return jwt.encode(claims, settings.auth_secret_key, algorithm=settings.auth_algorithm)


async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[Actor]:
    """FastAPI dependency: the caller's Actor, or None when no token was sent.

    Operations that require an actor reject None themselves.
    """
    if credentials is None:
        return None
    return decode_actor(credentials.credentials)
