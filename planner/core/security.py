"""Bearer-token identity boundary.

Tokens are issued and verified upstream by the identity provider; this module
only decodes the signed claims into an :class:`Actor`.
"""

from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from planner.core.config import settings
from planner.core.exceptions import unauthorized
from planner.core.permissions import Actor

# JWT bearer scheme
security_scheme = HTTPBearer(auto_error=False)


def create_access_token(
    uid: str,
    role: str,
    teams: Iterable[str] = (),
    email: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a signed identity token (development tooling and tests)."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.JWT_EXPIRY_MINUTES)
    )
    to_encode = {
        "sub": uid,
        "email": email,
        "role": role,
        "teams": list(teams),
        "exp": expire,
        "type": "access",
    }
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT token."""
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise unauthorized("Invalid or expired token")


def actor_from_claims(payload: dict) -> Actor:
    uid = payload.get("sub")
    if not uid:
        raise unauthorized("Invalid token payload")
    return Actor(
        uid=str(uid),
        role=payload.get("role") or "staff",
        teams=list(payload.get("teams") or []),
        email=payload.get("email"),
    )


async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
) -> Actor:
    """Extract the calling actor from the Bearer token."""
    if credentials is None:
        raise unauthorized("Not authenticated")
    return actor_from_claims(decode_token(credentials.credentials))
