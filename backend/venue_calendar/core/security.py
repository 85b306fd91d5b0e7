"""
Bearer-token identity and tenant gate.

Identity and organization membership are owned by an upstream auth service.
Tokens it issues carry the user id in `sub` and the caller's organizations in
`orgs`; this module only verifies them and checks that the org in the URL is
one of them. Nothing here touches the database.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from venue_calendar.core.config import get_settings
from venue_calendar.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    user_id: str
    org_ids: frozenset = field(default_factory=frozenset)

    def belongs_to(self, org_id: str) -> bool:
        return org_id in self.org_ids


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode["exp"] = expire
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Principal:
    credentials_error = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise credentials_error

    user_id = payload.get("sub")
    if not user_id:
        raise credentials_error

    orgs = payload.get("orgs") or []
    return Principal(user_id=str(user_id), org_ids=frozenset(str(o) for o in orgs))


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Principal:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return decode_access_token(credentials.credentials)


async def require_org_access(
    org_id: str,
    principal: Principal = Depends(get_current_principal),
) -> str:
    """Resolve the path's org_id, failing with 403 unless the caller is a member."""
    if not principal.belongs_to(org_id):
        logger.warning("org_access_denied", user_id=principal.user_id, org_id=org_id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden",
        )
    return org_id
