"""Bearer-session dependency resolving the vault owner for a request."""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from services.session_token import read_session

logger = logging.getLogger(__name__)

auth_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    """Owner resolved from the session token; every resource query is scoped to it."""

    owner_id: str
    email: Optional[str] = None
    expires_at: Optional[int] = None


async def get_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme),
) -> AuthContext:
    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="Missing Bearer session token.")

    try:
        claims = read_session(credentials.credentials)
    except ValueError as exc:
        logger.info("session_rejected reason=%s", exc)
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    return AuthContext(owner_id=claims.owner_id, email=claims.email, expires_at=claims.expires_at)
