"""Vault session tokens, issued once an identity assertion has been verified."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from config import settings

SESSION_TOKEN_TYPE = "vault_session"
SESSION_ISSUER = "knowledge-vault-api"


@dataclass(frozen=True)
class IssuedSession:
    token: str
    owner_id: str
    expires_at: int


@dataclass(frozen=True)
class SessionClaims:
    owner_id: str
    email: Optional[str]
    expires_at: int


def issue_session(
    owner_id: str,
    email: Optional[str] = None,
    ttl_hours: Optional[int] = None,
) -> IssuedSession:
    issued_at = datetime.now(timezone.utc)
    hours = max(int(ttl_hours or settings.JWT_EXPIRATION_HOURS or 24), 1)
    expires_at = int((issued_at + timedelta(hours=hours)).timestamp())
    claims: Dict[str, Any] = {
        "iss": SESSION_ISSUER,
        "sub": owner_id,
        "typ": SESSION_TOKEN_TYPE,
        "iat": int(issued_at.timestamp()),
        "exp": expires_at,
    }
    if email:
        claims["email"] = email
    token = jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return IssuedSession(token=token, owner_id=owner_id, expires_at=expires_at)


def read_session(token: str) -> SessionClaims:
    """Verify signature, expiry, issuer and token type; raises ValueError otherwise."""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            issuer=SESSION_ISSUER,
        )
    except JWTError as exc:
        raise ValueError("Invalid or expired session token.") from exc

    if payload.get("typ") != SESSION_TOKEN_TYPE:
        raise ValueError("Not a vault session token.")
    owner_id = str(payload.get("sub") or "").strip()
    if not owner_id:
        raise ValueError("Session token has no owner.")
    return SessionClaims(
        owner_id=owner_id,
        email=str(payload.get("email") or "").strip() or None,
        expires_at=int(payload["exp"]),
    )
