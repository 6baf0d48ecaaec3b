"""Identity-provider assertions.

The provider's sign-in flow happens in the client; the API only receives a
signed assertion naming the user's stable subject id.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from jose import JWTError, jwt

from config import require_identity_secret, settings


@dataclass(frozen=True)
class IdentityClaims:
    subject: str
    email: str
    name: Optional[str] = None
    picture: Optional[str] = None


def verify_identity_assertion(assertion: str) -> IdentityClaims:
    """Validate a provider assertion; raises ValueError when it cannot be trusted."""
    secret = require_identity_secret()
    audience = (settings.IDENTITY_TOKEN_AUDIENCE or "").strip() or None
    try:
        payload = jwt.decode(
            assertion,
            secret,
            algorithms=["HS256"],
            audience=audience,
            options={"verify_aud": audience is not None},
        )
    except JWTError as exc:
        raise ValueError("Invalid identity assertion.") from exc

    subject = str(payload.get("sub", "")).strip()
    email = str(payload.get("email", "")).strip()
    if not subject:
        raise ValueError("Identity assertion missing subject.")
    if not email:
        email = f"{subject}@identity.invalid"
    return IdentityClaims(
        subject=subject,
        email=email,
        name=str(payload.get("name") or "").strip() or None,
        picture=str(payload.get("picture") or "").strip() or None,
    )

