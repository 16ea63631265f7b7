"""
Access Token Verification
This service only verifies access JWTs; they are issued by the auth service.
"""

from datetime import datetime, timedelta
from typing import Any, Dict

from jose import JWTError, jwt

from studio.core.config import settings


def _strip_bearer(auth: str) -> str:
    s = (auth or "").strip()
    if s.lower().startswith("bearer "):
        return s[7:].strip()
    return s


def decode_access_jwt(token: str) -> Dict[str, Any]:
    """
    Validate an access JWT (raw token or full 'Bearer ...' header value).

    Raises:
        ValueError: if the token is missing, expired or fails verification
    """
    raw = _strip_bearer(token)
    if not raw:
        raise ValueError("missing_token")
    try:
        return jwt.decode(
            raw,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALG],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
        )
    except JWTError as e:
        raise ValueError(f"invalid_token: {e}") from e


def create_access_jwt(user_id: str, expires_in: timedelta = timedelta(hours=1)) -> str:
    """Mint a token the way the auth service does. Used by local tooling and tests."""
    now = datetime.utcnow()
    claims = {
        "sub": user_id,
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALG)
