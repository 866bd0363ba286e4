"""
Bearer token handling.

Agents sign in through the contact center's identity provider, which issues
HS256 JWTs whose `sub` is our numeric user id. This service only verifies
them; `create_access_token` exists for scripts and tests.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from core.config import settings

ALGORITHM = "HS256"
ACCESS_TOKEN_TTL = timedelta(hours=12)  # one shift plus margin


def create_access_token(claims: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    payload = dict(claims)
    payload["exp"] = datetime.now(timezone.utc) + (expires_delta or ACCESS_TOKEN_TTL)
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Claims of a valid, unexpired token; None otherwise."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


def user_id_from_token(token: str) -> Optional[int]:
    """The numeric `sub` of a valid token, or None."""
    claims = decode_access_token(token)
    if not claims:
        return None
    try:
        return int(claims.get("sub"))
    except (TypeError, ValueError):
        return None
