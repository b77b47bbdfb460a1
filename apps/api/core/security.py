"""
Bearer tokens for athletes.

Tokens are HS256 JWTs whose subject is the athlete id. Issuing tokens
(login, signup) lives outside this service; tests mint them with
create_athlete_token.

SECRET_KEY must come from the environment and be at least 32 characters.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict
from uuid import UUID

from jose import JWTError, jwt
from core.config import settings

SECRET_KEY = settings.SECRET_KEY

if len(SECRET_KEY) < 32:
    raise ValueError(
        "SECRET_KEY must be at least 32 characters. "
        "Generate with: python -c \"import secrets; print(secrets.token_urlsafe(32))\""
    )

ALGORITHM = "HS256"


def create_access_token(data: Dict, expires_delta: Optional[timedelta] = None) -> str:
    """Sign a JWT carrying data plus an expiry."""
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {**data, "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)


def create_athlete_token(athlete_id: UUID, expires_delta: Optional[timedelta] = None) -> str:
    return create_access_token({"sub": str(athlete_id)}, expires_delta=expires_delta)


def decode_access_token(token: str) -> Optional[Dict]:
    """Claims of a valid, unexpired token; None otherwise."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


def athlete_id_from_token(token: str) -> Optional[UUID]:
    """Athlete id in the token subject, or None if the token or subject is bad."""
    claims = decode_access_token(token)
    if not claims or not claims.get("sub"):
        return None
    try:
        return UUID(str(claims["sub"]))
    except ValueError:
        return None
