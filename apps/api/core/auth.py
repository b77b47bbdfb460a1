"""
Authentication dependencies.

Every scheduling endpoint acts on the caller's own program, so the only
authorization rule is "resolve the athlete from the bearer token".
"""
import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from core.database import get_db
from core.exceptions import ForbiddenError, UnauthorizedError
from core.security import athlete_id_from_token
from models import Athlete

logger = logging.getLogger(__name__)

# auto_error=False so a missing header is a 401 with our error body, not FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)


def get_current_athlete(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Athlete:
    """
    Athlete named by the bearer token.

    Raises UnauthorizedError for a missing or invalid token or an unknown
    athlete, ForbiddenError for a blocked account.
    """
    if not credentials:
        raise UnauthorizedError()

    athlete_id = athlete_id_from_token(credentials.credentials)
    if athlete_id is None:
        raise UnauthorizedError("Invalid authentication credentials")

    athlete = db.query(Athlete).filter(Athlete.id == athlete_id).first()
    if not athlete:
        raise UnauthorizedError("Athlete not found")

    if athlete.is_blocked:
        logger.info(
            "Blocked athlete rejected",
            extra={"extra_fields": {"athlete_id": str(athlete_id)}},
        )
        raise ForbiddenError()

    return athlete
