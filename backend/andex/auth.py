"""Request-boundary identity resolution.

Token verification happens upstream; by the time a request reaches the app the
gateway has put the verified external subject id (and email) into headers.
"""
import logging
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from andex.config import settings
from andex.database import get_db
from andex.errors import AuthenticationError
from andex.models.user import User

logger = logging.getLogger(__name__)


def get_auth_identity(request: Request) -> tuple[str, Optional[str]]:
    """Return the verified (subject, email) pair or raise 401."""
    subject = request.headers.get(settings.AUTH_SUBJECT_HEADER)
    if not subject:
        raise AuthenticationError("Missing authenticated subject")
    return subject, request.headers.get(settings.AUTH_EMAIL_HEADER)


def get_current_user(
    identity: tuple[str, Optional[str]] = Depends(get_auth_identity),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the authenticated subject to the internal user row."""
    subject, _ = identity
    user = db.query(User).filter(User.auth_subject == subject).first()
    if not user:
        logger.warning("No user registered for subject %s", subject)
        raise AuthenticationError("Unauthorized: user not registered")
    return user
