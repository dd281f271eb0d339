"""User registration, profile and location updates."""
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.orm import Session

from andex.errors import ConflictError, NotFoundError, ValidationError
from andex.models.user import User
from andex.services.geo import validate_coordinates

logger = logging.getLogger(__name__)

_PROFILE_FIELDS = {
    "display_name",
    "bio",
    "interests",
    "age",
    "gender",
    "photo_url",
    "is_profile_visible",
    "min_age",
    "max_age",
    "is_onboarding_completed",
}

# NOT NULL columns a profile update may change but never clear
_REQUIRED_FIELDS = {"display_name", "is_profile_visible", "is_onboarding_completed"}


def register_user(
    db: Session,
    auth_subject: str,
    email: Optional[str],
    display_name: Optional[str] = None,
    photo_url: Optional[str] = None,
) -> tuple[User, bool]:
    """Create the user for a verified subject, or return the existing one.

    Returns ``(user, created)``. An account registered under the same email
    but bound to a different subject is a conflict.
    """
    if not email:
        raise ValidationError("email is required")

    bound = db.query(User).filter(User.auth_subject == auth_subject).first()
    if bound:
        return bound, False

    existing = db.query(User).filter(User.email == email).first()
    if existing:
        logger.info("User already exists with email %s", email)
        if not existing.auth_subject:
            existing.auth_subject = auth_subject
            db.commit()
            db.refresh(existing)
            logger.info("Bound subject %s to existing user %s", auth_subject, existing.user_id)
            return existing, False
        raise ConflictError("User with this email already exists")

    user = User(
        auth_subject=auth_subject,
        email=email,
        display_name=display_name or "",
        photo_url=photo_url,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Created user %s for subject %s", user.user_id, auth_subject)
    return user, True


def get_user(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        logger.warning("No user found with ID %s", user_id)
        raise NotFoundError("User not found")
    return user


def update_profile(db: Session, user: User, updates: dict[str, Any]) -> User:
    """Apply a partial profile update; age-preference bounds must stay ordered."""
    cleared = sorted(field for field in _REQUIRED_FIELDS if field in updates and updates[field] is None)
    if cleared:
        raise ValidationError(f"Fields cannot be null: {', '.join(cleared)}")

    min_age = updates.get("min_age", user.min_age)
    max_age = updates.get("max_age", user.max_age)
    if min_age is not None and max_age is not None and min_age > max_age:
        raise ValidationError("min_age must not exceed max_age")

    for field, value in updates.items():
        if field in _PROFILE_FIELDS:
            setattr(user, field, value)
    db.commit()
    db.refresh(user)
    logger.info("Updated profile for user %s", user.user_id)
    return user


def update_location(db: Session, user: User, latitude: float, longitude: float) -> User:
    validate_coordinates(latitude, longitude)
    user.last_latitude = latitude
    user.last_longitude = longitude
    user.last_location_update = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)
    logger.info("Location updated for user %s", user.user_id)
    return user
