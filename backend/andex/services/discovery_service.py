"""Candidate discovery — nearby users eligible to be shown for matching.

Uses a lat/lon bounding box instead of an exact radius: the users table is
large and a box is a plain range query over ``ix_users_location``. Candidates
near the box corners may lie slightly beyond ``radius_km``.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from andex.config import settings
from andex.models.user import User
from andex.services import match_service
from andex.services.geo import bounding_box, validate_coordinates

logger = logging.getLogger(__name__)


def find_candidates(
    db: Session,
    user: User,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    radius_km: Optional[float] = None,
    limit: Optional[int] = None,
) -> list[User]:
    radius_km = settings.CANDIDATE_RADIUS_KM if radius_km is None else radius_km
    limit = settings.CANDIDATE_LIMIT if limit is None else limit

    if latitude is not None or longitude is not None:
        validate_coordinates(latitude, longitude)
        lat, lon = latitude, longitude
    else:
        lat, lon = user.last_latitude, user.last_longitude

    if lat is None or lon is None:
        logger.warning("No location available for user %s", user.user_id)
        return []

    box = bounding_box(lat, lon, radius_km)
    logger.info(
        "Search bounds: lat [%f, %f], lon [%f, %f]",
        box.min_lat, box.max_lat, box.min_lon, box.max_lon,
    )

    query = db.query(User).filter(
        User.user_id != user.user_id,
        User.is_onboarding_completed.is_(True),
        User.is_profile_visible.is_(True),
        User.last_latitude.between(box.min_lat, box.max_lat),
        User.last_longitude.between(box.min_lon, box.max_lon),
    )
    if user.min_age is not None:
        query = query.filter(User.age >= user.min_age)
    if user.max_age is not None:
        query = query.filter(User.age <= user.max_age)

    already_seen = match_service.acted_user_ids(db, user.user_id)
    if already_seen:
        query = query.filter(User.user_id.notin_(already_seen))

    candidates = query.limit(limit).all()
    logger.info("Found %d potential matches for user %s", len(candidates), user.user_id)
    return candidates
