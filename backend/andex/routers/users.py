"""User API routes."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from andex.auth import get_auth_identity, get_current_user
from andex.database import get_db
from andex.models.user import User
from andex.schemas.user import LocationUpdate, UserOut, UserPublic, UserRegister, UserUpdate
from andex.services import discovery_service, user_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register_user(
    payload: UserRegister,
    response: Response,
    identity: tuple = Depends(get_auth_identity),
    db: Session = Depends(get_db),
):
    """Create the account for the authenticated subject (idempotent)."""
    subject, header_email = identity
    user, created = user_service.register_user(
        db,
        auth_subject=subject,
        email=payload.email or header_email,
        display_name=payload.display_name,
        photo_url=payload.photo_url,
    )
    if not created:
        response.status_code = status.HTTP_200_OK
    return user


@router.get("/me", response_model=UserOut)
def get_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.put("/me", response_model=UserOut)
def update_me(
    payload: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update the caller's profile (partial update)."""
    return user_service.update_profile(db, current_user, payload.model_dump(exclude_unset=True))


@router.put("/me/location", response_model=UserOut)
def update_my_location(
    payload: LocationUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return user_service.update_location(db, current_user, payload.latitude, payload.longitude)


@router.get("/matches", response_model=list[UserPublic])
def discover_candidates(
    latitude: Optional[float] = Query(None),
    longitude: Optional[float] = Query(None),
    radius: Optional[float] = Query(None, gt=0, description="Search radius in kilometers"),
    limit: Optional[int] = Query(None, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Nearby users eligible for matching, using the caller's last location by default."""
    return discovery_service.find_candidates(
        db,
        current_user,
        latitude=latitude,
        longitude=longitude,
        radius_km=radius,
        limit=limit,
    )


@router.get("/{user_id}", response_model=UserPublic)
def get_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Fetch another user's public profile."""
    return user_service.get_user(db, user_id)
