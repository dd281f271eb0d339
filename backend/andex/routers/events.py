"""Event API routes — delegates to event_service for invariant enforcement."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from andex.auth import get_current_user
from andex.database import get_db
from andex.models.user import User
from andex.schemas.event import (
    EventCreate,
    EventDetails,
    EventModerate,
    EventOut,
    EventPage,
    EventUpdate,
    ParticipantPage,
    ParticipatePayload,
)
from andex.services import event_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return event_service.create_event(db, current_user, payload.model_dump())


@router.get("/", response_model=EventPage)
def list_events(
    category: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    is_online: Optional[bool] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List events with optional filters."""
    items, pagination = event_service.list_events(
        db,
        category=category,
        status=status_filter,
        is_online=is_online,
        search=search,
        page=page,
        limit=limit,
        viewer_id=current_user.user_id,
    )
    return EventPage(items=items, pagination=pagination)


@router.get("/nearby", response_model=EventPage)
def nearby_events(
    latitude: float = Query(...),
    longitude: float = Query(...),
    max_distance: Optional[float] = Query(None, ge=0, description="Radius in meters"),
    category: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Approved in-person events near a point, nearest first."""
    items, pagination = event_service.search_nearby(
        db,
        latitude,
        longitude,
        max_distance_m=max_distance,
        category=category,
        page=page,
        limit=limit,
        viewer_id=current_user.user_id,
    )
    return EventPage(items=items, pagination=pagination)


@router.get("/mine", response_model=EventPage)
def my_events(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    items, pagination = event_service.list_user_events(db, current_user.user_id, page=page, limit=limit)
    return EventPage(items=items, pagination=pagination)


@router.get("/{event_id}", response_model=EventDetails)
def get_event(event_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return event_service.get_event(db, event_id, viewer_id=current_user.user_id)


@router.put("/{event_id}", response_model=EventOut)
def update_event(
    event_id: str,
    payload: EventUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update an event (creator only)."""
    return event_service.update_event(db, event_id, current_user.user_id, payload.model_dump(exclude_unset=True))


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(event_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    event_service.delete_event(db, event_id, current_user.user_id)


@router.post("/{event_id}/moderate", response_model=EventOut)
def moderate_event(
    event_id: str,
    payload: EventModerate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Approve or reject an event (moderators only)."""
    return event_service.moderate_event(db, event_id, current_user, payload.status, payload.rejection_reason)


@router.post("/{event_id}/participants")
def join_event(
    event_id: str,
    payload: ParticipatePayload,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    participant = event_service.join_event(db, event_id, current_user, payload.status)
    return {"status": "ok", "participation": participant.status.value}


@router.delete("/{event_id}/participants", status_code=status.HTTP_204_NO_CONTENT)
def leave_event(event_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    event_service.leave_event(db, event_id, current_user)


@router.get("/{event_id}/participants", response_model=ParticipantPage)
def list_participants(
    event_id: str,
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    items, pagination = event_service.list_participants(db, event_id, page=page, limit=limit)
    return ParticipantPage(items=items, pagination=pagination)
