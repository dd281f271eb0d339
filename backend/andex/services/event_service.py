"""Core event service.

Responsibilities:
- Authorization hook: only the creator may update or delete an event
- Moderation: MODERATOR / ADMIN users approve or reject events
- Proximity search by exact great-circle distance
- Participation (GOING / INTERESTED) with approval, capacity and age checks
"""
import logging
import math
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from andex.config import settings
from andex.database import dialect_insert
from andex.errors import AuthorizationError, NotFoundError, ValidationError
from andex.models.event import Event, EventStatus
from andex.models.participant import Participant, ParticipantStatus
from andex.models.user import User, UserRole
from andex.schemas.event import EventCreator, EventDetails, EventOut, Pagination, ParticipantOut
from andex.services.geo import covering_box, distance_meters, geodetic_point, validate_coordinates

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = {
    "title",
    "description",
    "category",
    "location",
    "latitude",
    "longitude",
    "start_time",
    "end_time",
    "price",
    "image_url",
    "is_online",
    "max_participants",
    "min_age",
    "max_age",
}

# NOT NULL columns a partial update may change but never clear
_REQUIRED_FIELDS = {"title", "category", "start_time", "price", "is_online"}


def _check_authorization(event: Event, actor_user_id: str) -> None:
    """Only the creator may modify or delete an event."""
    if event.created_by_id != actor_user_id:
        raise AuthorizationError("Only the event creator may modify this event")


def _get_event(db: Session, event_id: str) -> Event:
    event = db.query(Event).filter(Event.event_id == event_id).first()
    if not event:
        raise NotFoundError("Event not found")
    return event


def _check_location(latitude: Optional[float], longitude: Optional[float]) -> None:
    if latitude is None and longitude is None:
        return
    validate_coordinates(latitude, longitude)


def _check_required(updates: dict[str, Any], required: set[str]) -> None:
    cleared = sorted(field for field in required if field in updates and updates[field] is None)
    if cleared:
        raise ValidationError(f"Fields cannot be null: {', '.join(cleared)}")


def _check_age_bounds(min_age: Optional[int], max_age: Optional[int]) -> None:
    if min_age is not None and max_age is not None and min_age > max_age:
        raise ValidationError("min_age must not exceed max_age")


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; stored values are UTC
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def _check_schedule(start_time: Optional[datetime], end_time: Optional[datetime]) -> None:
    if start_time is None or end_time is None:
        return
    if _as_utc(end_time) < _as_utc(start_time):
        raise ValidationError("end_time must not be before start_time")


def _pagination(page: int, limit: int, total: int) -> Pagination:
    return Pagination(page=page, limit=limit, total=total, total_pages=math.ceil(total / limit) if limit else 0)


def _normalize_page(page: Optional[int], limit: Optional[int]) -> tuple[int, int]:
    page = page if page and page > 0 else 1
    limit = limit if limit and limit > 0 else settings.PAGE_SIZE
    return page, limit


def _participant_counts(db: Session, event_ids: list[str]) -> dict[str, int]:
    if not event_ids:
        return {}
    rows = (
        db.query(Participant.event_id, func.count(Participant.participant_id))
        .filter(Participant.event_id.in_(event_ids))
        .group_by(Participant.event_id)
        .all()
    )
    return dict(rows)


def _participating_ids(db: Session, event_ids: list[str], viewer_id: Optional[str]) -> set[str]:
    if not viewer_id or not event_ids:
        return set()
    rows = (
        db.query(Participant.event_id)
        .filter(Participant.event_id.in_(event_ids), Participant.user_id == viewer_id)
        .all()
    )
    return {row[0] for row in rows}


def _with_details(
    db: Session,
    events: list[Event],
    viewer_id: Optional[str] = None,
    distances: Optional[dict[str, float]] = None,
) -> list[EventDetails]:
    """Annotate events with creator subset, participant count and viewer participation."""
    ids = [e.event_id for e in events]
    counts = _participant_counts(db, ids)
    joined = _participating_ids(db, ids, viewer_id)
    details = []
    for event in events:
        details.append(
            EventDetails(
                **EventOut.model_validate(event).model_dump(),
                creator=EventCreator.model_validate(event.creator) if event.creator else None,
                participants_count=counts.get(event.event_id, 0),
                is_participating=event.event_id in joined,
                distance=distances.get(event.event_id) if distances else None,
            )
        )
    return details


def create_event(db: Session, creator: User, data: dict[str, Any]) -> Event:
    """Create an event owned by ``creator``."""
    _check_location(data.get("latitude"), data.get("longitude"))
    _check_age_bounds(data.get("min_age"), data.get("max_age"))
    _check_schedule(data.get("start_time"), data.get("end_time"))

    fields = {k: v for k, v in data.items() if k in _UPDATABLE_FIELDS}
    if fields.get("price") is None:
        fields["price"] = 0
    event = Event(
        **fields,
        status=EventStatus.pending if settings.EVENTS_REQUIRE_APPROVAL else EventStatus.approved,
        created_by_id=creator.user_id,
    )
    if event.latitude is not None and event.longitude is not None:
        event.location_geo = geodetic_point(event.latitude, event.longitude)
    db.add(event)
    db.commit()
    db.refresh(event)
    logger.info("Created event '%s' (%s) by user %s", event.title, event.event_id, creator.user_id)
    return event


def get_event(db: Session, event_id: str, viewer_id: Optional[str] = None) -> EventDetails:
    event = _get_event(db, event_id)
    return _with_details(db, [event], viewer_id)[0]


def list_events(
    db: Session,
    category: Optional[str] = None,
    status: Optional[str] = None,
    is_online: Optional[bool] = None,
    search: Optional[str] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    viewer_id: Optional[str] = None,
) -> tuple[list[EventDetails], Pagination]:
    """List events with optional filters, soonest first."""
    page, limit = _normalize_page(page, limit)
    query = db.query(Event)
    if category:
        query = query.filter(Event.category == category)
    if status:
        try:
            query = query.filter(Event.status == EventStatus(status))
        except ValueError:
            raise ValidationError(f"Invalid event status: {status}")
    if is_online is not None:
        query = query.filter(Event.is_online.is_(is_online))
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Event.title.ilike(pattern), Event.description.ilike(pattern)))

    total = query.count()
    events = query.order_by(Event.start_time).offset((page - 1) * limit).limit(limit).all()
    return _with_details(db, events, viewer_id), _pagination(page, limit, total)


def list_user_events(
    db: Session,
    user_id: str,
    page: Optional[int] = None,
    limit: Optional[int] = None,
) -> tuple[list[EventDetails], Pagination]:
    page, limit = _normalize_page(page, limit)
    query = db.query(Event).filter(Event.created_by_id == user_id)
    total = query.count()
    events = query.order_by(Event.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
    return _with_details(db, events, user_id), _pagination(page, limit, total)


def update_event(db: Session, event_id: str, actor_user_id: str, updates: dict[str, Any]) -> Event:
    """Update an event (creator only)."""
    event = _get_event(db, event_id)
    _check_authorization(event, actor_user_id)
    _check_required(updates, _REQUIRED_FIELDS)

    latitude = updates.get("latitude", event.latitude)
    longitude = updates.get("longitude", event.longitude)
    _check_location(latitude, longitude)
    _check_age_bounds(updates.get("min_age", event.min_age), updates.get("max_age", event.max_age))
    _check_schedule(updates.get("start_time", event.start_time), updates.get("end_time", event.end_time))

    for field, value in updates.items():
        if field in _UPDATABLE_FIELDS:
            setattr(event, field, value)
    event.location_geo = geodetic_point(latitude, longitude) if latitude is not None and longitude is not None else None
    event.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(event)
    logger.info("Updated event %s", event_id)
    return event


def delete_event(db: Session, event_id: str, actor_user_id: str) -> None:
    event = _get_event(db, event_id)
    _check_authorization(event, actor_user_id)
    db.delete(event)
    db.commit()
    logger.info("Deleted event %s by user %s", event_id, actor_user_id)


def moderate_event(
    db: Session,
    event_id: str,
    moderator: User,
    status: str,
    rejection_reason: Optional[str] = None,
) -> Event:
    """Set an event's approval status (moderators and admins only)."""
    if moderator.role not in (UserRole.moderator, UserRole.admin):
        raise AuthorizationError("Only moderators may change event approval status")
    try:
        new_status = EventStatus(status)
    except ValueError:
        raise ValidationError(f"Invalid event status: {status}")
    if new_status == EventStatus.rejected and not rejection_reason:
        raise ValidationError("rejection_reason is required when rejecting an event")

    event = _get_event(db, event_id)
    event.status = new_status
    event.rejection_reason = rejection_reason if new_status == EventStatus.rejected else None
    db.commit()
    db.refresh(event)
    logger.info("Event %s moderated to %s by %s", event_id, new_status.value, moderator.user_id)
    return event


def search_nearby(
    db: Session,
    latitude: float,
    longitude: float,
    max_distance_m: Optional[float] = None,
    category: Optional[str] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    viewer_id: Optional[str] = None,
) -> tuple[list[EventDetails], Pagination]:
    """Approved in-person events within ``max_distance_m`` of the point, nearest first.

    The store narrows candidates to a box covering the circle; each remaining
    event is then kept only when its exact haversine distance is within range.
    """
    validate_coordinates(latitude, longitude)
    max_distance_m = settings.EVENT_RADIUS_M if max_distance_m is None else max_distance_m
    if max_distance_m < 0:
        raise ValidationError("max_distance must not be negative")
    page, limit = _normalize_page(page, limit)

    box = covering_box(latitude, longitude, max_distance_m)
    query = db.query(Event).filter(
        Event.status == EventStatus.approved,
        Event.is_online.is_(False),
        Event.latitude.isnot(None),
        Event.longitude.isnot(None),
        Event.latitude.between(box.min_lat, box.max_lat),
        Event.longitude.between(box.min_lon, box.max_lon),
    )
    if category:
        query = query.filter(Event.category == category)

    within = []
    for event in query.all():
        distance = distance_meters(latitude, longitude, event.latitude, event.longitude)
        if distance <= max_distance_m:
            within.append((distance, event))
    within.sort(key=lambda pair: pair[0])

    total = len(within)
    window = within[(page - 1) * limit : page * limit]
    distances = {event.event_id: distance for distance, event in window}
    items = _with_details(db, [event for _, event in window], viewer_id, distances)
    logger.info(
        "Nearby search at (%f, %f) within %.0fm: %d events", latitude, longitude, max_distance_m, total
    )
    return items, _pagination(page, limit, total)


def join_event(db: Session, event_id: str, user: User, status: str = "GOING") -> Participant:
    """Mark the user GOING or INTERESTED; repeat calls update the status."""
    try:
        participant_status = ParticipantStatus(status)
    except ValueError:
        raise ValidationError("status must be GOING or INTERESTED")

    event = _get_event(db, event_id)
    if event.status != EventStatus.approved:
        raise ValidationError("Cannot participate in an unapproved event")
    if user.age is not None:
        if event.min_age is not None and user.age < event.min_age:
            raise ValidationError("User is below the event's minimum age")
        if event.max_age is not None and user.age > event.max_age:
            raise ValidationError("User is above the event's maximum age")

    existing = (
        db.query(Participant)
        .filter(Participant.event_id == event_id, Participant.user_id == user.user_id)
        .first()
    )
    # Capacity applies to newcomers only
    if existing is None and event.max_participants is not None:
        count = db.query(Participant).filter(Participant.event_id == event_id).count()
        if count >= event.max_participants:
            raise ValidationError("Event is full")

    now = datetime.now(timezone.utc)
    stmt = dialect_insert(db, Participant).values(
        participant_id=str(uuid.uuid4()),
        event_id=event_id,
        user_id=user.user_id,
        status=participant_status,
        joined_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id", "event_id"],
        set_={"status": stmt.excluded.status, "updated_at": now},
    )
    db.execute(stmt)
    db.commit()
    logger.info("User %s is %s for event %s", user.user_id, participant_status.value, event_id)
    return (
        db.query(Participant)
        .filter(Participant.event_id == event_id, Participant.user_id == user.user_id)
        .populate_existing()
        .one()
    )


def leave_event(db: Session, event_id: str, user: User) -> None:
    _get_event(db, event_id)
    participant = (
        db.query(Participant)
        .filter(Participant.event_id == event_id, Participant.user_id == user.user_id)
        .first()
    )
    if not participant:
        raise NotFoundError("User is not a participant of this event")
    db.delete(participant)
    db.commit()
    logger.info("User %s left event %s", user.user_id, event_id)


def list_participants(
    db: Session,
    event_id: str,
    page: Optional[int] = None,
    limit: Optional[int] = None,
) -> tuple[list[ParticipantOut], Pagination]:
    _get_event(db, event_id)
    page, limit = _normalize_page(page, limit)
    query = db.query(Participant).filter(Participant.event_id == event_id)
    total = query.count()
    rows = query.order_by(Participant.joined_at.desc()).offset((page - 1) * limit).limit(limit).all()
    items = [
        ParticipantOut(
            user_id=p.user_id,
            event_id=p.event_id,
            status=p.status.value,
            joined_at=p.joined_at,
            display_name=p.user.display_name if p.user else None,
            photo_url=p.user.photo_url if p.user else None,
        )
        for p in rows
    ]
    return items, _pagination(page, limit, total)
