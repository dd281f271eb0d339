"""Friend-request lifecycle and confirmed friendships.

From one viewer's perspective a pair is NONE, OUTGOING_REQUEST,
INCOMING_REQUEST or FRIENDS. Requests are directional rows unique per
(requester, addressee); friendships are symmetric rows stored once under the
ordered pair (user1_id < user2_id).
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from andex.database import dialect_insert
from andex.errors import NotFoundError, ValidationError
from andex.models.friendship import FriendRequest, FriendRequestStatus, Friendship, FriendshipStatus
from andex.models.user import User

logger = logging.getLogger(__name__)


def _ordered_pair(a: str, b: str) -> tuple[str, str]:
    return (a, b) if a < b else (b, a)


def _pending_request(db: Session, requester_id: str, addressee_id: str) -> Optional[FriendRequest]:
    return (
        db.query(FriendRequest)
        .filter(
            FriendRequest.requester_id == requester_id,
            FriendRequest.addressee_id == addressee_id,
            FriendRequest.status == FriendRequestStatus.pending,
        )
        .first()
    )


def _existing_friendship(db: Session, a: str, b: str) -> Optional[Friendship]:
    user1_id, user2_id = _ordered_pair(a, b)
    return (
        db.query(Friendship)
        .filter(Friendship.user1_id == user1_id, Friendship.user2_id == user2_id)
        .first()
    )


def _lock_users(db: Session, a: str, b: str) -> set[str]:
    rows = (
        db.query(User.user_id)
        .filter(User.user_id.in_([a, b]))
        .order_by(User.user_id)
        .with_for_update()
        .all()
    )
    return {row[0] for row in rows}


def get_status(db: Session, viewer_id: str, other_id: str) -> FriendshipStatus:
    if _existing_friendship(db, viewer_id, other_id):
        return FriendshipStatus.friends
    if _pending_request(db, viewer_id, other_id):
        return FriendshipStatus.outgoing_request
    if _pending_request(db, other_id, viewer_id):
        return FriendshipStatus.incoming_request
    return FriendshipStatus.none


def send_request(db: Session, from_id: str, to_id: str) -> FriendshipStatus:
    """Send (or re-send) a friend request; a crossed pending request is accepted instead."""
    if from_id == to_id:
        raise ValidationError("Cannot send friend request to yourself")

    # Both user rows locked in id order: sends within one pair run one at a time
    locked = _lock_users(db, from_id, to_id)
    if to_id not in locked:
        raise NotFoundError("Target user not found")

    current = get_status(db, from_id, to_id)
    if current == FriendshipStatus.friends:
        return current
    if current == FriendshipStatus.incoming_request:
        logger.info("Crossed friend requests between %s and %s; accepting", from_id, to_id)
        return accept_request(db, from_id, to_id)
    if current == FriendshipStatus.outgoing_request:
        return current

    # Create, or reset a DECLINED/CANCELED row back to PENDING
    stmt = (
        dialect_insert(db, FriendRequest)
        .values(
            request_id=str(uuid.uuid4()),
            requester_id=from_id,
            addressee_id=to_id,
            status=FriendRequestStatus.pending,
            created_at=datetime.now(timezone.utc),
        )
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["requester_id", "addressee_id"],
        set_={"status": stmt.excluded.status, "responded_at": None},
    )
    db.execute(stmt)
    db.commit()
    logger.info("Friend request sent: %s -> %s", from_id, to_id)
    return FriendshipStatus.outgoing_request


def cancel_request(db: Session, from_id: str, to_id: str) -> FriendshipStatus:
    request = _pending_request(db, from_id, to_id)
    if not request:
        raise NotFoundError("No pending outgoing request")

    request.status = FriendRequestStatus.canceled
    request.responded_at = datetime.now(timezone.utc)
    db.commit()
    logger.info("Friend request canceled: %s -> %s", from_id, to_id)
    return FriendshipStatus.none


def accept_request(db: Session, current_user_id: str, requester_id: str) -> FriendshipStatus:
    """Accept a pending request and materialize the friendship in one transaction."""
    if current_user_id == requester_id:
        raise ValidationError("Cannot accept request from yourself")

    request = _pending_request(db, requester_id, current_user_id)
    if not request:
        raise NotFoundError("No pending incoming request")

    user1_id, user2_id = _ordered_pair(current_user_id, requester_id)
    try:
        request.status = FriendRequestStatus.accepted
        request.responded_at = datetime.now(timezone.utc)
        db.execute(
            dialect_insert(db, Friendship)
            .values(friendship_id=str(uuid.uuid4()), user1_id=user1_id, user2_id=user2_id)
            .on_conflict_do_nothing(index_elements=["user1_id", "user2_id"])
        )
        db.commit()
    except IntegrityError:
        db.rollback()
        if not _existing_friendship(db, user1_id, user2_id):
            raise
        logger.warning("Friendship %s <-> %s already recorded by a concurrent accept", user1_id, user2_id)
        return FriendshipStatus.friends
    except Exception:
        db.rollback()
        raise

    logger.info("Users are now friends: %s <-> %s", current_user_id, requester_id)
    return FriendshipStatus.friends


def decline_request(db: Session, current_user_id: str, requester_id: str) -> FriendshipStatus:
    if current_user_id == requester_id:
        raise ValidationError("Cannot decline request from yourself")

    request = _pending_request(db, requester_id, current_user_id)
    if not request:
        raise NotFoundError("No pending incoming request")

    request.status = FriendRequestStatus.declined
    request.responded_at = datetime.now(timezone.utc)
    db.commit()
    logger.info("Friend request declined: %s -> %s", requester_id, current_user_id)
    return FriendshipStatus.none


def list_requests(db: Session, user_id: str, direction: str = "incoming") -> list[FriendRequest]:
    """Pending requests addressed to (incoming) or sent by (outgoing) the user."""
    query = db.query(FriendRequest).filter(FriendRequest.status == FriendRequestStatus.pending)
    if direction == "incoming":
        query = query.filter(FriendRequest.addressee_id == user_id)
    elif direction == "outgoing":
        query = query.filter(FriendRequest.requester_id == user_id)
    else:
        raise ValidationError("direction must be 'incoming' or 'outgoing'")
    return query.order_by(FriendRequest.created_at.desc()).all()


def list_friends(db: Session, user_id: str) -> list[Friendship]:
    return (
        db.query(Friendship)
        .filter(or_(Friendship.user1_id == user_id, Friendship.user2_id == user_id))
        .order_by(Friendship.created_at.desc())
        .all()
    )
