"""Friend request / friendship API routes."""
import logging
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from andex.auth import get_current_user
from andex.database import get_db
from andex.models.user import User
from andex.schemas.friend import FriendOut, FriendRequestOut, FriendStatusOut
from andex.schemas.user import UserPublic
from andex.services import friend_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/status/{user_id}", response_model=FriendStatusOut)
def get_status(user_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return FriendStatusOut(status=friend_service.get_status(db, current_user.user_id, user_id).value)


@router.get("/requests", response_model=list[FriendRequestOut])
def list_requests(
    direction: str = Query("incoming", description="incoming or outgoing"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return friend_service.list_requests(db, current_user.user_id, direction)


@router.post("/requests/{user_id}", response_model=FriendStatusOut)
def send_request(user_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Send a friend request; accepts instead when the target already asked the caller."""
    return FriendStatusOut(status=friend_service.send_request(db, current_user.user_id, user_id).value)


@router.delete("/requests/{user_id}", response_model=FriendStatusOut)
def cancel_request(user_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return FriendStatusOut(status=friend_service.cancel_request(db, current_user.user_id, user_id).value)


@router.post("/requests/{user_id}/accept", response_model=FriendStatusOut)
def accept_request(user_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return FriendStatusOut(status=friend_service.accept_request(db, current_user.user_id, user_id).value)


@router.post("/requests/{user_id}/decline", response_model=FriendStatusOut)
def decline_request(user_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return FriendStatusOut(status=friend_service.decline_request(db, current_user.user_id, user_id).value)


@router.get("/", response_model=list[FriendOut])
def list_friends(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Confirmed friends of the caller, newest first."""
    return [
        FriendOut(
            friendship_id=f.friendship_id,
            friend=UserPublic.model_validate(f.other_user(current_user.user_id)),
            created_at=f.created_at,
        )
        for f in friend_service.list_friends(db, current_user.user_id)
    ]
