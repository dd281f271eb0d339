"""Pydantic schemas for friend requests and friendships."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from andex.schemas.user import UserPublic


class FriendStatusOut(BaseModel):
    status: str  # NONE, OUTGOING_REQUEST, INCOMING_REQUEST, FRIENDS


class FriendRequestOut(BaseModel):
    request_id: str
    requester_id: str
    addressee_id: str
    status: str
    created_at: datetime
    responded_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class FriendOut(BaseModel):
    friendship_id: str
    friend: UserPublic
    created_at: datetime
