"""FriendRequest and Friendship ORM models."""
import uuid
import enum
from sqlalchemy import Column, String, DateTime, ForeignKey, CheckConstraint, UniqueConstraint, Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from andex.database import Base


class FriendRequestStatus(str, enum.Enum):
    pending = "PENDING"
    accepted = "ACCEPTED"
    declined = "DECLINED"
    canceled = "CANCELED"


class FriendshipStatus(str, enum.Enum):
    """Relationship as seen from one viewer."""

    none = "NONE"
    outgoing_request = "OUTGOING_REQUEST"
    incoming_request = "INCOMING_REQUEST"
    friends = "FRIENDS"


class FriendRequest(Base):
    __tablename__ = "friend_requests"

    request_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    requester_id = Column(String(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    addressee_id = Column(String(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(SAEnum(FriendRequestStatus), nullable=False, default=FriendRequestStatus.pending)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    responded_at = Column(DateTime(timezone=True), nullable=True)

    requester = relationship("User", foreign_keys=[requester_id])
    addressee = relationship("User", foreign_keys=[addressee_id])

    __table_args__ = (UniqueConstraint("requester_id", "addressee_id", name="uq_friend_request_pair"),)


class Friendship(Base):
    __tablename__ = "friendships"

    friendship_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user1_id = Column(String(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    user2_id = Column(String(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user1 = relationship("User", foreign_keys=[user1_id])
    user2 = relationship("User", foreign_keys=[user2_id])

    __table_args__ = (
        UniqueConstraint("user1_id", "user2_id", name="uq_friendship_pair"),
        CheckConstraint("user1_id < user2_id", name="ck_friendship_ordered"),
    )

    def other_user(self, user_id: str):
        return self.user2 if user_id == self.user1_id else self.user1
