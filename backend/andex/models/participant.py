"""Participant ORM model — a user's GOING / INTERESTED mark on an event."""
import uuid
import enum
from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint, Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from andex.database import Base


class ParticipantStatus(str, enum.Enum):
    going = "GOING"
    interested = "INTERESTED"


class Participant(Base):
    __tablename__ = "participants"

    participant_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_id = Column(String(36), ForeignKey("events.event_id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(SAEnum(ParticipantStatus), nullable=False, default=ParticipantStatus.interested)
    joined_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    event = relationship("Event", back_populates="participants")
    user = relationship("User")

    __table_args__ = (UniqueConstraint("user_id", "event_id", name="uq_participant_user_event"),)
