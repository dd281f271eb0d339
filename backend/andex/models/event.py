"""Event ORM model."""
import uuid
import enum
from sqlalchemy import Column, String, Text, DateTime, Integer, Float, Boolean, ForeignKey, Index, Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from andex.database import Base


class EventStatus(str, enum.Enum):
    pending = "PENDING"
    approved = "APPROVED"
    rejected = "REJECTED"


class Event(Base):
    __tablename__ = "events"

    event_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=False)
    location = Column(String(500), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    location_geo = Column(String(100), nullable=True)  # EWKT, derived from latitude/longitude
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=True)
    price = Column(Float, nullable=False, default=0)
    image_url = Column(String(500), nullable=True)
    is_online = Column(Boolean, nullable=False, default=False)
    status = Column(SAEnum(EventStatus), nullable=False, default=EventStatus.approved)
    rejection_reason = Column(String(500), nullable=True)
    max_participants = Column(Integer, nullable=True)
    min_age = Column(Integer, nullable=True)
    max_age = Column(Integer, nullable=True)
    created_by_id = Column(String(36), ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    creator = relationship("User")
    participants = relationship("Participant", back_populates="event", cascade="all, delete-orphan")

    __table_args__ = (Index("ix_events_location", "latitude", "longitude"),)
