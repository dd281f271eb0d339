"""User ORM model — profile, last known location and discovery preferences."""
import enum
import uuid
from sqlalchemy import Column, String, Text, Integer, Float, Boolean, DateTime, JSON, Index, Enum as SAEnum
from sqlalchemy.sql import func
from andex.database import Base


class UserRole(str, enum.Enum):
    user = "USER"
    moderator = "MODERATOR"
    admin = "ADMIN"


class User(Base):
    __tablename__ = "users"

    user_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    auth_subject = Column(String(128), nullable=True, unique=True)  # external identity provider id
    email = Column(String(255), nullable=False, unique=True)
    display_name = Column(String(100), nullable=False, default="")
    bio = Column(Text, nullable=True)
    interests = Column(JSON, nullable=True, default=list)
    age = Column(Integer, nullable=True)
    gender = Column(String(30), nullable=True)
    photo_url = Column(String(500), nullable=True)
    role = Column(SAEnum(UserRole), nullable=False, default=UserRole.user)

    last_latitude = Column(Float, nullable=True)
    last_longitude = Column(Float, nullable=True)
    last_location_update = Column(DateTime(timezone=True), nullable=True)

    is_profile_visible = Column(Boolean, nullable=False, default=True)
    min_age = Column(Integer, nullable=True)
    max_age = Column(Integer, nullable=True)
    is_onboarding_completed = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (Index("ix_users_location", "last_latitude", "last_longitude"),)
