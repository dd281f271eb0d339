"""Pydantic schemas for Users."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class UserRegister(BaseModel):
    email: Optional[str] = None  # falls back to the gateway-supplied email
    display_name: Optional[str] = None
    photo_url: Optional[str] = None


class UserUpdate(BaseModel):
    display_name: Optional[str] = None
    bio: Optional[str] = None
    interests: Optional[list[str]] = None
    age: Optional[int] = Field(None, ge=0, le=150)
    gender: Optional[str] = None
    photo_url: Optional[str] = None
    is_profile_visible: Optional[bool] = None
    min_age: Optional[int] = Field(None, ge=0, le=150)
    max_age: Optional[int] = Field(None, ge=0, le=150)
    is_onboarding_completed: Optional[bool] = None


class LocationUpdate(BaseModel):
    latitude: float
    longitude: float


class UserPublic(BaseModel):
    user_id: str
    display_name: str
    bio: Optional[str] = None
    interests: Optional[list[str]] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    photo_url: Optional[str] = None

    model_config = {"from_attributes": True}


class UserOut(UserPublic):
    email: str
    role: str
    last_latitude: Optional[float] = None
    last_longitude: Optional[float] = None
    last_location_update: Optional[datetime] = None
    is_profile_visible: bool
    min_age: Optional[int] = None
    max_age: Optional[int] = None
    is_onboarding_completed: bool
    created_at: datetime
