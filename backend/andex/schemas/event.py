"""Pydantic schemas for Events and Participants."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class EventCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: Optional[str] = None
    category: str
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    price: Optional[float] = None
    image_url: Optional[str] = None
    is_online: bool = False
    max_participants: Optional[int] = Field(None, gt=0)
    min_age: Optional[int] = Field(None, ge=0)
    max_age: Optional[int] = Field(None, ge=0)


class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = None
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    price: Optional[float] = None
    image_url: Optional[str] = None
    is_online: Optional[bool] = None
    max_participants: Optional[int] = Field(None, gt=0)
    min_age: Optional[int] = Field(None, ge=0)
    max_age: Optional[int] = Field(None, ge=0)


class EventModerate(BaseModel):
    status: str  # APPROVED, REJECTED, PENDING
    rejection_reason: Optional[str] = None


class EventCreator(BaseModel):
    user_id: str
    display_name: str
    photo_url: Optional[str] = None

    model_config = {"from_attributes": True}


class EventOut(BaseModel):
    event_id: str
    title: str
    description: Optional[str] = None
    category: str
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    price: float
    image_url: Optional[str] = None
    is_online: bool
    status: str
    rejection_reason: Optional[str] = None
    max_participants: Optional[int] = None
    min_age: Optional[int] = None
    max_age: Optional[int] = None
    created_by_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class EventDetails(EventOut):
    creator: Optional[EventCreator] = None
    participants_count: int = 0
    is_participating: bool = False
    distance: Optional[float] = None  # meters from the query point


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class EventPage(BaseModel):
    items: list[EventDetails]
    pagination: Pagination


class ParticipatePayload(BaseModel):
    status: str = "GOING"  # GOING or INTERESTED


class ParticipantOut(BaseModel):
    user_id: str
    event_id: str
    status: str
    joined_at: datetime
    display_name: Optional[str] = None
    photo_url: Optional[str] = None


class ParticipantPage(BaseModel):
    items: list[ParticipantOut]
    pagination: Pagination
