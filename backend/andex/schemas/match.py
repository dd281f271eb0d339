"""Pydantic schemas for Matches."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class MatchActionPayload(BaseModel):
    target_user_id: str


class MatchOut(BaseModel):
    match_id: str
    user_a_id: str
    user_b_id: str
    user_a_action: Optional[str] = None
    user_b_action: Optional[str] = None
    is_mutual: bool
    matched_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class MatchResult(BaseModel):
    match: MatchOut
    is_mutual: bool
    just_matched: bool
    message: str
