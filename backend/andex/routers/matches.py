"""Match API routes — like / dislike / super-like and match listings."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from andex.auth import get_current_user
from andex.config import settings
from andex.database import get_db
from andex.models.match import MatchAction
from andex.models.user import User
from andex.schemas.match import MatchActionPayload, MatchOut, MatchResult
from andex.schemas.user import UserPublic
from andex.services import match_service

logger = logging.getLogger(__name__)
router = APIRouter()

_SENT_MESSAGES = {
    MatchAction.like: "Like sent!",
    MatchAction.dislike: "Dislike sent",
    MatchAction.super_like: "Super like sent!",
}


def _record(db: Session, current_user: User, target_user_id: str, action: MatchAction) -> MatchResult:
    logger.info("User %s sends %s to user %s", current_user.user_id, action.value, target_user_id)
    match, just_matched = match_service.record_action(db, current_user.user_id, target_user_id, action)
    return MatchResult(
        match=MatchOut.model_validate(match),
        is_mutual=match.is_mutual,
        just_matched=just_matched,
        message="It's a match!" if match.is_mutual else _SENT_MESSAGES[action],
    )


@router.get("/", response_model=list[UserPublic])
def list_my_matches(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Users the caller has a mutual match with."""
    return match_service.list_mutual_matches(db, current_user.user_id)


@router.get("/actions", response_model=list[UserPublic])
def list_my_actions(
    action: str = Query(..., description="LIKE, DISLIKE or SUPER_LIKE"),
    limit: Optional[int] = Query(None, ge=1),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Users the caller has recorded ``action`` toward, most recent first."""
    limit = min(limit or settings.ACTIONS_LIMIT, settings.MAX_ACTIONS_LIMIT)
    return match_service.list_actions_by_user(db, current_user.user_id, action, limit)


@router.post("/like", response_model=MatchResult)
def send_like(
    payload: MatchActionPayload,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _record(db, current_user, payload.target_user_id, MatchAction.like)


@router.post("/dislike", response_model=MatchResult)
def send_dislike(
    payload: MatchActionPayload,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _record(db, current_user, payload.target_user_id, MatchAction.dislike)


@router.post("/super-like", response_model=MatchResult)
def send_super_like(
    payload: MatchActionPayload,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _record(db, current_user, payload.target_user_id, MatchAction.super_like)
