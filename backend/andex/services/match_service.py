"""Match engine — directional like/dislike actions and mutual-match detection.

A pair of users shares one ``Match`` row. The first actor owns slot A, the
other party's later actions land in slot B. Rows are keyed by the ordered
pair (pair_low, pair_high) so the reverse direction can never be inserted as
a second row.

``matched_at`` is stamped when the row turns mutual, kept while it stays
mutual, and cleared as soon as either side stops liking.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, Union

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from andex.database import dialect_insert
from andex.errors import NotFoundError, ValidationError
from andex.models.match import Match, MatchAction
from andex.models.user import User

logger = logging.getLogger(__name__)


def canonical_pair(a: str, b: str) -> tuple[str, str]:
    return (a, b) if a < b else (b, a)


def parse_action(action: Union[str, MatchAction]) -> MatchAction:
    try:
        return MatchAction(action)
    except ValueError:
        raise ValidationError(f"Invalid match action: {action}. Must be LIKE, DISLIKE or SUPER_LIKE")


def _is_mutual(a_action: Optional[MatchAction], b_action: Optional[MatchAction]) -> bool:
    return bool(a_action and b_action and a_action.is_like and b_action.is_like)


def _load_pair(db: Session, low: str, high: str, lock: bool = False) -> Optional[Match]:
    query = db.query(Match).filter(Match.pair_low == low, Match.pair_high == high)
    if lock:
        query = query.with_for_update()
    return query.populate_existing().first()


def record_action(
    db: Session,
    actor_id: str,
    target_id: str,
    action: Union[str, MatchAction],
) -> tuple[Match, bool]:
    """Record ``actor_id``'s action toward ``target_id``.

    Returns ``(match, just_matched)`` where ``just_matched`` is true only when
    this call turned the pair mutual.
    """
    if not target_id:
        raise ValidationError("target_user_id is required")
    if actor_id == target_id:
        raise ValidationError("Cannot perform a match action on yourself")
    action = parse_action(action)

    target = db.query(User.user_id).filter(User.user_id == target_id).first()
    if not target:
        raise NotFoundError("Target user not found")

    low, high = canonical_pair(actor_id, target_id)
    now = datetime.now(timezone.utc)

    # Conditional insert closes the check-then-create race: only one of two
    # concurrent first actions creates the row, the other falls through to the update.
    stmt = (
        dialect_insert(db, Match)
        .values(
            match_id=str(uuid.uuid4()),
            user_a_id=actor_id,
            user_b_id=target_id,
            user_a_action=action,
            pair_low=low,
            pair_high=high,
            is_mutual=False,
            created_at=now,
            updated_at=now,
        )
        .on_conflict_do_nothing(index_elements=["pair_low", "pair_high"])
    )
    try:
        result = db.execute(stmt)
        if result.rowcount == 1:
            logger.info("Created match between %s and %s with action %s", actor_id, target_id, action.value)

        match = _load_pair(db, low, high, lock=True)
        was_mutual = match.is_mutual
        if match.user_a_id == actor_id:
            match.user_a_action = action
        else:
            match.user_b_action = action

        match.is_mutual = _is_mutual(match.user_a_action, match.user_b_action)
        if match.is_mutual and not was_mutual:
            match.matched_at = now
        elif not match.is_mutual:
            match.matched_at = None
        match.updated_at = now
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Concurrent write on match pair (%s, %s); returning current state", low, high)
        match = _load_pair(db, low, high)
        if match is None:
            raise
        return match, False

    db.refresh(match)
    just_matched = match.is_mutual and not was_mutual
    if just_matched:
        logger.info("Mutual match between %s and %s", match.user_a_id, match.user_b_id)
    else:
        logger.info("Updated match %s: %s -> %s is %s", match.match_id, actor_id, target_id, action.value)
    return match, just_matched


def list_mutual_matches(db: Session, user_id: str) -> list[User]:
    """Return the counterpart of every mutual match involving ``user_id``."""
    matches = (
        db.query(Match)
        .filter(
            or_(Match.user_a_id == user_id, Match.user_b_id == user_id),
            Match.is_mutual.is_(True),
        )
        .order_by(Match.matched_at.desc())
        .all()
    )
    logger.info("Found %d mutual matches for user %s", len(matches), user_id)
    return [m.other_user(user_id) for m in matches if m.other_user(user_id) is not None]


def list_actions_by_user(
    db: Session,
    user_id: str,
    action: Union[str, MatchAction],
    limit: int = 50,
) -> list[User]:
    """Users toward whom ``user_id`` recorded ``action``, most recent first.

    Filters on the caller's own slot, never on the counterpart's action.
    """
    action = parse_action(action)
    matches = (
        db.query(Match)
        .filter(
            or_(
                and_(Match.user_a_id == user_id, Match.user_a_action == action),
                and_(Match.user_b_id == user_id, Match.user_b_action == action),
            )
        )
        .order_by(Match.created_at.desc())
        .limit(limit)
        .all()
    )
    return [m.other_user(user_id) for m in matches]


def acted_user_ids(db: Session, user_id: str) -> set[str]:
    """Ids of every user that ``user_id`` has already liked, disliked or super-liked."""
    rows = (
        db.query(Match.user_a_id, Match.user_b_id)
        .filter(
            or_(
                and_(Match.user_a_id == user_id, Match.user_a_action.isnot(None)),
                and_(Match.user_b_id == user_id, Match.user_b_action.isnot(None)),
            )
        )
        .all()
    )
    return {b if a == user_id else a for a, b in rows}
