"""Match ORM model — one row per unordered pair with an action slot per side."""
import uuid
import enum
from datetime import datetime, timezone
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, CheckConstraint, UniqueConstraint, Enum as SAEnum
from sqlalchemy.orm import relationship
from andex.database import Base


class MatchAction(str, enum.Enum):
    like = "LIKE"
    dislike = "DISLIKE"
    super_like = "SUPER_LIKE"

    @property
    def is_like(self) -> bool:
        return self in (MatchAction.like, MatchAction.super_like)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Match(Base):
    __tablename__ = "matches"

    match_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # Slot A belongs to whoever acted first
    user_a_id = Column(String(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    user_b_id = Column(String(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    user_a_action = Column(SAEnum(MatchAction), nullable=True)
    user_b_action = Column(SAEnum(MatchAction), nullable=True)
    # Ordered pair for deduplication: pair_low = min(a, b), pair_high = max(a, b)
    pair_low = Column(String(36), nullable=False)
    pair_high = Column(String(36), nullable=False)
    is_mutual = Column(Boolean, nullable=False, default=False)
    matched_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    user_a = relationship("User", foreign_keys=[user_a_id])
    user_b = relationship("User", foreign_keys=[user_b_id])

    __table_args__ = (
        UniqueConstraint("pair_low", "pair_high", name="uq_match_pair"),
        CheckConstraint("user_a_id <> user_b_id", name="ck_match_no_self"),
    )

    def other_user(self, user_id: str):
        return self.user_b if user_id == self.user_a_id else self.user_a
