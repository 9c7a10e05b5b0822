# teammatch/models/match.py
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, Index, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from teammatch.db.base import Base


def _now():
    return datetime.now(timezone.utc)


class Match(Base):
    """
    A swipe-right relationship.
    Type and parties are fixed at creation; only `status` transitions.
    """
    __tablename__ = "matches"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # who swiped
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    # the individual swiped on, or the target team's owner
    target_user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    team_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("teams.id", ondelete="CASCADE"), nullable=True
    )

    match_type: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    __table_args__ = (
        Index("ix_matches_user_created", "user_id", "created_at"),
        Index("ix_matches_target_user", "target_user_id"),
        Index("ix_matches_team", "team_id"),
    )
