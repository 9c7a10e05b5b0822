# teammatch/models/profile.py
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import String, DateTime, Text, JSON, Index, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from teammatch.db.base import Base


def _now():
    return datetime.now(timezone.utc)


class Profile(Base):
    """
    A student. Keyed by the auth provider's user id.
    Created at onboarding, mutated only by its owner.
    """
    __tablename__ = "profiles"

    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    program: Mapped[str] = mapped_column(String(32), nullable=False)

    skills: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ordered; first entry is the primary preference
    studio_preferences: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    avatar: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    linkedin: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    __table_args__ = (
        Index("ix_profiles_program", "program"),
    )

    @property
    def studio_preference(self) -> Optional[str]:
        return self.studio_preferences[0] if self.studio_preferences else None
