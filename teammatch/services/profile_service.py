# teammatch/services/profile_service.py
from __future__ import annotations

import logging
import uuid
from typing import Iterable, List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from teammatch.core.errors import TargetNotFoundError
from teammatch.models.profile import Profile
from teammatch.schemas.profiles import ProfileCreate, ProfileUpdate

logger = logging.getLogger(__name__)


class ProfileService:
    def get(self, db: Session, user_id: uuid.UUID) -> Profile:
        row = db.get(Profile, user_id)
        if row is None:
            raise TargetNotFoundError("Profile not found.")
        return row

    def list_by_ids(self, db: Session, user_ids: Iterable[uuid.UUID]) -> List[Profile]:
        ids = list(user_ids)
        if not ids:
            return []
        return db.execute(select(Profile).where(Profile.user_id.in_(ids))).scalars().all()

    def create(self, db: Session, *, user_id: uuid.UUID, payload: ProfileCreate) -> Profile:
        """A user has exactly one profile, keyed by their user id."""
        if db.get(Profile, user_id) is not None:
            raise ValueError("Profile already exists.")

        row = Profile(
            user_id=user_id,
            name=payload.name,
            program=payload.program.value,
            skills=list(payload.skills),
            bio=payload.bio,
            studio_preferences=[s.value for s in payload.studio_preferences],
            avatar=payload.avatar,
            linkedin=payload.linkedin,
        )
        db.add(row)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ValueError("Profile already exists.")
        db.refresh(row)

        logger.info("profile created", extra={"user_id": str(user_id), "program": row.program})
        return row

    def update(self, db: Session, *, user_id: uuid.UUID, payload: ProfileUpdate) -> Profile:
        row = self.get(db, user_id)

        data = payload.model_dump(exclude_unset=True)
        if "program" in data and data["program"] is not None:
            data["program"] = payload.program.value
        if "studio_preferences" in data and data["studio_preferences"] is not None:
            data["studio_preferences"] = [s.value for s in payload.studio_preferences]

        for key, value in data.items():
            if value is None and key in ("name", "program", "studio_preferences", "skills"):
                raise ValueError(f"{key} cannot be cleared.")
            setattr(row, key, value)

        db.commit()
        db.refresh(row)
        return row
