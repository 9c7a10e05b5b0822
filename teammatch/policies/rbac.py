# teammatch/policies/rbac.py
from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from teammatch.core.types import MemberStatus, TEAM_ADMIN_ROLES
from teammatch.models.team import TeamMember


@dataclass(frozen=True)
class ActorSession:
    """
    Who is acting, resolved once per request and passed into every
    engine operation.
    """
    user_id: uuid.UUID
    team_id: Optional[uuid.UUID] = None

    @property
    def has_team(self) -> bool:
        return self.team_id is not None


def resolve_actor_session(db: Session, user_id: uuid.UUID) -> ActorSession:
    membership = (
        db.execute(
            select(TeamMember)
            .where(
                TeamMember.user_id == user_id,
                TeamMember.status == MemberStatus.confirmed.value,
            )
            .order_by(TeamMember.created_at)
        )
        .scalars()
        .first()
    )
    return ActorSession(user_id=user_id, team_id=membership.team_id if membership else None)


def get_confirmed_membership(db: Session, *, team_id: uuid.UUID, user_id: uuid.UUID) -> Optional[TeamMember]:
    return db.execute(
        select(TeamMember).where(
            TeamMember.team_id == team_id,
            TeamMember.user_id == user_id,
            TeamMember.status == MemberStatus.confirmed.value,
        )
    ).scalar_one_or_none()


def is_team_admin(db: Session, *, team_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    row = get_confirmed_membership(db, team_id=team_id, user_id=user_id)
    return bool(row and row.role in TEAM_ADMIN_ROLES)


def require_team_admin(db: Session, *, team_id: uuid.UUID, user_id: uuid.UUID) -> None:
    if not is_team_admin(db, team_id=team_id, user_id=user_id):
        raise PermissionError("Only a team admin may perform this action.")
