# teammatch/services/membership_service.py
from __future__ import annotations

import logging
import uuid
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from teammatch.core.types import ConversationKind, MemberRole, MemberStatus, TEAM_ADMIN_ROLES
from teammatch.models.conversation import Conversation, ConversationParticipant
from teammatch.models.team import TeamMember

logger = logging.getLogger(__name__)


class MembershipService:
    """
    Check-then-insert helpers for the two join tables.

    Nothing here commits. Callers own the transaction; a concurrent writer
    that wins the race shows up as an IntegrityError from the unique
    constraints at flush/commit, which callers treat as "already exists".
    """

    def get_member_row(self, db: Session, *, team_id: uuid.UUID, user_id: uuid.UUID) -> Optional[TeamMember]:
        return db.execute(
            select(TeamMember).where(
                TeamMember.team_id == team_id,
                TeamMember.user_id == user_id,
            )
        ).scalar_one_or_none()

    def ensure_team_member(
        self,
        db: Session,
        *,
        team_id: uuid.UUID,
        user_id: uuid.UUID,
        role: str = MemberRole.member.value,
    ) -> Tuple[TeamMember, bool]:
        """
        Returns (row, created). `created` is False when the user was already
        a confirmed member.
        """
        existing = self.get_member_row(db, team_id=team_id, user_id=user_id)
        if existing is not None:
            if existing.status == MemberStatus.confirmed.value:
                logger.info(
                    "already a team member",
                    extra={"team_id": str(team_id), "user_id": str(user_id)},
                )
                return existing, False
            # pending/rejected leftovers are confirmed in place
            existing.status = MemberStatus.confirmed.value
            if existing.role not in TEAM_ADMIN_ROLES:
                existing.role = role
            db.flush()
            return existing, True

        row = TeamMember(
            team_id=team_id,
            user_id=user_id,
            role=role,
            status=MemberStatus.confirmed.value,
        )
        db.add(row)
        db.flush()
        return row, True

    def get_team_conversation(self, db: Session, *, team_id: uuid.UUID) -> Optional[Conversation]:
        return (
            db.execute(
                select(Conversation)
                .where(
                    Conversation.team_id == team_id,
                    Conversation.kind == ConversationKind.team.value,
                )
                .order_by(Conversation.created_at)
            )
            .scalars()
            .first()
        )

    def is_participant(self, db: Session, *, conversation_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        return (
            db.execute(
                select(ConversationParticipant.id).where(
                    ConversationParticipant.conversation_id == conversation_id,
                    ConversationParticipant.user_id == user_id,
                )
            ).first()
            is not None
        )

    def ensure_participant(self, db: Session, *, conversation_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        """Returns True when a row was inserted."""
        if self.is_participant(db, conversation_id=conversation_id, user_id=user_id):
            return False
        db.add(ConversationParticipant(conversation_id=conversation_id, user_id=user_id))
        db.flush()
        return True

    def remove_participant(self, db: Session, *, conversation_id: uuid.UUID, user_id: uuid.UUID) -> None:
        row = db.execute(
            select(ConversationParticipant).where(
                ConversationParticipant.conversation_id == conversation_id,
                ConversationParticipant.user_id == user_id,
            )
        ).scalar_one_or_none()
        if row is not None:
            db.delete(row)
            db.flush()
