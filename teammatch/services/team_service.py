# teammatch/services/team_service.py
from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from teammatch.core.errors import CollaboratorUnavailableError, TargetNotFoundError
from teammatch.core.types import ConversationKind, MemberRole, MemberStatus
from teammatch.models.conversation import Conversation, ConversationParticipant
from teammatch.models.match import Match
from teammatch.models.message import Message, MessageRead
from teammatch.models.team import Team, TeamMember
from teammatch.policies.rbac import get_confirmed_membership, require_team_admin
from teammatch.schemas.teams import TeamCreate, TeamUpdate
from teammatch.services.membership_service import MembershipService

logger = logging.getLogger(__name__)


class TeamService:
    """
    Team lifecycle. Every team has exactly one owner row (the creator) and
    one group conversation that confirmed members participate in.
    """

    def __init__(self, membership: Optional[MembershipService] = None):
        self.membership = membership or MembershipService()

    # ---------------------------
    # READS
    # ---------------------------

    def get(self, db: Session, team_id: uuid.UUID) -> Team:
        team = db.get(Team, team_id)
        if team is None:
            raise TargetNotFoundError("Team not found.")
        return team

    def list_members(self, db: Session, team_id: uuid.UUID) -> List[TeamMember]:
        self.get(db, team_id)
        return (
            db.execute(select(TeamMember).where(TeamMember.team_id == team_id).order_by(TeamMember.created_at))
            .scalars()
            .all()
        )

    def list_for_user(self, db: Session, user_id: uuid.UUID) -> List[Team]:
        return (
            db.execute(
                select(Team)
                .join(TeamMember, TeamMember.team_id == Team.id)
                .where(TeamMember.user_id == user_id, TeamMember.status == MemberStatus.confirmed.value)
                .order_by(Team.created_at)
            )
            .scalars()
            .all()
        )

    # ---------------------------
    # CREATE / UPDATE
    # ---------------------------

    def create(self, db: Session, *, owner_id: uuid.UUID, payload: TeamCreate) -> Team:
        team = Team(
            name=payload.name,
            description=payload.description,
            studio=payload.studio.value,
            looking_for=payload.looking_for,
            skills_needed=list(payload.skills_needed),
            created_by=owner_id,
        )
        try:
            db.add(team)
            db.flush()

            db.add(
                TeamMember(
                    team_id=team.id,
                    user_id=owner_id,
                    role=MemberRole.owner.value,
                    status=MemberStatus.confirmed.value,
                )
            )
            conv = Conversation(kind=ConversationKind.team.value, team_id=team.id)
            db.add(conv)
            db.flush()
            db.add(ConversationParticipant(conversation_id=conv.id, user_id=owner_id))

            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise CollaboratorUnavailableError("Could not create team.") from e

        db.refresh(team)
        logger.info("team created", extra={"team_id": str(team.id), "owner_id": str(owner_id)})
        return team

    def update(self, db: Session, *, team_id: uuid.UUID, actor_id: uuid.UUID, payload: TeamUpdate) -> Team:
        team = self.get(db, team_id)
        require_team_admin(db, team_id=team_id, user_id=actor_id)

        data = payload.model_dump(exclude_unset=True)
        if data.get("studio") is not None:
            data["studio"] = payload.studio.value
        for key, value in data.items():
            if value is None and key in ("name", "studio", "skills_needed"):
                raise ValueError(f"{key} cannot be cleared.")
            setattr(team, key, value)

        db.commit()
        db.refresh(team)
        return team

    # ---------------------------
    # MEMBERSHIP
    # ---------------------------

    def add_member(
        self, db: Session, *, team_id: uuid.UUID, actor_id: uuid.UUID, user_id: uuid.UUID
    ) -> TeamMember:
        self.get(db, team_id)
        require_team_admin(db, team_id=team_id, user_id=actor_id)

        try:
            row, created = self.membership.ensure_team_member(db, team_id=team_id, user_id=user_id)
            conv = self.membership.get_team_conversation(db, team_id=team_id)
            if conv is not None:
                self.membership.ensure_participant(db, conversation_id=conv.id, user_id=user_id)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise CollaboratorUnavailableError("Could not add team member.") from e

        db.refresh(row)
        if created:
            logger.info("team member added", extra={"team_id": str(team_id), "user_id": str(user_id)})
        return row

    def change_role(
        self, db: Session, *, team_id: uuid.UUID, actor_id: uuid.UUID, user_id: uuid.UUID, role: MemberRole
    ) -> TeamMember:
        """Promote to admin or demote to member. Ownership never moves."""
        self.get(db, team_id)
        require_team_admin(db, team_id=team_id, user_id=actor_id)

        if role == MemberRole.owner:
            raise ValueError("Ownership cannot be assigned.")

        row = get_confirmed_membership(db, team_id=team_id, user_id=user_id)
        if row is None:
            raise TargetNotFoundError("Team member not found.")
        if row.role == MemberRole.owner.value:
            raise PermissionError("The team owner cannot be demoted.")

        row.role = role.value
        db.commit()
        db.refresh(row)
        return row

    def _drop_member(self, db: Session, *, team_id: uuid.UUID, user_id: uuid.UUID) -> None:
        row = self.membership.get_member_row(db, team_id=team_id, user_id=user_id)
        if row is None:
            raise TargetNotFoundError("Team member not found.")
        if row.role == MemberRole.owner.value:
            raise PermissionError("The team owner cannot leave; delete the team instead.")

        try:
            conv = self.membership.get_team_conversation(db, team_id=team_id)
            if conv is not None:
                self.membership.remove_participant(db, conversation_id=conv.id, user_id=user_id)
            db.delete(row)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise CollaboratorUnavailableError("Could not remove team member.") from e

        logger.info("team member removed", extra={"team_id": str(team_id), "user_id": str(user_id)})

    def remove_member(self, db: Session, *, team_id: uuid.UUID, actor_id: uuid.UUID, user_id: uuid.UUID) -> None:
        self.get(db, team_id)
        require_team_admin(db, team_id=team_id, user_id=actor_id)
        self._drop_member(db, team_id=team_id, user_id=user_id)

    def leave(self, db: Session, *, team_id: uuid.UUID, user_id: uuid.UUID) -> None:
        self.get(db, team_id)
        self._drop_member(db, team_id=team_id, user_id=user_id)

    # ---------------------------
    # DELETE
    # ---------------------------

    def delete(self, db: Session, *, team_id: uuid.UUID, actor_id: uuid.UUID) -> None:
        """
        Owner only. Children are removed explicitly, leaves first, so the
        result does not depend on the database enforcing ON DELETE.
        """
        team = self.get(db, team_id)
        if team.created_by != actor_id:
            raise PermissionError("Only the team owner may delete the team.")

        match_ids = db.execute(select(Match.id).where(Match.team_id == team_id)).scalars().all()
        conv_q = select(Conversation.id).where(Conversation.team_id == team_id)
        if match_ids:
            conv_q = select(Conversation.id).where(
                or_(Conversation.team_id == team_id, Conversation.match_id.in_(match_ids))
            )
        conv_ids = db.execute(conv_q).scalars().all()

        try:
            if conv_ids:
                db.execute(delete(ConversationParticipant).where(ConversationParticipant.conversation_id.in_(conv_ids)))
                db.execute(delete(Message).where(Message.conversation_id.in_(conv_ids)))
                db.execute(delete(MessageRead).where(MessageRead.conversation_id.in_(conv_ids)))
                db.execute(delete(Conversation).where(Conversation.id.in_(conv_ids)))
            if match_ids:
                db.execute(delete(Match).where(Match.id.in_(match_ids)))
            db.execute(delete(TeamMember).where(TeamMember.team_id == team_id))
            db.execute(delete(Team).where(Team.id == team_id))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise CollaboratorUnavailableError("Could not delete team.") from e

        db.expire_all()
        logger.info(
            "team deleted",
            extra={"team_id": str(team_id), "conversations": len(conv_ids), "matches": len(match_ids)},
        )
