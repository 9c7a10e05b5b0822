# teammatch/services/messaging_service.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from teammatch.core.errors import CollaboratorUnavailableError, InvalidStateError, NotAuthorizedError
from teammatch.core.realtime import MessageFeed, feed as default_feed
from teammatch.core.types import ConversationKind, MemberStatus
from teammatch.models.conversation import Conversation, ConversationParticipant
from teammatch.models.match import Match
from teammatch.models.message import Message
from teammatch.models.team import TeamMember
from teammatch.policies.rbac import ActorSession
from teammatch.schemas.conversations import MessageCreate, MessageOut
from teammatch.services.membership_service import MembershipService
from teammatch.services.unread_service import UnreadCounter

logger = logging.getLogger(__name__)


@dataclass
class ConversationSummary:
    conversation: Conversation
    participant_ids: List[uuid.UUID] = field(default_factory=list)
    unread: int = 0


def message_payload(message: Message) -> Dict:
    return MessageOut.model_validate(message).model_dump(mode="json")


class MessagingService:
    def __init__(self, feed: Optional[MessageFeed] = None, membership: Optional[MembershipService] = None):
        self.feed = feed or default_feed
        self.membership = membership or MembershipService()

    # ---------------------------
    # ACCESS
    # ---------------------------

    def _confirmed_team_ids(self, db: Session, user_id: uuid.UUID) -> List[uuid.UUID]:
        return (
            db.execute(
                select(TeamMember.team_id).where(
                    TeamMember.user_id == user_id,
                    TeamMember.status == MemberStatus.confirmed.value,
                )
            )
            .scalars()
            .all()
        )

    def _is_match_party(self, db: Session, match: Match, user_id: uuid.UUID) -> bool:
        if user_id in (match.user_id, match.target_user_id):
            return True
        return match.team_id is not None and match.team_id in self._confirmed_team_ids(db, user_id)

    def get_conversation(self, db: Session, conversation_id: uuid.UUID) -> Conversation:
        conv = db.get(Conversation, conversation_id)
        if conv is None:
            raise InvalidStateError("Conversation not found.")
        return conv

    def can_view(self, db: Session, *, conversation: Conversation, user_id: uuid.UUID) -> bool:
        if self.membership.is_participant(db, conversation_id=conversation.id, user_id=user_id):
            return True
        # team members may follow their team's join-request conversations
        if conversation.match_id is not None:
            match = db.get(Match, conversation.match_id)
            return match is not None and self._is_match_party(db, match, user_id)
        return False

    def require_view(self, db: Session, session: ActorSession, conversation_id: uuid.UUID) -> Conversation:
        conv = self.get_conversation(db, conversation_id)
        if not self.can_view(db, conversation=conv, user_id=session.user_id):
            raise NotAuthorizedError("You are not part of this conversation.")
        return conv

    # ---------------------------
    # READS
    # ---------------------------

    def list_conversations(
        self, db: Session, session: ActorSession, unread: Optional[UnreadCounter] = None
    ) -> List[ConversationSummary]:
        user_id = session.user_id

        participant_conv_ids = set(
            db.execute(
                select(ConversationParticipant.conversation_id).where(ConversationParticipant.user_id == user_id)
            )
            .scalars()
            .all()
        )

        team_ids = self._confirmed_team_ids(db, user_id)
        match_filter = [Match.user_id == user_id, Match.target_user_id == user_id]
        if team_ids:
            match_filter.append(Match.team_id.in_(team_ids))
        match_ids = db.execute(select(Match.id).where(or_(*match_filter))).scalars().all()

        conv_filter = []
        if participant_conv_ids:
            conv_filter.append(Conversation.id.in_(participant_conv_ids))
        if match_ids:
            conv_filter.append(Conversation.match_id.in_(match_ids))
        if not conv_filter:
            return []

        conversations = (
            db.execute(select(Conversation).where(or_(*conv_filter)).order_by(Conversation.updated_at.desc()))
            .scalars()
            .all()
        )
        conv_ids = [c.id for c in conversations]

        participants: Dict[uuid.UUID, List[uuid.UUID]] = {cid: [] for cid in conv_ids}
        for cid, uid in db.execute(
            select(ConversationParticipant.conversation_id, ConversationParticipant.user_id).where(
                ConversationParticipant.conversation_id.in_(conv_ids)
            )
        ).all():
            participants[cid].append(uid)

        counter = unread or UnreadCounter()
        counts = counter.unread_many(db, conversation_ids=conv_ids, user_id=user_id)

        return [
            ConversationSummary(conversation=c, participant_ids=participants[c.id], unread=counts.get(c.id, 0))
            for c in conversations
        ]

    def list_messages(self, db: Session, *, conversation_id: uuid.UUID) -> List[Message]:
        return (
            db.execute(
                select(Message)
                .where(Message.conversation_id == conversation_id)
                .order_by(Message.created_at.asc(), Message.id.asc())
            )
            .scalars()
            .all()
        )

    def get_messages(self, db: Session, session: ActorSession, conversation_id: uuid.UUID) -> List[Message]:
        self.require_view(db, session, conversation_id)
        return self.list_messages(db, conversation_id=conversation_id)

    # ---------------------------
    # MUTATIONS
    # ---------------------------

    def send_message(self, db: Session, session: ActorSession, conversation_id: uuid.UUID, content: str) -> Message:
        body = MessageCreate(content=content)

        self.get_conversation(db, conversation_id)
        if not self.membership.is_participant(db, conversation_id=conversation_id, user_id=session.user_id):
            raise NotAuthorizedError("Only participants can send messages to this conversation.")

        msg = Message(conversation_id=conversation_id, sender_id=session.user_id, content=body.content)
        try:
            db.add(msg)
            db.commit()
            db.refresh(msg)
        except SQLAlchemyError as e:
            db.rollback()
            raise CollaboratorUnavailableError("Could not send message.") from e

        delivered = self.feed.publish(conversation_id, message_payload(msg))
        logger.info(
            "message sent",
            extra={"conversation_id": str(conversation_id), "message_id": str(msg.id), "delivered": delivered},
        )
        return msg

    def start_chat(self, db: Session, session: ActorSession, match_id: uuid.UUID) -> Conversation:
        """Open the conversation linked to a match, creating it if the match has none."""
        match = db.get(Match, match_id)
        if match is None:
            raise InvalidStateError("Match not found.")
        if not self._is_match_party(db, match, session.user_id):
            raise NotAuthorizedError("You are not part of this match.")

        existing = (
            db.execute(select(Conversation).where(Conversation.match_id == match_id).order_by(Conversation.created_at))
            .scalars()
            .first()
        )
        if existing is not None:
            return existing

        try:
            conv = Conversation(kind=ConversationKind.direct.value, match_id=match.id)
            db.add(conv)
            db.flush()
            for uid in dict.fromkeys([match.user_id, match.target_user_id]):
                self.membership.ensure_participant(db, conversation_id=conv.id, user_id=uid)
            db.commit()
            db.refresh(conv)
        except SQLAlchemyError as e:
            db.rollback()
            raise CollaboratorUnavailableError("Could not start conversation.") from e
        return conv
