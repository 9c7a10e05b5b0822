# teammatch/services/match_factory.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Callable, ClassVar, List, Optional, Tuple, Union

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from teammatch.core.errors import (
    CollaboratorUnavailableError,
    InvalidStateError,
    NoTeamError,
    PartialWriteError,
)
from teammatch.core.types import ConversationKind, MatchStatus, MatchType
from teammatch.models.conversation import Conversation, ConversationParticipant
from teammatch.models.match import Match
from teammatch.models.profile import Profile
from teammatch.models.team import Team
from teammatch.policies.rbac import ActorSession

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# MATCH SHAPES
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IndividualToIndividual:
    actor_id: uuid.UUID
    target_user_id: uuid.UUID

    match_type: ClassVar[MatchType] = MatchType.individual_to_individual

    @property
    def team_id(self) -> Optional[uuid.UUID]:
        return None

    @property
    def participants(self) -> Tuple[uuid.UUID, ...]:
        return (self.actor_id, self.target_user_id)


@dataclass(frozen=True)
class TeamToIndividual:
    """
    The actor swipes on an individual on behalf of their team.

    `shape_for` only builds this for actors who have a team, so the
    NoTeamError check guards direct construction only.
    """

    team_id: Optional[uuid.UUID]
    actor_id: uuid.UUID
    target_user_id: uuid.UUID

    match_type: ClassVar[MatchType] = MatchType.team_to_individual

    def __post_init__(self):
        if self.team_id is None:
            raise NoTeamError("You need to be part of a team to swipe on individuals as a team.")

    @property
    def participants(self) -> Tuple[uuid.UUID, ...]:
        return (self.target_user_id, self.actor_id)


@dataclass(frozen=True)
class IndividualToTeam:
    actor_id: uuid.UUID
    team_id: uuid.UUID
    # team owner, the primary contact for the request
    owner_id: uuid.UUID

    match_type: ClassVar[MatchType] = MatchType.individual_to_team

    @property
    def target_user_id(self) -> uuid.UUID:
        return self.owner_id

    @property
    def participants(self) -> Tuple[uuid.UUID, ...]:
        return (self.actor_id, self.owner_id)


MatchShape = Union[IndividualToIndividual, TeamToIndividual, IndividualToTeam]


def shape_for(session: ActorSession, target: Union[Profile, Team]) -> MatchShape:
    """
    Pick the match shape for a swipe-right by `session` on `target`.
    Raises before anything is written. Actors without a team swipe on
    profiles as individuals, never as a team.
    """
    if isinstance(target, Team):
        if target.created_by == session.user_id or target.id == session.team_id:
            raise InvalidStateError("Cannot send a join request to your own team.")
        return IndividualToTeam(actor_id=session.user_id, team_id=target.id, owner_id=target.created_by)

    if isinstance(target, Profile):
        if target.user_id == session.user_id:
            raise InvalidStateError("Cannot swipe on your own profile.")
        if session.has_team:
            return TeamToIndividual(
                team_id=session.team_id,
                actor_id=session.user_id,
                target_user_id=target.user_id,
            )
        return IndividualToIndividual(actor_id=session.user_id, target_user_id=target.user_id)

    raise TypeError(f"Unsupported swipe target: {type(target).__name__}")


# ---------------------------------------------------------------------------
# FACTORY
# ---------------------------------------------------------------------------


@dataclass
class CreatedMatch:
    match: Match
    conversation: Conversation
    shape: MatchShape

    @property
    def match_id(self) -> uuid.UUID:
        return self.match.id

    @property
    def conversation_id(self) -> uuid.UUID:
        return self.conversation.id


MatchCreatedListener = Callable[[CreatedMatch], None]


class MatchFactory:
    """
    Turns a swipe-right into Match + Conversation + participant rows.

    The atomic path writes all three in one transaction. If it fails (or is
    disabled) the sequential path commits step by step and removes what it
    wrote if a later step fails, so a Match is never left without its
    Conversation unreported.
    """

    STEP_MATCH = "match"
    STEP_CONVERSATION = "conversation"
    STEP_PARTICIPANTS = "participants"

    def __init__(self, *, atomic: bool = True, listeners: Optional[List[MatchCreatedListener]] = None):
        self.atomic = atomic
        self._listeners: List[MatchCreatedListener] = list(listeners or [])

    def add_listener(self, listener: MatchCreatedListener) -> None:
        self._listeners.append(listener)

    # ---------------------------
    # ROW BUILDERS (flush only)
    # ---------------------------

    def _insert_match(self, db: Session, shape: MatchShape) -> Match:
        match = Match(
            user_id=shape.actor_id,
            target_user_id=shape.target_user_id,
            team_id=shape.team_id,
            match_type=shape.match_type.value,
            status=MatchStatus.pending.value,
        )
        db.add(match)
        db.flush()
        return match

    def _insert_conversation(self, db: Session, match: Match) -> Conversation:
        conversation = Conversation(kind=ConversationKind.direct.value, match_id=match.id)
        db.add(conversation)
        db.flush()
        return conversation

    def _insert_participants(self, db: Session, conversation: Conversation, shape: MatchShape) -> None:
        db.add_all(
            [ConversationParticipant(conversation_id=conversation.id, user_id=uid) for uid in shape.participants]
        )
        db.flush()

    # ---------------------------
    # PATHS
    # ---------------------------

    def _create_atomic(self, db: Session, shape: MatchShape) -> CreatedMatch:
        match = self._insert_match(db, shape)
        conversation = self._insert_conversation(db, match)
        self._insert_participants(db, conversation, shape)
        db.commit()
        db.refresh(match)
        db.refresh(conversation)
        return CreatedMatch(match=match, conversation=conversation, shape=shape)

    def _cleanup(self, db: Session, *, match_id: uuid.UUID, conversation_id: Optional[uuid.UUID]) -> bool:
        try:
            if conversation_id is not None:
                db.execute(
                    delete(ConversationParticipant).where(ConversationParticipant.conversation_id == conversation_id)
                )
                db.execute(delete(Conversation).where(Conversation.id == conversation_id))
            db.execute(delete(Match).where(Match.id == match_id))
            db.commit()
            return True
        except SQLAlchemyError:
            db.rollback()
            logger.exception("cleanup after partial match write failed", extra={"match_id": str(match_id)})
            return False

    def _create_sequential(self, db: Session, shape: MatchShape) -> CreatedMatch:
        try:
            match = self._insert_match(db, shape)
            db.commit()
            db.refresh(match)
        except SQLAlchemyError as e:
            db.rollback()
            raise CollaboratorUnavailableError(f"Could not create match: {e.__class__.__name__}") from e

        match_id = match.id

        try:
            conversation = self._insert_conversation(db, match)
            db.commit()
            db.refresh(conversation)
        except SQLAlchemyError as e:
            db.rollback()
            cleaned = self._cleanup(db, match_id=match_id, conversation_id=None)
            logger.error(
                "partial match write",
                extra={"step": self.STEP_CONVERSATION, "match_id": str(match_id), "cleaned_up": cleaned},
            )
            raise PartialWriteError(
                "Match was created but its conversation could not be.",
                step=self.STEP_CONVERSATION,
                cleaned_up=cleaned,
                match_id=str(match_id),
            ) from e

        conversation_id = conversation.id

        try:
            self._insert_participants(db, conversation, shape)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            cleaned = self._cleanup(db, match_id=match_id, conversation_id=conversation_id)
            logger.error(
                "partial match write",
                extra={"step": self.STEP_PARTICIPANTS, "match_id": str(match_id), "cleaned_up": cleaned},
            )
            raise PartialWriteError(
                "Match and conversation were created but participants could not be added.",
                step=self.STEP_PARTICIPANTS,
                cleaned_up=cleaned,
                match_id=str(match_id),
            ) from e

        return CreatedMatch(match=match, conversation=conversation, shape=shape)

    # ---------------------------
    # MAIN ENTRY
    # ---------------------------

    def create_from_shape(self, db: Session, shape: MatchShape) -> CreatedMatch:
        created = None
        if self.atomic:
            try:
                created = self._create_atomic(db, shape)
            except SQLAlchemyError as e:
                db.rollback()
                logger.warning(
                    "atomic match creation failed, falling back to sequential writes",
                    extra={"match_type": shape.match_type.value, "error": e.__class__.__name__},
                )

        if created is None:
            created = self._create_sequential(db, shape)

        logger.info(
            "match created",
            extra={
                "match_id": str(created.match_id),
                "conversation_id": str(created.conversation_id),
                "match_type": shape.match_type.value,
            },
        )
        self._notify(created)
        return created

    def create_match(self, db: Session, session: ActorSession, target: Union[Profile, Team]) -> CreatedMatch:
        return self.create_from_shape(db, shape_for(session, target))

    def _notify(self, created: CreatedMatch) -> None:
        for listener in self._listeners:
            try:
                listener(created)
            except Exception:
                # the rows are committed; a listener cannot undo that
                logger.exception("match-created listener failed", extra={"match_id": str(created.match_id)})
