# teammatch/services/join_request_service.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from teammatch.core.errors import (
    CollaboratorUnavailableError,
    DuplicateMembershipWarning,
    InvalidStateError,
    NotAuthorizedError,
)
from teammatch.core.types import MatchStatus, MatchType, MemberStatus, TEAM_ADMIN_ROLES
from teammatch.models.match import Match
from teammatch.models.team import TeamMember
from teammatch.policies.join_request_policy import can_act_on_join_request, individual_side
from teammatch.policies.rbac import ActorSession
from teammatch.services.membership_service import MembershipService

logger = logging.getLogger(__name__)

JOIN_REQUEST_TYPES = {MatchType.team_to_individual.value, MatchType.individual_to_team.value}


@dataclass
class JoinRequestOutcome:
    match: Match
    member_added: bool = False
    participant_added: bool = False
    notices: List[Warning] = field(default_factory=list)


class JoinRequestService:
    """
    Status machine for team-involving matches:

        pending ──accept──▶ accepted
           └────reject──▶ rejected

    Accept adds the individual side to the team and to the team's group
    conversation. Re-running accept never duplicates either row.
    """

    def __init__(self, membership: Optional[MembershipService] = None):
        self.membership = membership or MembershipService()

    # ---------------------------
    # READS
    # ---------------------------

    def get_match(self, db: Session, match_id: uuid.UUID) -> Match:
        match = db.get(Match, match_id)
        if match is None:
            raise InvalidStateError("Match not found.")
        return match

    def list_pending_for(self, db: Session, session: ActorSession) -> List[Match]:
        """Join requests waiting on the actor's decision."""
        admin_team_ids = (
            db.execute(
                select(TeamMember.team_id).where(
                    TeamMember.user_id == session.user_id,
                    TeamMember.status == MemberStatus.confirmed.value,
                    TeamMember.role.in_(TEAM_ADMIN_ROLES),
                )
            )
            .scalars()
            .all()
        )

        conditions = [
            and_(Match.match_type == MatchType.team_to_individual.value, Match.target_user_id == session.user_id)
        ]
        if admin_team_ids:
            conditions.append(
                and_(Match.match_type == MatchType.individual_to_team.value, Match.team_id.in_(admin_team_ids))
            )

        return (
            db.execute(
                select(Match)
                .where(Match.status == MatchStatus.pending.value, or_(*conditions))
                .order_by(Match.created_at.desc())
            )
            .scalars()
            .all()
        )

    # ---------------------------
    # GUARDS
    # ---------------------------

    def _guard(self, db: Session, session: ActorSession, match: Match) -> None:
        if match.match_type not in JOIN_REQUEST_TYPES:
            raise InvalidStateError("Only team join requests can be accepted or rejected.")
        if not can_act_on_join_request(db, match=match, acting_user_id=session.user_id):
            raise NotAuthorizedError("You are not allowed to answer this join request.")

    # ---------------------------
    # MUTATIONS
    # ---------------------------

    def _apply_accept(self, db: Session, match: Match) -> JoinRequestOutcome:
        outcome = JoinRequestOutcome(match=match)
        user_to_add = individual_side(match)

        # status first: a pending match with a member is retryable,
        # an accepted match without one is not
        match.status = MatchStatus.accepted.value
        db.flush()

        _, created = self.membership.ensure_team_member(db, team_id=match.team_id, user_id=user_to_add)
        outcome.member_added = created
        if not created:
            outcome.notices.append(DuplicateMembershipWarning("This user is already a team member."))

        team_conv = self.membership.get_team_conversation(db, team_id=match.team_id)
        if team_conv is not None:
            outcome.participant_added = self.membership.ensure_participant(
                db, conversation_id=team_conv.id, user_id=user_to_add
            )
        return outcome

    def _check_acceptable(self, db: Session, session: ActorSession, match: Match) -> bool:
        """Returns True when the request was already accepted."""
        self._guard(db, session, match)
        if match.status == MatchStatus.accepted.value:
            return True
        if match.status != MatchStatus.pending.value:
            raise InvalidStateError(f"Cannot accept a request that is {match.status}.")
        return False

    def accept(self, db: Session, session: ActorSession, match_id: uuid.UUID) -> JoinRequestOutcome:
        match = self.get_match(db, match_id)
        already_accepted = self._check_acceptable(db, session, match)

        # one retry: a concurrent accept that wins the unique constraint
        # makes the second pass find the rows and skip them
        for attempt in range(2):
            try:
                outcome = self._apply_accept(db, match)
                db.commit()
                break
            except IntegrityError as e:
                db.rollback()
                if attempt:
                    raise CollaboratorUnavailableError("Could not accept join request.") from e
                logger.info("accept raced a concurrent writer, retrying", extra={"match_id": str(match_id)})
                # the other writer may have answered the request meanwhile
                match = self.get_match(db, match_id)
                already_accepted = self._check_acceptable(db, session, match)
            except SQLAlchemyError as e:
                db.rollback()
                raise CollaboratorUnavailableError("Could not accept join request.") from e

        db.refresh(match)
        if already_accepted:
            outcome.notices.append(UserWarning("Request was already accepted."))

        logger.info(
            "join request accepted",
            extra={
                "match_id": str(match.id),
                "team_id": str(match.team_id),
                "member_added": outcome.member_added,
                "participant_added": outcome.participant_added,
            },
        )
        return outcome

    def reject(self, db: Session, session: ActorSession, match_id: uuid.UUID) -> JoinRequestOutcome:
        match = self.get_match(db, match_id)
        self._guard(db, session, match)

        if match.status == MatchStatus.rejected.value:
            return JoinRequestOutcome(match=match, notices=[UserWarning("Request was already declined.")])
        if match.status != MatchStatus.pending.value:
            raise InvalidStateError(f"Cannot reject a request that is {match.status}.")

        try:
            match.status = MatchStatus.rejected.value
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise CollaboratorUnavailableError("Could not reject join request.") from e

        db.refresh(match)
        logger.info("join request rejected", extra={"match_id": str(match.id), "team_id": str(match.team_id)})
        return JoinRequestOutcome(match=match)
