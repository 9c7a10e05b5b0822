# teammatch/services/discovery_service.py
from __future__ import annotations

import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from teammatch.core.types import MatchType, MemberStatus, SubjectType
from teammatch.models.match import Match
from teammatch.models.profile import Profile
from teammatch.models.team import Team, TeamMember
from teammatch.policies.rbac import ActorSession


class DiscoveryService:
    """Cards the actor can still swipe on."""

    def candidate_profiles(
        self, db: Session, session: ActorSession, *, program: Optional[str] = None, limit: int = 50
    ) -> List[Profile]:
        on_team = select(TeamMember.user_id).where(TeamMember.status == MemberStatus.confirmed.value)
        already_targeted = select(Match.target_user_id).where(
            Match.user_id == session.user_id,
            Match.match_type.in_(
                [MatchType.individual_to_individual.value, MatchType.team_to_individual.value]
            ),
        )

        q = select(Profile).where(
            Profile.user_id != session.user_id,
            Profile.user_id.not_in(on_team),
            Profile.user_id.not_in(already_targeted),
        )
        if program:
            q = q.where(Profile.program == program)

        return db.execute(q.order_by(Profile.created_at.desc()).limit(limit)).scalars().all()

    def candidate_teams(
        self, db: Session, session: ActorSession, *, studio: Optional[str] = None, limit: int = 50
    ) -> List[Team]:
        own_teams = select(TeamMember.team_id).where(
            TeamMember.user_id == session.user_id,
            TeamMember.status == MemberStatus.confirmed.value,
        )
        already_requested = select(Match.team_id).where(
            Match.user_id == session.user_id,
            Match.match_type == MatchType.individual_to_team.value,
            Match.team_id.is_not(None),
        )

        q = select(Team).where(
            Team.created_by != session.user_id,
            Team.id.not_in(own_teams),
            Team.id.not_in(already_requested),
        )
        if studio:
            q = q.where(Team.studio == studio)

        return db.execute(q.order_by(Team.created_at.desc()).limit(limit)).scalars().all()

    def resolve_target(self, db: Session, subject_type: str, subject_id: uuid.UUID):
        """The Profile or Team a swipe points at, or None."""
        if subject_type == SubjectType.team:
            return db.get(Team, subject_id)
        return db.get(Profile, subject_id)
