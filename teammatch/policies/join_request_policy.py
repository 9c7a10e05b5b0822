# teammatch/policies/join_request_policy.py
from __future__ import annotations

import uuid

from sqlalchemy.orm import Session

from teammatch.core.types import MatchType
from teammatch.models.match import Match
from teammatch.policies.rbac import is_team_admin


def individual_side(match: Match) -> uuid.UUID:
    """The person who would join the team if the request is accepted."""
    if match.match_type == MatchType.team_to_individual.value:
        return match.target_user_id
    return match.user_id


def can_act_on_join_request(db: Session, *, match: Match, acting_user_id: uuid.UUID) -> bool:
    """
    Derived, never stored:
    - team_to_individual: the team asked, so only the targeted individual answers
    - individual_to_team: the individual asked, so only a confirmed admin/owner
      of the team answers
    """
    if match.match_type == MatchType.team_to_individual.value:
        return acting_user_id == match.target_user_id

    if match.match_type == MatchType.individual_to_team.value and match.team_id is not None:
        return is_team_admin(db, team_id=match.team_id, user_id=acting_user_id)

    return False
