# teammatch/services/swipe_service.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from teammatch.core.errors import TargetNotFoundError
from teammatch.core.types import SubjectType, SwipeDirection
from teammatch.models.team import Team
from teammatch.policies.rbac import ActorSession
from teammatch.services.discovery_service import DiscoveryService
from teammatch.services.history_service import (
    SwipeHistoryEntry,
    SwipeHistoryLedger,
    snapshot_profile,
    snapshot_team,
)
from teammatch.services.match_factory import CreatedMatch, MatchFactory

logger = logging.getLogger(__name__)


@dataclass
class SwipeOutcome:
    entry: SwipeHistoryEntry
    created: Optional[CreatedMatch] = None


class SwipeService:
    """
    One entry point for both directions.

    Left is a local skip. Right goes through the factory and is recorded
    only once the rows are written, so a failed swipe leaves no entry.
    """

    def __init__(self, factory: Optional[MatchFactory] = None, discovery: Optional[DiscoveryService] = None):
        self.factory = factory or MatchFactory()
        self.discovery = discovery or DiscoveryService()

    def swipe(
        self,
        db: Session,
        session: ActorSession,
        ledger: SwipeHistoryLedger,
        *,
        subject_type: SubjectType,
        subject_id: uuid.UUID,
        direction: SwipeDirection,
    ) -> SwipeOutcome:
        subject_type = SubjectType(subject_type)
        direction = SwipeDirection(direction)

        target = self.discovery.resolve_target(db, subject_type, subject_id)
        if target is None:
            raise TargetNotFoundError(f"No {subject_type.value} with id {subject_id}.")

        snapshot = snapshot_team(target) if isinstance(target, Team) else snapshot_profile(target)

        created = None
        if direction == SwipeDirection.right:
            created = self.factory.create_match(db, session, target)

        entry = SwipeHistoryEntry(
            subject_type=subject_type,
            subject=snapshot,
            direction=direction,
            match_id=created.match_id if created else None,
        )
        ledger.append(entry)

        logger.info(
            "swipe recorded",
            extra={
                "user_id": str(session.user_id),
                "subject_type": subject_type.value,
                "direction": direction.value,
                "match_id": str(entry.match_id) if entry.match_id else None,
            },
        )
        return SwipeOutcome(entry=entry, created=created)
