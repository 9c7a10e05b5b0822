# teammatch/services/history_service.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from teammatch.core.types import MatchType, SubjectType, SwipeDirection
from teammatch.core.user_state import UserStateStore
from teammatch.models.match import Match
from teammatch.models.profile import Profile
from teammatch.models.team import Team
from teammatch.schemas.profiles import ProfileOut
from teammatch.schemas.teams import TeamOut

logger = logging.getLogger(__name__)


def snapshot_profile(profile: Profile) -> Dict[str, Any]:
    return ProfileOut.model_validate(profile).model_dump(mode="json")


def snapshot_team(team: Team) -> Dict[str, Any]:
    return TeamOut.model_validate(team).model_dump(mode="json")


@dataclass(frozen=True)
class SwipeHistoryEntry:
    subject_type: SubjectType
    subject: Dict[str, Any]
    direction: SwipeDirection
    match_id: Optional[uuid.UUID] = None

    @property
    def subject_id(self) -> str:
        if self.subject_type == SubjectType.team:
            return str(self.subject["id"])
        return str(self.subject["user_id"])


class SwipeHistoryLedger:
    """
    Session-scoped, append-only record of swipes, oldest first.

    Undo is local: it drops the entry and, for right swipes, the subject from
    the in-session matches list. Persisted Match/Conversation rows are left
    alone because the other side may already see the request.
    """

    def __init__(self):
        self._entries: List[SwipeHistoryEntry] = []
        self._matched_ids: List[str] = []

    @property
    def entries(self) -> Tuple[SwipeHistoryEntry, ...]:
        return tuple(self._entries)

    @property
    def matched_ids(self) -> Tuple[str, ...]:
        return tuple(self._matched_ids)

    @property
    def matches_count(self) -> int:
        return len(self._matched_ids)

    def __len__(self) -> int:
        return len(self._entries)

    def append(self, entry: SwipeHistoryEntry) -> None:
        self._entries.append(entry)
        if entry.direction == SwipeDirection.right:
            self._matched_ids.append(entry.subject_id)

    def can_undo(self, subject_type: Optional[SubjectType] = None) -> bool:
        if not self._entries:
            return False
        return subject_type is None or self._entries[-1].subject_type == subject_type

    def _rollback_local(self, entry: SwipeHistoryEntry) -> None:
        if entry.direction != SwipeDirection.right:
            return
        # drop the most recent occurrence only
        for i in range(len(self._matched_ids) - 1, -1, -1):
            if self._matched_ids[i] == entry.subject_id:
                del self._matched_ids[i]
                break

    def undo_last(self) -> Optional[SwipeHistoryEntry]:
        if not self._entries:
            return None
        entry = self._entries.pop()
        self._rollback_local(entry)
        return entry

    def undo_at(self, index: int) -> Optional[SwipeHistoryEntry]:
        if index < 0 or index >= len(self._entries):
            return None
        entry = self._entries.pop(index)
        self._rollback_local(entry)
        return entry

    def load(self, newest_first: Iterable[SwipeHistoryEntry]) -> None:
        """Replace the ledger with reconstructed entries (given newest first)."""
        self._entries = list(reversed(list(newest_first)))
        self._matched_ids = [e.subject_id for e in self._entries if e.direction == SwipeDirection.right]


class LedgerRegistry(UserStateStore[SwipeHistoryLedger]):
    """One ledger per acting user; idle users are forgotten."""

    def __init__(self, *, idle_seconds: Optional[float] = None, max_users: Optional[int] = None, **kwargs: Any):
        super().__init__(SwipeHistoryLedger, idle_seconds=idle_seconds, max_users=max_users, **kwargs)

    def for_user(self, user_id: uuid.UUID) -> SwipeHistoryLedger:
        return self.get(user_id)


class HistoryService:
    def reconstruct(self, db: Session, *, user_id: uuid.UUID, limit: int = 100) -> List[SwipeHistoryEntry]:
        """
        Rebuild the Activity list from the actor's Match rows, newest first.

        Three queries at most: the matches, then every referenced profile and
        every referenced team in one batch each. Entries whose profile/team
        no longer exists are dropped.
        """
        matches = (
            db.execute(
                select(Match)
                .where(Match.user_id == user_id)
                .order_by(Match.created_at.desc(), Match.id.desc())
                .limit(limit)
            )
            .scalars()
            .all()
        )
        if not matches:
            return []

        team_matches = [m for m in matches if m.match_type == MatchType.individual_to_team.value]
        user_matches = [m for m in matches if m.match_type != MatchType.individual_to_team.value]

        target_user_ids = {m.target_user_id for m in user_matches}
        team_ids = {m.team_id for m in team_matches if m.team_id is not None}

        profiles_by_id: Dict[uuid.UUID, Profile] = {}
        if target_user_ids:
            rows = db.execute(select(Profile).where(Profile.user_id.in_(target_user_ids))).scalars().all()
            profiles_by_id = {p.user_id: p for p in rows}

        teams_by_id: Dict[uuid.UUID, Team] = {}
        if team_ids:
            rows = db.execute(select(Team).where(Team.id.in_(team_ids))).scalars().all()
            teams_by_id = {t.id: t for t in rows}

        entries: List[SwipeHistoryEntry] = []
        for m in matches:
            # only right swipes are ever persisted
            if m.match_type == MatchType.individual_to_team.value:
                team = teams_by_id.get(m.team_id)
                if team is None:
                    continue
                entries.append(
                    SwipeHistoryEntry(
                        subject_type=SubjectType.team,
                        subject=snapshot_team(team),
                        direction=SwipeDirection.right,
                        match_id=m.id,
                    )
                )
            else:
                profile = profiles_by_id.get(m.target_user_id)
                if profile is None:
                    continue
                entries.append(
                    SwipeHistoryEntry(
                        subject_type=SubjectType.user,
                        subject=snapshot_profile(profile),
                        direction=SwipeDirection.right,
                        match_id=m.id,
                    )
                )

        dropped = len(matches) - len(entries)
        if dropped:
            logger.info("history entries dropped for missing subjects", extra={"user_id": str(user_id), "dropped": dropped})
        return entries
