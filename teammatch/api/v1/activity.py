# teammatch/api/v1/activity.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import sessionmaker

from teammatch.core.auth_deps import get_actor_session
from teammatch.core.deps import call_engine, unwrap
from teammatch.db.session import get_session_factory
from teammatch.policies.rbac import ActorSession
from teammatch.schemas.activity import ActivityEntryOut, ActivityOut
from teammatch.services.engine import MatchEngine, get_engine
from teammatch.services.history_service import SwipeHistoryEntry, SwipeHistoryLedger

router = APIRouter(prefix="/activity", tags=["activity"])


def _entry_out(index: int, entry: SwipeHistoryEntry) -> ActivityEntryOut:
    return ActivityEntryOut(
        index=index,
        subject_type=entry.subject_type,
        subject=entry.subject,
        direction=entry.direction,
        match_id=entry.match_id,
    )


def _activity(ledger: SwipeHistoryLedger) -> ActivityOut:
    # ledger indices are chronological; the list is shown newest first
    indexed = list(enumerate(ledger.entries))
    return ActivityOut(
        entries=[_entry_out(i, e) for i, e in reversed(indexed)],
        matches_count=ledger.matches_count,
        can_undo=ledger.can_undo(),
    )


@router.get("", response_model=ActivityOut)
async def get_activity(
    reload: bool = Query(default=False, description="rebuild from stored matches"),
    sessions: sessionmaker = Depends(get_session_factory),
    session: ActorSession = Depends(get_actor_session),
    engine: MatchEngine = Depends(get_engine),
):
    if reload:
        unwrap(await call_engine(sessions, engine.reconstruct_history, session, load=True))
    return _activity(engine.ledger_for(session))


@router.delete("", status_code=204)
def end_session(session: ActorSession = Depends(get_actor_session), engine: MatchEngine = Depends(get_engine)):
    """Sign-out hook: drops the in-memory activity and unread state."""
    engine.end_session(session)
    return Response(status_code=204)


@router.post("/undo", response_model=ActivityEntryOut)
def undo_last(session: ActorSession = Depends(get_actor_session), engine: MatchEngine = Depends(get_engine)):
    index = len(engine.ledger_for(session)) - 1
    entry = engine.undo_last(session)
    if entry is None:
        raise HTTPException(status_code=404, detail="Nothing to undo.")
    return _entry_out(index, entry)


@router.post("/{index}/undo", response_model=ActivityEntryOut)
def undo_at(
    index: int,
    session: ActorSession = Depends(get_actor_session),
    engine: MatchEngine = Depends(get_engine),
):
    entry: Optional[SwipeHistoryEntry] = engine.undo_at(session, index)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"No activity entry at index {index}.")
    return _entry_out(index, entry)
