# teammatch/api/v1/swipes.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session, sessionmaker

from teammatch.core.auth_deps import get_actor_session
from teammatch.core.deps import call_engine, unwrap
from teammatch.db.session import get_db, get_session_factory
from teammatch.policies.rbac import ActorSession
from teammatch.schemas.matches import CreatedMatch, SwipeRequest, SwipeResponse
from teammatch.schemas.profiles import ProfileOut
from teammatch.schemas.teams import TeamOut
from teammatch.services.discovery_service import DiscoveryService
from teammatch.services.engine import MatchEngine, get_engine

router = APIRouter(tags=["swipes"])


@router.get("/discover/profiles", response_model=List[ProfileOut])
def discover_profiles(
    program: Optional[str] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
    session: ActorSession = Depends(get_actor_session),
):
    return DiscoveryService().candidate_profiles(db, session, program=program, limit=limit)


@router.get("/discover/teams", response_model=List[TeamOut])
def discover_teams(
    studio: Optional[str] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
    session: ActorSession = Depends(get_actor_session),
):
    return DiscoveryService().candidate_teams(db, session, studio=studio, limit=limit)


@router.post("/swipes", response_model=SwipeResponse)
async def swipe(
    body: SwipeRequest,
    sessions: sessionmaker = Depends(get_session_factory),
    session: ActorSession = Depends(get_actor_session),
    engine: MatchEngine = Depends(get_engine),
):
    result = await call_engine(
        sessions,
        engine.swipe,
        session,
        subject_type=body.subject_type,
        subject_id=body.subject_id,
        direction=body.direction,
    )
    outcome = unwrap(result)

    created = None
    if outcome.created is not None:
        created = CreatedMatch(
            match_id=outcome.created.match_id,
            conversation_id=outcome.created.conversation_id,
            match_type=outcome.created.shape.match_type.value,
        )

    ledger = engine.ledger_for(session)
    return SwipeResponse(
        direction=body.direction,
        subject_type=body.subject_type,
        subject_id=body.subject_id,
        match=created,
        history_length=len(ledger),
        matches_count=ledger.matches_count,
    )
