# teammatch/api/v1/join_requests.py
from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import sessionmaker

from teammatch.core.auth_deps import get_actor_session
from teammatch.core.deps import call_engine, unwrap
from teammatch.core.results import OperationResult
from teammatch.db.session import get_session_factory
from teammatch.policies.rbac import ActorSession
from teammatch.schemas.matches import JoinRequestResponse, MatchOut
from teammatch.services.engine import MatchEngine, get_engine

router = APIRouter(prefix="/join-requests", tags=["join-requests"])


def _to_resp(result: OperationResult) -> JoinRequestResponse:
    outcome = unwrap(result)
    return JoinRequestResponse(
        match_id=outcome.match.id,
        status=outcome.match.status,
        member_added=outcome.member_added,
        participant_added=outcome.participant_added,
        notices=result.notice_messages(),
    )


@router.get("", response_model=List[MatchOut])
async def pending_join_requests(
    sessions: sessionmaker = Depends(get_session_factory),
    session: ActorSession = Depends(get_actor_session),
    engine: MatchEngine = Depends(get_engine),
):
    return unwrap(await call_engine(sessions, engine.list_join_requests, session))


@router.post("/{match_id}/accept", response_model=JoinRequestResponse)
async def accept_join_request(
    match_id: uuid.UUID,
    sessions: sessionmaker = Depends(get_session_factory),
    session: ActorSession = Depends(get_actor_session),
    engine: MatchEngine = Depends(get_engine),
):
    return _to_resp(await call_engine(sessions, engine.accept_join_request, session, match_id))


@router.post("/{match_id}/reject", response_model=JoinRequestResponse)
async def reject_join_request(
    match_id: uuid.UUID,
    sessions: sessionmaker = Depends(get_session_factory),
    session: ActorSession = Depends(get_actor_session),
    engine: MatchEngine = Depends(get_engine),
):
    return _to_resp(await call_engine(sessions, engine.reject_join_request, session, match_id))
