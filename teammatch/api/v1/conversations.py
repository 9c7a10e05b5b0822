# teammatch/api/v1/conversations.py
from __future__ import annotations

import asyncio
import logging
import uuid
from typing import List

import anyio
from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket
from sqlalchemy.orm import sessionmaker

from teammatch.core.auth_deps import get_actor_session, user_id_from_token
from teammatch.core.deps import call_engine, unwrap
from teammatch.core.errors import EngineError
from teammatch.core.realtime import SubscriptionError
from teammatch.db.session import get_session_factory
from teammatch.policies.rbac import ActorSession, resolve_actor_session
from teammatch.schemas.conversations import ConversationOut, MessageCreate, MessageOut, UnreadSummary
from teammatch.services.conversation_view import ConversationView
from teammatch.services.engine import MatchEngine, get_engine
from teammatch.services.messaging_service import message_payload

logger = logging.getLogger(__name__)

router = APIRouter(tags=["conversations"])


@router.get("/conversations", response_model=List[ConversationOut])
async def list_conversations(
    sessions: sessionmaker = Depends(get_session_factory),
    session: ActorSession = Depends(get_actor_session),
    engine: MatchEngine = Depends(get_engine),
):
    summaries = unwrap(await call_engine(sessions, engine.list_conversations, session))
    return [
        ConversationOut(
            id=s.conversation.id,
            kind=s.conversation.kind,
            match_id=s.conversation.match_id,
            team_id=s.conversation.team_id,
            participant_ids=s.participant_ids,
            unread=s.unread,
        )
        for s in summaries
    ]


@router.get("/conversations/unread", response_model=UnreadSummary)
async def unread_summary(
    sessions: sessionmaker = Depends(get_session_factory),
    session: ActorSession = Depends(get_actor_session),
    engine: MatchEngine = Depends(get_engine),
):
    total = unwrap(await call_engine(sessions, engine.total_unread, session))
    by_conversation = {str(cid): n for cid, n in engine.counter_for(session).counts.items() if n}
    return UnreadSummary(total=total, by_conversation=by_conversation)


@router.get("/conversations/{conversation_id}/messages", response_model=List[MessageOut])
async def get_messages(
    conversation_id: uuid.UUID,
    mark_read: bool = Query(default=True),
    sessions: sessionmaker = Depends(get_session_factory),
    session: ActorSession = Depends(get_actor_session),
    engine: MatchEngine = Depends(get_engine),
):
    if mark_read:
        return unwrap(await call_engine(sessions, engine.open_conversation, session, conversation_id))
    return unwrap(await call_engine(sessions, engine.get_messages, session, conversation_id))


@router.post("/conversations/{conversation_id}/messages", response_model=MessageOut, status_code=201)
async def send_message(
    conversation_id: uuid.UUID,
    body: MessageCreate,
    sessions: sessionmaker = Depends(get_session_factory),
    session: ActorSession = Depends(get_actor_session),
    engine: MatchEngine = Depends(get_engine),
):
    return unwrap(await call_engine(sessions, engine.send_message, session, conversation_id, body.content))


@router.post("/conversations/{conversation_id}/read", status_code=204)
async def mark_read(
    conversation_id: uuid.UUID,
    sessions: sessionmaker = Depends(get_session_factory),
    session: ActorSession = Depends(get_actor_session),
    engine: MatchEngine = Depends(get_engine),
):
    unwrap(await call_engine(sessions, engine.mark_read, session, conversation_id))


@router.post("/matches/{match_id}/conversation", response_model=ConversationOut)
async def start_chat(
    match_id: uuid.UUID,
    sessions: sessionmaker = Depends(get_session_factory),
    session: ActorSession = Depends(get_actor_session),
    engine: MatchEngine = Depends(get_engine),
):
    conv = unwrap(await call_engine(sessions, engine.start_chat, session, match_id))
    return ConversationOut(id=conv.id, kind=conv.kind, match_id=conv.match_id, team_id=conv.team_id)


# ---------------------------
# REALTIME
# ---------------------------


async def _until_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/conversations/{conversation_id}/stream")
async def stream_messages(
    websocket: WebSocket,
    conversation_id: uuid.UUID,
    token: str = Query(...),
    sessions: sessionmaker = Depends(get_session_factory),
    engine: MatchEngine = Depends(get_engine),
):
    """
    Sends the current message list, then every new message as it is
    posted. Each frame is one MessageOut object.
    """
    try:
        user_id = user_id_from_token(token)
    except HTTPException:
        await websocket.close(code=1008)
        return

    # the stream outlives any single query, so each step opens its own session
    def authorize():
        with sessions() as db:
            engine.messaging.require_view(db, resolve_actor_session(db, user_id), conversation_id)

    try:
        await anyio.to_thread.run_sync(authorize)
    except EngineError as e:
        logger.info("stream refused", extra={"conversation_id": str(conversation_id), "code": e.code})
        await websocket.close(code=1008)
        return

    await websocket.accept()

    def load():
        with sessions() as db:
            return [message_payload(m) for m in engine.messaging.list_messages(db, conversation_id=conversation_id)]

    view = ConversationView(conversation_id, engine.messaging.feed, load, on_message=websocket.send_json)
    follower = asyncio.ensure_future(view.run())
    receiver = asyncio.ensure_future(_until_disconnect(websocket))
    try:
        done, _ = await asyncio.wait({follower, receiver}, return_when=asyncio.FIRST_COMPLETED)
        if follower in done and not follower.cancelled():
            error = follower.exception()
            if isinstance(error, SubscriptionError):
                await websocket.close(code=1011)
            elif error is not None:
                raise error
    finally:
        follower.cancel()
        receiver.cancel()
        logger.info("stream closed", extra={"conversation_id": str(conversation_id), "user_id": str(user_id)})


