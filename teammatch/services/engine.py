# teammatch/services/engine.py
from __future__ import annotations

import logging
import threading
import uuid
from typing import Any, Callable, Iterable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from teammatch.core.config import get_settings
from teammatch.core.errors import (
    CollaboratorUnavailableError,
    EngineError,
    InvalidInputError,
    NotAuthorizedError,
)
from teammatch.core.realtime import MessageFeed
from teammatch.core.results import OperationResult
from teammatch.core.types import SubjectType, SwipeDirection
from teammatch.core.user_state import UserStateStore
from teammatch.policies.rbac import ActorSession
from teammatch.services.history_service import HistoryService, LedgerRegistry, SwipeHistoryEntry, SwipeHistoryLedger
from teammatch.services.join_request_service import JoinRequestService
from teammatch.services.match_factory import MatchCreatedListener, MatchFactory
from teammatch.services.membership_service import MembershipService
from teammatch.services.messaging_service import MessagingService
from teammatch.services.swipe_service import SwipeService
from teammatch.services.unread_service import UnreadCounter

logger = logging.getLogger(__name__)


class MatchEngine:
    """
    Public boundary of the match & conversation lifecycle.

    Persistence-touching operations return an OperationResult and never
    raise. Ledger operations are local and cannot fail. Each acting user
    gets their own ledger and unread map until they go idle or end the
    session.
    """

    def __init__(
        self,
        *,
        atomic: Optional[bool] = None,
        history_window: Optional[int] = None,
        feed: Optional[MessageFeed] = None,
        listeners: Optional[List[MatchCreatedListener]] = None,
    ):
        settings = get_settings()
        self.history_window = history_window or settings.history_window

        self.membership = MembershipService()
        self.factory = MatchFactory(
            atomic=settings.atomic_match_creation if atomic is None else atomic,
            listeners=listeners,
        )
        self.swipes = SwipeService(factory=self.factory)
        self.join_requests = JoinRequestService(membership=self.membership)
        self.history = HistoryService()
        self.messaging = MessagingService(feed=feed, membership=self.membership)

        self.ledgers = LedgerRegistry(idle_seconds=settings.session_idle_seconds, max_users=settings.session_max_users)
        self.counters: UserStateStore[UnreadCounter] = UserStateStore(
            UnreadCounter, idle_seconds=settings.session_idle_seconds, max_users=settings.session_max_users
        )

    # ---------------------------
    # PER-USER STATE
    # ---------------------------

    def ledger_for(self, session: ActorSession) -> SwipeHistoryLedger:
        return self.ledgers.for_user(session.user_id)

    def counter_for(self, session: ActorSession) -> UnreadCounter:
        return self.counters.get(session.user_id)

    def end_session(self, session: ActorSession) -> None:
        """Forget the user's ledger and unread map; both rebuild from storage on demand."""
        self.ledgers.drop(session.user_id)
        self.counters.drop(session.user_id)
        logger.info("session ended", extra={"user_id": str(session.user_id)})

    def on_match_created(self, listener: MatchCreatedListener) -> None:
        self.factory.add_listener(listener)

    # ---------------------------
    # RESULT BOUNDARY
    # ---------------------------

    def _run(self, db: Session, operation: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> OperationResult:
        try:
            value = fn(*args, **kwargs)
        except EngineError as e:
            error = e
        except PermissionError as e:
            error = NotAuthorizedError(str(e))
        except ValueError as e:
            error = InvalidInputError(str(e))
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("unexpected database failure", extra={"operation": operation})
            error = CollaboratorUnavailableError(f"Database unavailable: {e.__class__.__name__}")
        else:
            return OperationResult.success(value)

        logger.info("operation failed", extra={"operation": operation, "code": error.code, "error": error.message})
        return OperationResult.failure(error)

    # ---------------------------
    # SWIPES / MATCH FACTORY
    # ---------------------------

    def swipe(
        self,
        db: Session,
        session: ActorSession,
        *,
        subject_type: SubjectType,
        subject_id: uuid.UUID,
        direction: SwipeDirection,
    ) -> OperationResult:
        return self._run(
            db,
            "swipe",
            self.swipes.swipe,
            db,
            session,
            self.ledger_for(session),
            subject_type=subject_type,
            subject_id=subject_id,
            direction=direction,
        )

    def create_match(
        self, db: Session, session: ActorSession, *, subject_type: SubjectType, subject_id: uuid.UUID
    ) -> OperationResult:
        """Swipe right. On success the value is the CreatedMatch."""
        result = self.swipe(
            db, session, subject_type=subject_type, subject_id=subject_id, direction=SwipeDirection.right
        )
        if result.ok:
            result.value = result.value.created
        return result

    def skip(
        self, db: Session, session: ActorSession, *, subject_type: SubjectType, subject_id: uuid.UUID
    ) -> OperationResult:
        return self.swipe(db, session, subject_type=subject_type, subject_id=subject_id, direction=SwipeDirection.left)

    # ---------------------------
    # JOIN REQUESTS
    # ---------------------------

    def list_join_requests(self, db: Session, session: ActorSession) -> OperationResult:
        return self._run(db, "list_join_requests", self.join_requests.list_pending_for, db, session)

    def accept_join_request(self, db: Session, session: ActorSession, match_id: uuid.UUID) -> OperationResult:
        result = self._run(db, "accept", self.join_requests.accept, db, session, match_id)
        if result.ok:
            result.notices.extend(result.value.notices)
        return result

    def reject_join_request(self, db: Session, session: ActorSession, match_id: uuid.UUID) -> OperationResult:
        result = self._run(db, "reject", self.join_requests.reject, db, session, match_id)
        if result.ok:
            result.notices.extend(result.value.notices)
        return result

    # ---------------------------
    # HISTORY (local)
    # ---------------------------

    def history_entries(self, session: ActorSession) -> Tuple[SwipeHistoryEntry, ...]:
        return self.ledger_for(session).entries

    def undo_last(self, session: ActorSession) -> Optional[SwipeHistoryEntry]:
        entry = self.ledger_for(session).undo_last()
        if entry is not None:
            logger.info(
                "swipe undone",
                extra={"user_id": str(session.user_id), "direction": entry.direction.value, "subject_id": entry.subject_id},
            )
        return entry

    def undo_at(self, session: ActorSession, index: int) -> Optional[SwipeHistoryEntry]:
        entry = self.ledger_for(session).undo_at(index)
        if entry is not None:
            logger.info(
                "swipe undone",
                extra={"user_id": str(session.user_id), "index": index, "subject_id": entry.subject_id},
            )
        return entry

    def reconstruct_history(self, db: Session, session: ActorSession, *, load: bool = True) -> OperationResult:
        """
        Rebuild the activity list from persisted matches (newest first).
        With `load`, the user's ledger is replaced by the rebuilt entries.
        """
        result = self._run(
            db, "reconstruct_history", self.history.reconstruct, db, user_id=session.user_id, limit=self.history_window
        )
        if result.ok and load:
            self.ledger_for(session).load(result.value)
        return result

    # ---------------------------
    # UNREAD
    # ---------------------------

    def unread(self, db: Session, session: ActorSession, conversation_id: uuid.UUID) -> OperationResult:
        return self._run(
            db,
            "unread",
            self.counter_for(session).unread,
            db,
            conversation_id=conversation_id,
            user_id=session.user_id,
        )

    def unread_many(self, db: Session, session: ActorSession, conversation_ids: Iterable[uuid.UUID]) -> OperationResult:
        return self._run(
            db,
            "unread_many",
            self.counter_for(session).unread_many,
            db,
            conversation_ids=conversation_ids,
            user_id=session.user_id,
        )

    def total_unread(self, db: Session, session: ActorSession) -> OperationResult:
        return self._run(db, "total_unread", self.counter_for(session).total_for_user, db, user_id=session.user_id)

    def mark_read(self, db: Session, session: ActorSession, conversation_id: uuid.UUID) -> OperationResult:
        return self._run(
            db,
            "mark_read",
            self.counter_for(session).mark_read,
            db,
            conversation_id=conversation_id,
            user_id=session.user_id,
        )

    # ---------------------------
    # CONVERSATIONS
    # ---------------------------

    def list_conversations(self, db: Session, session: ActorSession) -> OperationResult:
        return self._run(
            db, "list_conversations", self.messaging.list_conversations, db, session, self.counter_for(session)
        )

    def get_messages(self, db: Session, session: ActorSession, conversation_id: uuid.UUID) -> OperationResult:
        return self._run(db, "get_messages", self.messaging.get_messages, db, session, conversation_id)

    def open_conversation(self, db: Session, session: ActorSession, conversation_id: uuid.UUID) -> OperationResult:
        """Fetch the messages and move the read cursor. A failed cursor write is a notice, not a failure."""
        result = self._run(db, "open_conversation", self.messaging.get_messages, db, session, conversation_id)
        if not result.ok:
            return result

        # a failed cursor write rolls back and would expire the fetched rows
        for message in result.value:
            db.expunge(message)
        marked = self.mark_read(db, session, conversation_id)
        if not marked.ok:
            result.notices.append(UserWarning(marked.error.message))
        return result

    def send_message(
        self, db: Session, session: ActorSession, conversation_id: uuid.UUID, content: str
    ) -> OperationResult:
        return self._run(db, "send_message", self.messaging.send_message, db, session, conversation_id, content)

    def start_chat(self, db: Session, session: ActorSession, match_id: uuid.UUID) -> OperationResult:
        return self._run(db, "start_chat", self.messaging.start_chat, db, session, match_id)


_engine: Optional[MatchEngine] = None
_engine_lock = threading.Lock()


def get_engine() -> MatchEngine:
    global _engine
    with _engine_lock:
        if _engine is None:
            _engine = MatchEngine()
        return _engine
