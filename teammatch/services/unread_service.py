# teammatch/services/unread_service.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from teammatch.core.errors import CollaboratorUnavailableError
from teammatch.models.conversation import ConversationParticipant
from teammatch.models.message import Message, MessageRead

logger = logging.getLogger(__name__)


def _now():
    return datetime.now(timezone.utc)


class UnreadCounter:
    """
    Unread = messages in a conversation, not sent by the user, newer than the
    user's last-read cursor. No cursor means nothing has been read.

    `counts` is the per-session view the UI renders; `mark_read` zeroes it
    before the write lands and re-counts if the write fails.
    """

    def __init__(self):
        self.counts: Dict[uuid.UUID, int] = {}

    # ---------------------------
    # READS
    # ---------------------------

    def get_cursor(self, db: Session, *, conversation_id: uuid.UUID, user_id: uuid.UUID) -> Optional[MessageRead]:
        return db.execute(
            select(MessageRead).where(
                MessageRead.conversation_id == conversation_id,
                MessageRead.user_id == user_id,
            )
        ).scalar_one_or_none()

    def unread(self, db: Session, *, conversation_id: uuid.UUID, user_id: uuid.UUID) -> int:
        cursor = self.get_cursor(db, conversation_id=conversation_id, user_id=user_id)

        q = select(func.count(Message.id)).where(
            Message.conversation_id == conversation_id,
            Message.sender_id != user_id,
        )
        if cursor is not None:
            q = q.where(Message.created_at > cursor.last_read_at)

        count = int(db.execute(q).scalar_one())
        self.counts[conversation_id] = count
        return count

    def unread_many(
        self, db: Session, *, conversation_ids: Iterable[uuid.UUID], user_id: uuid.UUID
    ) -> Dict[uuid.UUID, int]:
        """
        All counts in one grouped query. The cursor table is outer-joined so
        a user with no cursors at all still gets full counts.
        """
        ids = list(dict.fromkeys(conversation_ids))
        if not ids:
            return {}

        q = (
            select(Message.conversation_id, func.count(Message.id))
            .select_from(Message)
            .outerjoin(
                MessageRead,
                and_(
                    MessageRead.conversation_id == Message.conversation_id,
                    MessageRead.user_id == user_id,
                ),
            )
            .where(
                Message.conversation_id.in_(ids),
                Message.sender_id != user_id,
                or_(MessageRead.id.is_(None), Message.created_at > MessageRead.last_read_at),
            )
            .group_by(Message.conversation_id)
        )

        result = {cid: 0 for cid in ids}
        for cid, count in db.execute(q).all():
            result[cid] = int(count)

        self.counts.update(result)
        return result

    def total_for_user(self, db: Session, *, user_id: uuid.UUID) -> int:
        conversation_ids = (
            db.execute(
                select(ConversationParticipant.conversation_id).where(ConversationParticipant.user_id == user_id)
            )
            .scalars()
            .all()
        )
        return sum(self.unread_many(db, conversation_ids=conversation_ids, user_id=user_id).values())

    # ---------------------------
    # MUTATIONS
    # ---------------------------

    def _upsert_cursor(self, db: Session, *, conversation_id: uuid.UUID, user_id: uuid.UUID) -> MessageRead:
        now = _now()
        cursor = self.get_cursor(db, conversation_id=conversation_id, user_id=user_id)
        if cursor is None:
            cursor = MessageRead(conversation_id=conversation_id, user_id=user_id, last_read_at=now)
            db.add(cursor)
        else:
            cursor.last_read_at = now
        db.commit()
        return cursor

    def mark_read(self, db: Session, *, conversation_id: uuid.UUID, user_id: uuid.UUID) -> None:
        # optimistic: the open conversation shows zero immediately
        self.counts[conversation_id] = 0

        try:
            try:
                self._upsert_cursor(db, conversation_id=conversation_id, user_id=user_id)
            except IntegrityError:
                # a concurrent open inserted the cursor first; update it instead
                db.rollback()
                self._upsert_cursor(db, conversation_id=conversation_id, user_id=user_id)
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning(
                "mark-read failed, reconciling unread count",
                extra={"conversation_id": str(conversation_id), "user_id": str(user_id)},
            )
            self._reconcile(db, conversation_id=conversation_id, user_id=user_id)
            raise CollaboratorUnavailableError("Could not mark conversation as read.") from e

    def _reconcile(self, db: Session, *, conversation_id: uuid.UUID, user_id: uuid.UUID) -> None:
        try:
            self.unread(db, conversation_id=conversation_id, user_id=user_id)
        except SQLAlchemyError:
            db.rollback()
            # unknown; drop it so the next read recomputes
            self.counts.pop(conversation_id, None)
            logger.exception("unread reconcile failed", extra={"conversation_id": str(conversation_id)})
