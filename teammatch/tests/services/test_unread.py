from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from teammatch.core.errors import CollaboratorUnavailableError
from teammatch.core.types import SubjectType
from teammatch.models.message import Message, MessageRead
from teammatch.services.unread_service import UnreadCounter


@pytest.fixture
def chat(db, make_profile, actor, match_engine):
    """alice matched bob; returns (alice, bob, conversation_id)."""
    alice = make_profile("Alice")
    bob = make_profile("Bob")
    result = match_engine.create_match(db, actor(alice.user_id), subject_type=SubjectType.user, subject_id=bob.user_id)
    return alice, bob, result.value.conversation_id


def _post(db, conversation_id, sender_id, content, at):
    msg = Message(conversation_id=conversation_id, sender_id=sender_id, content=content, created_at=at)
    db.add(msg)
    db.commit()
    return msg


def test_unread_counts_only_messages_after_cursor(db, chat):
    alice, bob, cid = chat
    now = datetime.now(timezone.utc)
    t1, t2, t3 = now - timedelta(minutes=3), now - timedelta(minutes=2), now - timedelta(minutes=1)
    for i, t in enumerate((t1, t2, t3)):
        _post(db, cid, alice.user_id, f"hello {i}", t)

    db.add(MessageRead(conversation_id=cid, user_id=bob.user_id, last_read_at=t2))
    db.commit()

    counter = UnreadCounter()
    assert counter.unread(db, conversation_id=cid, user_id=bob.user_id) == 1

    counter.mark_read(db, conversation_id=cid, user_id=bob.user_id)
    assert counter.counts[cid] == 0
    assert counter.unread(db, conversation_id=cid, user_id=bob.user_id) == 0


def test_no_cursor_means_nothing_read(db, chat):
    alice, bob, cid = chat
    now = datetime.now(timezone.utc)
    _post(db, cid, alice.user_id, "one", now - timedelta(seconds=3))
    _post(db, cid, alice.user_id, "two", now - timedelta(seconds=2))
    _post(db, cid, bob.user_id, "mine", now - timedelta(seconds=1))

    counter = UnreadCounter()
    assert counter.unread(db, conversation_id=cid, user_id=bob.user_id) == 2
    assert counter.unread(db, conversation_id=cid, user_id=alice.user_id) == 1


def test_batch_counts_cold_start(db, chat, make_profile, actor, match_engine):
    alice, bob, cid = chat
    dan = make_profile("Dan")
    other = match_engine.create_match(db, actor(dan.user_id), subject_type=SubjectType.user, subject_id=bob.user_id)
    empty = match_engine.create_match(db, actor(alice.user_id), subject_type=SubjectType.user, subject_id=dan.user_id)

    now = datetime.now(timezone.utc)
    _post(db, cid, alice.user_id, "a", now - timedelta(seconds=2))
    _post(db, other.value.conversation_id, dan.user_id, "b", now - timedelta(seconds=1))
    _post(db, other.value.conversation_id, dan.user_id, "c", now)

    counts = UnreadCounter().unread_many(
        db,
        conversation_ids=[cid, other.value.conversation_id, empty.value.conversation_id],
        user_id=bob.user_id,
    )

    assert counts == {cid: 1, other.value.conversation_id: 2, empty.value.conversation_id: 0}


def test_batch_respects_cursors(db, chat):
    alice, bob, cid = chat
    now = datetime.now(timezone.utc)
    _post(db, cid, alice.user_id, "old", now - timedelta(minutes=2))
    db.add(MessageRead(conversation_id=cid, user_id=bob.user_id, last_read_at=now - timedelta(minutes=1)))
    db.commit()
    _post(db, cid, alice.user_id, "new", now)

    assert UnreadCounter().unread_many(db, conversation_ids=[cid], user_id=bob.user_id) == {cid: 1}


def test_mark_read_twice_keeps_one_cursor(db, chat):
    _, bob, cid = chat
    counter = UnreadCounter()

    counter.mark_read(db, conversation_id=cid, user_id=bob.user_id)
    counter.mark_read(db, conversation_id=cid, user_id=bob.user_id)

    rows = db.execute(select(func.count()).select_from(MessageRead)).scalar_one()
    assert rows == 1


def test_failed_mark_read_reconciles(db, chat, monkeypatch):
    alice, bob, cid = chat
    _post(db, cid, alice.user_id, "ping", datetime.now(timezone.utc))

    counter = UnreadCounter()

    def broken(db, **kwargs):
        raise OperationalError("UPSERT", {}, Exception("database went away"))

    monkeypatch.setattr(counter, "_upsert_cursor", broken)

    with pytest.raises(CollaboratorUnavailableError):
        counter.mark_read(db, conversation_id=cid, user_id=bob.user_id)

    # optimistic zero was rolled back to what storage says
    assert counter.counts[cid] == 1


def test_total_for_user(db, chat):
    alice, bob, cid = chat
    now = datetime.now(timezone.utc)
    _post(db, cid, alice.user_id, "x", now - timedelta(seconds=1))
    _post(db, cid, alice.user_id, "y", now)

    assert UnreadCounter().total_for_user(db, user_id=bob.user_id) == 2
    assert UnreadCounter().total_for_user(db, user_id=alice.user_id) == 0
