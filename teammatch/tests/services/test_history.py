import uuid

from sqlalchemy import delete, func, select

from teammatch.core.types import SubjectType, SwipeDirection
from teammatch.models.conversation import Conversation
from teammatch.models.match import Match
from teammatch.models.profile import Profile
from teammatch.services.history_service import (
    HistoryService,
    LedgerRegistry,
    SwipeHistoryEntry,
    SwipeHistoryLedger,
)


def _entry(direction, user_id=None):
    uid = str(user_id or uuid.uuid4())
    return SwipeHistoryEntry(subject_type=SubjectType.user, subject={"user_id": uid}, direction=direction)


def test_ledger_appends_in_order_and_counts_right_swipes():
    ledger = SwipeHistoryLedger()
    ledger.append(_entry(SwipeDirection.left))
    ledger.append(_entry(SwipeDirection.right))
    ledger.append(_entry(SwipeDirection.right))

    assert len(ledger) == 3
    assert [e.direction for e in ledger.entries] == [SwipeDirection.left, SwipeDirection.right, SwipeDirection.right]
    assert ledger.matches_count == 2


def test_undo_last_removes_one_entry_and_restores_counter():
    ledger = SwipeHistoryLedger()
    ledger.append(_entry(SwipeDirection.left))
    before = ledger.matches_count
    ledger.append(_entry(SwipeDirection.right))

    undone = ledger.undo_last()

    assert undone.direction == SwipeDirection.right
    assert len(ledger) == 1
    assert ledger.matches_count == before


def test_undo_at_removes_that_entry_only():
    ledger = SwipeHistoryLedger()
    first, middle, last = _entry(SwipeDirection.right), _entry(SwipeDirection.left), _entry(SwipeDirection.right)
    for e in (first, middle, last):
        ledger.append(e)

    assert ledger.undo_at(0) == first
    assert ledger.entries == (middle, last)
    assert ledger.matched_ids == (last.subject_id,)


def test_undo_never_fails():
    ledger = SwipeHistoryLedger()
    assert ledger.can_undo() is False
    assert ledger.undo_last() is None
    assert ledger.undo_at(3) is None
    assert ledger.undo_at(-1) is None


def test_can_undo_filters_by_subject_type():
    ledger = SwipeHistoryLedger()
    ledger.append(_entry(SwipeDirection.left))

    assert ledger.can_undo(SubjectType.user) is True
    assert ledger.can_undo(SubjectType.team) is False


def test_registry_keeps_one_ledger_per_user():
    registry = LedgerRegistry()
    a, b = uuid.uuid4(), uuid.uuid4()

    assert registry.for_user(a) is registry.for_user(a)
    assert registry.for_user(a) is not registry.for_user(b)

    registry.for_user(a).append(_entry(SwipeDirection.left))
    registry.drop(a)
    assert len(registry.for_user(a)) == 0


class _Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_registry_forgets_idle_users():
    clock = _Clock()
    registry = LedgerRegistry(idle_seconds=60, clock=clock)
    a, b = uuid.uuid4(), uuid.uuid4()
    registry.for_user(a).append(_entry(SwipeDirection.right))

    clock.now = 30
    registry.for_user(b)
    clock.now = 75
    registry.for_user(b)

    # a has been idle for 75s, b only 45s
    assert a not in registry
    assert b in registry
    assert len(registry.for_user(a)) == 0


def test_registry_caps_users_least_recent_first():
    registry = LedgerRegistry(max_users=2)
    a, b, c = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()

    registry.for_user(a)
    registry.for_user(b)
    registry.for_user(a)
    registry.for_user(c)

    assert len(registry) == 2
    assert b not in registry
    assert a in registry and c in registry


def test_undo_does_not_delete_persisted_rows(db, make_profile, actor, match_engine):
    alice = make_profile("Alice")
    bob = make_profile("Bob")
    session = actor(alice.user_id)

    result = match_engine.create_match(db, session, subject_type=SubjectType.user, subject_id=bob.user_id)
    assert result.ok
    ledger = match_engine.ledger_for(session)
    assert ledger.matches_count == 1

    undone = match_engine.undo_last(session)

    assert undone.match_id == result.value.match_id
    assert len(ledger) == 0
    assert ledger.matches_count == 0
    # known limitation: undo is local only
    assert db.get(Match, result.value.match_id) is not None
    assert db.get(Conversation, result.value.conversation_id) is not None


def test_left_swipe_writes_nothing(db, make_profile, actor, match_engine):
    alice = make_profile("Alice")
    bob = make_profile("Bob")
    session = actor(alice.user_id)

    result = match_engine.skip(db, session, subject_type=SubjectType.user, subject_id=bob.user_id)

    assert result.ok
    assert result.value.entry.direction == SwipeDirection.left
    assert result.value.created is None
    assert db.execute(select(func.count()).select_from(Match)).scalar_one() == 0
    assert len(match_engine.ledger_for(session)) == 1


def test_reconstruction_is_idempotent_and_newest_first(db, make_profile, make_team, actor, match_engine):
    alice = make_profile("Alice")
    bob = make_profile("Bob")
    carol = make_profile("Carol")
    rocket = make_team(carol.user_id)
    session = actor(alice.user_id)

    match_engine.create_match(db, session, subject_type=SubjectType.user, subject_id=bob.user_id)
    match_engine.create_match(db, session, subject_type=SubjectType.team, subject_id=rocket.id)

    svc = HistoryService()
    first = svc.reconstruct(db, user_id=alice.user_id)
    second = svc.reconstruct(db, user_id=alice.user_id)

    assert first == second
    assert [e.subject_type for e in first] == [SubjectType.team, SubjectType.user]
    assert all(e.direction == SwipeDirection.right for e in first)
    assert first[0].subject["name"] == "Rocket"
    assert first[1].subject["user_id"] == str(bob.user_id)


def test_reconstructed_ledger_undoes_most_recent(db, make_profile, actor, match_engine):
    alice = make_profile("Alice")
    bob = make_profile("Bob")
    dan = make_profile("Dan")
    session = actor(alice.user_id)

    match_engine.create_match(db, session, subject_type=SubjectType.user, subject_id=bob.user_id)
    match_engine.create_match(db, session, subject_type=SubjectType.user, subject_id=dan.user_id)
    match_engine.ledgers.drop(alice.user_id)

    result = match_engine.reconstruct_history(db, session)
    assert result.ok

    ledger = match_engine.ledger_for(session)
    assert len(ledger) == 2
    assert ledger.matches_count == 2
    assert match_engine.undo_last(session).subject_id == str(dan.user_id)


def test_missing_subjects_are_dropped(db, make_profile, actor, match_engine):
    alice = make_profile("Alice")
    bob = make_profile("Bob")
    dan = make_profile("Dan")
    session = actor(alice.user_id)

    match_engine.create_match(db, session, subject_type=SubjectType.user, subject_id=bob.user_id)
    match_engine.create_match(db, session, subject_type=SubjectType.user, subject_id=dan.user_id)

    db.execute(delete(Profile).where(Profile.user_id == bob.user_id))
    db.commit()

    entries = HistoryService().reconstruct(db, user_id=alice.user_id)
    assert [e.subject_id for e in entries] == [str(dan.user_id)]


def test_reconstruction_respects_window(db, make_profile, actor, match_engine):
    alice = make_profile("Alice")
    session = actor(alice.user_id)
    for i in range(3):
        target = make_profile(f"Target {i}")
        match_engine.create_match(db, session, subject_type=SubjectType.user, subject_id=target.user_id)

    assert len(HistoryService().reconstruct(db, user_id=alice.user_id, limit=2)) == 2
