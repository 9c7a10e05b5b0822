import uuid

from sqlalchemy.exc import OperationalError

from teammatch.core.errors import DuplicateMembershipWarning
from teammatch.core.types import SubjectType, SwipeDirection
from teammatch.services.membership_service import MembershipService


def _broken(*args, **kwargs):
    raise OperationalError("SELECT", {}, Exception("database went away"))


def test_swipe_on_missing_target(db, make_profile, actor, match_engine):
    alice = make_profile("Alice")
    session = actor(alice.user_id)

    result = match_engine.create_match(db, session, subject_type=SubjectType.user, subject_id=uuid.uuid4())

    assert not result.ok
    assert result.error_code == "target_not_found"
    assert len(match_engine.ledger_for(session)) == 0


def test_swipe_on_self_is_invalid_state(db, make_profile, actor, match_engine):
    alice = make_profile("Alice")

    result = match_engine.create_match(db, actor(alice.user_id), subject_type=SubjectType.user, subject_id=alice.user_id)

    assert result.error_code == "invalid_state"


def test_swipe_appends_to_ledger_after_success(db, make_profile, actor, match_engine):
    alice = make_profile("Alice")
    bob = make_profile("Bob")
    session = actor(alice.user_id)

    result = match_engine.swipe(
        db, session, subject_type=SubjectType.user, subject_id=bob.user_id, direction=SwipeDirection.right
    )

    assert result.ok
    [entry] = match_engine.history_entries(session)
    assert entry is result.value.entry
    assert entry.match_id == result.value.created.match_id
    assert entry.subject["name"] == "Bob"


def test_unknown_join_request(db, make_profile, actor, match_engine):
    alice = make_profile("Alice")

    result = match_engine.accept_join_request(db, actor(alice.user_id), uuid.uuid4())

    assert result.error_code == "invalid_state"


def test_database_failure_becomes_a_result(db, make_profile, actor, match_engine, monkeypatch):
    alice = make_profile("Alice")
    bob = make_profile("Bob")
    session = actor(alice.user_id)
    created = match_engine.create_match(db, session, subject_type=SubjectType.user, subject_id=bob.user_id)

    monkeypatch.setattr(match_engine.messaging, "list_messages", _broken)
    result = match_engine.get_messages(db, session, created.value.conversation_id)

    assert not result.ok
    assert result.error_code == "collaborator_unavailable"

    # the session is usable again afterwards
    monkeypatch.undo()
    assert match_engine.get_messages(db, session, created.value.conversation_id).ok


def test_open_conversation_survives_failed_read_cursor(db, make_profile, actor, match_engine, monkeypatch):
    alice = make_profile("Alice")
    bob = make_profile("Bob")
    created = match_engine.create_match(db, actor(alice.user_id), subject_type=SubjectType.user, subject_id=bob.user_id)
    match_engine.send_message(db, actor(alice.user_id), created.value.conversation_id, "hello")

    bob_s = actor(bob.user_id)
    monkeypatch.setattr(match_engine.counter_for(bob_s), "_upsert_cursor", _broken)

    result = match_engine.open_conversation(db, bob_s, created.value.conversation_id)
    # routes read the rows after their session is gone
    db.close()

    assert result.ok
    assert [m.content for m in result.value] == ["hello"]
    assert len(result.notices) == 1
    assert match_engine.counter_for(bob_s).counts[created.value.conversation_id] == 1


def test_match_created_hook(db, make_profile, actor, match_engine):
    alice = make_profile("Alice")
    bob = make_profile("Bob")
    seen = []
    match_engine.on_match_created(seen.append)

    result = match_engine.create_match(db, actor(alice.user_id), subject_type=SubjectType.user, subject_id=bob.user_id)

    assert [c.match_id for c in seen] == [result.value.match_id]


def test_accept_notices_reach_the_caller(db, make_profile, make_team, actor, match_engine):
    carol = make_profile("Carol")
    dave = make_profile("Dave")
    team = make_team(carol.user_id)
    request = match_engine.create_match(db, actor(dave.user_id), subject_type=SubjectType.team, subject_id=team.id)

    # dave already got in another way
    MembershipService().ensure_team_member(db, team_id=team.id, user_id=dave.user_id)
    db.commit()

    result = match_engine.accept_join_request(db, actor(carol.user_id), request.value.match_id)

    assert result.ok
    assert any(isinstance(n, DuplicateMembershipWarning) for n in result.notices)


def test_per_user_state_is_separate(db, make_profile, actor, match_engine):
    alice = make_profile("Alice")
    bob = make_profile("Bob")
    dan = make_profile("Dan")

    match_engine.create_match(db, actor(alice.user_id), subject_type=SubjectType.user, subject_id=dan.user_id)

    assert len(match_engine.ledger_for(actor(alice.user_id))) == 1
    assert len(match_engine.ledger_for(actor(bob.user_id))) == 0
    assert match_engine.counter_for(actor(alice.user_id)) is not match_engine.counter_for(actor(bob.user_id))


def test_end_session_forgets_ledger_and_unread_map(db, make_profile, actor, match_engine):
    alice = make_profile("Alice")
    bob = make_profile("Bob")
    session = actor(alice.user_id)
    created = match_engine.create_match(db, session, subject_type=SubjectType.user, subject_id=bob.user_id)
    match_engine.send_message(db, actor(bob.user_id), created.value.conversation_id, "hey")
    assert match_engine.total_unread(db, session).value == 1

    match_engine.end_session(session)

    assert alice.user_id not in match_engine.ledgers
    assert alice.user_id not in match_engine.counters
    # stored rows are untouched and the unread count is rebuilt from them
    assert match_engine.total_unread(db, session).value == 1
    assert len(match_engine.reconstruct_history(db, session).value) == 1
