import uuid

import pytest

from teammatch.core.errors import InvalidStateError
from teammatch.core.types import MatchType, MemberRole, SubjectType
from teammatch.models.match import Match
from teammatch.services.match_factory import MatchFactory
from teammatch.services.messaging_service import MessagingService
from teammatch.services.team_service import TeamService


def test_alice_swipes_bob_and_they_chat(db, make_profile, actor, match_engine):
    alice = make_profile("Alice")
    bob = make_profile("Bob")
    alice_s = actor(alice.user_id)
    bob_s = actor(bob.user_id)

    created = match_engine.create_match(db, alice_s, subject_type=SubjectType.user, subject_id=bob.user_id)
    assert created.ok
    match = db.get(Match, created.value.match_id)
    assert match.match_type == MatchType.individual_to_individual.value

    sent = match_engine.send_message(db, alice_s, created.value.conversation_id, "Hi Bob!")
    assert sent.ok

    listed = match_engine.list_conversations(db, bob_s)
    assert listed.ok
    [summary] = listed.value
    assert summary.conversation.id == created.value.conversation_id
    assert set(summary.participant_ids) == {alice.user_id, bob.user_id}
    assert summary.unread == 1

    opened = match_engine.open_conversation(db, bob_s, created.value.conversation_id)
    assert [m.content for m in opened.value] == ["Hi Bob!"]
    assert match_engine.unread(db, bob_s, created.value.conversation_id).value == 0
    assert match_engine.total_unread(db, bob_s).value == 0


def test_only_participants_send(db, make_profile, actor, match_engine):
    alice = make_profile("Alice")
    bob = make_profile("Bob")
    eve = make_profile("Eve")
    created = match_engine.create_match(db, actor(alice.user_id), subject_type=SubjectType.user, subject_id=bob.user_id)

    result = match_engine.send_message(db, actor(eve.user_id), created.value.conversation_id, "let me in")

    assert not result.ok
    assert result.error_code == "not_authorized"


def test_message_content_is_validated(db, make_profile, actor, match_engine):
    alice = make_profile("Alice")
    bob = make_profile("Bob")
    alice_s = actor(alice.user_id)
    created = match_engine.create_match(db, alice_s, subject_type=SubjectType.user, subject_id=bob.user_id)
    cid = created.value.conversation_id

    assert match_engine.send_message(db, alice_s, cid, "   ").error_code == "invalid_input"
    assert match_engine.send_message(db, alice_s, cid, "x" * 5001).error_code == "invalid_input"

    ok = match_engine.send_message(db, alice_s, cid, "  spaced   out  ")
    assert ok.value.content == "spaced out"


def test_messages_come_back_in_order(db, make_profile, actor):
    alice = make_profile("Alice")
    bob = make_profile("Bob")
    svc = MessagingService()
    created = MatchFactory().create_match(db, actor(alice.user_id), bob)
    for text in ("one", "two", "three"):
        svc.send_message(db, actor(alice.user_id), created.conversation_id, text)

    msgs = svc.get_messages(db, actor(bob.user_id), created.conversation_id)
    assert [m.content for m in msgs] == ["one", "two", "three"]


def test_team_admin_follows_join_request_chat(db, make_profile, make_team, actor, match_engine):
    carol = make_profile("Carol")
    dave = make_profile("Dave")
    gina = make_profile("Gina")
    team = make_team(carol.user_id)
    teams = TeamService()
    teams.add_member(db, team_id=team.id, actor_id=carol.user_id, user_id=gina.user_id)
    teams.change_role(db, team_id=team.id, actor_id=carol.user_id, user_id=gina.user_id, role=MemberRole.admin)

    request = match_engine.create_match(db, actor(dave.user_id), subject_type=SubjectType.team, subject_id=team.id)
    match_engine.send_message(db, actor(dave.user_id), request.value.conversation_id, "Can I join?")

    listed = match_engine.list_conversations(db, actor(gina.user_id))
    ids = {s.conversation.id for s in listed.value}
    assert request.value.conversation_id in ids

    msgs = match_engine.get_messages(db, actor(gina.user_id), request.value.conversation_id)
    assert [m.content for m in msgs.value] == ["Can I join?"]

    # gina can read along but is not a participant of the direct chat
    assert match_engine.send_message(db, actor(gina.user_id), request.value.conversation_id, "hi").error_code == (
        "not_authorized"
    )


def test_start_chat_reuses_match_conversation(db, make_profile, actor, match_engine):
    alice = make_profile("Alice")
    bob = make_profile("Bob")
    eve = make_profile("Eve")
    created = match_engine.create_match(db, actor(alice.user_id), subject_type=SubjectType.user, subject_id=bob.user_id)

    opened = match_engine.start_chat(db, actor(bob.user_id), created.value.match_id)
    assert opened.value.id == created.value.conversation_id

    assert match_engine.start_chat(db, actor(eve.user_id), created.value.match_id).error_code == "not_authorized"


def test_start_chat_creates_missing_conversation(db, make_profile, actor):
    alice = make_profile("Alice")
    bob = make_profile("Bob")
    match = Match(
        user_id=alice.user_id,
        target_user_id=bob.user_id,
        match_type=MatchType.individual_to_individual.value,
    )
    db.add(match)
    db.commit()

    svc = MessagingService()
    conv = svc.start_chat(db, actor(bob.user_id), match.id)

    assert conv.match_id == match.id
    assert svc.membership.is_participant(db, conversation_id=conv.id, user_id=alice.user_id)
    assert svc.membership.is_participant(db, conversation_id=conv.id, user_id=bob.user_id)


def test_send_publishes_to_feed(db, make_profile, actor, feed):
    alice = make_profile("Alice")
    bob = make_profile("Bob")
    created = MatchFactory().create_match(db, actor(alice.user_id), bob)
    published = []
    feed.publish = lambda cid, payload: published.append((cid, payload)) or 0

    MessagingService(feed=feed).send_message(db, actor(alice.user_id), created.conversation_id, "ping")

    [(cid, payload)] = published
    assert cid == created.conversation_id
    assert payload["content"] == "ping"
    assert payload["sender_id"] == str(alice.user_id)


def test_unknown_conversation(db, make_profile, actor):
    alice = make_profile("Alice")

    with pytest.raises(InvalidStateError):
        MessagingService().get_messages(db, actor(alice.user_id), uuid.uuid4())
    with pytest.raises(InvalidStateError):
        MessagingService().start_chat(db, actor(alice.user_id), uuid.uuid4())
