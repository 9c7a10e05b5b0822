import uuid

import pytest
from pydantic import ValidationError

from teammatch.core.errors import TargetNotFoundError
from teammatch.core.types import SubjectType
from teammatch.schemas.profiles import ProfileCreate, ProfileUpdate
from teammatch.services.discovery_service import DiscoveryService
from teammatch.services.profile_service import ProfileService
from teammatch.services.team_service import TeamService


def test_profile_text_is_sanitized():
    p = ProfileCreate(
        name="  Ada\u200b   Lovelace ",
        program="MEng-CS",
        skills=[" python ", "ml"],
        studio_preferences=["pitech", "startup"],
        linkedin="https://www.linkedin.com/in/ada",
    )
    assert p.name == "Ada Lovelace"
    assert p.skills == ["python", "ml"]
    assert p.studio_preferences[0].value == "pitech"


@pytest.mark.parametrize(
    "overrides",
    [
        {"name": "A"},
        {"studio_preferences": []},
        {"skills": ["x" * 51]},
        {"skills": [f"s{i}" for i in range(21)]},
        {"bio": "b" * 501},
        {"linkedin": "https://example.com/in/ada"},
        {"program": "PhD"},
    ],
)
def test_profile_validation_rejects(overrides):
    data = {"name": "Ada", "program": "MBA", "studio_preferences": ["bigco"]}
    data.update(overrides)
    with pytest.raises(ValidationError):
        ProfileCreate(**data)


def test_one_profile_per_user(db, make_profile):
    alice = make_profile("Alice")

    with pytest.raises(ValueError):
        make_profile("Alice Again", user_id=alice.user_id)


def test_update_profile(db, make_profile):
    alice = make_profile("Alice")
    svc = ProfileService()

    updated = svc.update(db, user_id=alice.user_id, payload=ProfileUpdate(bio="Builds   things", studio_preferences=["bigco"]))

    assert updated.bio == "Builds things"
    assert updated.studio_preference == "bigco"

    with pytest.raises(ValueError):
        svc.update(db, user_id=alice.user_id, payload=ProfileUpdate(name=None))

    with pytest.raises(TargetNotFoundError):
        svc.update(db, user_id=uuid.uuid4(), payload=ProfileUpdate(bio="ghost"))


def test_list_by_ids(db, make_profile):
    alice = make_profile("Alice")
    bob = make_profile("Bob")
    make_profile("Carol")

    found = ProfileService().list_by_ids(db, [alice.user_id, bob.user_id])
    assert {p.user_id for p in found} == {alice.user_id, bob.user_id}
    assert ProfileService().list_by_ids(db, []) == []


def test_discovery_excludes_self_team_members_and_targets(db, make_profile, make_team, actor, match_engine):
    alice = make_profile("Alice")
    bob = make_profile("Bob")
    carol = make_profile("Carol")
    dan = make_profile("Dan")
    make_team(carol.user_id)
    session = actor(alice.user_id)

    match_engine.create_match(db, session, subject_type=SubjectType.user, subject_id=bob.user_id)

    ids = {p.user_id for p in DiscoveryService().candidate_profiles(db, session)}
    assert ids == {dan.user_id}


def test_discovery_teams_excludes_own_and_requested(db, make_profile, make_team, actor, match_engine):
    alice = make_profile("Alice")
    carol = make_profile("Carol")
    erin = make_profile("Erin")
    rocket = make_team(carol.user_id, "Rocket")
    comet = make_team(erin.user_id, "Comet")
    mine = make_team(alice.user_id, "Alpha")
    session = actor(alice.user_id)

    match_engine.create_match(db, session, subject_type=SubjectType.team, subject_id=rocket.id)

    ids = {t.id for t in DiscoveryService().candidate_teams(db, session)}
    assert ids == {comet.id}
    assert mine.id not in ids


def test_discovery_filters_by_studio(db, make_profile, make_team, actor):
    alice = make_profile("Alice")
    carol = make_profile("Carol")
    erin = make_profile("Erin")
    make_team(carol.user_id, "Rocket", studio="startup")
    bigco = make_team(erin.user_id, "Comet", studio="bigco")

    teams = DiscoveryService().candidate_teams(db, actor(alice.user_id), studio="bigco")
    assert [t.id for t in teams] == [bigco.id]


def test_left_team_user_is_discoverable_again(db, make_profile, make_team, actor):
    alice = make_profile("Alice")
    carol = make_profile("Carol")
    frank = make_profile("Frank")
    team = make_team(carol.user_id)
    svc = TeamService()
    svc.add_member(db, team_id=team.id, actor_id=carol.user_id, user_id=frank.user_id)

    assert frank.user_id not in {p.user_id for p in DiscoveryService().candidate_profiles(db, actor(alice.user_id))}

    svc.leave(db, team_id=team.id, user_id=frank.user_id)
    assert frank.user_id in {p.user_id for p in DiscoveryService().candidate_profiles(db, actor(alice.user_id))}
