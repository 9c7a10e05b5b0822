import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# FORCE model registration
import teammatch.models  # noqa

from teammatch.core.realtime import MessageFeed
from teammatch.core.security import create_access_token
from teammatch.db.base import Base
from teammatch.db.session import get_db, get_session_factory
from teammatch.policies.rbac import resolve_actor_session
from teammatch.schemas.profiles import ProfileCreate
from teammatch.schemas.teams import TeamCreate
from teammatch.services.engine import MatchEngine, get_engine
from teammatch.services.profile_service import ProfileService
from teammatch.services.team_service import TeamService


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(scope="function")
def engine():
    # one shared in-memory connection per test; worker threads reuse it
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(eng)
    try:
        yield eng
    finally:
        Base.metadata.drop_all(eng)
        eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_profile(db):
    def _make(name="Alice Example", *, program="MBA", skills=None, studio_preferences=None, user_id=None):
        payload = ProfileCreate(
            name=name,
            program=program,
            skills=skills or ["python"],
            studio_preferences=studio_preferences or ["startup"],
        )
        return ProfileService().create(db, user_id=user_id or uuid.uuid4(), payload=payload)

    return _make


@pytest.fixture
def make_team(db):
    def _make(owner_id, name="Rocket", *, studio="startup"):
        payload = TeamCreate(name=name, studio=studio, description="We build things", skills_needed=["design"])
        return TeamService().create(db, owner_id=owner_id, payload=payload)

    return _make


@pytest.fixture
def actor(db):
    def _actor(user_id):
        return resolve_actor_session(db, user_id)

    return _actor


@pytest.fixture
def feed():
    return MessageFeed(queue_size=16)


@pytest.fixture
def match_engine(feed):
    return MatchEngine(feed=feed)


@pytest.fixture
def client(session_factory, match_engine):
    from teammatch.main import app

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_engine] = lambda: match_engine
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth():
    def _auth(user_id):
        return {"Authorization": f"Bearer {create_access_token(str(user_id))}"}

    return _auth
