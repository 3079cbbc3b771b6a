"""Shared fixtures: in-memory SQLite database, sessions, API client and tokens."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import planner.models  # noqa: F401
from planner.core.config import settings
from planner.core.permissions import Actor
from planner.core.security import create_access_token
from planner.db.base import Base
from planner.db.session import get_db
from planner.services.event_service import EventService

ALL_TEAMS = ("bar", "animation", "reception")


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def client(session_factory):
    from planner.main import app

    def _get_test_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_test_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers():
    def _headers(uid="manager-1", role="manager", teams=ALL_TEAMS, email=None):
        token = create_access_token(uid, role, teams, email=email)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture()
def admin():
    return Actor(uid="admin-1", role="admin", teams=[], email="admin@planning.local")


@pytest.fixture(autouse=True)
def business_hours():
    original = settings.ENFORCE_BUSINESS_HOURS
    settings.ENFORCE_BUSINESS_HOURS = True
    yield
    settings.ENFORCE_BUSINESS_HOURS = original


@pytest.fixture()
def make_event(db):
    def _make(start, end, team="animation", title="Event", actor_id="manager-1", **extra):
        data = {"title": title, "start_time": start, "end_time": end, "team": team}
        data.update(extra)
        return EventService.create(db, data, actor_id)

    return _make
