import os

os.environ["SYNC_SCHEDULER_ENABLED"] = "false"
os.environ["FIREBASE_DATABASE_URL"] = ""
os.environ["SYNC_API_KEY"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from ecotrack.database import RoomSource, get_db, settings
from ecotrack.dependencies import get_firebase_provider, get_sync_service
from ecotrack.main import app
from ecotrack.models import Base
from ecotrack.providers.firebase_provider import FirebaseProvider
from ecotrack.services.sync import SyncService

TEST_ROOMS = [RoomSource("bedroom", "Bedroom"), RoomSource("living_room", "Living Room")]


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'ecotrack_test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def broken_session_factory(tmp_path):
    """Sessions whose database file can never be opened"""
    engine = create_engine(f"sqlite:///{tmp_path / 'missing' / 'nowhere.db'}")
    yield sessionmaker(bind=engine)
    engine.dispose()


@pytest.fixture
def provider():
    provider = FirebaseProvider("")
    yield provider
    provider.close()


@pytest.fixture
def sync_service(session_factory, provider):
    return SyncService(session_factory, provider, TEST_ROOMS, "pzem")


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setattr(settings, "sync_api_key", "s3cret")
    return "s3cret"


@pytest.fixture
def client(session_factory, provider, sync_service):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_firebase_provider] = lambda: provider
    app.dependency_overrides[get_sync_service] = lambda: sync_service
    yield TestClient(app)
    app.dependency_overrides.clear()
