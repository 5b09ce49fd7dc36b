"""Root conftest — shared fixtures for all server tests."""

from __future__ import annotations

import os
import sys
from datetime import datetime
from pathlib import Path

# Ensure server/ is on sys.path
_server_dir = str(Path(__file__).resolve().parent)
if _server_dir not in sys.path:
    sys.path.insert(0, _server_dir)

# Keep the app lifespan off the on-disk database during tests
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, build_engine
import models  # noqa: F401 — register all models with Base

# In-memory SQLite with the production pragmas; StaticPool keeps one shared DB
TEST_ENGINE = build_engine("sqlite:///:memory:", poolclass=StaticPool)
TestSession = sessionmaker(bind=TEST_ENGINE, autoflush=False, expire_on_commit=False)


@pytest.fixture(autouse=True)
def _setup_db():
    """Create all tables before each test, drop after."""
    Base.metadata.create_all(bind=TEST_ENGINE)
    yield
    Base.metadata.drop_all(bind=TEST_ENGINE)


@pytest.fixture
def db():
    """Yield a test database session."""
    session = TestSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store():
    from services.conversations import ConversationStore

    return ConversationStore(TestSession)


@pytest.fixture
def user_profile(db):
    import bcrypt
    from models.user import UserProfile

    profile = UserProfile(
        username="testuser",
        password_hash=bcrypt.hashpw(b"testpass", bcrypt.gensalt()).decode(),
        first_name="Test",
        last_name="User",
        email="test@example.com",
        has_truck=True,
    )
    db.add(profile)
    db.commit()
    db.refresh(profile)
    return profile


@pytest.fixture
def api_key(db, user_profile):
    from models.user import APIKey

    key = APIKey(user_id=user_profile.id)
    db.add(key)
    db.commit()
    db.refresh(key)
    return key


@pytest.fixture
def dump_run(db, user_profile):
    from models.dump_run import DumpRun

    run = DumpRun(
        title="Garage cleanout",
        location="Elm Street",
        date=datetime(2026, 11, 7, 9, 0),
        organizer_id=user_profile.id,
    )
    db.add(run)
    db.commit()
    db.refresh(run)
    return run


@pytest.fixture
def make_dump_run(db, user_profile):
    """Factory for extra dump runs organised by ``user_profile``."""
    from models.dump_run import DumpRun

    def _make(title: str = "Spring clear-out") -> DumpRun:
        run = DumpRun(
            title=title,
            location="Birch Lane",
            date=datetime(2026, 12, 5, 10, 0),
            organizer_id=user_profile.id,
        )
        db.add(run)
        db.commit()
        db.refresh(run)
        return run

    return _make
