"""
Pytest configuration and fixtures

Tests run against an in-memory SQLite database. The schema is created
fresh for every test and dropped afterwards, so nothing leaks between
tests. The environment must be set before core.config is imported.
"""
import os
import sys
from uuid import uuid4

os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-at-least-32-characters-long")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_LEVEL", "WARNING")

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from core.database import Base, SessionLocal, engine
from core.security import create_athlete_token
from fixtures.program_fixtures import seed_templates
from models import Athlete
from services.schedule_engine import SkillLevel


@pytest.fixture(scope="function")
def db_session():
    """
    Session on a freshly created schema.

    The API shares the same in-memory connection, so data must be committed
    before a request can see it.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def test_athlete(db_session):
    athlete = Athlete(
        email=f"test_{uuid4()}@example.com",
        display_name="Test Athlete",
    )
    db_session.add(athlete)
    db_session.commit()
    db_session.refresh(athlete)
    return athlete


@pytest.fixture
def auth_headers(test_athlete):
    token = create_athlete_token(test_athlete.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def template_library(db_session):
    """Category 1 templates for every skill level."""
    rows = []
    for level in SkillLevel:
        rows.extend(seed_templates(db_session, skill_level=level))
    return rows
