# tests/conftest.py
import os

# Must be set before vlog_portal.core.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["GEMINI_API_KEY"] = ""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from vlog_portal.core.security import create_access_token
from vlog_portal.db.base import Base
from vlog_portal.db.init_db import create_teacher
from vlog_portal.db.session import build_engine
from vlog_portal.schemas.submission import NewSubmission
from vlog_portal.schemas.user import UserPublic
from vlog_portal.services.submission_repository import SubmissionRepository

TEACHER_EMAIL = "guru@sekolah.id"
TEACHER_PASSWORD = "rahasia123"

BASE_TIME = datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    """In-memory SQLite shared across threads (StaticPool)."""
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def teacher(db_session):
    """A provisioned teacher account (password is really hashed)."""
    user = create_teacher(
        db_session,
        email=TEACHER_EMAIL,
        password=TEACHER_PASSWORD,
        name="Bu Sari",
    )
    return UserPublic.model_validate(user)


@pytest.fixture
def teacher_token(teacher):
    return create_access_token(data={"sub": teacher.email})


@pytest.fixture
def repository(session_factory):
    return SubmissionRepository(
        session_factory,
        write_timeout=5.0,
        batch_limit=500,
        public_submissions=True,
    )


def make_submission(**overrides) -> NewSubmission:
    values = {
        "student_name": "Andi Pratama",
        "class_label": "9-A",
        "roll_number": "07",
        "video_url": "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        "video_id": "dQw4w9WgXcQ",
        "video_title": "My Weekend Vlog",
        "submitted_at": BASE_TIME,
        "ai_feedback": "Great job, Andi!",
    }
    values.update(overrides)
    return NewSubmission(**values)


def minutes_after_base(minutes: int) -> datetime:
    return BASE_TIME + timedelta(minutes=minutes)


@pytest.fixture
def app(engine, session_factory):
    from vlog_portal.main import create_app

    return create_app(session_factory=session_factory, bind=engine)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(teacher_token):
    return {"Authorization": f"Bearer {teacher_token}"}
