"""Pytest configuration and shared fixtures."""
import os

os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key")
os.environ.setdefault("OPENAI_API_KEY", "test-openai-key")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from shared.models.entities import Base
from shared.repositories import ConversationRepository, StudentRepository, UserRepository


@pytest.fixture(scope="function")
def db_session():
    """
    Create a test database session with in-memory SQLite.

    This fixture creates a fresh database for each test function,
    ensuring test isolation.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(engine)


class FakeStorage:
    """In-memory stand-in for StorageService."""

    def __init__(self, fail_uploads: bool = False):
        self.objects: dict[str, bytes] = {}
        self.content_types: dict[str, str] = {}
        self.fail_uploads = fail_uploads

    def public_url(self, key: str) -> str:
        return f"https://files.test/{key}"

    def upload(self, key: str, data: bytes, content_type=None) -> str:
        if self.fail_uploads:
            raise RuntimeError("bucket unavailable")
        self.objects[key] = data
        self.content_types[key] = content_type
        return self.public_url(key)

    def download(self, key: str) -> bytes:
        return self.objects[key]

    def delete(self, key: str) -> None:
        self.objects.pop(key, None)

    def exists(self, key: str) -> bool:
        return key in self.objects


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def failing_storage():
    return FakeStorage(fail_uploads=True)


def create_user(db, email: str, name: str, role: str = "student", password_hash=None):
    user = UserRepository(db).create(email=email, name=name, role=role, password_hash=password_hash)
    db.commit()
    return user


def create_student(db, name: str = "Asha Rao", email: str = "asha@example.com", phase: str = "phase1"):
    user = UserRepository(db).create(email=email, name=name, role="student")
    student = StudentRepository(db).create(user.id)
    db.commit()
    if phase != "phase1":
        StudentRepository(db).update(student.id, current_phase=phase)
    return student


@pytest.fixture
def make_student(db_session):
    """Factory for additional students in the same database."""
    def _make(name: str, email: str, phase: str = "phase1"):
        return create_student(db_session, name=name, email=email, phase=phase)
    return _make


@pytest.fixture
def student(db_session):
    return create_student(db_session)


@pytest.fixture
def conversation(db_session, student):
    return ConversationRepository(db_session).get_or_create(student.id)


@pytest.fixture
def mentor(db_session):
    return create_user(db_session, "mentor@example.com", "Raj Mentor", role="mentor")


@pytest.fixture
def scheduled_jobs():
    """Captures background jobs instead of starting threads."""
    return []


@pytest.fixture
def client(db_session, storage, scheduled_jobs):
    """Test client for the full app with DB, storage and scheduler overridden."""
    from database import get_db
    from main import app
    from mentorship.api.dependencies import get_scheduler, get_storage_service

    def override_get_db():
        yield db_session

    def fake_schedule(target_fn, *args, **kwargs):
        scheduled_jobs.append((target_fn, args, kwargs))

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage_service] = lambda: storage
    app.dependency_overrides[get_scheduler] = lambda: fake_schedule
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user, student_id=None) -> dict:
    from auth.services.auth_service import create_access_token
    return {"Authorization": f"Bearer {create_access_token(user, student_id)}"}


@pytest.fixture
def mentor_headers(mentor):
    return auth_headers(mentor)


@pytest.fixture
def student_headers(student):
    return auth_headers(student.user, student.id)


@pytest.fixture
def mock_llm(mocker):
    """Mock LLMService for testing without API calls. Set `call.return_value` per test."""
    mock_service = mocker.Mock()
    mock_service.call.return_value = {"output_text": "", "reasoning": None, "parsed": None}
    return mock_service
