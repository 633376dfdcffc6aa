import os
import tempfile
import uuid

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTH_DISABLED"] = "false"
os.environ.setdefault("PREFERENCES_DIR", tempfile.mkdtemp(prefix="studio-prefs-"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from studio.api.deps import get_db
from studio.core.config import settings
from studio.core.events import EventBus
from studio.core.router import DirectoryFragmentLoader
from studio.db.base import Base, init_db
from studio.main import app
from studio.models.user import User
from studio.services.auth import AuthService
from studio.services.preferences import PreferencesStore
from studio.services.storage import MemoryDocumentStore
from studio.session import SessionRegistry, StudioSession

TEST_PASSWORD = "testpassword"

# In-memory SQLite shared by every session of a test
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db():
    """Fresh tables for every test."""
    init_db(bind=engine)
    db_session = TestingSessionLocal()
    try:
        yield db_session
    finally:
        db_session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db: Session, tmp_path, monkeypatch):
    """Create a test client with the test database."""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    monkeypatch.setattr(settings, "PREFERENCES_DIR", str(tmp_path / "preferences"))
    app.dependency_overrides[get_db] = override_get_db
    app.state.sessions = SessionRegistry(session_factory=TestingSessionLocal)

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    app.state.sessions = None


@pytest.fixture(scope="function")
def test_user(db: Session) -> User:
    user = User(
        id=uuid.uuid4(),
        email="writer@example.com",
        display_name="Test Writer",
        hashed_password=AuthService.get_password_hash(TEST_PASSWORD),
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture(scope="function")
def auth_headers(client: TestClient, test_user: User):
    """Authentication headers with a valid token."""
    response = client.post(
        "/api/v1/auth/login/",
        json={"email": test_user.email, "password": TEST_PASSWORD},
    )
    assert response.status_code == 200
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def store() -> MemoryDocumentStore:
    return MemoryDocumentStore(lambda: "user-1")


@pytest.fixture
def studio(store, tmp_path) -> StudioSession:
    """A studio session on the in-memory store with the packaged pages."""
    return StudioSession(
        store=store,
        preferences=PreferencesStore(tmp_path / "prefs.json"),
        loader=DirectoryFragmentLoader(),
    )
