"""
Pytest configuration and fixtures.
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from app.core.database import Base, get_db
from app.core.permission_store import PermissionStore
from app.main import app
from app.services.permission_service import UserPermissionSync

# Import all models to ensure they register with Base.metadata
from app.models import User, ActivityLog

# Use file-based SQLite for testing (more reliable than in-memory)
TEST_DATABASE_URL = "sqlite:///./test_mda_training.db"

test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    pool_pre_ping=False,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """
    Create all tables before tests run and drop them after all tests complete.
    """
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function", autouse=True)
def clean_tables():
    """Empty the tables after every test so tests don't see each other's users."""
    yield
    db = TestingSessionLocal()
    try:
        db.query(ActivityLog).delete()
        db.query(User).delete()
        db.commit()
    finally:
        db.close()


@pytest.fixture(scope="function")
def store():
    """
    Fresh permission store installed on the app, mirroring into the test database.
    """
    previous = app.state.permission_store
    fresh = PermissionStore(on_change=UserPermissionSync(TestingSessionLocal))
    app.state.permission_store = fresh
    yield fresh
    app.state.permission_store = previous


@pytest.fixture(scope="function")
def client(store):
    """
    Create a test client with database override.
    """
    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def db_session():
    """
    Provide a database session for tests that need direct DB access.
    """
    db = TestingSessionLocal()
    try:
        yield db
        db.rollback()
    finally:
        db.close()


@pytest.fixture(scope="function")
def make_user(db_session):
    """Factory that stores a user and returns it."""
    def _make_user(user_id, role="trainee", full_name=None, email=None, custom_permissions=None):
        user = User(
            user_id=user_id,
            full_name=full_name or user_id,
            email=email,
            role=role,
            custom_permissions=custom_permissions or [],
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _make_user


@pytest.fixture(scope="function")
def admin_headers(make_user):
    make_user("admin1", role="admin", full_name="מנהל ראשי")
    return {"X-User-ID": "admin1"}


@pytest.fixture(scope="function")
def instructor_headers(make_user):
    make_user("instructor1", role="instructor", full_name="דני לוי")
    return {"X-User-ID": "instructor1"}


@pytest.fixture(scope="function")
def trainee_headers(make_user):
    make_user("12345", role="trainee", full_name="יוסי כהן", email="yossi@example.com")
    return {"X-User-ID": "12345"}
