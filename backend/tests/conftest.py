"""Pytest configuration and fixtures for testing."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from helpdesk.core.auth import create_access_token, get_password_hash
from helpdesk.core.policy import Actor
from helpdesk.db.session import Base, get_db
from helpdesk.main import app
from helpdesk.models.models import Ticket, User

# Use SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# Enforce foreign keys the way PostgreSQL does.
@event.listens_for(engine, "connect")
def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PASSWORD = "secret123"
PASSWORD_HASH = get_password_hash(PASSWORD)


def make_user(db, name, role, email=None):
    user = User(
        name=name,
        email=email or f"{name.lower().replace(' ', '.')}@example.com",
        hashed_password=PASSWORD_HASH,
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user):
    token = create_access_token({"sub": user.id, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


def actor_for(user):
    return Actor(id=user.id, role=user.role)


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    """Create a test client with a fresh database."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    # Create test client without running startup events
    test_client = TestClient(app, raise_server_exceptions=False)
    yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def admin(db):
    return make_user(db, "Ada Admin", "admin")


@pytest.fixture
def technician(db):
    return make_user(db, "Tom Tech", "technician")


@pytest.fixture
def other_technician(db):
    return make_user(db, "Tina Tech", "technician")


@pytest.fixture
def client_user(db):
    return make_user(db, "Carl Client", "client")


@pytest.fixture
def other_client(db):
    return make_user(db, "Cleo Client", "client")


@pytest.fixture
def sample_ticket(db, client_user):
    """An open, unassigned ticket created by ``client_user``."""
    ticket = Ticket(
        title="VPN down",
        description="cannot connect",
        status="open",
        priority="medium",
        created_by=client_user.id,
    )
    db.add(ticket)
    db.commit()
    db.refresh(ticket)
    return ticket
