# tests/conftest.py
import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from fastapi.testclient import TestClient

from ticketdesk.core.config import get_settings
from ticketdesk.core.database import Base, get_db
from ticketdesk.main import app
from ticketdesk.ticket.public_id import PublicIdConfig, PublicIdGenerator

engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def setup_database():
    """Create tables once for the whole test session."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """A session whose commits are rolled back after each test."""
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture(scope="function")
def generator(db_session):
    return PublicIdGenerator(db_session, PublicIdConfig())


@pytest.fixture(scope="function")
def client(db_session):
    """TestClient that uses the test session via dependency override."""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def settings_override():
    """Swap the cached Settings for one test: settings_override(FIELD=value)."""
    def _override(**values):
        app.dependency_overrides[get_settings] = lambda: get_settings().model_copy(update=values)

    yield _override
    app.dependency_overrides.pop(get_settings, None)
