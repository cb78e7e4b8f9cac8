"""
Shared fixtures.

Every test gets a fresh in-memory SQLite database; API tests talk to the
FastAPI app through TestClient with the database dependency overridden.
"""
import os

# must be set before the application modules read their settings
os.environ.setdefault("FINTRACK_DATABASE_URL", "sqlite://")

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from backend.app.db import Base, get_db, init_db
from backend.app.main import app
from backend.app.services.aggregation import AggregationEngine
from backend.app.services.transactions import TransactionService
from backend.app.store import LedgerStore

NOW = datetime(2026, 10, 15, 12, 0, 0)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db):
    return LedgerStore(db)


@pytest.fixture
def service(store):
    return TransactionService(store, clock=lambda: NOW)


@pytest.fixture
def aggregation(store):
    return AggregationEngine(store, clock=lambda: NOW)


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def register(client):
    """Register a user and return request headers carrying their token."""
    def _register(email="alice@example.com", name="Alice", password="secret123"):
        response = client.post("/auth/register", json={"name": name, "email": email, "password": password})
        assert response.status_code == 201, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _register


@pytest.fixture
def auth_headers(register):
    return register()


@pytest.fixture
def other_headers(register):
    return register(email="bob@example.com", name="Bob")
