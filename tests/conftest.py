"""
Pytest fixtures for the watercan test suite.

Provides:
- An in-memory SQLite session per test, with fresh tables
- Customer and inventory factories
- A TestClient whose database and caller dependencies are overridden
"""

import os

# The engine in watercan.db.get_db is built at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.pop("IDENTITY_PROVIDER_URL", None)

import pytest
from datetime import datetime
from typing import Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from watercan.core.logging_config import reset_logging
from watercan.db.get_db import get_db
from watercan.db.init_db import create_tables, drop_tables
from watercan.models.enums import AppRole
from watercan.models.inventory import InventorySnapshot
from watercan.services import customer_service
from watercan.utils.auth import Caller, get_current_caller

OWNER_ID = "user_owner"
CUSTOMER_ID = "user_alice"


@pytest.fixture(autouse=True, scope="session")
def _reset_package_logging():
    """Let log records reach pytest's caplog handler."""
    reset_logging()
    yield
    reset_logging()


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine) -> Generator[Session, None, None]:
    create_tables(engine)
    session = sessionmaker(bind=engine, autoflush=False)()
    try:
        yield session
    finally:
        session.close()
        drop_tables(engine)


@pytest.fixture
def make_customer(db):
    """Create a customer through the service so its opening credit is recorded."""

    def _make(customer_id=CUSTOMER_ID, balance=0, name="Alice Moshi", **fields):
        customer = customer_service.create_customer(
            db,
            customer_id,
            name=name,
            address=fields.pop("address", "12 Uhuru Street"),
            phone=fields.pop("phone", "+255700000001"),
            email=fields.pop("email", None),
            balance=balance,
            actor_id=OWNER_ID,
        )
        if fields:
            for key, value in fields.items():
                setattr(customer, key, value)
            db.commit()
        return customer

    return _make


@pytest.fixture
def make_snapshot(db):
    """Insert an inventory snapshot directly, bypassing the adjustment flow."""
    counter = {"sequence": 0}

    def _make(total, available, with_customers, created_at=None):
        counter["sequence"] += 1
        snapshot = InventorySnapshot(
            sequence=counter["sequence"],
            total_cans=total,
            available_cans=available,
            cans_with_customers=with_customers,
            updated_by=OWNER_ID,
            created_at=created_at or datetime.utcnow(),
        )
        db.add(snapshot)
        db.commit()
        return snapshot

    return _make


@pytest.fixture
def owner():
    return Caller(caller_id=OWNER_ID, role=AppRole.owner, name="Shop Owner")


@pytest.fixture
def customer_caller():
    return Caller(caller_id=CUSTOMER_ID, role=AppRole.customer, name="Alice Moshi", email="alice@example.com")


@pytest.fixture
def client(db):
    """TestClient bound to the test session; startup hooks are not run."""

    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def as_caller(client):
    """Make subsequent requests run as the given caller."""

    def _as(caller):
        app.dependency_overrides[get_current_caller] = lambda: caller
        return client

    return _as
