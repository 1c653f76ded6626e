"""Shared test fixtures.

This module contains pytest fixtures used across multiple test files.
"""

import pytest
from datetime import datetime, timedelta, timezone
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from seatbooking.config import settings
from seatbooking.database.models import Base, CodeStatus
from seatbooking.database.session import get_db
from seatbooking.database import crud
from seatbooking.auth_utils import hash_password
from seatbooking.domain.models import ParticipantDetails


ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "adminpassword123"

PARTICIPANT = ParticipantDetails(name="Asha Rao", mobile="9876543210", email="asha@example.com")


# ============================================================================
# Test Database Setup
# ============================================================================

@pytest.fixture(scope="function")
def test_db():
    """Create a test database for each test."""
    # Use in-memory SQLite for testing
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    # Create tables
    Base.metadata.create_all(bind=engine)

    # Override the get_db dependency
    def override_get_db():
        try:
            db = TestingSessionLocal()
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    db = TestingSessionLocal()
    yield db

    # Cleanup
    db.close()
    Base.metadata.drop_all(bind=engine)
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def client(test_db):
    """Create a test client."""
    return TestClient(app)


@pytest.fixture(scope="function")
def seeded_seats(test_db):
    """Seed the full seat layout (A1..R10)."""
    crud.seed_seats(test_db, settings.seat_rows, settings.seats_per_row)
    return crud.get_all_seats(test_db)


# ============================================================================
# Admin Fixtures
# ============================================================================

@pytest.fixture(scope="function")
def admin_user(test_db):
    """Create an admin account."""
    return crud.create_admin_user(
        test_db,
        email=ADMIN_EMAIL,
        password_hash=hash_password(ADMIN_PASSWORD),
        full_name="Event Desk"
    )


@pytest.fixture(scope="function")
def admin_headers(client, admin_user):
    """Bearer headers for the admin account."""
    response = client.post(
        "/api/auth/login",
        json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
    )
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


# ============================================================================
# Invitation Code Fixtures
# ============================================================================

@pytest.fixture(scope="function")
def guru_code(test_db):
    """Two uses across Level 1 and Level 2."""
    return crud.create_invitation_code(
        test_db,
        code="GURU2025",
        allowed_levels=["Level 1", "Level 2"],
        max_usage=2,
        expires_at=datetime.now(timezone.utc) + timedelta(days=30)
    )


@pytest.fixture(scope="function")
def named_code(test_db):
    """Single-use code bound to a participant name."""
    return crud.create_invitation_code(
        test_db,
        code="ASHA01",
        allowed_levels=["Level 1"],
        max_usage=1,
        participant_name="Asha Rao"
    )


@pytest.fixture(scope="function")
def expired_code(test_db):
    """Active code whose expiry date has passed."""
    return crud.create_invitation_code(
        test_db,
        code="OLD2024",
        allowed_levels=["Level 1"],
        max_usage=5,
        expires_at=datetime.now(timezone.utc) - timedelta(days=1)
    )


@pytest.fixture(scope="function")
def disabled_code(test_db):
    """Code switched off by an admin."""
    code = crud.create_invitation_code(
        test_db,
        code="OFF2025",
        allowed_levels=["Level 1"],
        max_usage=5
    )
    code.status = CodeStatus.DISABLED.value
    test_db.commit()
    return code


@pytest.fixture(scope="function")
def single_use_code(test_db):
    """One use, Level 1 only."""
    return crud.create_invitation_code(
        test_db,
        code="ONCE",
        allowed_levels=["Level 1"],
        max_usage=1
    )


@pytest.fixture(scope="function")
def unlimited_code(test_db):
    """No usage limit, every level."""
    return crud.create_invitation_code(
        test_db,
        code="OPEN",
        allowed_levels=["Level 1", "Level 2", "Level 3"],
        max_usage=None
    )


@pytest.fixture
def participant():
    return PARTICIPANT


@pytest.fixture
def participant_payload():
    return {"name": PARTICIPANT.name, "mobile": PARTICIPANT.mobile, "email": PARTICIPANT.email}
