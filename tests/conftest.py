"""Pytest configuration and shared fixtures for ASCEND tests.

This module provides database fixtures, test data factories, and helper utilities
for testing the habit engine, repositories, services and routes without touching
a real database.
"""

from __future__ import annotations

import tempfile
from datetime import date, datetime, timezone
from pathlib import Path

import pytest
from sqlmodel import Session, SQLModel, create_engine, select

# Import all models to ensure they're registered with SQLModel metadata
from ascend.models import (  # noqa: F401
    Habit,
    HabitCheckin,
    HabitMetrics,
    HabitMetricsSnapshot,
    User,
    XPTransaction,
)

# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def db_engine():
    """Create an isolated SQLite database file for each test.

    Yields:
        Engine: SQLModel engine connected to test database
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    engine = create_engine(f"sqlite:///{db_path}", echo=False)
    SQLModel.metadata.create_all(engine)

    yield engine

    engine.dispose()
    db_path.unlink(missing_ok=True)


@pytest.fixture(scope="function")
def db_session(db_engine):
    """Create a database session for a single test.

    Yields:
        Session: SQLModel session for test
    """
    session = Session(db_engine, expire_on_commit=False)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Session factory matching the ``Callable[[], Session]`` repositories expect."""

    def factory():
        return Session(db_engine, expire_on_commit=False)

    return factory


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def user(db_session) -> User:
    """Create a default user for scoping data."""

    existing = db_session.exec(select(User).where(User.username == "tester")).first()
    if existing:
        return existing
    u = User(username="tester")
    db_session.add(u)
    db_session.commit()
    db_session.refresh(u)
    return u


@pytest.fixture
def other_user(db_session) -> User:
    u = User(username="someone-else")
    db_session.add(u)
    db_session.commit()
    db_session.refresh(u)
    return u


@pytest.fixture
def habit_factory(db_session, user):
    """Factory for creating test habits.

    Returns:
        Callable: Function that creates and persists Habit instances
    """

    def _create_habit(
        title: str = "Morning walk",
        cadence_type: str = "daily",
        cadence_rule: str | None = None,
        window_start: str = "07:00",
        window_end: str = "11:00",
        difficulty: int = 2,
        archived: bool = False,
        created_at: datetime | None = None,
        owner: User | None = None,
    ) -> Habit:
        """Create a test habit with sensible defaults.

        ``created_at`` defaults to the start of 2024 so rollups over 2024/2025
        dates see the habit as existing.
        """
        owner = owner or user
        habit = Habit(
            user_id=owner.id,
            title=title,
            cadence_type=cadence_type,
            cadence_rule=cadence_rule,
            window_start=window_start,
            window_end=window_end,
            difficulty=difficulty,
            archived=archived,
            created_at=created_at or datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        db_session.add(habit)
        db_session.commit()
        db_session.refresh(habit)
        return habit

    return _create_habit


@pytest.fixture
def checkin_factory(db_session, user):
    """Factory for creating persisted checkins directly (bypassing the service)."""

    def _create_checkin(
        habit: Habit,
        occurred_on: date,
        status: str = "done",
        effort: int = 2,
    ) -> HabitCheckin:
        checkin = HabitCheckin(
            habit_id=habit.id,
            occurred_on=occurred_on,
            user_id=habit.user_id,
            status=status,
            effort=effort,
        )
        db_session.add(checkin)
        db_session.commit()
        db_session.refresh(checkin)
        return checkin

    return _create_checkin


# =============================================================================
# Application Fixtures
# =============================================================================


@pytest.fixture
def app(tmp_path, monkeypatch):
    """Flask app bound to an in-memory database."""

    monkeypatch.setenv("ASCEND_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("ASCEND_ADMIN_TOKEN", "test-admin-token")

    from ascend import create_app

    application = create_app("testing")
    yield application


@pytest.fixture
def client(app):
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture
def app_user(app) -> User:
    """A user persisted in the app's database."""

    from ascend.extensions import get_session_factory

    with get_session_factory(app)() as session:
        u = User(username="api-user")
        session.add(u)
        session.flush()
        session.refresh(u)
        session.expunge(u)
    return u


# =============================================================================
# Helpers
# =============================================================================


def assert_float_equal(actual: float, expected: float, tolerance: float = 1e-9):
    """Assert that two floats are equal within a tolerance."""
    assert (
        abs(actual - expected) < tolerance
    ), f"Expected {expected}, got {actual} (diff: {abs(actual - expected)})"
