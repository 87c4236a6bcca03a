"""SQLModel implementation of Habit repository."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy import func
from sqlmodel import Session, select

from ...models.habit import Habit, HabitCheckin
from ...models.metrics import HabitMetrics, HabitMetricsSnapshot, XPTransaction


class SQLModelHabitRepository:
    """SQLModel-based habit repository implementation."""

    def __init__(self, session_factory: Callable[[], Session]):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, habit_id: int, *, user_id: int) -> Optional[Habit]:
        """Retrieve a habit by ID."""
        with self.session_factory() as session:
            obj = session.exec(
                select(Habit).where(Habit.id == habit_id, Habit.user_id == user_id)
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def list_for_user(self, *, user_id: int, include_archived: bool = False) -> list[Habit]:
        """List a user's habits ordered by title."""
        with self.session_factory() as session:
            statement = (
                select(Habit).where(Habit.user_id == user_id).order_by(Habit.title)  # type: ignore
            )
            if not include_archived:
                statement = statement.where(Habit.archived == False)  # noqa: E712

            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def list_active(self) -> list[Habit]:
        """List non-archived habits for every user."""
        with self.session_factory() as session:
            statement = select(Habit).where(Habit.archived == False).order_by(Habit.id)  # type: ignore  # noqa: E712
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def create(self, habit: Habit, *, user_id: int) -> Habit:
        """Create a new habit."""
        with self.session_factory() as session:
            habit.user_id = user_id
            session.add(habit)
            session.commit()
            session.refresh(habit)
            session.expunge(habit)
            return habit

    def archive(self, habit_id: int, *, user_id: int) -> Optional[Habit]:
        """Archive a habit so it no longer produces occurrences or rollups."""
        with self.session_factory() as session:
            habit = session.exec(
                select(Habit).where(Habit.id == habit_id, Habit.user_id == user_id)
            ).first()
            if habit is None:
                return None
            habit.archived = True
            habit.updated_at = datetime.now(timezone.utc)
            session.add(habit)
            session.commit()
            session.refresh(habit)
            session.expunge(habit)
            return habit

    def update(self, habit: Habit, *, user_id: int) -> Habit:
        """Update an existing habit."""
        with self.session_factory() as session:
            habit.user_id = user_id
            habit.updated_at = datetime.now(timezone.utc)
            session.add(habit)
            session.commit()
            session.refresh(habit)
            session.expunge(habit)
            return habit

    def delete(self, habit_id: int, *, user_id: int) -> bool:
        """Delete a habit with its checkins, metrics and snapshots.

        XP already earned stays on the ledger, detached from the habit.
        """
        with self.session_factory() as session:
            habit = session.exec(
                select(Habit).where(Habit.id == habit_id, Habit.user_id == user_id)
            ).first()
            if habit is None:
                return False
            for model in (HabitCheckin, HabitMetricsSnapshot, HabitMetrics):
                for row in session.exec(select(model).where(model.habit_id == habit_id)).all():
                    session.delete(row)
            for tx in session.exec(
                select(XPTransaction).where(XPTransaction.habit_id == habit_id)
            ).all():
                tx.habit_id = None
                session.add(tx)
            session.flush()
            session.delete(habit)
            session.commit()
            return True

    def count_active(self) -> int:
        """Number of non-archived habits across all users."""
        with self.session_factory() as session:
            return int(
                session.exec(
                    select(func.count(Habit.id)).where(Habit.archived == False)  # noqa: E712
                ).one()
            )
