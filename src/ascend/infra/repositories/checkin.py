"""SQLModel implementation of the checkin repository."""

from __future__ import annotations

from datetime import date, datetime
from typing import Callable, Optional

from sqlmodel import Session, select

from ...models.habit import HabitCheckin


class SQLModelCheckinRepository:
    """Checkins keyed by (habit_id, occurred_on); writes for an existing key update in place."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def get(self, habit_id: int, occurred_on: date, *, user_id: int) -> Optional[HabitCheckin]:
        """Get a specific checkin."""
        with self.session_factory() as session:
            statement = (
                select(HabitCheckin)
                .where(HabitCheckin.user_id == user_id)
                .where(HabitCheckin.habit_id == habit_id)
                .where(HabitCheckin.occurred_on == occurred_on)
            )
            obj = session.exec(statement).first()
            if obj:
                session.expunge(obj)
            return obj

    def find(
        self,
        *,
        user_id: int,
        habit_id: Optional[int] = None,
        occurred_on: Optional[date] = None,
    ) -> list[HabitCheckin]:
        """List checkins for a user, optionally narrowed to a habit and/or day."""
        with self.session_factory() as session:
            statement = select(HabitCheckin).where(HabitCheckin.user_id == user_id)
            if habit_id is not None:
                statement = statement.where(HabitCheckin.habit_id == habit_id)
            if occurred_on is not None:
                statement = statement.where(HabitCheckin.occurred_on == occurred_on)
            statement = statement.order_by(HabitCheckin.occurred_on, HabitCheckin.habit_id)  # type: ignore
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def list_between(self, habit_id: int, start: date, end: date) -> list[HabitCheckin]:
        """Get entries for a habit within a date range."""
        with self.session_factory() as session:
            statement = (
                select(HabitCheckin)
                .where(HabitCheckin.habit_id == habit_id)
                .where(HabitCheckin.occurred_on >= start)
                .where(HabitCheckin.occurred_on <= end)
                .order_by(HabitCheckin.occurred_on)  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def upsert(self, checkin: HabitCheckin, *, now: datetime) -> tuple[HabitCheckin, bool]:
        """Insert or update a checkin; ``created_at`` survives updates."""
        with self.session_factory() as session:
            existing = session.exec(
                select(HabitCheckin)
                .where(HabitCheckin.habit_id == checkin.habit_id)
                .where(HabitCheckin.occurred_on == checkin.occurred_on)
            ).first()

            if existing:
                existing.status = checkin.status
                existing.effort = checkin.effort
                existing.dose_actual = checkin.dose_actual
                existing.note = checkin.note
                existing.edited_at = now
                row, created = existing, False
            else:
                checkin.created_at = now
                row, created = checkin, True

            session.add(row)
            session.commit()
            session.refresh(row)
            session.expunge(row)
            return row, created
