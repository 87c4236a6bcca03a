"""Checkin repository protocol."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol

from ...models.habit import HabitCheckin


class CheckinRepository(Protocol):
    """Repository for habit checkins keyed by (habit_id, occurred_on)."""

    def get(self, habit_id: int, occurred_on: date, *, user_id: int) -> Optional[HabitCheckin]:
        """Get the checkin for one habit and day."""
        ...

    def find(
        self,
        *,
        user_id: int,
        habit_id: Optional[int] = None,
        occurred_on: Optional[date] = None,
    ) -> list[HabitCheckin]:
        """List checkins, optionally filtered."""
        ...

    def list_between(self, habit_id: int, start: date, end: date) -> list[HabitCheckin]:
        """List a habit's checkins in ``[start, end]`` ordered by date."""
        ...

    def upsert(self, checkin: HabitCheckin, *, now: datetime) -> tuple[HabitCheckin, bool]:
        """Insert or update in place; returns (row, created)."""
        ...
