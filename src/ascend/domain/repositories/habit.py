"""Habit repository protocol."""

from __future__ import annotations

from typing import Optional, Protocol

from ...models.habit import Habit


class HabitRepository(Protocol):
    """Repository for managing habit entities."""

    def get_by_id(self, habit_id: int, *, user_id: int) -> Optional[Habit]:
        """Retrieve a habit owned by ``user_id``."""
        ...

    def list_for_user(self, *, user_id: int, include_archived: bool = False) -> list[Habit]:
        """List a user's habits."""
        ...

    def list_active(self) -> list[Habit]:
        """List non-archived habits across all users."""
        ...

    def create(self, habit: Habit, *, user_id: int) -> Habit:
        """Create a new habit."""
        ...

    def archive(self, habit_id: int, *, user_id: int) -> Optional[Habit]:
        """Mark a habit archived."""
        ...

    def update(self, habit: Habit, *, user_id: int) -> Habit:
        """Persist changes to an existing habit."""
        ...

    def delete(self, habit_id: int, *, user_id: int) -> bool:
        """Delete a habit and its dependent rows; False when it does not exist."""
        ...

    def count_active(self) -> int:
        ...
