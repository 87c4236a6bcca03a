"""Metrics and XP ledger repository protocols."""

from __future__ import annotations

from datetime import date
from typing import Optional, Protocol

from ...models.metrics import HabitMetrics, HabitMetricsSnapshot, XPTransaction


class MetricsRepository(Protocol):
    """Repository for per-habit rolling metrics and their daily snapshots."""

    def get(self, habit_id: int) -> Optional[HabitMetrics]:
        ...

    def save(self, metrics: HabitMetrics) -> HabitMetrics:
        ...

    def save_snapshot(self, snapshot: HabitMetricsSnapshot) -> None:
        """Insert or replace the snapshot for (habit_id, day)."""
        ...

    def latest_snapshot_before(self, habit_id: int, day: date) -> Optional[HabitMetricsSnapshot]:
        ...

    def delete_snapshots_after(self, habit_id: int, day: date) -> None:
        ...

    def prune_snapshots(self, habit_id: int, *, before: date) -> None:
        ...


class XPLedgerRepository(Protocol):
    """Repository for XP awards."""

    def record(self, transaction: XPTransaction) -> XPTransaction:
        """Insert, or replace the amount of the entry with the same source_id."""
        ...

    def revoke(self, source_id: str, *, user_id: int) -> None:
        ...

    def total_for_user(self, user_id: int) -> int:
        ...

    def list_for_user(self, user_id: int, *, limit: int = 20) -> list[XPTransaction]:
        ...
