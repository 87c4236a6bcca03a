"""SQLModel implementations of the metrics and XP ledger repositories."""

from __future__ import annotations

from datetime import date
from typing import Callable, Optional

from sqlalchemy import func
from sqlmodel import Session, select

from ...models.metrics import HabitMetrics, HabitMetricsSnapshot, XPTransaction


class SQLModelMetricsRepository:
    """One HabitMetrics row per habit, plus the per-day snapshots behind it."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def get(self, habit_id: int) -> Optional[HabitMetrics]:
        with self.session_factory() as session:
            obj = session.get(HabitMetrics, habit_id)
            if obj:
                session.expunge(obj)
            return obj

    def save(self, metrics: HabitMetrics) -> HabitMetrics:
        with self.session_factory() as session:
            merged = session.merge(metrics)
            session.commit()
            session.refresh(merged)
            session.expunge(merged)
            return merged

    def stats(self) -> tuple[int, Optional[date]]:
        """Number of metrics rows and the most recent ``last_updated``."""
        with self.session_factory() as session:
            count, latest = session.exec(
                select(func.count(HabitMetrics.habit_id), func.max(HabitMetrics.last_updated))
            ).one()
            return int(count), latest

    def save_snapshot(self, snapshot: HabitMetricsSnapshot) -> None:
        with self.session_factory() as session:
            session.merge(snapshot)
            session.commit()

    def latest_snapshot_before(self, habit_id: int, day: date) -> Optional[HabitMetricsSnapshot]:
        with self.session_factory() as session:
            obj = session.exec(
                select(HabitMetricsSnapshot)
                .where(HabitMetricsSnapshot.habit_id == habit_id)
                .where(HabitMetricsSnapshot.day < day)
                .order_by(HabitMetricsSnapshot.day.desc())  # type: ignore
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def delete_snapshots_after(self, habit_id: int, day: date) -> None:
        with self.session_factory() as session:
            for row in session.exec(
                select(HabitMetricsSnapshot)
                .where(HabitMetricsSnapshot.habit_id == habit_id)
                .where(HabitMetricsSnapshot.day > day)
            ).all():
                session.delete(row)
            session.commit()

    def prune_snapshots(self, habit_id: int, *, before: date) -> None:
        with self.session_factory() as session:
            for row in session.exec(
                select(HabitMetricsSnapshot)
                .where(HabitMetricsSnapshot.habit_id == habit_id)
                .where(HabitMetricsSnapshot.day < before)
            ).all():
                session.delete(row)
            session.commit()


class SQLModelXPLedgerRepository:
    """XP ledger; one entry per source_id so resubmissions never double-award."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def record(self, transaction: XPTransaction) -> XPTransaction:
        with self.session_factory() as session:
            existing = session.exec(
                select(XPTransaction)
                .where(XPTransaction.user_id == transaction.user_id)
                .where(XPTransaction.source_type == transaction.source_type)
                .where(XPTransaction.source_id == transaction.source_id)
            ).first()
            if existing:
                existing.amount = transaction.amount
                existing.description = transaction.description
                row = existing
            else:
                row = transaction
            session.add(row)
            session.commit()
            session.refresh(row)
            session.expunge(row)
            return row

    def revoke(self, source_id: str, *, user_id: int) -> None:
        with self.session_factory() as session:
            rows = session.exec(
                select(XPTransaction)
                .where(XPTransaction.user_id == user_id)
                .where(XPTransaction.source_id == source_id)
            ).all()
            for row in rows:
                session.delete(row)
            session.commit()

    def total_for_user(self, user_id: int) -> int:
        with self.session_factory() as session:
            total = session.exec(
                select(func.coalesce(func.sum(XPTransaction.amount), 0)).where(
                    XPTransaction.user_id == user_id
                )
            ).one()
            return int(total)

    def list_for_user(self, user_id: int, *, limit: int = 20) -> list[XPTransaction]:
        with self.session_factory() as session:
            rows = list(
                session.exec(
                    select(XPTransaction)
                    .where(XPTransaction.user_id == user_id)
                    .order_by(XPTransaction.created_at.desc(), XPTransaction.id.desc())  # type: ignore
                    .limit(limit)
                ).all()
            )
            session.expunge_all()
            return rows
