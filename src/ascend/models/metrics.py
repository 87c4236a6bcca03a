"""Per-habit rolling metrics and the XP ledger."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel

from ..engine.types import EPOCH, StreakState


class HabitMetrics(SQLModel, table=True):
    """Consistency EMA, streak state and maintenance flag for one habit."""

    __tablename__: ClassVar[str] = "habit_metrics"

    habit_id: int = Field(foreign_key="habit.id", primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    ema30: float = Field(default=0.5, nullable=False)
    streak_current: int = Field(default=0, nullable=False)
    streak_best: int = Field(default=0, nullable=False)
    streak_last_date: date = Field(default=EPOCH, nullable=False)
    grace_tokens: int = Field(default=0, nullable=False)
    maintenance_mode: bool = Field(default=False, nullable=False)
    last_updated: Optional[date] = Field(default=None)

    def streak_state(self) -> StreakState:
        return StreakState(
            current=self.streak_current,
            best=self.streak_best,
            last_date=self.streak_last_date,
            grace_tokens=self.grace_tokens,
        )

    def apply_streak(self, state: StreakState) -> None:
        self.streak_current = state.current
        self.streak_best = state.best
        self.streak_last_date = state.last_date
        self.grace_tokens = state.grace_tokens

    def to_dict(self) -> dict:
        return {
            "habit_id": self.habit_id,
            "user_id": self.user_id,
            "ema30": self.ema30,
            "streak": self.streak_state().to_dict(),
            "maintenance_mode": self.maintenance_mode,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }


class XPTransaction(SQLModel, table=True):
    """Ledger entry for XP awarded to a user."""

    __tablename__: ClassVar[str] = "xp_transaction"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    habit_id: Optional[int] = Field(default=None, foreign_key="habit.id", index=True)
    amount: int = Field(nullable=False)
    source_type: str = Field(default="habit_checkin", max_length=32)
    source_id: str = Field(nullable=False, max_length=64, index=True)
    description: str = Field(default="", max_length=255)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


class HabitMetricsSnapshot(SQLModel, table=True):
    """Metrics as they stood after the rollup folded ``day``.

    Kept so a checkin backfilled into an already folded day can rewind the
    fold and replay it.
    """

    __tablename__: ClassVar[str] = "habit_metrics_snapshot"

    habit_id: int = Field(foreign_key="habit.id", primary_key=True)
    day: date = Field(primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    ema30: float = Field(nullable=False)
    streak_current: int = Field(default=0, nullable=False)
    streak_best: int = Field(default=0, nullable=False)
    streak_last_date: date = Field(default=EPOCH, nullable=False)
    grace_tokens: int = Field(default=0, nullable=False)
    maintenance_mode: bool = Field(default=False, nullable=False)

    @classmethod
    def of(cls, metrics: HabitMetrics, day: date) -> "HabitMetricsSnapshot":
        return cls(
            habit_id=metrics.habit_id,
            day=day,
            user_id=metrics.user_id,
            ema30=metrics.ema30,
            streak_current=metrics.streak_current,
            streak_best=metrics.streak_best,
            streak_last_date=metrics.streak_last_date,
            grace_tokens=metrics.grace_tokens,
            maintenance_mode=metrics.maintenance_mode,
        )

    def restore(self) -> HabitMetrics:
        return HabitMetrics(
            habit_id=self.habit_id,
            user_id=self.user_id,
            ema30=self.ema30,
            streak_current=self.streak_current,
            streak_best=self.streak_best,
            streak_last_date=self.streak_last_date,
            grace_tokens=self.grace_tokens,
            maintenance_mode=self.maintenance_mode,
            last_updated=self.day,
        )
