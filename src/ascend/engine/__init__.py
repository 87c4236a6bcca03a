"""Habit engine: occurrence generation, streaks, consistency and XP.

Every function here is pure. ``HabitEngine`` bundles them behind one object
for callers that inject services; it carries no state.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable, Optional

from .occurrences import DEFAULT_HORIZON_DAYS, current_moment, generate_occurrences, occurs_on
from .scoring import (
    calculate_xp,
    is_habit_due,
    is_habit_overdue,
    resolve_maintenance_mode,
    should_enter_maintenance_mode,
    should_exit_maintenance_mode,
)
from .streaks import (
    EMA_ALPHA,
    calculate_daily_score,
    calculate_ema,
    calculate_streak,
    replay_ema,
    replay_streak,
)
from .types import (
    MOMENTS,
    Cadence,
    CadenceKind,
    CheckinLike,
    CheckinStatus,
    Dose,
    HabitDefinition,
    HabitOccurrence,
    Moment,
    MomentSpec,
    StreakState,
    TimeWindow,
)

logger = logging.getLogger("ascend.engine")


class HabitEngine:
    """Stateless facade over the engine functions."""

    def __init__(self) -> None:
        logger.debug("Habit engine ready")

    def generate_occurrences(
        self,
        habit: HabitDefinition,
        start_date: date | datetime | None = None,
        days: int = DEFAULT_HORIZON_DAYS,
    ) -> list[HabitOccurrence]:
        return generate_occurrences(habit, start_date, days)

    def calculate_ema(
        self, previous_ema: float, current_score: float, alpha: float = EMA_ALPHA
    ) -> float:
        return calculate_ema(previous_ema, current_score, alpha)

    def calculate_streak(
        self, previous_state: StreakState, checkins: Iterable[CheckinLike], day: date
    ) -> StreakState:
        return calculate_streak(previous_state, checkins, day)

    def calculate_daily_score(self, checkin: Optional[CheckinLike]) -> float:
        return calculate_daily_score(checkin)

    def calculate_xp(self, habit: HabitDefinition, streak: int, effort: int) -> int:
        return calculate_xp(habit, streak, effort)

    def should_enter_maintenance_mode(self, ema30: float, current_streak: int) -> bool:
        return should_enter_maintenance_mode(ema30, current_streak)

    def should_exit_maintenance_mode(self, ema30: float) -> bool:
        return should_exit_maintenance_mode(ema30)

    def current_moment(self, now: Optional[datetime] = None) -> Optional[MomentSpec]:
        return current_moment(now)

    def is_habit_due(
        self, habit: HabitDefinition, occurrence: HabitOccurrence, now: Optional[datetime] = None
    ) -> bool:
        return is_habit_due(habit, occurrence, now)

    def is_habit_overdue(
        self, habit: HabitDefinition, occurrence: HabitOccurrence, now: Optional[datetime] = None
    ) -> bool:
        return is_habit_overdue(habit, occurrence, now)


habit_engine = HabitEngine()

__all__ = [
    "DEFAULT_HORIZON_DAYS",
    "EMA_ALPHA",
    "MOMENTS",
    "Cadence",
    "CadenceKind",
    "CheckinLike",
    "CheckinStatus",
    "Dose",
    "HabitDefinition",
    "HabitEngine",
    "HabitOccurrence",
    "Moment",
    "MomentSpec",
    "StreakState",
    "TimeWindow",
    "calculate_daily_score",
    "calculate_ema",
    "calculate_streak",
    "calculate_xp",
    "current_moment",
    "generate_occurrences",
    "habit_engine",
    "is_habit_due",
    "is_habit_overdue",
    "occurs_on",
    "replay_ema",
    "replay_streak",
    "resolve_maintenance_mode",
    "should_enter_maintenance_mode",
    "should_exit_maintenance_mode",
]
