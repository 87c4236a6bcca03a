"""XP rewards, maintenance-mode policy and due/overdue checks."""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from .types import HabitDefinition, HabitOccurrence

BASE_XP = 10
STREAK_BONUS_DAYS = 30

MAINTENANCE_ENTER_EMA = 0.8
MAINTENANCE_ENTER_STREAK = 42  # six weeks
MAINTENANCE_EXIT_EMA = 0.7


def _round_half_up(value: float) -> int:
    return int(Decimal(repr(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_xp(habit: HabitDefinition, streak: int, effort: int) -> int:
    """Return XP for one completion.

    Difficulty scales the base reward, the streak adds an unbounded bonus of
    1/30 per day, and effort 0..3 maps to a 0.5x..2.0x multiplier.
    """

    streak_bonus = 1 + streak / STREAK_BONUS_DAYS
    effort_multiplier = 0.5 + effort * 0.5
    return _round_half_up(BASE_XP * habit.difficulty * streak_bonus * effort_multiplier)


def should_enter_maintenance_mode(ema30: float, current_streak: int) -> bool:
    return ema30 >= MAINTENANCE_ENTER_EMA and current_streak >= MAINTENANCE_ENTER_STREAK


def should_exit_maintenance_mode(ema30: float) -> bool:
    return ema30 < MAINTENANCE_EXIT_EMA


def resolve_maintenance_mode(active: bool, ema30: float, current_streak: int) -> bool:
    """Apply the enter/exit thresholds to the current flag."""

    if should_enter_maintenance_mode(ema30, current_streak):
        return True
    if should_exit_maintenance_mode(ema30):
        return False
    return active


def is_habit_due(
    habit: HabitDefinition, occurrence: HabitOccurrence, now: Optional[datetime] = None
) -> bool:
    """True while ``now`` lies inside the occurrence window (inclusive)."""

    now = now or datetime.now()
    return occurrence.window_start <= now <= occurrence.window_end


def is_habit_overdue(
    habit: HabitDefinition, occurrence: HabitOccurrence, now: Optional[datetime] = None
) -> bool:
    """True once ``now`` has passed the end of the occurrence window."""

    now = now or datetime.now()
    return now > occurrence.window_end


__all__ = [
    "BASE_XP",
    "MAINTENANCE_ENTER_EMA",
    "MAINTENANCE_ENTER_STREAK",
    "MAINTENANCE_EXIT_EMA",
    "calculate_xp",
    "is_habit_due",
    "is_habit_overdue",
    "resolve_maintenance_mode",
    "should_enter_maintenance_mode",
    "should_exit_maintenance_mode",
]
