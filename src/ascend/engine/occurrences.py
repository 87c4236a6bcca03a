"""Expand a habit's cadence into dated occurrences."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Optional

from .types import MOMENTS, Cadence, CadenceKind, HabitDefinition, HabitOccurrence, MomentSpec

DEFAULT_HORIZON_DAYS = 14

_WEEKDAY_CODES = {"MO": 0, "TU": 1, "WE": 2, "TH": 3, "FR": 4, "SA": 5, "SU": 6}


def rule_weekdays(rule: Optional[str]) -> frozenset[int]:
    """Return the weekday numbers listed in a rule's BYDAY part (empty when absent)."""

    if not rule:
        return frozenset()
    parts: dict[str, str] = {}
    for chunk in rule.split(";"):
        if "=" in chunk:
            key, value = chunk.split("=", 1)
            parts[key.strip().upper()] = value.strip().upper()
    byday = parts.get("BYDAY")
    if not byday:
        return frozenset()
    days: set[int] = set()
    for code in byday.split(","):
        code = code.strip()
        if code not in _WEEKDAY_CODES:
            raise ValueError(f"Unknown BYDAY code {code!r} in rule {rule!r}")
        days.add(_WEEKDAY_CODES[code])
    return frozenset(days)


def occurs_on(cadence: Cadence, day: date) -> bool:
    """Return True when the cadence schedules the habit on ``day``."""

    if cadence.kind is CadenceKind.DAILY:
        return True
    if cadence.kind is CadenceKind.WEEKDAYS:
        return day.isoweekday() <= 5
    # Custom rules only understand BYDAY; anything else schedules every day.
    allowed = rule_weekdays(cadence.rule)
    return not allowed or day.weekday() in allowed


def build_occurrence(habit: HabitDefinition, day: date) -> HabitOccurrence:
    """Anchor the habit's window to ``day``."""

    window_start = datetime.combine(day, habit.window.start)
    window_end = datetime.combine(day, habit.window.end)
    return HabitOccurrence(
        id=f"{habit.user_id}-{habit.id}-{day.isoformat()}",
        user_id=habit.user_id,
        habit_id=habit.id,
        date=day,
        window_start=window_start,
        window_end=window_end,
        due_at=window_start,
    )


def generate_occurrences(
    habit: HabitDefinition,
    start_date: date | datetime | None = None,
    days: int = DEFAULT_HORIZON_DAYS,
) -> list[HabitOccurrence]:
    """Generate one occurrence per qualifying date in ``[start_date, start_date + days)``.

    ``start_date`` defaults to today. Output is ordered by date and depends only
    on the arguments, so regenerating the same horizon yields identical ids.
    """

    if days < 0:
        raise ValueError(f"Occurrence horizon must be >= 0 days, got {days}")
    if start_date is None:
        start_date = date.today()
    elif isinstance(start_date, datetime):
        start_date = start_date.date()

    occurrences: list[HabitOccurrence] = []
    for offset in range(days):
        day = start_date + timedelta(days=offset)
        if occurs_on(habit.cadence, day):
            occurrences.append(build_occurrence(habit, day))
    return occurrences


def current_moment(now: datetime | time | None = None) -> Optional[MomentSpec]:
    """Return the moment bucket containing ``now`` (bounds inclusive)."""

    if now is None:
        now = datetime.now()
    moment_time = now.time() if isinstance(now, datetime) else now
    moment_time = moment_time.replace(second=0, microsecond=0)
    for spec in MOMENTS:
        if spec.start <= moment_time <= spec.end:
            return spec
    return None


__all__ = [
    "DEFAULT_HORIZON_DAYS",
    "build_occurrence",
    "current_moment",
    "generate_occurrences",
    "occurs_on",
    "rule_weekdays",
]
