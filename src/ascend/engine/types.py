"""Value types consumed and produced by the habit engine."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Optional, Protocol, Union

_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")

EPOCH = date(1970, 1, 1)
MAX_GRACE_TOKENS = 2


class CadenceKind(str, Enum):
    """Supported recurrence kinds."""

    DAILY = "daily"
    WEEKDAYS = "weekdays"
    CUSTOM = "custom"


class Moment(str, Enum):
    """Named time-of-day buckets."""

    MORNING = "morning"
    MIDDAY = "midday"
    EVENING = "evening"


class CheckinStatus(str, Enum):
    """Closed set of checkin outcomes."""

    DONE = "done"
    PARTIAL = "partial"
    SKIPPED = "skipped"


def parse_time_of_day(value: Union[str, time]) -> time:
    """Parse an ``HH:MM`` string into a ``time`` (seconds zero)."""

    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    match = _TIME_PATTERN.match(str(value).strip())
    if not match:
        raise ValueError(f"Invalid time of day {value!r}; expected HH:MM")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValueError(f"Time of day {value!r} is out of range")
    return time(hour=hours, minute=minutes)


@dataclass(frozen=True, slots=True)
class Cadence:
    """Which calendar dates a habit is scheduled on."""

    kind: CadenceKind = CadenceKind.DAILY
    rule: Optional[str] = None

    @classmethod
    def of(cls, kind: Union[str, CadenceKind], rule: Optional[str] = None) -> "Cadence":
        return cls(kind=CadenceKind(kind), rule=rule or None)


@dataclass(frozen=True, slots=True)
class TimeWindow:
    """Daily interval during which a habit may be completed."""

    start: time
    end: time

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValueError(
                f"Window start {self.start:%H:%M} must be before end {self.end:%H:%M}"
            )

    @classmethod
    def parse(cls, start: Union[str, time], end: Union[str, time]) -> "TimeWindow":
        return cls(start=parse_time_of_day(start), end=parse_time_of_day(end))


@dataclass(frozen=True, slots=True)
class Dose:
    """Target quantity for a habit (informational only)."""

    unit: str
    target: float


@dataclass(frozen=True, slots=True)
class MomentSpec:
    """Bounds of a named moment bucket."""

    moment: Moment
    display_name: str
    start: time
    end: time


MOMENTS: tuple[MomentSpec, ...] = (
    MomentSpec(Moment.MORNING, "Morning", time(6, 0), time(11, 0)),
    MomentSpec(Moment.MIDDAY, "Midday", time(11, 0), time(17, 0)),
    MomentSpec(Moment.EVENING, "Evening", time(17, 0), time(22, 0)),
)


@dataclass(frozen=True, slots=True)
class HabitDefinition:
    """Read-only view of a habit as the engine needs it."""

    id: str
    user_id: str
    cadence: Cadence
    window: TimeWindow
    difficulty: int = 1
    moment: Moment = Moment.MORNING
    dose: Optional[Dose] = None

    def __post_init__(self) -> None:
        if self.difficulty not in (1, 2, 3):
            raise ValueError(f"Difficulty must be 1, 2 or 3, got {self.difficulty!r}")


@dataclass(frozen=True, slots=True)
class HabitOccurrence:
    """One scheduled instance of a habit on one date."""

    id: str
    user_id: str
    habit_id: str
    date: date
    window_start: datetime
    window_end: datetime
    due_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "habit_id": self.habit_id,
            "date": self.date.isoformat(),
            "window_start": self.window_start.isoformat(),
            "window_end": self.window_end.isoformat(),
            "due_at": self.due_at.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class StreakState:
    """Rolling per-habit streak summary."""

    current: int = 0
    best: int = 0
    last_date: date = field(default=EPOCH)
    grace_tokens: int = 0

    def __post_init__(self) -> None:
        if self.current < 0 or self.current > self.best:
            raise ValueError(f"Streak current={self.current} must be within 0..best={self.best}")
        if not 0 <= self.grace_tokens <= MAX_GRACE_TOKENS:
            raise ValueError(f"Grace tokens must be within 0..{MAX_GRACE_TOKENS}")

    @classmethod
    def initial(cls, last_date: date = EPOCH) -> "StreakState":
        return cls(current=0, best=0, last_date=last_date, grace_tokens=0)

    def to_dict(self) -> dict:
        return {
            "current": self.current,
            "best": self.best,
            "last_date": self.last_date.isoformat(),
            "grace_tokens": self.grace_tokens,
        }


class CheckinLike(Protocol):
    """Anything carrying a date and a status, e.g. a persisted HabitCheckin."""

    occurred_on: date
    status: Union[str, CheckinStatus]


__all__ = [
    "EPOCH",
    "MAX_GRACE_TOKENS",
    "MOMENTS",
    "Cadence",
    "CadenceKind",
    "CheckinLike",
    "CheckinStatus",
    "Dose",
    "HabitDefinition",
    "HabitOccurrence",
    "Moment",
    "MomentSpec",
    "StreakState",
    "TimeWindow",
    "parse_time_of_day",
]
