"""Streak and consistency (EMA) calculations.

A streak counts consecutive successful days. One missed day can be forgiven
by spending a grace token; tokens are earned once per seven-day run of
success and capped at two. A gap of more than one day always resets the
streak.

Consistency is tracked as an exponential moving average of daily scores
with a 30-day equivalent window (``alpha = 2 / (30 + 1)``).
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, Mapping, Optional, Sequence

from .types import MAX_GRACE_TOKENS, CheckinLike, CheckinStatus, StreakState

EMA_WINDOW_DAYS = 30
EMA_ALPHA = 0.0645
GRACE_EARN_INTERVAL = 7

_DAILY_SCORES: Mapping[CheckinStatus, float] = {
    CheckinStatus.DONE: 1.0,
    CheckinStatus.PARTIAL: 0.5,
    CheckinStatus.SKIPPED: 0.0,
}


def _status_of(checkin: CheckinLike) -> Optional[CheckinStatus]:
    try:
        return CheckinStatus(checkin.status)
    except ValueError:
        return None


def calculate_daily_score(checkin: Optional[CheckinLike]) -> float:
    """Map a day's checkin to a score in [0, 1]; absent or unknown scores 0."""

    if checkin is None:
        return 0.0
    status = _status_of(checkin)
    if status is None:
        return 0.0
    return _DAILY_SCORES[status]


def calculate_ema(previous_ema: float, current_score: float, alpha: float = EMA_ALPHA) -> float:
    """Fold one daily score into the running average."""

    if not 0.0 < alpha <= 1.0:
        raise ValueError(f"EMA alpha must be within (0, 1], got {alpha}")
    return alpha * current_score + (1 - alpha) * previous_ema


def find_checkin(checkins: Iterable[CheckinLike], day: date) -> Optional[CheckinLike]:
    """Return the checkin recorded for ``day``, if any."""

    for checkin in checkins:
        if checkin.occurred_on == day:
            return checkin
    return None


def calculate_streak(
    previous_state: StreakState, checkins: Iterable[CheckinLike], day: date
) -> StreakState:
    """Advance the streak state by one processed date.

    Re-processing ``previous_state.last_date`` returns the state unchanged.
    Processing a date before it raises ``ValueError``.
    """

    days_diff = (day - previous_state.last_date).days
    if days_diff < 0:
        raise ValueError(
            f"Cannot process {day.isoformat()} after {previous_state.last_date.isoformat()}; "
            "dates must be folded in chronological order"
        )
    if days_diff == 0:
        return previous_state

    current = previous_state.current
    best = previous_state.best
    grace_tokens = previous_state.grace_tokens

    checkin = find_checkin(checkins, day)
    if checkin is not None and _status_of(checkin) is not CheckinStatus.SKIPPED:
        current += 1
        best = max(best, current)
        if current % GRACE_EARN_INTERVAL == 0:
            grace_tokens = min(MAX_GRACE_TOKENS, grace_tokens + 1)
    elif days_diff == 1 and grace_tokens > 0:
        grace_tokens -= 1
    else:
        # One miss without grace, or a multi-day gap grace never covers.
        current = 0

    return StreakState(current=current, best=best, last_date=day, grace_tokens=grace_tokens)


def _date_range(start: date, end: date) -> Iterable[date]:
    cursor = start
    while cursor <= end:
        yield cursor
        cursor += timedelta(days=1)


def replay_streak(
    state: StreakState, checkins: Sequence[CheckinLike], start: date, end: date
) -> StreakState:
    """Fold ``calculate_streak`` over every date in ``[start, end]``."""

    for day in _date_range(start, end):
        state = calculate_streak(state, checkins, day)
    return state


def replay_ema(
    ema: float,
    checkins: Sequence[CheckinLike],
    start: date,
    end: date,
    alpha: float = EMA_ALPHA,
) -> float:
    """Fold each date's daily score in ``[start, end]`` into ``ema``."""

    by_day = {checkin.occurred_on: checkin for checkin in checkins}
    for day in _date_range(start, end):
        ema = calculate_ema(ema, calculate_daily_score(by_day.get(day)), alpha)
    return ema


__all__ = [
    "EMA_ALPHA",
    "EMA_WINDOW_DAYS",
    "GRACE_EARN_INTERVAL",
    "calculate_daily_score",
    "calculate_ema",
    "calculate_streak",
    "find_checkin",
    "replay_ema",
    "replay_streak",
]
