"""Checkin recording: idempotent upsert plus XP ledger updates."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Mapping, Optional

from sqlmodel import Session

from ..domain.repositories import HabitRepository, MetricsRepository, XPLedgerRepository
from ..engine import CheckinStatus, StreakState, calculate_streak, calculate_xp
from ..errors import NotFoundError
from ..forms import CheckinForm, CheckinUpdateForm, parse_form
from ..infra.repositories import (
    SQLModelCheckinRepository,
    SQLModelHabitRepository,
    SQLModelMetricsRepository,
    SQLModelXPLedgerRepository,
)
from ..logging_config import get_logger
from ..models import Habit, HabitCheckin, XPTransaction
from .rollup import refold_from

logger = get_logger("services.checkins")

DEFAULT_EFFORT = 2
XP_SOURCE_TYPE = "habit_checkin"


@dataclass(slots=True)
class CheckinResult:
    """Outcome of a checkin write."""

    checkin: HabitCheckin
    created: bool
    xp_awarded: int
    streak: StreakState

    def to_dict(self) -> dict:
        return {
            "checkin": self.checkin.to_dict(),
            "created": self.created,
            "xp_awarded": self.xp_awarded,
            "streak": self.streak.to_dict(),
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _require_habit(session_factory: Callable[[], Session], habit_id: int, user_id: int) -> Habit:
    habits: HabitRepository = SQLModelHabitRepository(session_factory)
    habit = habits.get_by_id(habit_id, user_id=user_id)
    if habit is None or habit.archived:
        raise NotFoundError(f"Habit {habit_id} not found")
    return habit


def projected_streak(
    session_factory: Callable[[], Session], habit: Habit, checkin: HabitCheckin
) -> StreakState:
    """Streak as it stands once ``checkin`` is counted.

    Days the rollup already folded in are not re-counted; for those the
    snapshot taken on that day is used when one exists.
    """

    metrics_repo: MetricsRepository = SQLModelMetricsRepository(session_factory)
    metrics = metrics_repo.get(habit.id)
    if metrics is None:
        state = StreakState.initial(checkin.occurred_on - timedelta(days=1))
    else:
        state = metrics.streak_state()
    if checkin.occurred_on <= state.last_date:
        snapshot = metrics_repo.latest_snapshot_before(
            habit.id, checkin.occurred_on + timedelta(days=1)
        )
        if snapshot is not None and snapshot.day == checkin.occurred_on:
            return snapshot.restore().streak_state()
        return state
    return calculate_streak(state, [checkin], checkin.occurred_on)


def _refold(session_factory: Callable[[], Session], habit: Habit, occurred_on: date) -> None:
    """Re-run the rollup when the checkin lands on a date it already folded."""

    refold_from(
        habit,
        occurred_on,
        checkin_repo=SQLModelCheckinRepository(session_factory),
        metrics_repo=SQLModelMetricsRepository(session_factory),
    )


def _sync_xp(
    session_factory: Callable[[], Session], habit: Habit, checkin: HabitCheckin
) -> tuple[int, StreakState]:
    ledger: XPLedgerRepository = SQLModelXPLedgerRepository(session_factory)
    streak = projected_streak(session_factory, habit, checkin)
    if CheckinStatus(checkin.status) is CheckinStatus.SKIPPED:
        ledger.revoke(checkin.key, user_id=checkin.user_id)
        return 0, streak

    amount = calculate_xp(habit.to_definition(), streak.current, checkin.effort)
    ledger.record(
        XPTransaction(
            user_id=checkin.user_id,
            habit_id=habit.id,
            amount=amount,
            source_type=XP_SOURCE_TYPE,
            source_id=checkin.key,
            description=f"{habit.title} ({checkin.status}) on {checkin.occurred_on.isoformat()}",
        )
    )
    return amount, streak


def record_checkin(
    session_factory: Callable[[], Session],
    *,
    user_id: int,
    payload: Mapping[str, Any] | CheckinForm,
    now: Optional[datetime] = None,
) -> CheckinResult:
    """Create or update the checkin for (habit, date) and award XP.

    A second submission for the same key replaces status, keeps previous
    effort/dose/note where the new payload omits them, stamps ``edited_at``
    and leaves ``created_at`` untouched.
    """

    form = parse_form(CheckinForm, payload)
    habit = _require_habit(session_factory, form.habit_id, user_id)
    repo = SQLModelCheckinRepository(session_factory)
    existing = repo.get(form.habit_id, form.date, user_id=user_id)

    def _pick(new_value, field_name: str, fallback=None):
        if new_value is not None:
            return new_value
        if existing is not None:
            return getattr(existing, field_name)
        return fallback

    candidate = HabitCheckin(
        habit_id=form.habit_id,
        occurred_on=form.date,
        user_id=user_id,
        status=form.status.value,
        effort=_pick(form.effort, "effort", DEFAULT_EFFORT),
        dose_actual=_pick(form.dose_actual, "dose_actual"),
        note=_pick(form.note, "note"),
    )
    checkin, created = repo.upsert(candidate, now=now or _utcnow())
    _refold(session_factory, habit, checkin.occurred_on)
    xp, streak = _sync_xp(session_factory, habit, checkin)

    logger.info(
        "Checkin %s for habit %s on %s",
        "created" if created else "updated",
        habit.id,
        checkin.occurred_on.isoformat(),
        extra={"user_id": user_id, "status": checkin.status, "xp": xp},
    )
    return CheckinResult(checkin=checkin, created=created, xp_awarded=xp, streak=streak)


def update_checkin(
    session_factory: Callable[[], Session],
    *,
    user_id: int,
    habit_id: int,
    occurred_on: date,
    changes: Mapping[str, Any] | CheckinUpdateForm,
    now: Optional[datetime] = None,
) -> CheckinResult:
    """Apply a partial update to an existing checkin."""

    form = parse_form(CheckinUpdateForm, changes)
    repo = SQLModelCheckinRepository(session_factory)
    existing = repo.get(habit_id, occurred_on, user_id=user_id)
    if existing is None:
        raise NotFoundError(f"Checkin {habit_id}-{occurred_on.isoformat()} not found")
    habit = _require_habit(session_factory, habit_id, user_id)

    for field_name, value in form.model_dump(exclude_unset=True).items():
        if field_name in ("status", "effort") and value is None:
            continue
        if field_name == "status":
            value = CheckinStatus(value).value
        setattr(existing, field_name, value)

    checkin, _ = repo.upsert(existing, now=now or _utcnow())
    _refold(session_factory, habit, checkin.occurred_on)
    xp, streak = _sync_xp(session_factory, habit, checkin)
    logger.info(
        "Checkin patched for habit %s on %s",
        habit_id,
        occurred_on.isoformat(),
        extra={"user_id": user_id, "fields": sorted(form.model_fields_set)},
    )
    return CheckinResult(checkin=checkin, created=False, xp_awarded=xp, streak=streak)


def list_checkins(
    session_factory: Callable[[], Session],
    *,
    user_id: int,
    habit_id: Optional[int] = None,
    occurred_on: Optional[date] = None,
) -> list[HabitCheckin]:
    """Return a user's checkins, optionally filtered by habit and/or date."""

    return SQLModelCheckinRepository(session_factory).find(
        user_id=user_id, habit_id=habit_id, occurred_on=occurred_on
    )


__all__ = [
    "CheckinResult",
    "DEFAULT_EFFORT",
    "list_checkins",
    "projected_streak",
    "record_checkin",
    "update_checkin",
]
