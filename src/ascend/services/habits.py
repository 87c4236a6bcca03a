"""Habit service helpers: creation, schedules and progress summaries."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Callable, Iterable, Mapping, Optional

from sqlmodel import Session

from ..engine import generate_occurrences, is_habit_due, is_habit_overdue
from ..engine.occurrences import DEFAULT_HORIZON_DAYS
from ..errors import NotFoundError, StateConflictError
from ..forms import HabitForm, HabitUpdateForm, parse_form
from ..infra.repositories import (
    SQLModelHabitRepository,
    SQLModelMetricsRepository,
    SQLModelXPLedgerRepository,
)
from ..logging_config import get_logger
from ..models import Habit, HabitMetrics

logger = get_logger("services.habits")


def create_habit(
    session_factory: Callable[[], Session],
    *,
    user_id: int,
    payload: Mapping[str, Any] | HabitForm,
) -> Habit:
    """Validate and persist a new habit."""

    form = parse_form(HabitForm, payload)
    data = form.model_dump(mode="json")
    habit = SQLModelHabitRepository(session_factory).create(
        Habit(**data, user_id=user_id), user_id=user_id
    )
    logger.info("Habit created", extra={"habit_id": habit.id, "user_id": user_id})
    return habit


def get_habit(session_factory: Callable[[], Session], habit_id: int, *, user_id: int) -> Habit:
    """Return a habit owned by ``user_id`` or raise NotFoundError."""

    habit = SQLModelHabitRepository(session_factory).get_by_id(habit_id, user_id=user_id)
    if habit is None:
        raise NotFoundError(f"Habit {habit_id} not found")
    return habit


def archive_habit(session_factory: Callable[[], Session], habit_id: int, *, user_id: int) -> Habit:
    """Archive a habit so it drops out of schedules and rollups."""

    repo = SQLModelHabitRepository(session_factory)
    current = repo.get_by_id(habit_id, user_id=user_id)
    if current is None:
        raise NotFoundError(f"Habit {habit_id} not found")
    if current.archived:
        raise StateConflictError(f"Habit {habit_id} is already archived")
    habit = repo.archive(habit_id, user_id=user_id)
    if habit is None:
        raise NotFoundError(f"Habit {habit_id} not found")
    logger.info("Habit archived", extra={"habit_id": habit_id, "user_id": user_id})
    return habit


def update_habit(
    session_factory: Callable[[], Session],
    habit_id: int,
    *,
    user_id: int,
    changes: Mapping[str, Any],
) -> Habit:
    """Apply a partial update; the merged habit must still pass ``HabitForm``."""

    repo = SQLModelHabitRepository(session_factory)
    habit = repo.get_by_id(habit_id, user_id=user_id)
    if habit is None:
        raise NotFoundError(f"Habit {habit_id} not found")

    stored = {name: getattr(habit, name) for name in HabitUpdateForm.model_fields}
    updates = {key: value for key, value in changes.items() if key in HabitUpdateForm.model_fields}
    form = parse_form(HabitUpdateForm, {**stored, **updates})
    for name, value in form.model_dump(mode="json").items():
        setattr(habit, name, value)

    habit = repo.update(habit, user_id=user_id)
    logger.info(
        "Habit updated",
        extra={"habit_id": habit_id, "user_id": user_id, "fields": sorted(updates)},
    )
    return habit


def delete_habit(session_factory: Callable[[], Session], habit_id: int, *, user_id: int) -> None:
    if not SQLModelHabitRepository(session_factory).delete(habit_id, user_id=user_id):
        raise NotFoundError(f"Habit {habit_id} not found")
    logger.info("Habit deleted", extra={"habit_id": habit_id, "user_id": user_id})


def list_habits(
    session_factory: Callable[[], Session],
    *,
    user_id: int,
    include_archived: bool = False,
    categories: Optional[Iterable[str]] = None,
) -> list[Habit]:
    """List a user's habits, optionally limited to the given categories."""

    habits = SQLModelHabitRepository(session_factory).list_for_user(
        user_id=user_id, include_archived=include_archived
    )
    if categories:
        wanted = set(categories)
        habits = [habit for habit in habits if habit.category in wanted]
    return habits


def habit_schedule(
    habit: Habit,
    *,
    start: Optional[date] = None,
    days: int = DEFAULT_HORIZON_DAYS,
    now: Optional[datetime] = None,
) -> list[dict]:
    """Render the forward schedule with due/overdue flags evaluated at ``now``."""

    if habit.archived:
        return []
    definition = habit.to_definition()
    now = now or datetime.now()
    schedule: list[dict] = []
    for occurrence in generate_occurrences(definition, start or now.date(), days):
        row = occurrence.to_dict()
        row["due"] = is_habit_due(definition, occurrence, now)
        row["overdue"] = is_habit_overdue(definition, occurrence, now)
        schedule.append(row)
    return schedule


def habit_metrics(session_factory: Callable[[], Session], habit: Habit) -> HabitMetrics:
    """Return stored metrics, or the defaults a never-rolled-up habit starts from."""

    metrics = SQLModelMetricsRepository(session_factory).get(habit.id)
    if metrics is None:
        metrics = HabitMetrics(habit_id=habit.id, user_id=habit.user_id)
    return metrics


def xp_summary(session_factory: Callable[[], Session], *, user_id: int, limit: int = 20) -> dict:
    ledger = SQLModelXPLedgerRepository(session_factory)
    return {
        "user_id": user_id,
        "total_xp": ledger.total_for_user(user_id),
        "recent": [
            {
                "amount": tx.amount,
                "habit_id": tx.habit_id,
                "source_type": tx.source_type,
                "source_id": tx.source_id,
                "description": tx.description,
                "created_at": tx.created_at.isoformat(),
            }
            for tx in ledger.list_for_user(user_id, limit=limit)
        ],
    }


__all__ = [
    "archive_habit",
    "create_habit",
    "delete_habit",
    "get_habit",
    "habit_metrics",
    "habit_schedule",
    "list_habits",
    "update_habit",
    "xp_summary",
]
