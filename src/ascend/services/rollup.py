"""Daily rollup: fold checkins into each habit's EMA, streak and maintenance flag."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable, Optional

from sqlmodel import Session

from ..domain.repositories import CheckinRepository, MetricsRepository
from ..engine import replay_ema, replay_streak, resolve_maintenance_mode
from ..engine.streaks import EMA_WINDOW_DAYS
from ..engine.types import StreakState
from ..infra.repositories import (
    SQLModelCheckinRepository,
    SQLModelHabitRepository,
    SQLModelMetricsRepository,
)
from ..logging_config import get_logger
from ..models import Habit, HabitMetrics, HabitMetricsSnapshot

logger = get_logger("services.rollup")

INITIAL_EMA = 0.5
CONSISTENCY_DROP_THRESHOLD = 0.15
SNAPSHOT_RETENTION_DAYS = 90


def is_consistency_drop(
    previous_ema: float, current_ema: float, threshold: float = CONSISTENCY_DROP_THRESHOLD
) -> bool:
    """True when the EMA fell by more than ``threshold`` of its previous value."""

    if previous_ema <= 0:
        return False
    return (previous_ema - current_ema) / previous_ema > threshold


@dataclass
class HabitRollup:
    """Metrics saved for one habit, with the EMA they were folded from."""

    metrics: HabitMetrics
    previous_ema: Optional[float] = None

    @property
    def consistency_dropped(self) -> bool:
        if self.previous_ema is None:
            return False
        return is_consistency_drop(self.previous_ema, self.metrics.ema30)


@dataclass
class RollupReport:
    """Summary of one rollup run."""

    day: date
    processed: int = 0
    skipped: int = 0
    errors: int = 0
    duration_ms: float = 0.0
    failed_habit_ids: list[int] = field(default_factory=list)
    consistency_drops: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "day": self.day.isoformat(),
            "processed": self.processed,
            "skipped": self.skipped,
            "errors": self.errors,
            "duration_ms": round(self.duration_ms, 2),
            "failed_habit_ids": self.failed_habit_ids,
            "consistency_drops": self.consistency_drops,
        }


def _fresh_start(habit: Habit, day: date) -> date:
    """First folded date for a habit that has never been rolled up."""

    return max(habit.created_at.date(), day - timedelta(days=EMA_WINDOW_DAYS - 1))


def process_habit_rollup(
    habit: Habit,
    day: date,
    *,
    checkin_repo: CheckinRepository,
    metrics_repo: MetricsRepository,
) -> Optional[HabitRollup]:
    """Bring one habit's metrics up to date through ``day``.

    A habit without metrics starts from EMA 0.5 over the trailing 30 days.
    Otherwise every date after ``last_updated`` is folded, however long the
    gap. The state after each run is kept as a snapshot for :func:`refold_from`.

    Returns None when the metrics already cover ``day`` or the habit did not
    exist yet on ``day``.
    """

    if habit.created_at.date() > day:
        return None
    metrics = metrics_repo.get(habit.id)
    previous_ema: Optional[float] = None
    baseline: Optional[HabitMetricsSnapshot] = None

    if metrics is None:
        start = _fresh_start(habit, day)
        metrics = HabitMetrics(habit_id=habit.id, user_id=habit.user_id, ema30=INITIAL_EMA)
        metrics.apply_streak(StreakState.initial(start - timedelta(days=1)))
        baseline = HabitMetricsSnapshot.of(metrics, start - timedelta(days=1))
    elif metrics.last_updated is None:
        start = _fresh_start(habit, day)
        previous_ema = metrics.ema30
    else:
        if metrics.last_updated >= day:
            return None
        baseline = HabitMetricsSnapshot.of(metrics, metrics.last_updated)
        start = metrics.last_updated + timedelta(days=1)
        previous_ema = metrics.ema30

    checkins = checkin_repo.list_between(habit.id, start, day)
    ema30 = replay_ema(metrics.ema30, checkins, start, day)

    state = metrics.streak_state()
    streak_start = max(start, state.last_date + timedelta(days=1))
    state = replay_streak(state, checkins, streak_start, day)

    metrics.ema30 = ema30
    metrics.apply_streak(state)
    metrics.maintenance_mode = resolve_maintenance_mode(
        metrics.maintenance_mode, ema30, state.current
    )
    metrics.last_updated = day
    saved = metrics_repo.save(metrics)
    if baseline is not None:
        metrics_repo.save_snapshot(baseline)
    metrics_repo.save_snapshot(HabitMetricsSnapshot.of(saved, day))
    metrics_repo.prune_snapshots(
        habit.id, before=day - timedelta(days=SNAPSHOT_RETENTION_DAYS)
    )
    return HabitRollup(metrics=saved, previous_ema=previous_ema)


def refold_from(
    habit: Habit,
    occurred_on: date,
    *,
    checkin_repo: CheckinRepository,
    metrics_repo: MetricsRepository,
) -> Optional[HabitRollup]:
    """Replay the rollup after a checkin changed on an already folded date.

    Metrics are rewound to the last snapshot before ``occurred_on`` and folded
    forward again to the date they covered. Returns None when ``occurred_on``
    is not folded yet, or when no snapshot precedes it (older than the
    retention window or before the first folded date).
    """

    metrics = metrics_repo.get(habit.id)
    if metrics is None or metrics.last_updated is None or occurred_on > metrics.last_updated:
        return None
    snapshot = metrics_repo.latest_snapshot_before(habit.id, occurred_on)
    if snapshot is None:
        logger.info(
            "No snapshot before %s for habit %s; metrics left as they are",
            occurred_on.isoformat(),
            habit.id,
        )
        return None

    through = metrics.last_updated
    metrics_repo.delete_snapshots_after(habit.id, snapshot.day)
    metrics_repo.save(snapshot.restore())
    result = process_habit_rollup(
        habit, through, checkin_repo=checkin_repo, metrics_repo=metrics_repo
    )
    logger.info(
        "Refolded habit %s from %s through %s",
        habit.id,
        snapshot.day.isoformat(),
        through.isoformat(),
    )
    return result


def run_daily_rollup(
    session_factory: Callable[[], Session], *, day: Optional[date] = None
) -> RollupReport:
    """Roll up every active habit through ``day`` (defaults to yesterday).

    A failing habit is logged and counted; the run continues with the rest.
    Habits whose EMA fell by more than 15% are listed in ``consistency_drops``.
    """

    day = day or date.today() - timedelta(days=1)
    report = RollupReport(day=day)
    started = time.perf_counter()

    habit_repo = SQLModelHabitRepository(session_factory)
    checkin_repo = SQLModelCheckinRepository(session_factory)
    metrics_repo = SQLModelMetricsRepository(session_factory)

    habits = habit_repo.list_active()
    logger.info("Starting daily rollup", extra={"day": day.isoformat(), "habits": len(habits)})

    for habit in habits:
        try:
            result = process_habit_rollup(
                habit, day, checkin_repo=checkin_repo, metrics_repo=metrics_repo
            )
        except Exception:
            logger.exception("Rollup failed for habit %s", habit.id)
            report.errors += 1
            report.failed_habit_ids.append(habit.id)
            continue
        if result is None:
            report.skipped += 1
            continue
        report.processed += 1
        if result.consistency_dropped:
            report.consistency_drops.append(habit.id)
            logger.warning(
                "Consistency dropped for habit %s",
                habit.id,
                extra={
                    "user_id": habit.user_id,
                    "previous_ema": result.previous_ema,
                    "ema30": result.metrics.ema30,
                },
            )

    report.duration_ms = (time.perf_counter() - started) * 1000
    logger.info("Daily rollup completed", extra=report.to_dict())
    return report


def rollup_status(session_factory: Callable[[], Session]) -> dict:
    """Counts shown by the admin status endpoint."""

    total_metrics, last_rollup = SQLModelMetricsRepository(session_factory).stats()
    return {
        "active_habits": SQLModelHabitRepository(session_factory).count_active(),
        "total_metrics": total_metrics,
        "last_rollup": last_rollup.isoformat() if last_rollup else None,
        "rollup_status": "ready",
    }


__all__ = [
    "CONSISTENCY_DROP_THRESHOLD",
    "HabitRollup",
    "RollupReport",
    "is_consistency_drop",
    "process_habit_rollup",
    "refold_from",
    "rollup_status",
    "run_daily_rollup",
]
