"""Concrete repository implementations using SQLModel."""

from .checkin import SQLModelCheckinRepository
from .habit import SQLModelHabitRepository
from .metrics import SQLModelMetricsRepository, SQLModelXPLedgerRepository

__all__ = [
    "SQLModelCheckinRepository",
    "SQLModelHabitRepository",
    "SQLModelMetricsRepository",
    "SQLModelXPLedgerRepository",
]
