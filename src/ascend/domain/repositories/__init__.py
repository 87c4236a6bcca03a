"""Repository protocol definitions for domain layer."""

from .checkin import CheckinRepository
from .habit import HabitRepository
from .metrics import MetricsRepository, XPLedgerRepository

__all__ = [
    "CheckinRepository",
    "HabitRepository",
    "MetricsRepository",
    "XPLedgerRepository",
]
