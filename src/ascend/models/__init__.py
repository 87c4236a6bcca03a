"""SQLModel table exports."""

from .habit import Habit, HabitCheckin
from .metrics import HabitMetrics, HabitMetricsSnapshot, XPTransaction
from .user import User

__all__ = [
    "Habit",
    "HabitCheckin",
    "HabitMetrics",
    "HabitMetricsSnapshot",
    "User",
    "XPTransaction",
]
