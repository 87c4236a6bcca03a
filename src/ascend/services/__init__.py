"""Service module exports."""

from . import checkins, habits, rollup

__all__ = ["checkins", "habits", "rollup"]
