"""Blueprint exports."""

from . import admin, habits

__all__ = ["admin", "habits"]
