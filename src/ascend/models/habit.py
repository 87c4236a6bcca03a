"""Habit and checkin tables."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, ClassVar, Optional

from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

from ..engine.types import Cadence, Dose, HabitDefinition, Moment, TimeWindow

if TYPE_CHECKING:  # pragma: no cover
    from .user import User


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Habit(SQLModel, table=True):
    """A recurring commitment scheduled by cadence and daily window."""

    __tablename__: ClassVar[str] = "habit"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    title: str = Field(nullable=False, max_length=120, index=True)
    purpose: str = Field(default="", max_length=400)
    category: Optional[str] = Field(default=None, max_length=16)
    priority: str = Field(default="medium", max_length=8)
    cadence_type: str = Field(default="daily", max_length=16)
    cadence_rule: Optional[str] = Field(default=None, max_length=255)
    moment: str = Field(default="morning", max_length=16)
    window_start: str = Field(default="07:00", max_length=5)
    window_end: str = Field(default="11:00", max_length=5)
    dose_unit: Optional[str] = Field(default=None, max_length=32)
    dose_target: Optional[float] = Field(default=None)
    difficulty: int = Field(default=1, nullable=False)
    archived: bool = Field(default=False, nullable=False, index=True)
    created_at: datetime = Field(default_factory=_utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=_utcnow, nullable=False)

    checkins: list["HabitCheckin"] = Relationship(
        back_populates="habit",
        sa_relationship=relationship("HabitCheckin", back_populates="habit"),
    )

    user: "User" = Relationship(sa_relationship=relationship("User", back_populates="habits"))

    def to_definition(self) -> HabitDefinition:
        """Return the engine's read-only view of this row."""

        dose = None
        if self.dose_unit and self.dose_target is not None:
            dose = Dose(unit=self.dose_unit, target=self.dose_target)
        return HabitDefinition(
            id=str(self.id),
            user_id=str(self.user_id),
            cadence=Cadence.of(self.cadence_type, self.cadence_rule),
            window=TimeWindow.parse(self.window_start, self.window_end),
            difficulty=self.difficulty,
            moment=Moment(self.moment),
            dose=dose,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "purpose": self.purpose,
            "category": self.category,
            "priority": self.priority,
            "cadence": {"type": self.cadence_type, "rule": self.cadence_rule},
            "moment": self.moment,
            "window": {"start": self.window_start, "end": self.window_end},
            "dose": (
                {"unit": self.dose_unit, "target": self.dose_target} if self.dose_unit else None
            ),
            "difficulty": self.difficulty,
            "archived": self.archived,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


class HabitCheckin(SQLModel, table=True):
    """User-reported result for a habit on a calendar day; one row per (habit, day)."""

    __tablename__: ClassVar[str] = "habit_checkin"

    habit_id: int = Field(foreign_key="habit.id", primary_key=True)
    occurred_on: date = Field(primary_key=True, index=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    status: str = Field(nullable=False, max_length=8)
    effort: int = Field(default=2, nullable=False)
    dose_actual: Optional[float] = Field(default=None)
    note: Optional[str] = Field(default=None, max_length=500)
    created_at: datetime = Field(default_factory=_utcnow, nullable=False)
    edited_at: Optional[datetime] = Field(default=None)

    habit: "Habit" = Relationship(
        back_populates="checkins",
        sa_relationship=relationship("Habit", back_populates="checkins"),
    )

    @property
    def key(self) -> str:
        return f"{self.habit_id}-{self.occurred_on.isoformat()}"

    def to_dict(self) -> dict:
        return {
            "id": self.key,
            "user_id": self.user_id,
            "habit_id": self.habit_id,
            "date": self.occurred_on.isoformat(),
            "status": self.status,
            "effort": self.effort,
            "dose_actual": self.dose_actual,
            "note": self.note,
            "created_at": self.created_at.isoformat(),
            "edited_at": self.edited_at.isoformat() if self.edited_at else None,
        }
