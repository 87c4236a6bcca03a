"""Request payload models validated at the HTTP boundary."""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Any, Mapping, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from .engine.occurrences import rule_weekdays
from .engine.types import CadenceKind, CheckinStatus, Moment, parse_time_of_day
from .errors import ValidationError

FormT = TypeVar("FormT", bound=BaseModel)


class HabitCategory(str, Enum):
    """Life areas a habit can belong to."""

    SPIRITUAL = "spiritual"
    PHYSICAL = "physical"
    MENTAL = "mental"
    RELATIONAL = "relational"
    FINANCIAL = "financial"


class HabitPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class HabitForm(BaseModel):
    """Payload for creating a habit."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=120)
    purpose: str = Field(default="", max_length=400)
    category: Optional[HabitCategory] = None
    priority: HabitPriority = HabitPriority.MEDIUM
    cadence_type: CadenceKind = CadenceKind.DAILY
    cadence_rule: Optional[str] = Field(default=None, max_length=255)
    moment: Moment = Moment.MORNING
    window_start: str = "07:00"
    window_end: str = "11:00"
    dose_unit: Optional[str] = Field(default=None, max_length=32)
    dose_target: Optional[float] = Field(default=None, gt=0)
    difficulty: int = Field(default=1, ge=1, le=3)

    @field_validator("window_start", "window_end")
    @classmethod
    def validate_time(cls, value: str) -> str:
        return parse_time_of_day(value).strftime("%H:%M")

    @field_validator("cadence_rule")
    @classmethod
    def validate_rule(cls, value: Optional[str]) -> Optional[str]:
        if value:
            rule_weekdays(value)
        return value or None

    @model_validator(mode="after")
    def ensure_window_order(self) -> "HabitForm":
        if self.window_start >= self.window_end:
            raise ValueError("Window start must be before window end.")
        return self


class HabitUpdateForm(HabitForm):
    """A stored habit merged with the requested changes, validated as a whole."""

    archived: bool = False


class CheckinForm(BaseModel):
    """Payload for submitting a checkin; effort falls back to 2 on first write."""

    model_config = ConfigDict(str_strip_whitespace=True)

    habit_id: int
    date: dt.date
    status: CheckinStatus
    effort: Optional[int] = Field(default=None, ge=0, le=3)
    dose_actual: Optional[float] = Field(default=None, ge=0)
    note: Optional[str] = Field(default=None, max_length=500)


class CheckinUpdateForm(BaseModel):
    """Partial update of an existing checkin."""

    model_config = ConfigDict(str_strip_whitespace=True)

    status: Optional[CheckinStatus] = None
    effort: Optional[int] = Field(default=None, ge=0, le=3)
    dose_actual: Optional[float] = Field(default=None, ge=0)
    note: Optional[str] = Field(default=None, max_length=500)


def parse_form(form_cls: type[FormT], payload: Mapping[str, Any] | FormT | None) -> FormT:
    """Validate ``payload`` into ``form_cls``, raising the boundary ValidationError."""

    if isinstance(payload, form_cls):
        return payload
    try:
        return form_cls.model_validate(dict(payload or {}))
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc) from exc


__all__ = [
    "CheckinForm",
    "CheckinUpdateForm",
    "HabitCategory",
    "HabitForm",
    "HabitPriority",
    "HabitUpdateForm",
    "parse_form",
]
