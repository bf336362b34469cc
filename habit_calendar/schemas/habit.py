from __future__ import annotations

from datetime import date
from pydantic import BaseModel, Field, field_validator

from habit_calendar.db.models.habit import HabitColor


def _clean_name(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if not value:
        raise ValueError("habit name must not be blank")
    return value


def _unique(values: list | None) -> list | None:
    if values is None:
        return None
    unique: list = []
    for value in values:
        if value not in unique:
            unique.append(value)
    return unique


class FireTimeIn(BaseModel):
    hour: int = Field(ge=0, le=23)
    minute: int = Field(ge=0, le=59)


class HabitCreate(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    color: HabitColor
    days: list[date] = Field(min_length=1)
    fire_times: list[FireTimeIn] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        return _clean_name(value)

    @field_validator("days", "fire_times")
    @classmethod
    def _drop_duplicates(cls, values: list) -> list:
        return _unique(values)


class HabitEdit(BaseModel):
    """Partial update; ``None`` leaves the field untouched."""

    name: str | None = Field(default=None, min_length=1, max_length=128)
    color: HabitColor | None = None
    days: list[date] | None = Field(default=None, min_length=1)
    fire_times: list[FireTimeIn] | None = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str | None) -> str | None:
        return _clean_name(value)

    @field_validator("days", "fire_times")
    @classmethod
    def _drop_duplicates(cls, values: list | None) -> list | None:
        return _unique(values)
