from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from sqlalchemy import Enum as SAEnum, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..base import Base

if TYPE_CHECKING:
    from .fire_time import FireTime
    from .notification import Notification


class HabitColor(str, Enum):
    """Theme colors a habit can be displayed with."""

    midnight_blue = "midnight_blue"
    alizarin = "alizarin"
    amethyst = "amethyst"
    emerald = "emerald"
    orange = "orange"
    belize_hole = "belize_hole"
    sun_flower = "sun_flower"
    pomegranate = "pomegranate"


class Habit(Base):
    """Habit with a color theme, challenge days and daily reminder times."""

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), index=True)
    color: Mapped[HabitColor] = mapped_column(SAEnum(HabitColor), default=HabitColor.midnight_blue)
    created_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(timezone.utc).replace(tzinfo=None))

    # Relationships
    days: Mapped[list[HabitDay]] = relationship(
        back_populates="habit", cascade="all, delete-orphan", lazy="selectin", order_by="HabitDay.day"
    )
    fire_times: Mapped[list[FireTime]] = relationship(
        back_populates="habit", cascade="all, delete-orphan", lazy="selectin"
    )
    notifications: Mapped[list[Notification]] = relationship(
        back_populates="habit", cascade="all, delete-orphan", lazy="selectin"
    )

    def __init__(self, **kwargs: Any) -> None:
        # The id travels inside notification payloads, so it must exist before the first flush
        kwargs.setdefault("id", str(uuid4()))
        super().__init__(**kwargs)

    def get_title_text(self) -> str:
        return self.name

    def get_subtitle_text(self) -> str:
        return "Did you practice this activity today?"

    def get_body_text(self) -> str:
        return f"Keep up with your {self.name} challenge and mark today as done."

    def challenge_dates(self) -> set[date]:
        return {d.day for d in self.days}


class HabitDay(Base):
    """A single day of the habit's challenge and whether it was accomplished."""

    __table_args__ = (UniqueConstraint("habit_id", "day"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    habit_id: Mapped[str] = mapped_column(ForeignKey("habit.id", ondelete="CASCADE"), index=True)
    day: Mapped[date]
    was_executed: Mapped[bool] = mapped_column(default=False)

    habit: Mapped[Habit] = relationship(back_populates="days")

    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("was_executed", False)
        super().__init__(**kwargs)
