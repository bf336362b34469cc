from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..base import Base

if TYPE_CHECKING:
    from .habit import Habit


class FireTime(Base):
    """Time of day at which the habit reminder fires, every day."""

    __table_args__ = (
        CheckConstraint("hour >= 0 AND hour <= 23", name="ck_firetime_hour"),
        CheckConstraint("minute >= 0 AND minute <= 59", name="ck_firetime_minute"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    habit_id: Mapped[str] = mapped_column(ForeignKey("habit.id", ondelete="CASCADE"), index=True)
    hour: Mapped[int]
    minute: Mapped[int]

    habit: Mapped[Habit] = relationship(back_populates="fire_times", lazy="selectin")

    def get_fire_time_components(self) -> tuple[int, int]:
        return self.hour, self.minute

    def __repr__(self) -> str:
        return f"FireTime(hour={self.hour!r}, minute={self.minute!r})"
