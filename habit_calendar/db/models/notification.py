from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..base import Base

if TYPE_CHECKING:
    from .fire_time import FireTime
    from .habit import Habit


class Notification(Base):
    """Scheduled reminder of a habit, keyed on the backend by ``user_notification_id``."""

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    habit_id: Mapped[str] = mapped_column(ForeignKey("habit.id", ondelete="CASCADE"), index=True)
    fire_time_id: Mapped[int] = mapped_column(ForeignKey("firetime.id", ondelete="CASCADE"), index=True)
    # None until the record is handed to the scheduler
    user_notification_id: Mapped[Optional[str]] = mapped_column(String(36), unique=True, nullable=True)
    fire_date: Mapped[datetime]
    was_executed: Mapped[bool] = mapped_column(default=False)

    habit: Mapped[Habit] = relationship(back_populates="notifications", lazy="selectin")
    fire_time: Mapped[FireTime] = relationship(lazy="selectin")

    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("was_executed", False)
        super().__init__(**kwargs)

    def __repr__(self) -> str:
        return f"Notification(id={self.user_notification_id!r}, fire_date={self.fire_date!r})"
