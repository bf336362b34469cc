from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class DayPromptAction(str, Enum):
    """Answers offered by a day prompt reminder."""

    yes = "YES"
    no = "NO"


@dataclass(frozen=True)
class CategoryKind:
    """Semantic kind of a notification, used to group reminders on the backend.

    The generic day prompt is shared by every habit; passing ``habit_id`` gives a
    habit specific category.
    """

    name: str
    habit_id: Optional[str] = None

    @classmethod
    def day_prompt(cls, habit_id: Optional[str] = None) -> "CategoryKind":
        return cls("DAY_PROMPT", habit_id)

    @property
    def identifier(self) -> str:
        if self.habit_id is None:
            return self.name
        return f"{self.name}:{self.habit_id}"

    @property
    def actions(self) -> tuple[DayPromptAction, ...]:
        if self.name == "DAY_PROMPT":
            return (DayPromptAction.yes, DayPromptAction.no)
        return ()
