from __future__ import annotations

from dataclasses import dataclass

from habit_calendar.config import settings
from habit_calendar.db.models import FireTime
from habit_calendar.services.notification_backend import CalendarTrigger, NotificationContent
from habit_calendar.services.notification_categories import CategoryKind

HABIT_IDENTIFIER_KEY = "habitIdentifier"
DEFAULT_BADGE = 1


class MalformedFireTime(ValueError):
    """Fire time that can't be turned into a notification payload."""


@dataclass(frozen=True)
class NotificationOptions:
    content: NotificationContent
    trigger: CalendarTrigger


def make_notification_options(fire_time: FireTime, sound: str | None = None) -> NotificationOptions:
    """Build the content and the daily trigger of the reminder for ``fire_time``.

    Pure: the same fire time always gives an equal payload. Raises
    :class:`MalformedFireTime` when the fire time has no owning habit or its
    components are out of range.
    """
    habit = fire_time.habit
    if habit is None or not habit.id:
        raise MalformedFireTime(f"{fire_time!r} is not attached to a persisted habit")
    if fire_time.hour is None or not 0 <= fire_time.hour <= 23:
        raise MalformedFireTime(f"Invalid hour {fire_time.hour!r} in {fire_time!r}")
    if fire_time.minute is None or not 0 <= fire_time.minute <= 59:
        raise MalformedFireTime(f"Invalid minute {fire_time.minute!r} in {fire_time!r}")

    content = NotificationContent(
        title=habit.get_title_text(),
        subtitle=habit.get_subtitle_text(),
        body=habit.get_body_text(),
        user_info={HABIT_IDENTIFIER_KEY: habit.id},
        category_identifier=CategoryKind.day_prompt().identifier,
        sound=sound or settings.NOTIFICATION_SOUND,
        badge=DEFAULT_BADGE,
    )
    trigger = CalendarTrigger(hour=fire_time.hour, minute=fire_time.minute, repeats=True)
    return NotificationOptions(content=content, trigger=trigger)
