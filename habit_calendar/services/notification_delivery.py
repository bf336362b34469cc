from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from habit_calendar.db.models import HabitDay, Notification
from habit_calendar.db.session import session_scope
from habit_calendar.services.notification_backend import PendingRequest
from habit_calendar.services.notification_categories import DayPromptAction

logger = logging.getLogger(__name__)


async def mark_notification_executed(session: AsyncSession, user_notification_id: str) -> Optional[Notification]:
    """Flag the record behind a delivered request. Returns None for unknown identifiers."""
    notification = (
        await session.execute(
            select(Notification).where(Notification.user_notification_id == user_notification_id)
        )
    ).scalar_one_or_none()
    if notification is None:
        logger.warning("Delivered reminder %s has no notification record", user_notification_id)
        return None
    notification.was_executed = True
    return notification


class NotificationDeliveryRecorder:
    """Delivery listener persisting the executed marker of delivered reminders."""

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        self.session_factory = session_factory

    async def __call__(self, request: PendingRequest) -> None:
        async with session_scope(self.session_factory) as session:
            await mark_notification_executed(session, request.identifier)


async def record_day_prompt_response(
    session: AsyncSession,
    habit_id: str,
    action: DayPromptAction | str,
    day: date,
) -> Optional[HabitDay]:
    """Store the answer to a day prompt; ``YES`` marks the challenge day as done.

    Returns the updated day, or None when ``day`` isn't part of the habit's challenge.
    """
    action = DayPromptAction(action)
    habit_day = (
        await session.execute(select(HabitDay).where(HabitDay.habit_id == habit_id, HabitDay.day == day))
    ).scalar_one_or_none()
    if habit_day is None:
        logger.info("Habit %s has no challenge day on %s", habit_id, day.isoformat())
        return None
    habit_day.was_executed = action is DayPromptAction.yes
    return habit_day
