from __future__ import annotations

import asyncio
import logging

from habit_calendar.config import settings
from habit_calendar.db.session import create_all, session_scope
from habit_calendar.logging_config import setup_logging
from habit_calendar.services.habit_store import HabitStore
from habit_calendar.services.notification_delivery import NotificationDeliveryRecorder
from habit_calendar.services.notification_scheduler import NotificationScheduler
from habit_calendar.utils.scheduler import LocalNotificationBackend


async def restore_reminders(store: HabitStore) -> None:
    """Schedule again every persisted reminder; pending requests live in memory only."""
    logger = logging.getLogger(__name__)
    async with session_scope() as session:
        notifications = await store.list_notifications(session)
        results = await store.scheduler.synchronize(notifications)
    failed = sum(1 for result in results if not result.succeeded)
    logger.info(
        "Restored %d of %d reminder(s)", len(results) - failed, len(notifications)
    )


async def main() -> None:
    logger = setup_logging()
    logger.info("Starting Habit Calendar reminders")

    # Ensure tables for local run (prefer Alembic for production)
    await create_all()

    backend = LocalNotificationBackend(
        timezone=settings.DEFAULT_TIMEZONE,
        on_delivered=NotificationDeliveryRecorder(),
    )
    store = HabitStore(NotificationScheduler(backend))
    backend.start()
    try:
        await restore_reminders(store)
        await asyncio.Event().wait()
    finally:
        backend.shutdown()
