"""
Habit persistence that keeps reminders in step with the records.

Every fire time of a habit gets one Notification record; creating, editing or
deleting a habit schedules or unschedules those records so the backend never holds
a reminder without a record, or the other way round.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from habit_calendar.config import settings
from habit_calendar.db.models import FireTime, Habit, HabitDay, Notification
from habit_calendar.schemas.habit import FireTimeIn, HabitCreate, HabitEdit
from habit_calendar.services.notification_backend import CalendarTrigger
from habit_calendar.services.notification_scheduler import NotificationScheduler, ScheduleResult
from habit_calendar.utils.timezone_utils import get_local_now

logger = logging.getLogger(__name__)


def next_fire_date(hour: int, minute: int, days: Iterable[date], now: datetime) -> datetime:
    """First challenge day at ``hour:minute`` after ``now``; the next daily occurrence when none is left."""
    for day in sorted(days):
        candidate = datetime(day.year, day.month, day.day, hour, minute)
        if candidate > now:
            return candidate
    return CalendarTrigger(hour, minute).next_fire_date(now)


class HabitStore:
    """Creates, edits and deletes habits along with their scheduled reminders."""

    def __init__(self, scheduler: NotificationScheduler, timezone: Optional[str] = None):
        self.scheduler = scheduler
        self.timezone = timezone or settings.DEFAULT_TIMEZONE

    async def get(self, session: AsyncSession, habit_id: str) -> Optional[Habit]:
        return await session.get(Habit, habit_id)

    async def list_habits(self, session: AsyncSession) -> list[Habit]:
        return list((await session.execute(select(Habit).order_by(Habit.created_at))).scalars().all())

    async def list_notifications(self, session: AsyncSession) -> list[Notification]:
        return list((await session.execute(select(Notification))).scalars().all())

    async def create(self, session: AsyncSession, data: HabitCreate) -> Habit:
        habit = Habit(name=data.name, color=data.color)
        habit.days = [HabitDay(day=day) for day in sorted(data.days)]
        session.add(habit)
        self._add_fire_times(habit, data.fire_times)
        await session.flush()

        await self._schedule(habit.notifications)
        logger.info("Created habit %s (%s) with %d reminder(s)", habit.name, habit.id, len(habit.fire_times))
        return habit

    async def edit(self, session: AsyncSession, habit: Habit, data: HabitEdit) -> Habit:
        if data.name is not None:
            habit.name = data.name
        if data.color is not None:
            habit.color = data.color
        if data.days is not None:
            self._replace_days(habit, data.days)

        if data.fire_times is not None:
            replaced = list(habit.notifications)
            habit.notifications.clear()
            habit.fire_times.clear()
            await session.flush()
            self.scheduler.unschedule(replaced)
            self._add_fire_times(habit, data.fire_times)
            await session.flush()
            await self._schedule(habit.notifications)
        else:
            if data.days is not None:
                self._refresh_fire_dates(habit)
            if data.name is not None and habit.notifications:
                # Reminder texts come from the name
                await self._schedule(habit.notifications)

        await session.flush()
        logger.info("Edited habit %s (%s)", habit.name, habit.id)
        return habit

    async def delete(self, session: AsyncSession, habit: Habit) -> None:
        notifications = list(habit.notifications)
        await session.delete(habit)
        await session.flush()
        self.scheduler.unschedule(notifications)
        logger.info("Deleted habit %s (%s)", habit.name, habit.id)

    def _refresh_fire_dates(self, habit: Habit) -> None:
        now = get_local_now(self.timezone)
        challenge_days = habit.challenge_dates()
        for notification in habit.notifications:
            hour, minute = notification.fire_time.get_fire_time_components()
            notification.fire_date = next_fire_date(hour, minute, challenge_days, now)

    def _replace_days(self, habit: Habit, days: Iterable[date]) -> None:
        wanted = set(days)
        for habit_day in list(habit.days):
            if habit_day.day not in wanted:
                habit.days.remove(habit_day)
        current = habit.challenge_dates()
        for day in sorted(wanted - current):
            habit.days.append(HabitDay(day=day))

    def _add_fire_times(self, habit: Habit, fire_times: Iterable[FireTimeIn]) -> None:
        now = get_local_now(self.timezone)
        challenge_days = habit.challenge_dates()
        for item in fire_times:
            fire_time = FireTime(hour=item.hour, minute=item.minute)
            habit.fire_times.append(fire_time)
            habit.notifications.append(
                Notification(
                    fire_time=fire_time,
                    fire_date=next_fire_date(item.hour, item.minute, challenge_days, now),
                )
            )

    async def _schedule(self, notifications: list[Notification]) -> list[ScheduleResult]:
        results = await self.scheduler.schedule_many(list(notifications))
        failed = [r for r in results if not r.succeeded]
        if failed:
            logger.warning("%d of %d reminder(s) were not scheduled: %s", len(failed), len(results), failed[0].error)
        return results
