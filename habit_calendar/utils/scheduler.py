from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger

from habit_calendar.config import settings
from habit_calendar.services.notification_backend import (
    CalendarTrigger,
    DeliveryListener,
    NotificationAuthorizationDenied,
    PendingLimitExceeded,
    PendingRequest,
)
from habit_calendar.utils.timezone_utils import get_local_now, resolve_timezone

logger = logging.getLogger(__name__)

NOTIFICATIONS_JOBSTORE = "notifications"


class LocalNotificationBackend:
    """Notification backend running every pending request as an APScheduler job.

    The job id is the request identifier, so adding a request twice replaces the
    job instead of creating a second one.
    """

    def __init__(
        self,
        scheduler: Optional[AsyncIOScheduler] = None,
        timezone: str = settings.DEFAULT_TIMEZONE,
        authorized: bool = settings.NOTIFICATIONS_AUTHORIZED,
        max_pending: Optional[int] = settings.MAX_PENDING_NOTIFICATIONS,
        on_delivered: Optional[DeliveryListener] = None,
    ):
        self.timezone = timezone
        self.scheduler = scheduler or AsyncIOScheduler(timezone=resolve_timezone(timezone))
        self.scheduler.add_jobstore(MemoryJobStore(), NOTIFICATIONS_JOBSTORE)
        self.authorized = authorized
        self.max_pending = max_pending
        self.on_delivered = on_delivered
        self._requests: dict[str, PendingRequest] = {}
        self._lock = asyncio.Lock()

    def start(self) -> None:
        """Start firing reminders; needs a running event loop."""
        self.scheduler.start()
        logger.info("Local notification backend started (%s)", self.timezone)

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    def _make_trigger(self, trigger: CalendarTrigger) -> CronTrigger | DateTrigger:
        tz = resolve_timezone(self.timezone)
        if trigger.repeats:
            return CronTrigger(hour=trigger.hour, minute=trigger.minute, timezone=tz)
        run_date = trigger.next_fire_date(get_local_now(self.timezone))
        return DateTrigger(run_date=tz.localize(run_date), timezone=tz)

    async def add(self, request: PendingRequest) -> None:
        async with self._lock:
            if not self.authorized:
                raise NotificationAuthorizationDenied(request.identifier)
            existing = self.scheduler.get_job(request.identifier, jobstore=NOTIFICATIONS_JOBSTORE)
            if existing is not None:
                # Stopped schedulers keep a plain list of tentative jobs, so drop the old one first
                self.scheduler.remove_job(request.identifier, jobstore=NOTIFICATIONS_JOBSTORE)
            elif self.max_pending is not None and len(self._pending_jobs()) >= self.max_pending:
                raise PendingLimitExceeded(request.identifier, self.max_pending)

            self.scheduler.add_job(
                self.fire,
                self._make_trigger(request.trigger),
                args=[request.identifier],
                id=request.identifier,
                name=request.content.title,
                jobstore=NOTIFICATIONS_JOBSTORE,
                replace_existing=True,
                coalesce=True,
                misfire_grace_time=60,
            )
            self._requests[request.identifier] = request

    def remove_pending(self, identifiers: Iterable[str]) -> None:
        for identifier in identifiers:
            self._requests.pop(identifier, None)
            try:
                self.scheduler.remove_job(identifier, jobstore=NOTIFICATIONS_JOBSTORE)
            except JobLookupError:
                continue

    async def get_pending_requests(self) -> list[PendingRequest]:
        return [self._requests[job.id] for job in self._pending_jobs() if job.id in self._requests]

    async def fire(self, identifier: str) -> None:
        request = self._requests.get(identifier)
        if request is None:
            logger.debug("Nothing pending for %s", identifier)
            return
        if not request.trigger.repeats:
            self._requests.pop(identifier, None)
        logger.info("🔔 %s | %s | %s", request.content.title, request.content.subtitle, request.content.body)
        if self.on_delivered is not None:
            await self.on_delivered(request)

    def _pending_jobs(self) -> list:
        return self.scheduler.get_jobs(jobstore=NOTIFICATIONS_JOBSTORE)
