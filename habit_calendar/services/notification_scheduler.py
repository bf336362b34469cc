"""
Scheduling of habit reminders on a notification backend.

Each Notification record maps to exactly one pending request whose identifier is the
record's ``user_notification_id``. The scheduler keeps no state of its own: it reads
the records, builds payloads with the factory and talks to the injected backend.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Optional, Union
from uuid import uuid4

from habit_calendar.db.models import Notification
from habit_calendar.services.notification_backend import (
    NotificationBackend,
    NotificationSchedulingError,
    PendingRequest,
)
from habit_calendar.services.notification_factory import (
    HABIT_IDENTIFIER_KEY,
    MalformedFireTime,
    make_notification_options,
)

logger = logging.getLogger(__name__)


@dataclass
class ScheduleResult:
    """Outcome of submitting one notification to the backend."""

    notification: Notification
    error: Optional[NotificationSchedulingError] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


Completion = Callable[[ScheduleResult], Union[None, Awaitable[None]]]
BatchCompletion = Callable[[list[ScheduleResult]], Union[None, Awaitable[None]]]


async def _call(callback: Optional[Callable[[Any], Any]], value: Any) -> None:
    if callback is None:
        return
    outcome = callback(value)
    if inspect.isawaitable(outcome):
        await outcome


class NotificationScheduler:
    """Schedules and unschedules Notification records on a backend."""

    def __init__(self, backend: NotificationBackend) -> None:
        self.backend = backend

    def make_request(self, notification: Notification) -> PendingRequest:
        """Build the backend request for ``notification``, generating its identifier if absent."""
        if notification.fire_time is None:
            raise MalformedFireTime(f"{notification!r} has no fire time")
        options = make_notification_options(notification.fire_time)
        if not notification.user_notification_id:
            notification.user_notification_id = str(uuid4())
        return PendingRequest(
            identifier=notification.user_notification_id,
            content=options.content,
            trigger=options.trigger,
        )

    def schedule(
        self,
        notification: Notification,
        completion: Optional[Completion] = None,
    ) -> asyncio.Task[ScheduleResult]:
        """Submit ``notification`` without waiting for the backend.

        The payload is built right away, so a malformed record raises here. The
        returned task resolves to a :class:`ScheduleResult` once the backend
        answered; ``completion`` gets the same result.
        """
        request = self.make_request(notification)
        return asyncio.create_task(self._submit(notification, request, completion))

    def schedule_many(
        self,
        notifications: Iterable[Notification],
        completion: Optional[Completion] = None,
        batch_completion: Optional[BatchCompletion] = None,
    ) -> asyncio.Task[list[ScheduleResult]]:
        """Submit every notification concurrently.

        ``completion`` runs once per item, ``batch_completion`` once every item was
        attempted. A failing item never stops the others.
        """
        submissions = [(n, self.make_request(n)) for n in notifications]
        tasks = [
            asyncio.create_task(self._submit(notification, request, completion))
            for notification, request in submissions
        ]
        return asyncio.create_task(self._collect(tasks, batch_completion))

    def unschedule(self, notifications: Iterable[Notification]) -> None:
        """Remove the pending requests of ``notifications`` in one backend call."""
        identifiers = [n.user_notification_id for n in notifications if n.user_notification_id]
        if not identifiers:
            return
        self.backend.remove_pending(identifiers)
        logger.debug("Unscheduled %d notification(s)", len(identifiers))

    async def synchronize(self, notifications: Iterable[Notification]) -> list[ScheduleResult]:
        """Make the backend match ``notifications``.

        Habit reminders pending without a record are removed, records without a
        pending request are scheduled again.
        """
        notifications = list(notifications)
        pending = await self.backend.get_pending_requests()
        pending_ids = {request.identifier for request in pending}
        known_ids = {n.user_notification_id for n in notifications if n.user_notification_id}

        orphans = [
            request.identifier
            for request in pending
            if HABIT_IDENTIFIER_KEY in request.content.user_info and request.identifier not in known_ids
        ]
        if orphans:
            logger.info("Removing %d orphaned reminder(s)", len(orphans))
            self.backend.remove_pending(orphans)

        missing = [n for n in notifications if n.user_notification_id not in pending_ids]
        if missing:
            logger.info("Scheduling %d missing reminder(s)", len(missing))
        return await self.schedule_many(missing)

    async def _submit(
        self,
        notification: Notification,
        request: PendingRequest,
        completion: Optional[Completion],
    ) -> ScheduleResult:
        try:
            await self.backend.add(request)
        except NotificationSchedulingError as exc:
            logger.warning("Couldn't schedule reminder %s: %s", request.identifier, exc)
            result = ScheduleResult(notification, error=exc)
        else:
            logger.debug(
                "Scheduled reminder %s at %02d:%02d",
                request.identifier,
                request.trigger.hour,
                request.trigger.minute,
            )
            result = ScheduleResult(notification)
        try:
            await _call(completion, result)
        except Exception:
            # The request is already submitted; a broken callback must not hide that
            logger.exception("Completion for reminder %s failed", request.identifier)
        return result

    @staticmethod
    async def _collect(
        tasks: list[asyncio.Task[ScheduleResult]],
        batch_completion: Optional[BatchCompletion],
    ) -> list[ScheduleResult]:
        results = list(await asyncio.gather(*tasks))
        await _call(batch_completion, results)
        return results
