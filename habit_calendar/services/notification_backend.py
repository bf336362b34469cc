"""
Notification backend capability.

The backend is the only owner of pending requests: it accepts a request keyed by
an identifier, keeps it until removed, delivers it when the trigger fires and lets
callers enumerate or remove requests by identifier. Everything that schedules
reminders receives a backend instead of reaching for a global notification center.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Iterable, Mapping, Optional, Protocol

logger = logging.getLogger(__name__)


class NotificationSchedulingError(Exception):
    """Backend refused to add a pending request."""

    def __init__(self, identifier: str, message: str) -> None:
        super().__init__(f"{message} (request {identifier})")
        self.identifier = identifier


class NotificationAuthorizationDenied(NotificationSchedulingError):
    """The user has not granted permission to schedule notifications."""

    def __init__(self, identifier: str) -> None:
        super().__init__(identifier, "Notifications are not authorized")


class PendingLimitExceeded(NotificationSchedulingError):
    """Too many requests are already pending on the backend."""

    def __init__(self, identifier: str, limit: int) -> None:
        super().__init__(identifier, f"Pending notifications limit of {limit} reached")
        self.limit = limit


@dataclass(frozen=True)
class NotificationContent:
    title: str
    subtitle: str
    body: str
    user_info: Mapping[str, str]
    category_identifier: str
    sound: str
    badge: int


@dataclass(frozen=True)
class CalendarTrigger:
    """Fires when the wall clock matches ``hour:minute``; every day when ``repeats``."""

    hour: int
    minute: int
    repeats: bool = True

    def next_fire_date(self, after: datetime) -> datetime:
        candidate = after.replace(hour=self.hour, minute=self.minute, second=0, microsecond=0)
        if candidate <= after:
            candidate += timedelta(days=1)
        return candidate


@dataclass(frozen=True)
class PendingRequest:
    identifier: str
    content: NotificationContent
    trigger: CalendarTrigger


DeliveryListener = Callable[[PendingRequest], Awaitable[None]]


class NotificationBackend(Protocol):
    """Operations the scheduler needs from a local notification service."""

    async def add(self, request: PendingRequest) -> None:
        """Store ``request``, replacing any pending one with the same identifier."""

    def remove_pending(self, identifiers: Iterable[str]) -> None:
        """Remove pending requests; unknown identifiers are ignored."""

    async def get_pending_requests(self) -> list[PendingRequest]:
        """Return every pending request, in no particular order."""

    async def fire(self, identifier: str) -> None:
        """Deliver the pending request ``identifier`` now."""


class InMemoryNotificationBackend:
    """Backend keeping requests in a dict; stands in for the device service in tests."""

    def __init__(
        self,
        authorized: bool = True,
        max_pending: Optional[int] = None,
        on_delivered: Optional[DeliveryListener] = None,
    ) -> None:
        self.authorized = authorized
        self.max_pending = max_pending
        self.on_delivered = on_delivered
        self._requests: dict[str, PendingRequest] = {}
        self._lock = asyncio.Lock()

    async def add(self, request: PendingRequest) -> None:
        async with self._lock:
            # Yield so concurrent submissions actually interleave
            await asyncio.sleep(0)
            if not self.authorized:
                raise NotificationAuthorizationDenied(request.identifier)
            if (
                self.max_pending is not None
                and request.identifier not in self._requests
                and len(self._requests) >= self.max_pending
            ):
                raise PendingLimitExceeded(request.identifier, self.max_pending)
            self._requests[request.identifier] = request

    def remove_pending(self, identifiers: Iterable[str]) -> None:
        for identifier in identifiers:
            self._requests.pop(identifier, None)

    async def get_pending_requests(self) -> list[PendingRequest]:
        await asyncio.sleep(0)
        return list(self._requests.values())

    async def fire(self, identifier: str) -> None:
        request = self._requests.get(identifier)
        if request is None:
            logger.debug("Nothing pending for %s", identifier)
            return
        if not request.trigger.repeats:
            self._requests.pop(identifier, None)
        if self.on_delivered is not None:
            await self.on_delivered(request)
