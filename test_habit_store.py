#!/usr/bin/env python3
"""
Tests for habit persistence keeping reminders in sync with the records
"""

import asyncio
from datetime import date, datetime, timedelta

import pytest
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from habit_calendar.db.models import HabitColor, HabitDay, Notification
from habit_calendar.db.session import create_all, session_scope
from habit_calendar.schemas.habit import FireTimeIn, HabitCreate, HabitEdit
from habit_calendar.services.habit_store import HabitStore, next_fire_date
from habit_calendar.services.notification_backend import InMemoryNotificationBackend
from habit_calendar.services.notification_delivery import (
    NotificationDeliveryRecorder,
    record_day_prompt_response,
)
from habit_calendar.services.notification_scheduler import NotificationScheduler


async def make_database():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    await create_all(engine)
    return engine, async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


def drink_water(*fire_times: tuple[int, int]) -> HabitCreate:
    today = date.today()
    return HabitCreate(
        name="Drink Water",
        color=HabitColor.belize_hole,
        days=[today, today + timedelta(days=1), today + timedelta(days=2)],
        fire_times=[FireTimeIn(hour=h, minute=m) for h, m in fire_times],
    )


async def pending_ids(backend: InMemoryNotificationBackend) -> set[str]:
    return {request.identifier for request in await backend.get_pending_requests()}


def test_create_schedules_one_reminder_per_fire_time():
    async def scenario():
        engine, session_factory = await make_database()
        backend = InMemoryNotificationBackend()
        store = HabitStore(NotificationScheduler(backend), timezone="UTC")

        async with session_scope(session_factory) as session:
            habit = await store.create(session, drink_water((8, 0), (20, 30)))

        async with session_scope(session_factory) as session:
            notifications = await store.list_notifications(session)
            stored = await store.get(session, habit.id)
            assert len(stored.days) == 3
            assert sorted(f.get_fire_time_components() for f in stored.fire_times) == [(8, 0), (20, 30)]

        assert len(notifications) == 2
        assert {n.user_notification_id for n in notifications} == await pending_ids(backend)
        assert all(n.habit_id == habit.id for n in notifications)
        await engine.dispose()

    asyncio.run(scenario())


def test_edit_fire_times_replaces_reminders():
    async def scenario():
        engine, session_factory = await make_database()
        backend = InMemoryNotificationBackend()
        store = HabitStore(NotificationScheduler(backend), timezone="UTC")
        async with session_scope(session_factory) as session:
            habit = await store.create(session, drink_water((8, 0), (20, 30)))
        old_ids = await pending_ids(backend)

        async with session_scope(session_factory) as session:
            stored = await store.get(session, habit.id)
            await store.edit(session, stored, HabitEdit(fire_times=[FireTimeIn(hour=7, minute=15)]))

        async with session_scope(session_factory) as session:
            notifications = await store.list_notifications(session)

        requests = await backend.get_pending_requests()
        assert len(notifications) == 1
        assert [r.identifier for r in requests] == [notifications[0].user_notification_id]
        assert (requests[0].trigger.hour, requests[0].trigger.minute) == (7, 15)
        assert not old_ids & await pending_ids(backend)
        await engine.dispose()

    asyncio.run(scenario())


def test_edit_name_updates_pending_texts():
    async def scenario():
        engine, session_factory = await make_database()
        backend = InMemoryNotificationBackend()
        store = HabitStore(NotificationScheduler(backend), timezone="UTC")
        async with session_scope(session_factory) as session:
            habit = await store.create(session, drink_water((9, 0)))
        before = await pending_ids(backend)

        async with session_scope(session_factory) as session:
            stored = await store.get(session, habit.id)
            await store.edit(
                session,
                stored,
                HabitEdit(name="Drink more water", color=HabitColor.emerald, days=[date.today()]),
            )

        async with session_scope(session_factory) as session:
            stored = await store.get(session, habit.id)
            assert stored.color is HabitColor.emerald
            assert stored.challenge_dates() == {date.today()}

        requests = await backend.get_pending_requests()
        assert {r.identifier for r in requests} == before
        assert requests[0].content.title == "Drink more water"
        await engine.dispose()

    asyncio.run(scenario())


def test_delete_unschedules_everything():
    async def scenario():
        engine, session_factory = await make_database()
        backend = InMemoryNotificationBackend()
        store = HabitStore(NotificationScheduler(backend), timezone="UTC")
        async with session_scope(session_factory) as session:
            habit = await store.create(session, drink_water((8, 0), (12, 0), (18, 0)))
            other = await store.create(session, drink_water((10, 0)))

        async with session_scope(session_factory) as session:
            await store.delete(session, await store.get(session, habit.id))

        async with session_scope(session_factory) as session:
            assert await store.get(session, habit.id) is None
            assert [h.id for h in await store.list_habits(session)] == [other.id]
            notifications = await store.list_notifications(session)

        assert [n.habit_id for n in notifications] == [other.id]
        assert await pending_ids(backend) == {notifications[0].user_notification_id}
        await engine.dispose()

    asyncio.run(scenario())


def test_unauthorized_reminders_are_restored_later():
    async def scenario():
        engine, session_factory = await make_database()
        backend = InMemoryNotificationBackend(authorized=False)
        scheduler = NotificationScheduler(backend)
        store = HabitStore(scheduler, timezone="UTC")

        async with session_scope(session_factory) as session:
            await store.create(session, drink_water((8, 0), (21, 0)))
        assert await backend.get_pending_requests() == []

        backend.authorized = True
        async with session_scope(session_factory) as session:
            notifications = await store.list_notifications(session)
            results = await scheduler.synchronize(notifications)

        assert len(results) == 2
        assert await pending_ids(backend) == {n.user_notification_id for n in notifications}
        await engine.dispose()

    asyncio.run(scenario())


def test_delivery_marks_notification_executed():
    async def scenario():
        engine, session_factory = await make_database()
        backend = InMemoryNotificationBackend(on_delivered=NotificationDeliveryRecorder(session_factory))
        store = HabitStore(NotificationScheduler(backend), timezone="UTC")
        async with session_scope(session_factory) as session:
            habit = await store.create(session, drink_water((8, 0), (20, 0)))
        delivered, untouched = habit.notifications

        await backend.fire(delivered.user_notification_id)

        # The marker is written by the listener; allow it a moment
        for _ in range(10):
            async with session_scope(session_factory) as session:
                flags = {n.user_notification_id: n.was_executed for n in await store.list_notifications(session)}
            if flags[delivered.user_notification_id]:
                break
            await asyncio.sleep(0.01)

        assert flags == {delivered.user_notification_id: True, untouched.user_notification_id: False}
        await engine.dispose()

    asyncio.run(scenario())


def test_day_prompt_response_marks_day():
    async def scenario():
        engine, session_factory = await make_database()
        store = HabitStore(NotificationScheduler(InMemoryNotificationBackend()), timezone="UTC")
        async with session_scope(session_factory) as session:
            habit = await store.create(session, drink_water((8, 0)))

        today = date.today()
        async with session_scope(session_factory) as session:
            marked = await record_day_prompt_response(session, habit.id, "YES", today)
            skipped = await record_day_prompt_response(session, habit.id, "NO", today + timedelta(days=1))
            outside = await record_day_prompt_response(session, habit.id, "YES", today - timedelta(days=1))

        assert isinstance(marked, HabitDay) and marked.was_executed is True
        assert skipped.was_executed is False
        assert outside is None
        with pytest.raises(ValueError):
            async with session_scope(session_factory) as session:
                await record_day_prompt_response(session, habit.id, "MAYBE", today)
        await engine.dispose()

    asyncio.run(scenario())


def test_habit_input_validation():
    with pytest.raises(ValidationError):
        HabitCreate(name="   ", color=HabitColor.orange, days=[date.today()])
    with pytest.raises(ValidationError):
        HabitCreate(name="Run", color=HabitColor.orange, days=[])
    with pytest.raises(ValidationError):
        FireTimeIn(hour=24, minute=0)
    with pytest.raises(ValidationError):
        FireTimeIn(hour=8, minute=60)
    with pytest.raises(ValidationError):
        HabitEdit(name="   ")
    assert HabitEdit(name=" Run ").name == "Run"
    assert HabitEdit(color=HabitColor.orange).name is None

    data = HabitCreate(
        name=" Run ",
        color="orange",
        days=[date(2026, 3, 1), date(2026, 3, 1)],
        fire_times=[FireTimeIn(hour=6, minute=0), FireTimeIn(hour=6, minute=0)],
    )
    assert data.name == "Run"
    assert data.days == [date(2026, 3, 1)]
    assert len(data.fire_times) == 1


def test_next_fire_date_prefers_challenge_days():
    now = datetime(2026, 3, 1, 9, 0)
    days = [date(2026, 3, 1), date(2026, 3, 5)]

    assert next_fire_date(8, 0, days, now) == datetime(2026, 3, 5, 8, 0)
    assert next_fire_date(10, 0, days, now) == datetime(2026, 3, 1, 10, 0)
    assert next_fire_date(8, 0, [date(2026, 2, 1)], now) == datetime(2026, 3, 2, 8, 0)
    assert next_fire_date(8, 0, [], now) == datetime(2026, 3, 2, 8, 0)


def test_notification_identifiers_are_unique_across_habits():
    async def scenario():
        engine, session_factory = await make_database()
        backend = InMemoryNotificationBackend()
        store = HabitStore(NotificationScheduler(backend), timezone="UTC")
        async with session_scope(session_factory) as session:
            for _ in range(3):
                await store.create(session, drink_water((8, 0), (8, 30)))

        async with session_scope(session_factory) as session:
            notifications: list[Notification] = await store.list_notifications(session)

        identifiers = [n.user_notification_id for n in notifications]
        assert len(identifiers) == len(set(identifiers)) == 6
        assert set(identifiers) == await pending_ids(backend)
        await engine.dispose()

    asyncio.run(scenario())


def test_edit_days_moves_fire_dates():
    async def scenario():
        engine, session_factory = await make_database()
        store = HabitStore(NotificationScheduler(InMemoryNotificationBackend()), timezone="UTC")
        first, moved = date.today() + timedelta(days=10), date.today() + timedelta(days=20)
        async with session_scope(session_factory) as session:
            habit = await store.create(
                session,
                HabitCreate(
                    name="Read",
                    color=HabitColor.amethyst,
                    days=[first],
                    fire_times=[FireTimeIn(hour=8, minute=0)],
                ),
            )
        assert habit.notifications[0].fire_date == datetime(first.year, first.month, first.day, 8, 0)

        async with session_scope(session_factory) as session:
            await store.edit(session, await store.get(session, habit.id), HabitEdit(days=[moved]))

        async with session_scope(session_factory) as session:
            (notification,) = await store.list_notifications(session)

        assert notification.fire_date == datetime(moved.year, moved.month, moved.day, 8, 0)
        await engine.dispose()

    asyncio.run(scenario())


def test_failed_write_keeps_reminders_pending(monkeypatch):
    async def broken_flush(*args, **kwargs):
        raise RuntimeError("disk full")

    async def scenario():
        engine, session_factory = await make_database()
        backend = InMemoryNotificationBackend()
        store = HabitStore(NotificationScheduler(backend), timezone="UTC")
        async with session_scope(session_factory) as session:
            habit = await store.create(session, drink_water((8, 0), (20, 0)))
        before = await pending_ids(backend)

        with pytest.raises(RuntimeError):
            async with session_scope(session_factory) as session:
                stored = await store.get(session, habit.id)
                monkeypatch.setattr(session, "flush", broken_flush)
                await store.delete(session, stored)

        with pytest.raises(RuntimeError):
            async with session_scope(session_factory) as session:
                stored = await store.get(session, habit.id)
                monkeypatch.setattr(session, "flush", broken_flush)
                await store.edit(session, stored, HabitEdit(fire_times=[FireTimeIn(hour=7, minute=0)]))

        async with session_scope(session_factory) as session:
            notifications = await store.list_notifications(session)

        assert {n.user_notification_id for n in notifications} == before
        assert await pending_ids(backend) == before
        await engine.dispose()

    asyncio.run(scenario())
