"""
Tests for habit progress rules and the habit tracker view.
"""
from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from agenda import habit_progress
from agenda.hooks.habits import HabitTracker
from agenda.models import DayStatus, HabitType
from agenda.store.base import Query
from agenda.store.memory import MemoryDocumentStore

USER = "alice"


# ----- pure progress rules -----


@pytest.mark.parametrize(
    "value,expected",
    [(0, DayStatus.NEUTRAL), (2, DayStatus.SUCCESS), (3, DayStatus.SUCCESS), (4, DayStatus.OVERAGE)],
)
def test_limit_habit_status(value, expected):
    """Limit habits succeed while under target and turn to overage above it."""
    assert habit_progress.day_status(value, 3, HabitType.LIMIT) is expected


@pytest.mark.parametrize(
    "value,expected",
    [(0, DayStatus.NEUTRAL), (1, DayStatus.PARTIAL), (3, DayStatus.SUCCESS), (5, DayStatus.SUCCESS)],
)
def test_count_habit_status(value, expected):
    assert habit_progress.day_status(value, 3, HabitType.COUNT) is expected


def test_statuses_are_distinct():
    assert len({status.value for status in DayStatus}) == 4


def test_time_habits_step_by_fifteen_minutes():
    assert habit_progress.increment(0, HabitType.TIME) == 15
    assert habit_progress.increment(2, HabitType.COUNT) == 3
    assert habit_progress.decrement(10, HabitType.TIME) == 0
    assert habit_progress.decrement(0, HabitType.COUNT) == 0


def test_manual_amount_accepts_only_non_negative_whole_numbers():
    assert habit_progress.add_manual(5, 10) == 15
    assert habit_progress.add_manual(5, "2") == 7
    for bad in (-1, "abc", 2.5, True, None):
        with pytest.raises(ValueError):
            habit_progress.add_manual(5, bad)


def test_progress_percent_is_capped():
    assert habit_progress.progress_percent(1, 4) == 25.0
    assert habit_progress.progress_percent(10, 4) == 100.0
    assert habit_progress.progress_percent(1, 0) == 0.0


# ----- tracker -----


def test_add_habit_validates_and_encrypts_name(clock, crypto):
    async def run():
        store = MemoryDocumentStore()
        async with HabitTracker(store, crypto, USER, clock) as tracker:
            habit = await tracker.add_habit("  Drink   water ", "count", target=8, unit="glasses")
            assert habit.name == "Drink water"
            doc = await store.get(f"users/{USER}/habits/{habit.id}")
            assert doc.data["name"] != "Drink water"
            assert crypto.decrypt(doc.data["name"], USER) == "Drink water"
            assert doc.data["frequency"] == [0, 1, 2, 3, 4, 5, 6]
            assert [h.name for h in tracker.items] == ["Drink water"]

            assert await tracker.add_habit("   ") is None
            assert await tracker.add_habit("Read", target=0) is None
            assert await tracker.add_habit("Read", target=-2) is None
            assert await tracker.add_habit("Read", habit_type="weekly") is None
            assert await tracker.add_habit("Read", frequency=[]) is None
            assert await tracker.add_habit("Read", frequency=[7]) is None
            assert len(tracker.items) == 1

    asyncio.run(run())


def test_logging_upserts_one_record_per_day(clock, crypto):
    """Logging twice on the same day merges into the {habitId}_{date} record."""
    async def run():
        store = MemoryDocumentStore()
        async with HabitTracker(store, crypto, USER, clock) as tracker:
            habit = await tracker.add_habit("Push-ups", target=3)
            assert await tracker.increment(habit.id) == 1
            assert await tracker.increment(habit.id) == 2
            logs = await store.query(Query(f"users/{USER}/habit_logs"))
            assert [doc.id for doc in logs] == [f"{habit.id}_2024-05-15"]
            assert logs[0].data["value"] == 2
            assert logs[0].data["habitId"] == habit.id
            assert tracker.day_logs == {habit.id: 2}

            assert await tracker.decrement(habit.id) == 1
            assert await tracker.add_manual(habit.id, 4) == 5
            assert await tracker.add_manual(habit.id, -3) is None
            assert await tracker.reset(habit.id) == 0
            assert tracker.value_for(habit.id) == 0

    asyncio.run(run())


def test_time_habit_increments_in_quarter_hours(clock, crypto):
    async def run():
        store = MemoryDocumentStore()
        async with HabitTracker(store, crypto, USER, clock) as tracker:
            habit = await tracker.add_habit("Study", HabitType.TIME, target=60, unit="min")
            await tracker.increment(habit.id)
            assert await tracker.increment(habit.id) == 30
            row = tracker.day_view()[0]
            assert row.status is DayStatus.PARTIAL
            assert row.percent == 50.0

    asyncio.run(run())


def test_paused_habit_refuses_logs_but_stays_listed(clock, crypto):
    async def run():
        store = MemoryDocumentStore()
        async with HabitTracker(store, crypto, USER, clock) as tracker:
            habit = await tracker.add_habit("Meditate")
            assert await tracker.set_paused(habit.id, True) is True
            assert await tracker.increment(habit.id) is None
            assert await store.query(Query(f"users/{USER}/habit_logs")) == []
            assert tracker.find(habit.id).paused is True

    asyncio.run(run())


def test_day_view_skips_unscheduled_weekdays(clock, crypto):
    """A Sunday-only habit is not part of a Wednesday."""
    async def run():
        store = MemoryDocumentStore()
        async with HabitTracker(store, crypto, USER, clock) as tracker:
            daily = await tracker.add_habit("Walk")
            await tracker.add_habit("Plan week", frequency=[0])
            assert [row.habit.id for row in tracker.day_view()] == [daily.id]
            assert len(tracker.items) == 2

    asyncio.run(run())


def test_limit_habit_overage_in_day_view(clock, crypto):
    async def run():
        store = MemoryDocumentStore()
        async with HabitTracker(store, crypto, USER, clock) as tracker:
            habit = await tracker.add_habit("Coffee", HabitType.LIMIT, target=2, unit="cups")
            await tracker.log_progress(habit.id, 3)
            assert tracker.day_view()[0].status is DayStatus.OVERAGE

    asyncio.run(run())


def test_range_logs_cover_grid_days(clock, crypto):
    async def run():
        store = MemoryDocumentStore()
        today = clock.today()
        log_range = (today - timedelta(days=6), today)
        async with HabitTracker(store, crypto, USER, clock, log_range=log_range) as tracker:
            habit = await tracker.add_habit("Read")
            await tracker.log_progress(habit.id, 1, day=today - timedelta(days=1))
            await tracker.log_progress(habit.id, 2)
            await tracker.log_progress(habit.id, 9, day=today - timedelta(days=30))
            assert tracker.range_logs == {habit.id: {"2024-05-14": 1, "2024-05-15": 2}}
            assert tracker.value_for(habit.id, today - timedelta(days=1)) == 1
            assert tracker.day_view(today - timedelta(days=1))[0].status is DayStatus.SUCCESS

    asyncio.run(run())


def test_update_and_delete_habit_keeps_logs(clock, crypto):
    async def run():
        store = MemoryDocumentStore()
        async with HabitTracker(store, crypto, USER, clock) as tracker:
            habit = await tracker.add_habit("Run", target=1)
            await tracker.log_progress(habit.id, 1)
            assert await tracker.update_habit(habit.id, name="Run 5k", target=5, frequency=[1, 3, 5]) is True
            updated = tracker.find(habit.id)
            assert updated.name == "Run 5k"
            assert updated.target == 5
            assert updated.frequency == frozenset({1, 3, 5})
            assert await tracker.update_habit(habit.id, target=0) is False

            assert await tracker.delete_habit(habit.id) is True
            assert tracker.items == ()
            assert len(await store.query(Query(f"users/{USER}/habit_logs"))) == 1

    asyncio.run(run())
