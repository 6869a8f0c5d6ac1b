from __future__ import annotations

from datetime import date
from typing import Iterable, List

from agenda.clock import weekday_index
from agenda.models import DayStatus, Habit, HabitType

TIME_STEP_MINUTES = 15


def step_for(habit_type: HabitType | str) -> int:
    return TIME_STEP_MINUTES if HabitType(habit_type) == HabitType.TIME else 1


def increment(value, habit_type: HabitType | str):
    return max(0, (value or 0) + step_for(habit_type))


def decrement(value, habit_type: HabitType | str):
    return max(0, (value or 0) - step_for(habit_type))


def add_manual(value, delta):
    """Add a manually typed amount; only non-negative whole numbers are accepted."""
    if isinstance(delta, bool):
        raise ValueError("Manual amount must be a whole number")
    try:
        amount = int(str(delta).strip())
    except (TypeError, ValueError) as exc:
        raise ValueError("Manual amount must be a whole number") from exc
    if amount < 0:
        raise ValueError("Manual amount cannot be negative")
    return max(0, (value or 0) + amount)


def day_status(value, target, habit_type: HabitType | str) -> DayStatus:
    value = value or 0
    if HabitType(habit_type) == HabitType.LIMIT:
        if 0 < value <= target:
            return DayStatus.SUCCESS
        if value > target:
            return DayStatus.OVERAGE
        return DayStatus.NEUTRAL
    if value >= target:
        return DayStatus.SUCCESS
    if value > 0:
        return DayStatus.PARTIAL
    return DayStatus.NEUTRAL


def progress_percent(value, target) -> float:
    if not target:
        return 0.0
    return min(100.0, max(0.0, (value or 0) / target * 100))


def is_scheduled(habit: Habit, day: date) -> bool:
    return not habit.frequency or weekday_index(day) in habit.frequency


def scheduled_habits(habits: Iterable[Habit], day: date) -> List[Habit]:
    return [habit for habit in habits if is_scheduled(habit, day)]
