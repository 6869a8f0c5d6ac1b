from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from agenda.hooks.habits import HabitDay
from agenda.models import Habit, HabitType, JournalEntry, Todo
from agenda.undo import PendingDeletion


class TodoCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    text: str = Field(min_length=1)
    category: str = "general"
    day: Optional[date] = None


class TodoPatch(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    text: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = None
    completed: Optional[bool] = None


class TodoReorder(BaseModel):
    ids: List[str]


class TodoReschedule(BaseModel):
    day: date


class JournalCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    text: str = Field(min_length=1)
    when: Optional[datetime] = None


class JournalPatch(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    text: str = Field(min_length=1)


class HabitCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1)
    type: HabitType = HabitType.COUNT
    target: float = Field(default=1, gt=0)
    unit: str = ""
    frequency: Optional[List[int]] = Field(default=None, min_length=1)
    paused: bool = False


class HabitPatch(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1)
    type: Optional[HabitType] = None
    target: Optional[float] = Field(default=None, gt=0)
    unit: Optional[str] = None
    frequency: Optional[List[int]] = Field(default=None, min_length=1)


class HabitPause(BaseModel):
    paused: bool


class HabitLogValue(BaseModel):
    value: float = Field(ge=0)


class HabitManualAmount(BaseModel):
    amount: int = Field(ge=0)


class PreferencesPatch(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_of_week: Optional[Literal["monday", "sunday"]] = Field(default=None, alias="startOfWeek")
    theme: Optional[Literal["light", "dark"]] = None
    language: Optional[str] = Field(default=None, min_length=1)


class FocusText(BaseModel):
    text: str = ""


def todo_out(todo: Todo) -> Dict[str, Any]:
    return {
        "id": todo.id,
        "text": todo.text,
        "completed": todo.completed,
        "category": todo.category,
        "createdAt": todo.created_at.isoformat(),
        "order": todo.order,
    }


def entry_out(entry: JournalEntry) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "text": entry.text,
        "date": entry.date.isoformat(),
        "updatedAt": entry.updated_at.isoformat() if entry.updated_at else None,
        "edited": entry.edited,
    }


def habit_out(habit: Habit) -> Dict[str, Any]:
    return {
        "id": habit.id,
        "name": habit.name,
        "type": habit.type.value,
        "target": habit.target,
        "unit": habit.unit,
        "frequency": sorted(habit.frequency),
        "paused": habit.paused,
        "createdAt": habit.created_at.isoformat(),
    }


def habit_day_out(row: HabitDay) -> Dict[str, Any]:
    return {
        **habit_out(row.habit),
        "value": row.value,
        "status": row.status.value,
        "percent": row.percent,
    }


def pending_out(pending: Optional[PendingDeletion]) -> Optional[Dict[str, Any]]:
    if pending is None:
        return None
    return {"id": pending.id, "entityType": pending.entity_type.value, "timestamp": pending.timestamp}
