from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional


class EntityType(str, Enum):
    TODO = "todo"
    ENTRY = "entry"


class HabitType(str, Enum):
    COUNT = "count"
    TIME = "time"
    LIMIT = "limit"


class DayStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    OVERAGE = "overage"
    NEUTRAL = "neutral"


ALL_WEEKDAYS: FrozenSet[int] = frozenset(range(7))


def _number(value, default=0):
    if value is None:
        return default
    try:
        return float(value) if isinstance(value, float) else int(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class Todo:
    id: str
    text: str
    created_at: datetime
    completed: bool = False
    category: str = "general"
    order: Optional[float] = None

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any], text: str) -> "Todo":
        order = data.get("order")
        return cls(
            id=doc_id,
            text=text,
            created_at=data["createdAt"],
            completed=bool(data.get("completed", False)),
            category=str(data.get("category") or "general"),
            order=order if isinstance(order, (int, float)) and not isinstance(order, bool) else None,
        )

    def to_fields(self, text: str) -> Dict[str, Any]:
        fields = {
            "text": text,
            "completed": self.completed,
            "category": self.category,
            "createdAt": self.created_at,
        }
        if self.order is not None:
            fields["order"] = self.order
        return fields

    def with_changes(self, **changes) -> "Todo":
        return replace(self, **changes)


@dataclass(frozen=True)
class JournalEntry:
    id: str
    text: str
    date: datetime
    updated_at: Optional[datetime] = None

    @property
    def edited(self) -> bool:
        return self.updated_at is not None

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any], text: str) -> "JournalEntry":
        return cls(id=doc_id, text=text, date=data["date"], updated_at=data.get("updatedAt"))

    def to_fields(self, text: str) -> Dict[str, Any]:
        fields: Dict[str, Any] = {"text": text, "date": self.date}
        if self.updated_at is not None:
            fields["updatedAt"] = self.updated_at
        return fields


@dataclass(frozen=True)
class Habit:
    id: str
    name: str
    type: HabitType
    target: float
    created_at: datetime
    unit: str = ""
    frequency: FrozenSet[int] = field(default_factory=lambda: ALL_WEEKDAYS)
    paused: bool = False

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any], name: str) -> "Habit":
        raw_frequency = data.get("frequency")
        if raw_frequency:
            frequency = frozenset(int(day) for day in raw_frequency if 0 <= int(day) <= 6)
        else:
            frequency = ALL_WEEKDAYS
        try:
            habit_type = HabitType(data.get("type") or HabitType.COUNT.value)
        except ValueError:
            habit_type = HabitType.COUNT
        return cls(
            id=doc_id,
            name=name,
            type=habit_type,
            target=_number(data.get("target"), 1) or 1,
            created_at=data["createdAt"],
            unit=str(data.get("unit") or ""),
            frequency=frequency,
            paused=bool(data.get("paused", False)),
        )

    def to_fields(self, name: str) -> Dict[str, Any]:
        return {
            "name": name,
            "type": self.type.value,
            "target": self.target,
            "unit": self.unit,
            "frequency": sorted(self.frequency),
            "paused": self.paused,
            "createdAt": self.created_at,
        }


@dataclass(frozen=True)
class HabitLog:
    habit_id: str
    date: str
    value: float
    updated_at: Optional[datetime] = None

    @property
    def doc_id(self) -> str:
        return habit_log_id(self.habit_id, self.date)

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> "HabitLog":
        return cls(
            habit_id=str(data.get("habitId")),
            date=str(data.get("date")),
            value=_number(data.get("value"), 0),
            updated_at=data.get("updatedAt"),
        )

    def to_fields(self) -> Dict[str, Any]:
        return {
            "habitId": self.habit_id,
            "date": self.date,
            "value": self.value,
            "updatedAt": self.updated_at,
        }


def habit_log_id(habit_id: str, date_string: str) -> str:
    return f"{habit_id}_{date_string}"
