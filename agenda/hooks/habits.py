from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from agenda import habit_progress
from agenda.clock import SystemClock, date_string
from agenda.crypto import CryptoAdapter
from agenda.hooks.base import LiveCollection, new_id
from agenda.models import ALL_WEEKDAYS, DayStatus, Habit, HabitLog, HabitType
from agenda.store.base import DocumentSnapshot, DocumentStore, Query, join_path

logger = logging.getLogger(__name__)

HABITS_COLLECTION = "habits"
HABIT_LOGS_COLLECTION = "habit_logs"


@dataclass(frozen=True)
class HabitDay:
    habit: Habit
    value: float
    status: DayStatus
    percent: float


def _clean_name(name) -> str:
    return " ".join(str(name or "").split()).strip()


def _clean_target(target) -> Optional[float]:
    if isinstance(target, bool):
        return None
    try:
        value = float(target)
    except (TypeError, ValueError):
        return None
    if value <= 0:
        return None
    return int(value) if value.is_integer() else value


def _clean_frequency(frequency: Iterable[int] | None):
    if frequency is None:
        return ALL_WEEKDAYS
    try:
        days = frozenset(int(day) for day in frequency)
    except (TypeError, ValueError):
        return None
    if not days or any(day < 0 or day > 6 for day in days):
        return None
    return days


class HabitTracker(LiveCollection[Habit]):
    """Habit definitions plus the logs of one day (and optionally a date range)."""

    collection_name = HABITS_COLLECTION

    def __init__(
        self,
        store: DocumentStore,
        crypto: CryptoAdapter,
        user_id: str,
        clock: SystemClock,
        day: date | None = None,
        log_range: Tuple[date, date] | None = None,
    ) -> None:
        super().__init__(store, crypto, user_id, clock)
        self.day = day or clock.today()
        self.log_range = log_range
        self._day_logs: Dict[str, float] = {}
        self._range_logs: Dict[str, Dict[str, float]] = {}
        self._log_unsubscribers: List[Callable[[], None]] = []

    @property
    def logs_path(self) -> str:
        return join_path("users", self.user_id, HABIT_LOGS_COLLECTION)

    def build_query(self) -> Query:
        return Query(self.collection_path).ordered("createdAt", descending=True)

    def decode(self, doc: DocumentSnapshot) -> Habit:
        return Habit.from_document(doc.id, doc.data, self.decrypt(doc.data.get("name") or ""))

    def sort_key(self, habit: Habit):
        return -habit.created_at.timestamp()

    def find(self, habit_id: str) -> Optional[Habit]:
        return self._state.find(lambda habit: habit.id == habit_id)

    # -- subscriptions ------------------------------------------------------

    async def open(self):
        if self.is_open:
            return self
        await super().open()
        day_query = Query(self.logs_path).where("date", "==", date_string(self.day))
        self._log_unsubscribers.append(await self.store.subscribe(day_query, self._on_day_logs))
        if self.log_range is not None:
            start, end = self.log_range
            range_query = (
                Query(self.logs_path)
                .where("date", ">=", date_string(start))
                .where("date", "<=", date_string(end))
            )
            self._log_unsubscribers.append(await self.store.subscribe(range_query, self._on_range_logs))
        return self

    def close(self) -> None:
        for unsubscribe in self._log_unsubscribers:
            unsubscribe()
        self._log_unsubscribers = []
        super().close()

    def _on_day_logs(self, docs: List[DocumentSnapshot]) -> None:
        logs = {}
        for doc in docs:
            log = HabitLog.from_document(doc.data)
            logs[log.habit_id] = log.value
        self._day_logs = logs

    def _on_range_logs(self, docs: List[DocumentSnapshot]) -> None:
        logs: Dict[str, Dict[str, float]] = {}
        for doc in docs:
            log = HabitLog.from_document(doc.data)
            logs.setdefault(log.habit_id, {})[log.date] = log.value
        self._range_logs = logs

    @property
    def day_logs(self) -> Dict[str, float]:
        return dict(self._day_logs)

    @property
    def range_logs(self) -> Dict[str, Dict[str, float]]:
        return {habit_id: dict(values) for habit_id, values in self._range_logs.items()}

    def value_for(self, habit_id: str, day: date | None = None) -> float:
        day = day or self.day
        if day == self.day:
            return self._day_logs.get(habit_id, 0)
        return self._range_logs.get(habit_id, {}).get(date_string(day), 0)

    # -- definitions --------------------------------------------------------

    async def add_habit(
        self,
        name: str,
        habit_type: HabitType | str = HabitType.COUNT,
        target=1,
        unit: str = "",
        frequency: Iterable[int] | None = None,
        paused: bool = False,
    ) -> Optional[Habit]:
        clean_name = _clean_name(name)
        clean_target = _clean_target(target)
        days = _clean_frequency(frequency)
        try:
            kind = HabitType(habit_type)
        except ValueError:
            kind = None
        if not clean_name or clean_target is None or days is None or kind is None:
            logger.debug("Rejected habit definition name=%r type=%r target=%r", clean_name, habit_type, target)
            return None
        habit = Habit(
            id=new_id(),
            name=clean_name,
            type=kind,
            target=clean_target,
            created_at=self.clock.now(),
            unit=str(unit or "").strip(),
            frequency=days,
            paused=bool(paused),
        )
        saved = await self.guarded(
            "add habit",
            self.store.write(self.doc_path(habit.id), habit.to_fields(self.encrypt(habit.name))),
        )
        return habit if saved else None

    async def update_habit(
        self,
        habit_id: str,
        name: str | None = None,
        habit_type: HabitType | str | None = None,
        target=None,
        unit: str | None = None,
        frequency: Iterable[int] | None = None,
    ) -> bool:
        changes = {}
        fields = {}
        if name is not None:
            clean_name = _clean_name(name)
            if not clean_name:
                return False
            changes["name"] = clean_name
            fields["name"] = self.encrypt(clean_name)
        if habit_type is not None:
            try:
                changes["type"] = HabitType(habit_type)
            except ValueError:
                return False
            fields["type"] = changes["type"].value
        if target is not None:
            clean_target = _clean_target(target)
            if clean_target is None:
                return False
            changes["target"] = fields["target"] = clean_target
        if unit is not None:
            changes["unit"] = fields["unit"] = str(unit).strip()
        if frequency is not None:
            days = _clean_frequency(frequency)
            if days is None:
                return False
            changes["frequency"] = days
            fields["frequency"] = sorted(days)
        if not fields:
            return False
        self._replace(habit_id, **changes)
        return await self.guarded("update habit", self.store.write(self.doc_path(habit_id), fields, merge=True))

    async def set_paused(self, habit_id: str, paused: bool) -> bool:
        self._replace(habit_id, paused=bool(paused))
        return await self.guarded(
            "pause habit", self.store.write(self.doc_path(habit_id), {"paused": bool(paused)}, merge=True)
        )

    async def delete_habit(self, habit_id: str) -> bool:
        # Logs stay behind as history.
        self._patch(lambda items: [h for h in items if h.id != habit_id])
        return await self.guarded("delete habit", self.store.delete(self.doc_path(habit_id)))

    def _replace(self, habit_id: str, **changes) -> None:
        self._patch(lambda items: [replace(h, **changes) if h.id == habit_id else h for h in items])

    # -- progress -----------------------------------------------------------

    async def log_progress(self, habit_id: str, value, day: date | None = None) -> Optional[float]:
        habit = self.find(habit_id)
        if habit is not None and habit.paused:
            logger.debug("Ignoring log for paused habit %s", habit_id)
            return None
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
            return None
        day = day or self.day
        day_key = date_string(day)
        log = HabitLog(habit_id=habit_id, date=day_key, value=value, updated_at=self.clock.now())
        if day == self.day:
            self._day_logs[habit_id] = value
        if self.log_range is not None and self.log_range[0] <= day <= self.log_range[1]:
            self._range_logs.setdefault(habit_id, {})[day_key] = value
        saved = await self.guarded(
            "log habit",
            self.store.write(join_path(self.logs_path, log.doc_id), log.to_fields(), merge=True),
        )
        return value if saved else None

    def _habit_type(self, habit_id: str) -> HabitType:
        habit = self.find(habit_id)
        return habit.type if habit is not None else HabitType.COUNT

    async def increment(self, habit_id: str, day: date | None = None) -> Optional[float]:
        current = self.value_for(habit_id, day)
        return await self.log_progress(habit_id, habit_progress.increment(current, self._habit_type(habit_id)), day)

    async def decrement(self, habit_id: str, day: date | None = None) -> Optional[float]:
        current = self.value_for(habit_id, day)
        return await self.log_progress(habit_id, habit_progress.decrement(current, self._habit_type(habit_id)), day)

    async def add_manual(self, habit_id: str, amount, day: date | None = None) -> Optional[float]:
        try:
            value = habit_progress.add_manual(self.value_for(habit_id, day), amount)
        except ValueError as exc:
            logger.debug("Rejected manual amount %r: %s", amount, exc)
            return None
        return await self.log_progress(habit_id, value, day)

    async def reset(self, habit_id: str, day: date | None = None) -> Optional[float]:
        return await self.log_progress(habit_id, 0, day)

    # -- views --------------------------------------------------------------

    def day_view(self, day: date | None = None) -> List[HabitDay]:
        """Habits scheduled on ``day`` (the tracked day by default) with their value and status.

        Days other than the tracked one read from the range logs.
        """
        day = day or self.day
        rows = []
        for habit in habit_progress.scheduled_habits(self.items, day):
            value = self.value_for(habit.id, day)
            rows.append(
                HabitDay(
                    habit=habit,
                    value=value,
                    status=habit_progress.day_status(value, habit.target, habit.type),
                    percent=habit_progress.progress_percent(value, habit.target),
                )
            )
        return rows
