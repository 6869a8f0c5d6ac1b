from __future__ import annotations

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from agenda.clock import SystemClock
from agenda.crypto import CryptoAdapter

TZ_NAME = "America/Sao_Paulo"
# A Wednesday.
NOW = datetime(2024, 5, 15, 10, 30, tzinfo=ZoneInfo(TZ_NAME))


class FixedClock(SystemClock):
    def __init__(self, now: datetime = NOW, tz_name: str = TZ_NAME) -> None:
        super().__init__(tz_name)
        self.current = now.astimezone(self.tz)

    def now(self) -> datetime:
        return self.current

    def advance(self, **delta) -> None:
        self.current = self.current + timedelta(**delta)


class FakeHandle:
    def __init__(self, delay, callback, args) -> None:
        self.delay = delay
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        self.callback(*self.args)


class FakeLoop:
    """Stands in for the event loop timers so the undo window can be closed on demand."""

    def __init__(self) -> None:
        self.handles = []

    def call_later(self, delay, callback, *args):
        handle = FakeHandle(delay, callback, args)
        self.handles.append(handle)
        return handle

    @property
    def active(self):
        return [handle for handle in self.handles if not handle.cancelled]

    def fire_all(self) -> None:
        for handle in self.active:
            handle.fire()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def fake_loop():
    return FakeLoop()


@pytest.fixture
def crypto():
    return CryptoAdapter("test-app-secret")
