from __future__ import annotations

from datetime import datetime
from typing import Any, Dict

from agenda.clock import SystemClock, local_day
from agenda.preferences import LocalStateFile


class DailyFocus:
    """The one thing to get done today. Kept on the device only; a new day starts blank."""

    SECTION = "focus"

    def __init__(self, local: LocalStateFile, clock: SystemClock) -> None:
        self.local = local
        self.clock = clock

    def _blank(self) -> Dict[str, Any]:
        return {"text": "", "date": self.clock.now().isoformat(), "completed": False}

    def current(self) -> Dict[str, Any]:
        saved = self.local.read(self.SECTION)
        try:
            saved_day = local_day(datetime.fromisoformat(str(saved.get("date"))), self.clock.tz)
        except (TypeError, ValueError):
            return self._blank()
        if saved_day != self.clock.today():
            return self._blank()
        return {
            "text": str(saved.get("text") or ""),
            "date": str(saved.get("date")),
            "completed": bool(saved.get("completed", False)),
        }

    def set_text(self, text: str) -> Dict[str, Any]:
        focus = {**self.current(), "text": str(text or ""), "date": self.clock.now().isoformat()}
        self.local.write(self.SECTION, focus)
        return focus

    def toggle(self) -> Dict[str, Any]:
        focus = self.current()
        focus["completed"] = not focus["completed"]
        self.local.write(self.SECTION, focus)
        return focus
