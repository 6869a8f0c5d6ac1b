from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from agenda.store.base import DocumentStore, join_path

logger = logging.getLogger(__name__)

DEFAULT_PREFERENCES: Dict[str, str] = {
    "startOfWeek": "monday",
    "theme": "light",
    "language": "es",
}

ALLOWED_VALUES = {
    "startOfWeek": {"monday", "sunday"},
    "theme": {"light", "dark"},
}


def clean_preferences(raw: Any) -> Dict[str, str]:
    if not isinstance(raw, dict):
        return {}
    clean = {}
    for key, value in raw.items():
        if key not in DEFAULT_PREFERENCES or value is None:
            continue
        value = str(value).strip()
        allowed = ALLOWED_VALUES.get(key)
        if not value or (allowed is not None and value not in allowed):
            continue
        clean[key] = value
    return clean


class LocalStateFile:
    """Device-local JSON state, one top-level section per concern."""

    def __init__(self, path: str | os.PathLike) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, Any]:
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable local state %s: %s", self.path, exc)
            return {}
        return payload if isinstance(payload, dict) else {}

    def read(self, section: str) -> Dict[str, Any]:
        value = self._load().get(section)
        return dict(value) if isinstance(value, dict) else {}

    def write(self, section: str, data: Dict[str, Any]) -> None:
        # Sections share one file; writers from worker threads must not interleave.
        with self._lock:
            payload = self._load()
            payload[section] = data
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(payload, handle, ensure_ascii=False, indent=2)
                os.replace(tmp_path, self.path)
            except Exception:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise


class PreferencesSync:
    """User preferences kept on the device and under ``users/{uid}``.

    On login the remote copy wins when it exists; otherwise the device values are
    pushed up so the next device starts from them.
    """

    SECTION = "preferences"

    def __init__(self, local: LocalStateFile, store: DocumentStore, user_id: Optional[str] = None) -> None:
        self.local = local
        self.store = store
        self.user_id = user_id
        self._preferences = {**DEFAULT_PREFERENCES, **clean_preferences(local.read(self.SECTION))}

    @property
    def preferences(self) -> Dict[str, str]:
        return dict(self._preferences)

    @property
    def user_path(self) -> str:
        return join_path("users", self.user_id)

    async def _persist_local(self) -> None:
        try:
            await asyncio.to_thread(self.local.write, self.SECTION, dict(self._preferences))
        except OSError as exc:
            logger.error("Error saving local settings: %s", exc)

    async def sync_on_login(self) -> Dict[str, str]:
        if not self.user_id:
            return self.preferences
        try:
            doc = await self.store.get(self.user_path)
            remote = clean_preferences(doc.data.get("preferences")) if doc is not None else {}
            if remote:
                self._preferences = {**self._preferences, **remote}
                await self._persist_local()
            else:
                await self.store.write(self.user_path, {"preferences": self.preferences}, merge=True)
        except Exception as exc:
            logger.exception("Error syncing settings: %s", exc)
        return self.preferences

    async def update(self, **changes) -> Dict[str, str]:
        clean = clean_preferences(changes)
        if not clean:
            return self.preferences
        self._preferences.update(clean)
        await self._persist_local()
        if self.user_id:
            try:
                await self.store.write(self.user_path, {"preferences": self.preferences}, merge=True)
            except Exception as exc:
                logger.exception("Error updating settings: %s", exc)
        return self.preferences
