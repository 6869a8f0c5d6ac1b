"""
Tests for preference sync between the device file and users/{uid}, and for the daily focus.
"""
from __future__ import annotations

import asyncio
import json
import os
import tempfile
import threading

from agenda.focus import DailyFocus
from agenda.preferences import DEFAULT_PREFERENCES, LocalStateFile, PreferencesSync
from agenda.store.memory import MemoryDocumentStore


def _local_file():
    directory = tempfile.mkdtemp()
    return LocalStateFile(os.path.join(directory, "state.json"))


def test_defaults_when_nothing_is_stored():
    prefs = PreferencesSync(_local_file(), MemoryDocumentStore(), "alice")
    assert prefs.preferences == DEFAULT_PREFERENCES


def test_login_pushes_local_values_when_remote_is_empty():
    async def run():
        store = MemoryDocumentStore()
        local = _local_file()
        local.write("preferences", {"theme": "dark"})
        prefs = PreferencesSync(local, store, "alice")
        result = await prefs.sync_on_login()
        assert result["theme"] == "dark"
        doc = await store.get("users/alice")
        assert doc.data["preferences"]["theme"] == "dark"

    asyncio.run(run())


def test_login_prefers_remote_values():
    async def run():
        store = MemoryDocumentStore()
        await store.write("users/alice", {"preferences": {"startOfWeek": "sunday", "theme": "neon"}, "name": "A"})
        local = _local_file()
        local.write("preferences", {"startOfWeek": "monday", "theme": "dark"})
        prefs = PreferencesSync(local, store, "alice")
        result = await prefs.sync_on_login()
        assert result["startOfWeek"] == "sunday"
        # Unknown values from the remote copy are ignored.
        assert result["theme"] == "dark"
        assert local.read("preferences")["startOfWeek"] == "sunday"

    asyncio.run(run())


def test_update_writes_both_copies_and_keeps_other_user_fields():
    async def run():
        store = MemoryDocumentStore()
        await store.write("users/alice", {"name": "Alice"})
        local = _local_file()
        prefs = PreferencesSync(local, store, "alice")
        result = await prefs.update(language="en", theme="dark", bogus="x")
        assert result == {"startOfWeek": "monday", "theme": "dark", "language": "en"}
        doc = await store.get("users/alice")
        assert doc.data["name"] == "Alice"
        assert doc.data["preferences"] == result
        with open(local.path, encoding="utf-8") as handle:
            assert json.load(handle)["preferences"] == result

    asyncio.run(run())


def test_without_user_only_the_device_copy_changes():
    async def run():
        store = MemoryDocumentStore()
        prefs = PreferencesSync(_local_file(), store, None)
        await prefs.sync_on_login()
        await prefs.update(theme="dark")
        assert prefs.preferences["theme"] == "dark"
        assert await store.get("users/alice") is None

    asyncio.run(run())


def test_unreadable_local_file_falls_back_to_defaults():
    local = _local_file()
    with open(local.path, "w", encoding="utf-8") as handle:
        handle.write("{not json")
    assert PreferencesSync(local, MemoryDocumentStore(), "alice").preferences == DEFAULT_PREFERENCES


def test_focus_persists_for_the_day_and_resets_next_day(clock):
    local = _local_file()
    focus = DailyFocus(local, clock)
    assert focus.current()["text"] == ""

    focus.set_text("Finish the report")
    assert focus.toggle()["completed"] is True
    assert DailyFocus(local, clock).current() == {
        "text": "Finish the report",
        "date": clock.now().isoformat(),
        "completed": True,
    }

    clock.advance(days=1)
    assert focus.current() == {"text": "", "date": clock.now().isoformat(), "completed": False}


def test_focus_and_preferences_share_the_file(clock):
    async def run():
        local = _local_file()
        DailyFocus(local, clock).set_text("Ship it")
        prefs = PreferencesSync(local, MemoryDocumentStore(), "alice")
        await prefs.update(theme="dark")
        assert DailyFocus(local, clock).current()["text"] == "Ship it"

    asyncio.run(run())


class ThreadRecordingFile(LocalStateFile):
    def __init__(self, path):
        super().__init__(path)
        self.writer_threads = []

    def write(self, section, data):
        self.writer_threads.append(threading.get_ident())
        super().write(section, data)


def test_device_file_is_written_off_the_event_loop():
    async def run():
        directory = tempfile.mkdtemp()
        local = ThreadRecordingFile(os.path.join(directory, "state.json"))
        prefs = PreferencesSync(local, MemoryDocumentStore(), "alice")
        loop_thread = threading.get_ident()
        await prefs.update(theme="dark")
        assert local.writer_threads
        assert loop_thread not in local.writer_threads
        assert local.read("preferences")["theme"] == "dark"

    asyncio.run(run())


def test_concurrent_section_writes_keep_both_sections(clock):
    """Focus and preference saves from worker threads never drop each other's section."""
    async def run():
        local = _local_file()
        focus = DailyFocus(local, clock)
        prefs = PreferencesSync(local, MemoryDocumentStore())
        for index in range(10):
            await asyncio.gather(
                asyncio.to_thread(focus.set_text, f"step {index}"),
                prefs.update(theme="dark" if index % 2 else "light"),
            )
            assert local.read("focus")["text"] == f"step {index}"
            assert local.read("preferences")["theme"] == ("dark" if index % 2 else "light")

    asyncio.run(run())
