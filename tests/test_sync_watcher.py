"""Tests for sync/watcher.py -- debounced folder watching.

The engine-level tests fire change callbacks through
``RecordingLocalStore.watchers``; the controller-level tests drive a
``WatchController`` directly with a fake store and sync callback.
"""

from __future__ import annotations

import asyncio
import logging

from conftest import RecordingLocalStore, read_tree, write_tree
from folder_sync.sync.models import SyncDirection
from folder_sync.sync.watcher import WATCH_SYNC_OPTIONS, WatchController

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class FakeWatchStore:
    """Store stand-in that only supports watch()."""

    def __init__(self) -> None:
        self.callback = None
        self.unsubscribed = False

    def watch(self, path, on_change):
        self.callback = on_change

        def unsubscribe():
            self.unsubscribed = True

        return unsubscribe


class FakeArchive:
    def __init__(self, key: str = "k") -> None:
        self.key = key


# ---------------------------------------------------------------------------
# Engine integration
# ---------------------------------------------------------------------------


class TestWatchTriggeredSync:
    """Folder changes flowing through link_folder's watcher."""

    async def test_burst_of_changes_triggers_one_sync(
        self, engine, folder, make_archive
    ):
        archive = make_archive(linked=False)
        await engine.link_folder(archive, str(folder))
        events = []
        engine.add_listener(events.append)

        on_change = RecordingLocalStore.watchers[str(folder.resolve())]
        write_tree(folder, {"/a.txt": "a", "/d/b.txt": "b"})
        for _ in range(5):
            on_change("/a.txt")
            await asyncio.sleep(0.01)
        await asyncio.sleep(0.3)

        assert [e.direction for e in events] == [SyncDirection.ARCHIVE]
        assert archive.store.files() == {"/a.txt": "a", "/d/b.txt": "b"}

    async def test_pull_skipped_while_watch_sync_pending(
        self, engine, folder, make_archive, caplog
    ):
        archive = make_archive(linked=False)
        await engine.link_folder(archive, str(folder))
        archive.store.write_file("/remote.txt", b"r")

        engine.watcher.notify(archive.key, "/x")
        assert engine.watcher.is_pending(archive.key)

        with caplog.at_level(logging.INFO, logger="folder_sync.sync.engine"):
            await engine.sync_archive_to_folder(archive)

        assert "/remote.txt" not in read_tree(folder)
        assert "folder sync pending" in caplog.text

    async def test_unlink_cancels_pending_sync(
        self, engine, folder, make_archive
    ):
        archive = make_archive(linked=False)
        await engine.link_folder(archive, str(folder))
        events = []
        engine.add_listener(events.append)

        write_tree(folder, {"/a.txt": "a"})
        engine.watcher.notify(archive.key, "/a.txt")
        engine.unlink_folder(archive)
        await asyncio.sleep(0.2)

        assert events == []
        assert archive.store.files() == {}

    async def test_watch_sync_failure_is_logged(
        self, engine, folder, make_archive, caplog
    ):
        archive = make_archive(linked=False)
        await engine.link_folder(archive, str(folder))
        # the archive owner gave up write access after linking
        archive.store.writable = False

        with caplog.at_level(logging.ERROR, logger="folder_sync.sync.watcher"):
            engine.watcher.notify(archive.key, "/a.txt")
            await asyncio.sleep(0.2)

        assert "Watch-triggered sync failed" in caplog.text
        assert not engine.watcher.is_pending(archive.key)


# ---------------------------------------------------------------------------
# WatchController
# ---------------------------------------------------------------------------


class TestWatchController:
    """Tests for WatchController in isolation."""

    async def test_attach_subscribes_and_detach_unsubscribes(self):
        controller = WatchController(self._noop, delay=0.02)
        store = FakeWatchStore()

        controller.attach(FakeArchive(), store)
        assert store.callback is not None
        assert "k" in controller.sessions

        controller.detach("k")
        assert store.unsubscribed
        assert controller.sessions == {}

    async def test_attach_replaces_existing_session(self):
        controller = WatchController(self._noop, delay=0.02)
        first, second = FakeWatchStore(), FakeWatchStore()

        controller.attach(FakeArchive(), first)
        controller.attach(FakeArchive(), second)

        assert first.unsubscribed
        assert not second.unsubscribed
        await controller.close()

    async def test_callback_from_other_thread_is_debounced(self):
        calls = []

        async def on_fire(archive, options):
            calls.append(options)

        controller = WatchController(on_fire, delay=0.02)
        store = FakeWatchStore()
        controller.attach(FakeArchive(), store)

        await asyncio.to_thread(store.callback, "/a")
        await asyncio.to_thread(store.callback, "/b")
        await asyncio.sleep(0.2)

        assert calls == [WATCH_SYNC_OPTIONS]
        assert calls[0].shallow is False
        await controller.close()

    async def test_notify_for_unknown_archive_ignored(self):
        controller = WatchController(self._noop, delay=0.02)
        controller.notify("missing", "/a")
        assert not controller.is_pending("missing")

    async def test_fire_during_running_sync_queues_one_rerun(self):
        started = asyncio.Event()
        release = asyncio.Event()
        calls = []

        async def on_fire(archive, options):
            calls.append(archive.key)
            started.set()
            await release.wait()

        controller = WatchController(on_fire, delay=0.01)
        controller.attach(FakeArchive(), FakeWatchStore())

        controller.notify("k", "/a")
        await asyncio.wait_for(started.wait(), 1)
        # two more bursts while the first sync is still running
        controller.notify("k", "/b")
        await asyncio.sleep(0.05)
        controller.notify("k", "/c")
        await asyncio.sleep(0.05)
        assert calls == ["k"]
        assert controller.is_pending("k")

        release.set()
        await asyncio.sleep(0.05)

        assert calls == ["k", "k"]
        assert not controller.is_pending("k")
        await controller.close()

    async def test_close_waits_for_running_sync(self):
        finished = []

        async def on_fire(archive, options):
            await asyncio.sleep(0.05)
            finished.append(archive.key)

        controller = WatchController(on_fire, delay=0.01)
        controller.attach(FakeArchive(), FakeWatchStore())
        controller.notify("k", "/a")
        await asyncio.sleep(0.03)

        await controller.close()

        assert finished == ["k"]
        assert controller.sessions == {}

    @staticmethod
    async def _noop(archive, options):
        return None
