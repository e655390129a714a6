"""Debounced folder watching.

Each linked archive gets a ``WatchSession`` holding the store
subscription and the pending debounce timer.  A change notification
cancels any pending timer and schedules a new one; when the folder has
been quiet for ``delay`` seconds the controller runs a deep
folder-to-archive sync.

Bursts of notifications (temp file, rename, metadata touch for a single
save) therefore collapse into one sync.  If the timer fires again while
a sync is still running, one more sync is queued to run after it; at
most one watch-triggered sync per archive runs at any time.

Watch-triggered sync failures are logged, never raised: there is no
caller to report them to.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from folder_sync.sync.models import Archive, SyncOptions
from folder_sync.sync.stores import Unsubscribe

logger = logging.getLogger(__name__)

SyncCallback = Callable[[Archive, SyncOptions], Awaitable[None]]

# Watch events only report the changed path, so the sync must be deep.
WATCH_SYNC_OPTIONS = SyncOptions(shallow=False)


@dataclass
class WatchSession:
    """Watch state for one archive.

    Attributes:
        archive: The archive whose linked folder is watched.
        unsubscribe: Stops the underlying store subscription.
        timer: Pending debounce timer, if any.
        task: The watch-triggered sync currently running, if any.
        rerun: Set when the timer fired while ``task`` was running.
    """

    archive: Archive
    unsubscribe: Unsubscribe | None = None
    timer: asyncio.TimerHandle | None = None
    task: asyncio.Task | None = None
    rerun: bool = False

    @property
    def is_pending(self) -> bool:
        """True while a sync is scheduled, queued, or running."""
        return self.timer is not None or (
            self.task is not None and not self.task.done()
        )


class WatchController:
    """Own the watch sessions of every linked archive.

    Args:
        on_fire: Coroutine function run when a debounce timer fires.
        delay: Quiet period in seconds.
    """

    def __init__(self, on_fire: SyncCallback, delay: float = 1.0) -> None:
        self._on_fire = on_fire
        self.delay = delay
        self._sessions: dict[str, WatchSession] = {}
        self._detached_tasks: set[asyncio.Task] = set()

    @property
    def sessions(self) -> dict[str, WatchSession]:
        return dict(self._sessions)

    def is_pending(self, archive_key: str) -> bool:
        session = self._sessions.get(archive_key)
        return session is not None and session.is_pending

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def attach(self, archive: Archive, store) -> WatchSession:
        """Start watching *store* on behalf of *archive*.

        Must be called from a running event loop; notifications arriving
        on the watcher thread are handed to that loop.  An existing
        session for the archive is detached first.
        """
        self.detach(archive.key)
        loop = asyncio.get_running_loop()
        key = archive.key

        def on_change(changed_path: str) -> None:
            if loop.is_closed():
                return
            try:
                loop.call_soon_threadsafe(self.notify, key, changed_path)
            except RuntimeError:
                logger.debug("Event loop closed, dropping change %s", changed_path)

        session = WatchSession(archive=archive)
        self._sessions[key] = session
        session.unsubscribe = store.watch("/", on_change)
        logger.info("Watching %s for archive %s", store, key)
        return session

    def detach(self, archive_key: str) -> None:
        """Cancel any pending timer and stop watching.

        A sync that is already running is left to finish.
        """
        session = self._sessions.pop(archive_key, None)
        if session is None:
            return
        if session.timer is not None:
            session.timer.cancel()
            session.timer = None
        if session.unsubscribe is not None:
            session.unsubscribe()
            session.unsubscribe = None
        if session.task is not None and not session.task.done():
            self._detached_tasks.add(session.task)
            session.task.add_done_callback(self._detached_tasks.discard)
        logger.info("Stopped watching archive %s", archive_key)

    async def close(self) -> None:
        """Detach every session and wait for running syncs to finish."""
        tasks = [s.task for s in self._sessions.values() if s.task is not None]
        for key in list(self._sessions):
            self.detach(key)
        tasks.extend(self._detached_tasks)
        pending = [t for t in tasks if not t.done()]
        if pending:
            await asyncio.wait(pending)

    # ------------------------------------------------------------------
    # Debounce
    # ------------------------------------------------------------------

    def notify(self, archive_key: str, changed_path: str) -> None:
        """Record a change and (re)start the debounce timer."""
        session = self._sessions.get(archive_key)
        if session is None:
            return
        logger.debug("Change detected in %s: %s", archive_key, changed_path)
        if session.timer is not None:
            session.timer.cancel()
        session.timer = asyncio.get_running_loop().call_later(
            self.delay, self._fire, session
        )

    def _fire(self, session: WatchSession) -> None:
        session.timer = None
        if session.task is not None and not session.task.done():
            session.rerun = True
            return
        session.task = asyncio.get_running_loop().create_task(
            self._run(session)
        )

    async def _run(self, session: WatchSession) -> None:
        key = session.archive.key
        while True:
            session.rerun = False
            logger.debug("Quiet period over, syncing folder to %s", key)
            try:
                await self._on_fire(session.archive, WATCH_SYNC_OPTIONS)
            except Exception:
                logger.exception("Watch-triggered sync failed for %s", key)
            if not session.rerun or self._sessions.get(key) is not session:
                break
