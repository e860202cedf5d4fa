"""File watcher service using watchfiles.

Turns filesystem notifications under the projects root into debounced
rescans and hands each resulting snapshot to the broadcaster.
"""
from __future__ import annotations

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Iterable, Optional

from watchfiles import Change, awatch

from hexwatch import config
from hexwatch.broadcaster import SnapshotBroadcaster
from hexwatch.scanner import SessionScanner

logger = logging.getLogger("hexwatch.watcher")


class WatcherState(str, Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    SCANNING = "scanning"


class WatcherStartError(RuntimeError):
    """The projects root could not be observed."""


class SessionWatcher:
    """Debounced rescan loop.

    IDLE -> DEBOUNCING on a matching change; further matching changes restart
    the debounce timer. When the timer fires the watcher enters SCANNING and
    runs exactly one scan. Matching changes seen while SCANNING only set
    ``_pending_rescan``, which buys one more debounce cycle once the scan
    returns, so at most one scan is in flight and at most one is queued.
    """

    def __init__(
        self,
        scanner: SessionScanner,
        broadcaster: SnapshotBroadcaster,
        *,
        debounce_ms: Optional[int] = None,
        step_ms: Optional[int] = None,
        suffix: Optional[str] = None,
        watch_fn: Callable[..., Any] = awatch,
    ):
        self._scanner = scanner
        self._broadcaster = broadcaster
        self._debounce_seconds = (config.DEBOUNCE_MS if debounce_ms is None else debounce_ms) / 1000.0
        self._step_ms = config.WATCH_STEP_MS if step_ms is None else step_ms
        self._suffix = suffix or config.SESSION_SUFFIX
        self._watch_fn = watch_fn

        self._state = WatcherState.IDLE
        self._pending_rescan = False
        self._running = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._watch_task: Optional[asyncio.Task] = None
        self._scan_task: Optional[asyncio.Task] = None
        self.scan_count = 0

    @property
    def state(self) -> WatcherState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> Callable[[], Awaitable[None]]:
        """Start watching and schedule the initial scan.

        Returns the stop handle. Raises ``WatcherStartError`` if the projects
        root is not a directory that can be watched.
        """
        if self._running:
            logger.warning("File watcher already running")
            return self.stop

        root = Path(self._scanner.root)
        if not root.is_dir():
            raise WatcherStartError(f"Cannot watch {root}: not a directory")

        self._loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()
        self._running = True
        self._watch_task = asyncio.create_task(self._watch_loop(root))
        self._arm_debounce()
        logger.info(f"File watcher started for {root}")
        return self.stop

    async def stop(self) -> None:
        """Stop watching.

        Cancels the pending debounce timer and closes the observation. A scan
        already in flight is allowed to finish but its result is discarded.
        """
        if not self._running and self._watch_task is None and self._scan_task is None:
            return
        self._halt()

        if self._stop_event is not None:
            self._stop_event.set()
        if self._watch_task is not None:
            self._watch_task.cancel()
            try:
                await self._watch_task
            except asyncio.CancelledError:
                pass
            self._watch_task = None

        if self._scan_task is not None:
            await asyncio.gather(self._scan_task, return_exceptions=True)
        self._state = WatcherState.IDLE
        logger.info("File watcher stopped")

    def _halt(self) -> None:
        self._running = False
        self._pending_rescan = False
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._state is WatcherState.DEBOUNCING:
            self._state = WatcherState.IDLE

    def handle_changes(self, changes: Iterable[tuple[Change, str]]) -> bool:
        """Feed a batch of raw watchfiles changes; returns True if any matched."""
        if not self._running:
            return False
        matching = [path for _, path in changes if path.endswith(self._suffix)]
        if not matching:
            return False
        logger.debug("Detected %d session file changes", len(matching))
        self._notify()
        return True

    def _notify(self) -> None:
        if self._state is WatcherState.SCANNING:
            self._pending_rescan = True
            return
        self._arm_debounce()

    def _arm_debounce(self) -> None:
        if self._loop is None:
            raise RuntimeError("File watcher has not been started")
        if self._timer is not None:
            self._timer.cancel()
        self._state = WatcherState.DEBOUNCING
        self._timer = self._loop.call_later(self._debounce_seconds, self._on_debounce_elapsed)

    def _on_debounce_elapsed(self) -> None:
        self._timer = None
        if not self._running:
            self._state = WatcherState.IDLE
            return
        self._state = WatcherState.SCANNING
        self._scan_task = asyncio.ensure_future(self._run_scan())

    async def _run_scan(self) -> None:
        try:
            snapshot = await asyncio.to_thread(self._scanner.scan)
            self.scan_count += 1
            if self._running:
                logger.info(f"Found {len(snapshot.sessions)} sessions")
                await self._broadcaster.publish(snapshot)
        except Exception:
            logger.exception("Session scan failed")
        finally:
            self._scan_task = None
            self._state = WatcherState.IDLE
            rescan = self._pending_rescan and self._running
            self._pending_rescan = False
            if rescan:
                self._arm_debounce()

    async def _watch_loop(self, root: Path) -> None:
        """Main watching loop."""
        try:
            async for changes in self._watch_fn(
                root,
                stop_event=self._stop_event,
                debounce=self._step_ms,
                step=self._step_ms,
                recursive=True,
            ):
                if not self._running:
                    break
                self.handle_changes(changes)
            if self._running:
                logger.warning("File watcher ended unexpectedly")
                self._halt()
        except asyncio.CancelledError:
            logger.info("File watcher task cancelled")
            raise
        except Exception as e:
            logger.error(f"File watcher error: {e}")
            self._halt()
