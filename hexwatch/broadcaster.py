"""Fan-out of session snapshots to subscribers."""
from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Awaitable, Callable, Optional

from hexwatch import config
from hexwatch.models import Snapshot
from hexwatch.observability import record_delivery

logger = logging.getLogger("hexwatch.broadcast")

Subscriber = Callable[[Snapshot], Awaitable[None]]


class SnapshotBroadcaster:
    """Owns the latest snapshot and pushes every replacement to subscribers.

    Only ``publish`` replaces the held snapshot, and it does so with a single
    reference assignment on the event loop, so readers never see a partially
    built value. Each push is the complete snapshot; there is no delta protocol.
    """

    def __init__(self, send_timeout: Optional[float] = None):
        self._snapshot = Snapshot.empty()
        self._subscribers: dict[int, Subscriber] = {}
        # Per-subscriber lock: deliveries to one subscriber never overlap, so
        # a replay always lands before any publish that follows it.
        self._send_locks: dict[int, asyncio.Lock] = {}
        self._ids = itertools.count(1)
        self._send_timeout = config.SEND_TIMEOUT_SECONDS if send_timeout is None else send_timeout

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` and immediately replay the held snapshot to it.

        Returns an idempotent unsubscribe handle. A subscriber that fails the
        initial replay is never registered.
        """
        sub_id = next(self._ids)
        self._subscribers[sub_id] = callback
        self._send_locks[sub_id] = asyncio.Lock()
        if not await self._deliver(sub_id, callback, self._snapshot):
            logger.debug("Subscriber %d dropped during initial replay", sub_id)

        def unsubscribe() -> None:
            self._drop(sub_id)

        return unsubscribe

    async def publish(self, snapshot: Snapshot) -> None:
        self._snapshot = snapshot
        targets = list(self._subscribers.items())
        if not targets:
            return
        results = await asyncio.gather(
            *(self._deliver(sub_id, callback, snapshot) for sub_id, callback in targets)
        )
        dropped = results.count(False)
        if dropped:
            logger.info("Dropped %d subscriber(s) after failed delivery", dropped)

    def _drop(self, sub_id: int) -> None:
        self._subscribers.pop(sub_id, None)
        self._send_locks.pop(sub_id, None)

    async def _deliver(self, sub_id: int, callback: Subscriber, snapshot: Snapshot) -> bool:
        lock = self._send_locks.get(sub_id)
        if lock is None:
            return True
        async with lock:
            if sub_id not in self._subscribers:
                # Unsubscribed or dropped while waiting for an earlier send.
                return True
            try:
                if self._send_timeout and self._send_timeout > 0:
                    await asyncio.wait_for(callback(snapshot), timeout=self._send_timeout)
                else:
                    await callback(snapshot)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.debug("Delivery to subscriber %d failed: %r", sub_id, exc)
                self._drop(sub_id)
                record_delivery("dropped")
                return False
        record_delivery("success")
        return True
