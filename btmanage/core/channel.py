"""Bounded snapshot channel with non-blocking publish."""

from __future__ import annotations

import asyncio
from collections import deque

from btmanage.core.model import Device

_CLOSED = object()


class SnapshotChannel:
    """Carries full device snapshots from a producer to a single consumer.

    `offer` never blocks: when `maxsize` snapshots are already queued the new
    one is dropped. `close` always gets through, so a consumer waiting in
    `get` is released even when the buffer is full.
    """

    def __init__(self, maxsize: int = 8) -> None:
        if maxsize <= 0:
            raise ValueError("maxsize must be positive")
        self._maxsize = maxsize
        self._items: deque[object] = deque()
        self._pending = 0
        self._closed = False
        self._ready = asyncio.Event()

    @property
    def closed(self) -> bool:
        return self._closed

    def offer(self, snapshot: list[Device]) -> bool:
        if self._closed or self._pending >= self._maxsize:
            return False
        self._items.append(list(snapshot))
        self._pending += 1
        self._ready.set()
        return True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._items.append(_CLOSED)
        self._ready.set()

    def poll(self) -> list[Device] | None:
        """Return the next queued snapshot, or None when nothing is queued."""
        if not self._items or self._items[0] is _CLOSED:
            return None
        return self._take()

    async def get(self) -> list[Device] | None:
        """Wait for the next snapshot; None once the channel is closed and drained."""
        while not self._items:
            self._ready.clear()
            await self._ready.wait()
        if self._items[0] is _CLOSED:
            return None
        return self._take()

    def _take(self) -> list[Device]:
        item = self._items.popleft()
        self._pending -= 1
        return item  # type: ignore[return-value]
