"""Time-boxed inquiry loop feeding a live-updating picker.

The coordinator scans silently in short inquiry slices until the first
named device shows up, then hands the terminal to the streaming picker and
keeps feeding it full snapshots until the scan window closes. Progress
output goes through `ProgressSink`, which is muted while the picker owns the
terminal.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from btmanage.core.channel import SnapshotChannel
from btmanage.core.errors import BtManageError, DeviceNotFoundError
from btmanage.core.model import Device
from btmanage.core.ports import BluetoothPort, PickerPort

LOGGER = logging.getLogger(__name__)

DEFAULT_INQUIRY_TOTAL_S = 60
INQUIRY_CHUNK_S = 3
SCAN_CHANNEL_SIZE = 8
UI_CHANNEL_SIZE = 16


class ProgressSink:
    """Single gate for coordinator progress messages.

    Only the coordinator task flips `ui_active`; while it is set every
    message is dropped.
    """

    def __init__(self, write: Callable[[str], None] | None = None) -> None:
        self._write = write
        self.ui_active = False

    def __call__(self, message: str) -> None:
        if self.ui_active:
            return
        LOGGER.debug("%s", message.strip())
        if self._write is not None:
            self._write(message)

    def debug(self, message: str, *args: object) -> None:
        """Log-only message, muted like the rest while the picker is open."""
        if not self.ui_active:
            LOGGER.debug(message, *args)


def normalize_inquiry_total(seconds: int) -> int:
    return seconds if seconds > 0 else DEFAULT_INQUIRY_TOTAL_S


def merge_found(seen: dict[str, Device], found: list[Device]) -> bool:
    """Merge `found` into `seen` keyed by address; True if `seen` changed."""
    before = dict(seen)
    for device in found:
        if not device.name.strip() or not device.address.strip():
            continue
        seen[device.address] = device
    return seen != before


async def _scan(
    bluetooth: BluetoothPort,
    updates: SnapshotChannel,
    progress: ProgressSink,
    deadline: float,
    errors: list[BaseException],
) -> None:
    seen: dict[str, Device] = {}
    tick = 0
    try:
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return
            tick += 1
            progress(f"  inquiry tick {tick} (chunk={INQUIRY_CHUNK_S}s)")
            try:
                found = await asyncio.wait_for(bluetooth.inquiry(INQUIRY_CHUNK_S), timeout=remaining)
            except asyncio.TimeoutError:
                return
            except Exception as exc:
                progress(f"  inquiry error: {exc}")
                errors.append(exc)
                return

            if merge_found(seen, found):
                progress(f"  found {len(seen)} device(s)")
                if not updates.offer(list(seen.values())):
                    progress.debug("snapshot dropped, consumer is behind")
            else:
                progress(f"  no new devices ({len(seen)} seen)")
    finally:
        updates.close()


async def _forward(source: SnapshotChannel, target: SnapshotChannel) -> None:
    try:
        while True:
            snapshot = await source.get()
            if snapshot is None:
                return
            target.offer(snapshot)
    finally:
        target.close()


async def _cancel(*tasks: asyncio.Task[None]) -> None:
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


async def pick_by_inquiry_stream(
    bluetooth: BluetoothPort,
    picker: PickerPort,
    title: str,
    total_seconds: int,
    progress: ProgressSink | None = None,
) -> Device:
    """Scan for up to `total_seconds` and let the user pick a discovered device.

    Raises DeviceNotFoundError("no devices found") when nothing with a name
    and address turns up before the deadline; the picker is not opened then.
    An inquiry error before the first device is found is raised as is.
    """
    sink = progress or ProgressSink()
    total = normalize_inquiry_total(total_seconds)
    deadline = time.monotonic() + total

    sink(f"Searching nearby devices (up to {total}s)...")

    updates = SnapshotChannel(SCAN_CHANNEL_SIZE)
    scan_errors: list[BaseException] = []
    scan_task = asyncio.ensure_future(_scan(bluetooth, updates, sink, deadline, scan_errors))

    try:
        try:
            first = await asyncio.wait_for(updates.get(), timeout=max(0.0, deadline - time.monotonic()))
        except asyncio.TimeoutError:
            first = None
        if not first:
            if scan_errors:
                raise scan_errors[0]
            raise DeviceNotFoundError("no devices found")

        ui_updates = SnapshotChannel(UI_CHANNEL_SIZE)
        ui_updates.offer(first)
        forward_task = asyncio.ensure_future(_forward(updates, ui_updates))

        sink.ui_active = True
        try:
            picked = await picker.pick_from_stream(title, ui_updates)
        finally:
            sink.ui_active = False
            await _cancel(forward_task)
    finally:
        await _cancel(scan_task)

    if not picked.address.strip():
        raise BtManageError("selected device has empty address")
    return picked
