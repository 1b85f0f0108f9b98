"""Pair and repair workflows built on discovery and retry-verify."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from btmanage.core.discovery import ProgressSink, pick_by_inquiry_stream
from btmanage.core.errors import BackendError, BtManageError, DeviceNotFoundError, PreconditionError, RepairError
from btmanage.core.model import Device, PairParams, RepairParams, RepairResult
from btmanage.core.ports import BluetoothPort, PickerPort
from btmanage.core.retry import connect_with_retry_verify

LOGGER = logging.getLogger(__name__)


def _ensure_interactive(command: str, interactive: bool, is_tty: bool, picker: PickerPort | None) -> PickerPort:
    if not interactive:
        raise PreconditionError(f"{command} requires --interactive (TTY only)")
    if not is_tty:
        raise PreconditionError(f"{command} requires a TTY")
    if picker is None:
        raise PreconditionError(f"{command} requires a picker")
    return picker


class Pairer:
    def __init__(
        self,
        bluetooth: BluetoothPort,
        picker: PickerPort | None = None,
        progress: Callable[[str], None] | None = None,
    ) -> None:
        self.bluetooth = bluetooth
        self.picker = picker
        self.progress = progress

    async def pair_picked_and_connect(self, picked: Device, params: PairParams) -> Device:
        if not picked.address.strip():
            raise BtManageError("selected device has empty address")
        LOGGER.info("pairing %s (%s)", picked.name, picked.address)
        await self.bluetooth.pair(picked.address, params.pin)
        await connect_with_retry_verify(
            self.bluetooth,
            picked.address,
            params.wait_connect,
            params.max_attempts,
            self.progress,
        )
        return picked

    async def pair(self, params: PairParams) -> Device:
        """inquiry (streaming pick) -> pair -> connect with wait/retry."""
        picker = _ensure_interactive("pair", params.interactive, params.is_tty, self.picker)

        picked = await pick_by_inquiry_stream(
            self.bluetooth,
            picker,
            "Pair: select device",
            params.inquiry_duration,
            ProgressSink(self.progress),
        )
        return await self.pair_picked_and_connect(picked, params)


class Repairer:
    def __init__(
        self,
        bluetooth: BluetoothPort,
        picker: PickerPort | None = None,
        progress: Callable[[str], None] | None = None,
        *,
        timeout_s: float | None = None,
    ) -> None:
        self.bluetooth = bluetooth
        self.picker = picker
        self.progress = progress
        self.timeout_s = timeout_s

    def _remaining(self, deadline: float | None) -> float | None:
        if deadline is None:
            return None
        return max(0.0, deadline - time.monotonic())

    def _timed_out(self) -> BackendError:
        return BackendError(f"repair timed out after {self.timeout_s:g}s")

    async def repair(self, params: RepairParams) -> RepairResult:
        """select paired device -> unpair -> inquiry -> pair -> connect.

        Failures after the paired device was chosen raise RepairError, which
        keeps that device in `from_device`. `timeout_s` bounds the whole
        workflow; running out after the pick is such a failure too.
        """
        picker = _ensure_interactive("repair", params.interactive, params.is_tty, self.picker)
        deadline = None if self.timeout_s is None else time.monotonic() + self.timeout_s

        try:
            from_device = await asyncio.wait_for(self._pick_paired(picker), timeout=self._remaining(deadline))
        except asyncio.TimeoutError as exc:
            raise self._timed_out() from exc

        try:
            to_device = await asyncio.wait_for(
                self._replace(picker, from_device, params), timeout=self._remaining(deadline)
            )
        except asyncio.TimeoutError as exc:
            raise RepairError(from_device, self._timed_out()) from exc
        except (BtManageError, OSError) as exc:
            raise RepairError(from_device, exc) from exc

        return RepairResult(from_device=from_device, to_device=to_device)

    async def _pick_paired(self, picker: PickerPort) -> Device:
        paired = await self.bluetooth.list()
        if not paired:
            raise DeviceNotFoundError("")
        return await picker.pick_one("Repair: select paired device to remove", paired)

    async def _replace(self, picker: PickerPort, from_device: Device, params: RepairParams) -> Device:
        if not params.skip_unpair:
            LOGGER.info("unpairing %s (%s)", from_device.name, from_device.address)
            await self.bluetooth.unpair(from_device.address)

        picked = await pick_by_inquiry_stream(
            self.bluetooth,
            picker,
            "Repair: select device to pair",
            params.inquiry_duration,
            ProgressSink(self.progress),
        )
        pairer = Pairer(self.bluetooth, picker, self.progress)
        return await pairer.pair_picked_and_connect(picked, params)
