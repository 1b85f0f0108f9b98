"""Resolve a target device by name or picker, then connect or disconnect it."""

from __future__ import annotations

import asyncio
import logging

from btmanage.core.device_match import find_by_name
from btmanage.core.errors import (
    AmbiguousDeviceError,
    BatchActionError,
    DeviceNotFoundError,
    PreconditionError,
)
from btmanage.core.model import ConnectParams, Device, DisconnectParams, SelectionParams
from btmanage.core.ports import BluetoothPort, PickerPort

LOGGER = logging.getLogger(__name__)

DEFAULT_ACTION_TIMEOUT_S = 10.0


class _Selector:
    title = ""
    action = ""

    def __init__(
        self,
        bluetooth: BluetoothPort,
        picker: PickerPort | None = None,
        *,
        action_timeout_s: float = DEFAULT_ACTION_TIMEOUT_S,
    ) -> None:
        self.bluetooth = bluetooth
        self.picker = picker
        self.action_timeout_s = action_timeout_s

    async def _act(self, address: str) -> None:
        raise NotImplementedError

    async def _resolve(self, devices: list[Device], params: SelectionParams) -> Device:
        if not params.name:
            if not (params.interactive and params.is_tty and self.picker is not None):
                raise DeviceNotFoundError("")
            return await self.picker.pick_one(self.title, devices)

        matches = find_by_name(devices, params.name, params.exact)
        LOGGER.debug("%s: %d device(s) match %r", self.action, len(matches), params.name)

        if not matches:
            raise DeviceNotFoundError(params.name)

        if len(matches) == 1:
            if not params.interactive:
                return matches[0]
            # Interactive mode still confirms a single match through the picker.
            if not params.is_tty:
                raise PreconditionError("interactive mode requires a TTY")
            if self.picker is None:
                raise DeviceNotFoundError(params.name)
            return await self.picker.pick_one(self.title, matches)

        if not params.is_tty or self.picker is None:
            raise AmbiguousDeviceError(params.name, len(matches))
        return await self.picker.pick_one(self.title, matches)

    async def resolve_and_act(self, params: SelectionParams) -> Device:
        devices = await self.bluetooth.list()
        selected = await self._resolve(devices, params)
        if params.dry_run:
            LOGGER.debug("%s: dry-run, resolved %s (%s)", self.action, selected.name, selected.address)
            return selected
        await self._act(selected.address)
        return selected

    async def act_many(self, params: SelectionParams) -> list[Device]:
        """Multi-select devices and run the action on all of them concurrently."""
        if not (params.is_tty and self.picker is not None):
            raise PreconditionError("multi-select requires a TTY")

        devices = await self.bluetooth.list()
        selected = await self.picker.pick_many(self.title, devices)
        if params.dry_run:
            return selected

        lock = asyncio.Lock()
        failures: list[tuple[Device, BaseException]] = []

        async def _run(device: Device) -> None:
            try:
                await asyncio.wait_for(self._act(device.address), timeout=self.action_timeout_s)
            except asyncio.TimeoutError:
                error: BaseException = TimeoutError(f"{self.action} timed out after {self.action_timeout_s:g}s")
            except Exception as exc:
                error = exc
            else:
                LOGGER.info("%s ok: %s (%s)", self.action, device.name, device.address)
                return
            LOGGER.warning("%s failed: %s (%s): %s", self.action, device.name, device.address, error)
            async with lock:
                failures.append((device, error))

        await asyncio.gather(*(_run(d) for d in selected))

        if failures:
            order = {d.address: i for i, d in enumerate(selected)}
            failures.sort(key=lambda item: order.get(item[0].address, len(order)))
            raise BatchActionError(self.action, failures, selected)
        return selected


class Connector(_Selector):
    title = "Connect"
    action = "connect"

    async def _act(self, address: str) -> None:
        await self.bluetooth.connect(address)

    async def connect_by_name_or_interactive(self, params: ConnectParams) -> Device:
        return await self.resolve_and_act(params)

    async def connect_many(self, params: ConnectParams) -> list[Device]:
        return await self.act_many(params)


class Disconnector(_Selector):
    title = "Disconnect"
    action = "disconnect"

    async def _act(self, address: str) -> None:
        await self.bluetooth.disconnect(address)

    async def disconnect_by_name_or_interactive(self, params: DisconnectParams) -> Device:
        return await self.resolve_and_act(params)

    async def disconnect_many(self, params: DisconnectParams) -> list[Device]:
        return await self.act_many(params)
