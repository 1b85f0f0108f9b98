"""Service layer used by the CLI and the public client."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from btmanage.backends.blueutil import BlueutilClient
from btmanage.core.config import Settings, load_settings
from btmanage.core.device_match import sort_by_recent
from btmanage.core.errors import BackendError
from btmanage.core.model import ConnectParams, Device, DisconnectParams, PairParams, RepairParams, RepairResult
from btmanage.core.pairing import Pairer, Repairer
from btmanage.core.ports import BluetoothPort, PickerPort
from btmanage.core.selector import Connector, Disconnector

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class BtService:
    def __init__(
        self,
        *,
        bluetooth: BluetoothPort | None = None,
        picker: PickerPort | None = None,
        settings: Settings | None = None,
        progress: Callable[[str], None] | None = None,
    ) -> None:
        if settings is None:
            loaded = load_settings()
            LOGGER.debug("settings loaded from %s", loaded.source or "defaults")
            self.settings = loaded.settings
            self.load_warnings = loaded.warnings
        else:
            self.settings = settings
            self.load_warnings = ()
        self.bluetooth = bluetooth or BlueutilClient(binary=self.settings.blueutil_path)
        self.picker = picker
        self.progress = progress

    async def list_devices(self, *, connected: bool | None = None) -> list[Device]:
        devices = sort_by_recent(await self.bluetooth.list())
        if connected is None:
            return devices
        return [d for d in devices if d.connected == connected]

    async def connect(self, params: ConnectParams) -> Device:
        connector = Connector(self.bluetooth, self.picker, action_timeout_s=self.settings.action_timeout_s)
        return await _bounded(
            connector.connect_by_name_or_interactive(params), self._selection_timeout(params.is_tty), "connect"
        )

    async def disconnect(self, params: DisconnectParams) -> Device:
        disconnector = Disconnector(self.bluetooth, self.picker, action_timeout_s=self.settings.action_timeout_s)
        return await _bounded(
            disconnector.disconnect_by_name_or_interactive(params), self._selection_timeout(params.is_tty), "disconnect"
        )

    async def connect_many(self, params: ConnectParams) -> list[Device]:
        connector = Connector(self.bluetooth, self.picker, action_timeout_s=self.settings.action_timeout_s)
        return await connector.connect_many(params)

    async def disconnect_many(self, params: DisconnectParams) -> list[Device]:
        disconnector = Disconnector(self.bluetooth, self.picker, action_timeout_s=self.settings.action_timeout_s)
        return await disconnector.disconnect_many(params)

    async def pair(self, params: PairParams) -> Device:
        pairer = Pairer(self.bluetooth, self.picker, self.progress)
        return await _bounded(pairer.pair(params), self.settings.pairing_timeout_s, "pair")

    async def repair(self, params: RepairParams) -> RepairResult:
        repairer = Repairer(self.bluetooth, self.picker, self.progress, timeout_s=self.settings.pairing_timeout_s)
        return await repairer.repair(params)

    def _selection_timeout(self, is_tty: bool) -> float | None:
        # Picker sessions are not time-boxed.
        if is_tty and self.picker is not None:
            return None
        return self.settings.action_timeout_s


async def _bounded(work: Awaitable[T], timeout: float | None, what: str) -> T:
    try:
        return await asyncio.wait_for(work, timeout=timeout)
    except asyncio.TimeoutError as exc:
        if timeout is None:
            raise
        raise BackendError(f"{what} timed out after {timeout:g}s") from exc
