"""Stable public API for building tooling on top of bt-manage.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from btmanage.core.config import Settings
from btmanage.core.errors import (
    AmbiguousDeviceError,
    BackendError,
    BatchActionError,
    BtManageError,
    ConfigError,
    DependencyMissingError,
    DeviceNotFoundError,
    PreconditionError,
    RepairError,
    SelectionCanceledError,
)
from btmanage.core.model import (
    ConnectParams,
    Device,
    DisconnectParams,
    PairParams,
    RepairParams,
    RepairResult,
)
from btmanage.core.ports import BluetoothPort, PickerPort
from btmanage.core.service import BtService

__all__ = [
    "AmbiguousDeviceError",
    "BackendError",
    "BatchActionError",
    "BtManageError",
    "ConfigError",
    "DependencyMissingError",
    "DeviceNotFoundError",
    "PreconditionError",
    "RepairError",
    "SelectionCanceledError",
    "ConnectParams",
    "Device",
    "DisconnectParams",
    "PairParams",
    "RepairParams",
    "RepairResult",
    "BluetoothPort",
    "PickerPort",
    "Settings",
    "Client",
]


class Client:
    """Blocking client for the bt-manage core.

    A `Client` wraps device listing, name/picker resolution, batch actions,
    and the pair/repair workflows behind a synchronous API for scripts and
    other front ends. Each call runs its own event loop.
    """

    def __init__(
        self,
        *,
        bluetooth: BluetoothPort | None = None,
        picker: PickerPort | None = None,
        settings: Settings | None = None,
        progress: Callable[[str], None] | None = None,
    ) -> None:
        self._service = BtService(bluetooth=bluetooth, picker=picker, settings=settings, progress=progress)

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self._service.load_warnings

    @property
    def settings(self) -> Settings:
        return self._service.settings

    def list_devices(self, *, connected: bool | None = None) -> list[Device]:
        return asyncio.run(self._service.list_devices(connected=connected))

    def connect(self, params: ConnectParams) -> Device:
        return asyncio.run(self._service.connect(params))

    def disconnect(self, params: DisconnectParams) -> Device:
        return asyncio.run(self._service.disconnect(params))

    def connect_many(self, params: ConnectParams) -> list[Device]:
        return asyncio.run(self._service.connect_many(params))

    def disconnect_many(self, params: DisconnectParams) -> list[Device]:
        return asyncio.run(self._service.disconnect_many(params))

    def pair(self, params: PairParams) -> Device:
        return asyncio.run(self._service.pair(params))

    def repair(self, params: RepairParams) -> RepairResult:
        return asyncio.run(self._service.repair(params))
