"""Capability interfaces consumed by the core."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from btmanage.core.model import Device

if TYPE_CHECKING:
    from btmanage.core.channel import SnapshotChannel


class BluetoothPort(Protocol):
    async def list(self) -> list[Device]:
        """Return the paired devices."""

    async def connect(self, address: str) -> None: ...

    async def disconnect(self, address: str) -> None: ...

    async def pair(self, address: str, pin: str) -> None: ...

    async def unpair(self, address: str) -> None: ...

    async def inquiry(self, duration_seconds: int) -> list[Device]:
        """Scan nearby devices for the given number of seconds."""

    async def wait_connect(self, address: str, timeout_seconds: int) -> None:
        """Wait until the device becomes connected or the timeout elapses."""

    async def is_connected(self, address: str) -> bool: ...

    async def connected_devices(self) -> list[Device]: ...


class PickerPort(Protocol):
    async def pick_one(self, title: str, devices: list[Device]) -> Device: ...

    async def pick_many(self, title: str, devices: list[Device]) -> list[Device]: ...

    async def pick_from_stream(self, title: str, updates: SnapshotChannel) -> Device:
        """Open the picker at once and refresh it with snapshots from `updates`."""
