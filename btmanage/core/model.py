"""Core data models used across selector, orchestrators, backend, and CLI."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Device:
    name: str
    address: str
    type: str = ""
    rssi: int | None = None
    connected: bool = False
    last_connected_at: datetime | None = None


@dataclass(frozen=True)
class SelectionParams:
    name: str = ""
    exact: bool = False
    interactive: bool = False
    is_tty: bool = False
    dry_run: bool = False


@dataclass(frozen=True)
class ConnectParams(SelectionParams):
    pass


@dataclass(frozen=True)
class DisconnectParams(SelectionParams):
    pass


@dataclass(frozen=True)
class PairParams:
    interactive: bool = False
    is_tty: bool = False
    inquiry_duration: int = 60
    pin: str = ""
    wait_connect: int = 10
    max_attempts: int = 3


@dataclass(frozen=True)
class RepairParams(PairParams):
    skip_unpair: bool = False


@dataclass(frozen=True)
class RepairResult:
    from_device: Device
    to_device: Device
