"""Domain-specific errors for bt-manage."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from btmanage.core.model import Device


class BtManageError(Exception):
    """Base error for bt-manage."""


class ConfigError(BtManageError):
    """Raised when the configuration file cannot be read or validated."""


class PreconditionError(BtManageError):
    """Raised when a local precondition (TTY, picker, flags) is not met."""


class DeviceNotFoundError(BtManageError):
    """Raised when no device matches a query or no picker is usable."""

    def __init__(self, query: str = "") -> None:
        self.query = query
        if query:
            super().__init__(f"device not found: {query}")
        else:
            super().__init__("device not found")


class AmbiguousDeviceError(BtManageError):
    """Raised when several devices match and there is no way to disambiguate."""

    def __init__(self, query: str = "", count: int = 0) -> None:
        self.query = query
        self.count = count
        if query:
            super().__init__(f"device selection is ambiguous: {query} ({count} matches)")
        else:
            super().__init__("device selection is ambiguous")


class SelectionCanceledError(BtManageError):
    """Raised when the user dismisses an interactive picker."""

    def __init__(self) -> None:
        super().__init__("canceled")


class DependencyMissingError(BtManageError):
    """Raised when the external device-control tool is unavailable."""

    def __init__(self, dependency: str = "") -> None:
        self.dependency = dependency
        if dependency:
            super().__init__(f"dependency missing: {dependency}")
        else:
            super().__init__("dependency missing")


class BackendError(BtManageError):
    """Raised when a device-control command fails."""


class BatchActionError(BtManageError):
    """Raised when one or more actions of a multi-select batch failed.

    `devices` holds every selected device (successes included) and
    `failures` pairs each failed device with its error.
    """

    def __init__(
        self,
        action: str,
        failures: list[tuple[Device, BaseException]],
        devices: list[Device],
    ) -> None:
        self.action = action
        self.failures = failures
        self.devices = devices
        detail = "; ".join(f"{d.name} ({d.address}): {err}" for d, err in failures)
        super().__init__(f"some {action}s failed: {detail}")


class RepairError(BtManageError):
    """Raised when repair fails after the paired device was selected."""

    def __init__(self, from_device: Device, cause: BaseException, to_device: Device | None = None) -> None:
        self.from_device = from_device
        self.to_device = to_device
        self.cause = cause
        super().__init__(f"repair of {from_device.name} ({from_device.address}) failed: {cause}")
