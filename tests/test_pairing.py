from __future__ import annotations

import asyncio

import pytest
from fakes import FakeBluetooth, FakePicker

from btmanage.core.config import Settings
from btmanage.core.errors import (
    BackendError,
    DeviceNotFoundError,
    PreconditionError,
    RepairError,
    SelectionCanceledError,
)
from btmanage.core.model import Device, PairParams, RepairParams
from btmanage.core.pairing import Pairer, Repairer
from btmanage.core.service import BtService

OLD = Device(name="Buds", address="AA", connected=True)
NEW = Device(name="Buds", address="AA")
KEYS = Device(name="MX Keys", address="BB")


def _bluetooth() -> FakeBluetooth:
    bluetooth = FakeBluetooth([OLD, KEYS])
    bluetooth.inquiry_batches = [[NEW]]
    bluetooth.is_connected_default = True
    return bluetooth


@pytest.mark.parametrize(
    ("params", "picker", "message"),
    [
        (PairParams(interactive=False, is_tty=True), FakePicker(), "requires --interactive"),
        (PairParams(interactive=True, is_tty=False), FakePicker(), "requires a TTY"),
        (PairParams(interactive=True, is_tty=True), None, "requires a picker"),
    ],
)
def test_pair_preconditions(params: PairParams, picker: FakePicker | None, message: str) -> None:
    bluetooth = _bluetooth()
    with pytest.raises(PreconditionError, match=message):
        asyncio.run(Pairer(bluetooth, picker).pair(params))
    assert bluetooth.inquiry_calls == []


def test_pair_discovers_pairs_and_connects() -> None:
    bluetooth = _bluetooth()
    messages: list[str] = []
    pairer = Pairer(bluetooth, FakePicker(), messages.append)

    device = asyncio.run(pairer.pair(PairParams(interactive=True, is_tty=True, inquiry_duration=5, pin="0000")))

    assert device == NEW
    assert bluetooth.paired == [("AA", "0000")]
    assert bluetooth.connected == ["AA"]
    assert messages[0] == "Searching nearby devices (up to 5s)..."
    assert "  connected confirmed" in messages


def test_pair_failure_is_not_retried() -> None:
    bluetooth = _bluetooth()
    bluetooth.pair_error = BackendError("blueutil: pairing rejected")
    with pytest.raises(BackendError, match="pairing rejected"):
        asyncio.run(Pairer(bluetooth, FakePicker()).pair(PairParams(interactive=True, is_tty=True, inquiry_duration=5)))
    assert bluetooth.connect_calls == []


def test_pair_connect_exhaustion_raises() -> None:
    bluetooth = _bluetooth()
    bluetooth.is_connected_default = False
    params = PairParams(interactive=True, is_tty=True, inquiry_duration=5, wait_connect=0, max_attempts=2)
    with pytest.raises(BackendError, match="not connected"):
        asyncio.run(Pairer(bluetooth, FakePicker()).pair(params))
    assert bluetooth.connect_calls == ["AA", "AA"]


def test_repair_unpairs_then_pairs_discovered_device() -> None:
    bluetooth = _bluetooth()
    picker = FakePicker()
    params = RepairParams(interactive=True, is_tty=True, inquiry_duration=5)

    result = asyncio.run(Repairer(bluetooth, picker).repair(params))

    assert result.from_device == OLD
    assert result.to_device == NEW
    assert bluetooth.unpaired == ["AA"]
    assert bluetooth.paired == [("AA", "")]
    assert picker.titles == ["Repair: select paired device to remove", "Repair: select device to pair"]


def test_repair_skip_unpair() -> None:
    bluetooth = _bluetooth()
    params = RepairParams(interactive=True, is_tty=True, inquiry_duration=5, skip_unpair=True)
    asyncio.run(Repairer(bluetooth, FakePicker()).repair(params))
    assert bluetooth.unpaired == []
    assert bluetooth.paired == [("AA", "")]


def test_repair_discovery_failure_keeps_from_device() -> None:
    bluetooth = _bluetooth()
    bluetooth.inquiry_error = BackendError("blueutil: inquiry failed")
    params = RepairParams(interactive=True, is_tty=True, inquiry_duration=5, skip_unpair=False)

    with pytest.raises(RepairError) as exc:
        asyncio.run(Repairer(bluetooth, FakePicker()).repair(params))

    assert bluetooth.unpaired == ["AA"]
    assert exc.value.from_device == OLD
    assert exc.value.to_device is None
    assert isinstance(exc.value.cause, BackendError)
    assert isinstance(exc.value.__cause__, BackendError)
    assert "Buds (AA)" in str(exc.value)


def test_repair_unpair_failure_keeps_from_device() -> None:
    bluetooth = _bluetooth()
    bluetooth.unpair_error = BackendError("blueutil: unpair failed")
    with pytest.raises(RepairError) as exc:
        asyncio.run(Repairer(bluetooth, FakePicker()).repair(RepairParams(interactive=True, is_tty=True)))
    assert exc.value.from_device == OLD
    assert bluetooth.inquiry_calls == []


def test_repair_with_no_paired_devices_is_not_found() -> None:
    bluetooth = FakeBluetooth([])
    with pytest.raises(DeviceNotFoundError):
        asyncio.run(Repairer(bluetooth, FakePicker()).repair(RepairParams(interactive=True, is_tty=True)))


def test_repair_cancel_at_first_pick_is_plain_cancel() -> None:
    bluetooth = _bluetooth()
    picker = FakePicker(error=SelectionCanceledError())
    with pytest.raises(SelectionCanceledError):
        asyncio.run(Repairer(bluetooth, picker).repair(RepairParams(interactive=True, is_tty=True)))
    assert bluetooth.unpaired == []


def test_repair_requires_tty() -> None:
    with pytest.raises(PreconditionError):
        asyncio.run(Repairer(_bluetooth(), FakePicker()).repair(RepairParams(interactive=True, is_tty=False)))


def test_repair_deadline_after_unpair_keeps_from_device() -> None:
    bluetooth = _bluetooth()
    bluetooth.inquiry_batches = []
    service = BtService(bluetooth=bluetooth, picker=FakePicker(), settings=Settings(pairing_timeout_s=0.2))
    params = RepairParams(interactive=True, is_tty=True, inquiry_duration=30)

    with pytest.raises(RepairError) as exc:
        asyncio.run(service.repair(params))

    assert bluetooth.unpaired == ["AA"]
    assert exc.value.from_device == OLD
    assert isinstance(exc.value.cause, BackendError)
    assert "repair timed out after 0.2s" in str(exc.value)


def test_repair_deadline_before_pick_is_plain_timeout() -> None:
    class SlowPicker(FakePicker):
        async def pick_one(self, title: str, devices: list[Device]) -> Device:
            await asyncio.sleep(1)
            return devices[0]

    bluetooth = _bluetooth()
    repairer = Repairer(bluetooth, SlowPicker(), timeout_s=0.05)

    with pytest.raises(BackendError, match="repair timed out") as exc:
        asyncio.run(repairer.repair(RepairParams(interactive=True, is_tty=True)))

    assert not isinstance(exc.value, RepairError)
    assert bluetooth.unpaired == []
