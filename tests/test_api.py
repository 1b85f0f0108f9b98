from __future__ import annotations

import pytest
from fakes import FakeBluetooth, FakePicker

from btmanage.api import (
    BackendError,
    Client,
    ConnectParams,
    Device,
    DeviceNotFoundError,
    DisconnectParams,
    PairParams,
    RepairError,
    RepairParams,
    Settings,
)

KEYS = Device(name="MX Keys", address="AA", connected=True)
PODS = Device(name="AirPods", address="CC")


def _client(bluetooth: FakeBluetooth, picker: FakePicker | None = None, **settings: object) -> Client:
    return Client(bluetooth=bluetooth, picker=picker, settings=Settings(**settings))


def test_public_client_lists_and_filters() -> None:
    client = _client(FakeBluetooth([KEYS, PODS]))
    assert [d.address for d in client.list_devices()] == ["CC", "AA"]
    assert client.list_devices(connected=True) == [KEYS]
    assert client.load_warnings == ()


def test_public_client_connect_and_disconnect() -> None:
    bluetooth = FakeBluetooth([KEYS, PODS])
    client = _client(bluetooth)
    assert client.connect(ConnectParams(name="Air")) == PODS
    assert client.disconnect(DisconnectParams(name="MX", exact=False)) == KEYS
    assert bluetooth.connected == ["CC"]
    assert bluetooth.disconnected == ["AA"]


def test_public_client_not_found() -> None:
    with pytest.raises(DeviceNotFoundError):
        _client(FakeBluetooth([KEYS])).connect(ConnectParams(name="Nope"))


def test_public_client_non_interactive_connect_is_time_boxed() -> None:
    bluetooth = FakeBluetooth([KEYS])
    bluetooth.hang_on = {"AA"}
    client = _client(bluetooth, action_timeout_s=0.05)
    with pytest.raises(BackendError, match="connect timed out"):
        client.connect(ConnectParams(name="MX"))


def test_public_client_batch() -> None:
    bluetooth = FakeBluetooth([KEYS, PODS])
    client = _client(bluetooth, FakePicker(many=[KEYS, PODS]))
    selected = client.connect_many(ConnectParams(interactive=True, is_tty=True))
    assert selected == [KEYS, PODS]
    assert sorted(bluetooth.connected) == ["AA", "CC"]


def test_public_client_pair_and_repair() -> None:
    bluetooth = FakeBluetooth([KEYS])
    bluetooth.inquiry_batches = [[PODS], [KEYS]]
    bluetooth.is_connected_default = True
    client = _client(bluetooth, FakePicker())

    assert client.pair(PairParams(interactive=True, is_tty=True, inquiry_duration=5, wait_connect=0)) == PODS
    result = client.repair(RepairParams(interactive=True, is_tty=True, inquiry_duration=5, wait_connect=0))
    assert result.from_device == KEYS
    assert result.to_device == KEYS
    assert bluetooth.unpaired == ["AA"]


def test_public_client_repair_error_exposes_from_device() -> None:
    bluetooth = FakeBluetooth([KEYS])
    bluetooth.pair_error = BackendError("blueutil: pairing rejected")
    bluetooth.inquiry_batches = [[PODS]]
    client = _client(bluetooth, FakePicker())
    with pytest.raises(RepairError) as exc:
        client.repair(RepairParams(interactive=True, is_tty=True, inquiry_duration=5))
    assert exc.value.from_device == KEYS
