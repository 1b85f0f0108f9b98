"""Parsing of blueutil `--format json` device lists."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from btmanage.core.errors import BackendError
from btmanage.core.model import Device


def normalize_address(address: str) -> str:
    """blueutil reports `aa-bb-...`; bt-manage shows `aa:bb:...`."""
    return address.replace("-", ":")


def denormalize_address(address: str) -> str:
    return address.replace(":", "-")


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def _first_int(*values: Any) -> int | None:
    for value in values:
        if isinstance(value, bool):
            continue
        if isinstance(value, (int, float)):
            return int(value)
    return None


def parse_device_list_json(raw: bytes | str) -> list[Device]:
    try:
        entries = json.loads(raw)
    except ValueError as exc:
        raise BackendError(f"blueutil: invalid JSON output: {exc}") from exc
    if not isinstance(entries, list):
        raise BackendError("blueutil: expected a JSON array of devices")

    devices: list[Device] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        devices.append(
            Device(
                name=str(entry.get("name") or ""),
                address=normalize_address(str(entry.get("address") or "")),
                connected=bool(entry.get("connected", False)),
                last_connected_at=_parse_timestamp(entry.get("recentAccessDate")),
                rssi=_first_int(entry.get("RSSI"), entry.get("rawRSSI")),
            )
        )
    return devices
