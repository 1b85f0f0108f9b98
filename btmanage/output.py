"""TSV and JSON rendering of device lists."""

from __future__ import annotations

import json
from collections.abc import Sequence
from enum import Enum
from typing import Any, TextIO

from btmanage.core.errors import BtManageError
from btmanage.core.model import Device

_TSV_COLUMNS = ("Name", "Address", "Type", "RSSI")
_PADDING = 2


class OutputFormat(str, Enum):
    TSV = "tsv"
    JSON = "json"


def parse_format(value: str) -> OutputFormat:
    normalized = value.strip().lower()
    if normalized in ("", "tsv"):
        return OutputFormat.TSV
    if normalized == "json":
        return OutputFormat.JSON
    raise BtManageError(f"unknown format: {value}")


def device_to_dict(device: Device) -> dict[str, Any]:
    data: dict[str, Any] = {
        "name": device.name,
        "address": device.address,
        "type": device.type,
    }
    if device.rssi is not None:
        data["rssi"] = device.rssi
    data["connected"] = device.connected
    if device.last_connected_at is not None:
        data["lastConnectedAt"] = device.last_connected_at.isoformat()
    return data


def write_json(stream: TextIO, devices: Sequence[Device]) -> None:
    json.dump([device_to_dict(d) for d in devices], stream, indent=2, ensure_ascii=False)
    stream.write("\n")


def write_tsv(stream: TextIO, devices: Sequence[Device], header: bool = True) -> None:
    rows: list[tuple[str, ...]] = []
    if header:
        rows.append(_TSV_COLUMNS)
    for d in devices:
        rows.append((d.name, d.address, d.type, "" if d.rssi is None else str(d.rssi)))
    if not rows:
        return

    widths = [max(len(row[i]) for row in rows) for i in range(len(_TSV_COLUMNS) - 1)]
    for row in rows:
        cells = [cell.ljust(widths[i] + _PADDING) for i, cell in enumerate(row[:-1])]
        stream.write(("".join(cells) + row[-1]).rstrip() + "\n")


def write_devices(stream: TextIO, devices: Sequence[Device], fmt: OutputFormat, header: bool = True) -> None:
    if fmt is OutputFormat.JSON:
        write_json(stream, devices)
    else:
        write_tsv(stream, devices, header)


def write_names(stream: TextIO, devices: Sequence[Device]) -> None:
    for d in devices:
        stream.write(f"{d.name}\n")
