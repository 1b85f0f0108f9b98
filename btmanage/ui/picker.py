"""Numbered-list terminal picker built on Typer prompts."""

from __future__ import annotations

import asyncio
import contextlib
import re
import threading
from collections.abc import Callable
from typing import Any

import typer

from btmanage.core.channel import SnapshotChannel
from btmanage.core.errors import SelectionCanceledError
from btmanage.core.model import Device

_SPLIT_RE = re.compile(r"[\s,]+")


def order_for_title(title: str, devices: list[Device]) -> list[Device]:
    """Connect lists disconnected devices first; Disconnect and Repair list connected first."""
    if title == "Connect":
        return sorted(devices, key=lambda d: (d.connected, d.name.lower()))
    if title == "Disconnect" or title.startswith("Repair:"):
        return sorted(devices, key=lambda d: (not d.connected, d.name.lower()))
    return sorted(devices, key=lambda d: d.name.lower())


def normalize_snapshot(devices: list[Device]) -> list[Device]:
    """Unique by address, named and addressed only, sorted by name."""
    unique: dict[str, Device] = {}
    for device in devices:
        if not device.address.strip() or not device.name.strip():
            continue
        unique[device.address.strip()] = device
    return sorted(unique.values(), key=lambda d: d.name.lower())


def _describe(index: int, device: Device) -> str:
    state = " [connected]" if device.connected else ""
    rssi = f" rssi={device.rssi}" if device.rssi is not None else ""
    return f"  {index:>2}) {device.name}  ({device.address}){state}{rssi}"


class PromptPicker:
    def __init__(
        self,
        *,
        prompt: Callable[..., Any] = typer.prompt,
        echo: Callable[..., Any] = typer.echo,
    ) -> None:
        self._prompt = prompt
        self._echo = echo

    async def _ask(self, text: str) -> str:
        # The prompt blocks on stdin, so it runs on a daemon thread that a
        # cancelled picker can leave behind without holding up shutdown.
        loop = asyncio.get_running_loop()
        reply: asyncio.Future[Any] = loop.create_future()

        def _read() -> None:
            try:
                result = self._prompt(text, default="", show_default=False)
            except BaseException as exc:
                _deliver(loop, reply, exc=exc)
            else:
                _deliver(loop, reply, result=result)

        threading.Thread(target=_read, name="btmanage-prompt", daemon=True).start()
        try:
            answer = await reply
        except (typer.Abort, EOFError, KeyboardInterrupt) as exc:
            raise SelectionCanceledError() from exc
        return str(answer).strip()

    def _render(self, title: str, devices: list[Device]) -> None:
        self._echo(title, err=True)
        for i, device in enumerate(devices, start=1):
            self._echo(_describe(i, device), err=True)

    async def pick_one(self, title: str, devices: list[Device]) -> Device:
        ordered = order_for_title(title, devices)
        if not ordered:
            self._echo(f"{title}: no devices", err=True)
            raise SelectionCanceledError()
        self._render(title, ordered)
        while True:
            answer = await self._ask(f"Select [1-{len(ordered)}, q to cancel]")
            if answer.lower() in ("q", "quit"):
                raise SelectionCanceledError()
            if answer.isdigit() and 1 <= int(answer) <= len(ordered):
                return ordered[int(answer) - 1]
            self._echo(f"Invalid choice: {answer!r}", err=True)

    async def pick_many(self, title: str, devices: list[Device]) -> list[Device]:
        ordered = order_for_title(title, devices)
        if not ordered:
            self._echo(f"{title}: no devices", err=True)
            raise SelectionCanceledError()
        self._render(title, ordered)
        while True:
            answer = await self._ask(f"Select one or more [1-{len(ordered)}, comma separated, q to cancel]")
            if answer.lower() in ("q", "quit"):
                raise SelectionCanceledError()
            picked = _parse_indexes(answer, len(ordered))
            if picked:
                return [ordered[i - 1] for i in picked]
            self._echo(f"Invalid choice: {answer!r}", err=True)

    async def pick_from_stream(self, title: str, updates: SnapshotChannel) -> Device:
        devices: list[Device] = []
        while True:
            snapshot = updates.poll()
            while snapshot is not None:
                devices = normalize_snapshot(snapshot)
                snapshot = updates.poll()
            if not devices:
                if updates.closed:
                    self._echo(f"{title}: no devices", err=True)
                    raise SelectionCanceledError()
                self._echo(f"{title}: searching...", err=True)
                first = await updates.get()
                if first is not None:
                    devices = normalize_snapshot(first)
                continue

            self._render(title, devices)
            status = "" if updates.closed else ", Enter to refresh"
            answer = await self._ask(f"Select [1-{len(devices)}{status}, q to cancel]")
            if not answer:
                continue
            if answer.lower() in ("q", "quit"):
                raise SelectionCanceledError()
            if answer.isdigit() and 1 <= int(answer) <= len(devices):
                return devices[int(answer) - 1]
            self._echo(f"Invalid choice: {answer!r}", err=True)


def _deliver(
    loop: asyncio.AbstractEventLoop,
    reply: asyncio.Future[Any],
    *,
    result: Any = None,
    exc: BaseException | None = None,
) -> None:
    def _settle() -> None:
        if reply.done():
            return
        if exc is not None:
            reply.set_exception(exc)
        else:
            reply.set_result(result)

    # The loop is gone once the picker was cancelled and asyncio.run returned.
    with contextlib.suppress(RuntimeError):
        loop.call_soon_threadsafe(_settle)


def _parse_indexes(answer: str, upper: int) -> list[int]:
    picked: list[int] = []
    for token in _SPLIT_RE.split(answer):
        if not token:
            continue
        if not token.isdigit() or not 1 <= int(token) <= upper:
            return []
        if int(token) not in picked:
            picked.append(int(token))
    return picked
