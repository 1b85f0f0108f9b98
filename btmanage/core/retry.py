"""Connect, wait, and verify with a bounded number of attempts."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from btmanage.core.errors import BackendError
from btmanage.core.ports import BluetoothPort

LOGGER = logging.getLogger(__name__)

WAIT_CONNECT_CHUNK_S = 5
DEFAULT_MAX_ATTEMPTS = 3

Progress = Callable[[str], None]


def _noop(_: str) -> None:
    return None


async def connect_with_retry_verify(
    bluetooth: BluetoothPort,
    address: str,
    wait_connect_seconds: int,
    max_attempts: int,
    progress: Progress | None = None,
    *,
    clock: Callable[[], float] = time.monotonic,
) -> None:
    """Connect to `address` until `is_connected` confirms it.

    `wait_connect_seconds` is one budget shared by every attempt. Each attempt
    waits at most WAIT_CONNECT_CHUNK_S of it, and the elapsed whole seconds
    are taken out of it. Raises the last recorded error once all attempts
    are used.
    """
    report = progress or _noop
    attempts = max_attempts if max_attempts > 0 else DEFAULT_MAX_ATTEMPTS
    remaining = max(0, wait_connect_seconds)
    last_error: Exception | None = None

    for attempt in range(1, attempts + 1):
        report(f"Connecting (attempt {attempt}/{attempts})...")
        try:
            await bluetooth.connect(address)
        except Exception as exc:
            last_error = exc
            report(f"  connect failed: {exc}")
            continue

        if remaining > 0:
            chunk = min(remaining, WAIT_CONNECT_CHUNK_S)
            report(f"  waiting for connection (up to {chunk}s now; remaining budget {remaining}s)...")
            start = clock()
            try:
                await bluetooth.wait_connect(address, chunk)
            except Exception as exc:
                last_error = exc
                report(f"  wait-connect failed: {exc}")
                if progress is not None:
                    await _report_connection_state(bluetooth, address, report)
                remaining = max(0, remaining - int(clock() - start))
                continue
            remaining = max(0, remaining - int(clock() - start))

        try:
            connected = await bluetooth.is_connected(address)
        except Exception as exc:
            last_error = exc
            report(f"  connect verification failed: {exc}")
            continue
        if connected:
            report("  connected confirmed")
            return
        last_error = BackendError("device is not connected")
        report("  connect verification failed: device is not connected")

    LOGGER.debug("giving up on %s after %d attempt(s)", address, attempts)
    if last_error is None:
        raise BackendError("failed to connect")
    raise last_error


async def _report_connection_state(bluetooth: BluetoothPort, address: str, report: Progress) -> None:
    try:
        report(f"  is-connected={await bluetooth.is_connected(address)}")
    except Exception as exc:
        LOGGER.debug("is-connected diagnostic failed: %s", exc)
    try:
        report(f"  connected devices: {len(await bluetooth.connected_devices())}")
    except Exception as exc:
        LOGGER.debug("connected-devices diagnostic failed: %s", exc)
