"""Device-control backend that drives the macOS `blueutil` tool."""

from __future__ import annotations

import logging
import shutil
import time

from btmanage.backends.base import CommandResult, CommandRunner, SubprocessRunner
from btmanage.backends.parser import denormalize_address, parse_device_list_json
from btmanage.core.errors import BackendError, DependencyMissingError
from btmanage.core.model import Device

LOGGER = logging.getLogger(__name__)

DEFAULT_INQUIRY_S = 10


class BlueutilClient:
    def __init__(self, *, runner: CommandRunner | None = None, binary: str = "blueutil") -> None:
        self.runner = runner or SubprocessRunner()
        self.binary = binary or "blueutil"

    async def _run(self, *args: str) -> bytes:
        if shutil.which(self.binary) is None:
            raise DependencyMissingError(self.binary)

        command = " ".join(args)
        start = time.monotonic()
        LOGGER.debug("blueutil: start %s %s", self.binary, command)
        try:
            result = await self.runner.run(self.binary, *args)
        except FileNotFoundError as exc:
            raise DependencyMissingError(self.binary) from exc
        except OSError as exc:
            raise BackendError(f"blueutil: {exc}") from exc
        finally:
            LOGGER.debug("blueutil: done  %s elapsed=%.3fs", command, time.monotonic() - start)

        if result.returncode != 0:
            raise BackendError(_describe_failure(result))
        return result.stdout

    async def list(self) -> list[Device]:
        return parse_device_list_json(await self._run("--paired", "--format", "json"))

    async def connect(self, address: str) -> None:
        await self._run("--connect", denormalize_address(address))

    async def disconnect(self, address: str) -> None:
        await self._run("--disconnect", denormalize_address(address))

    async def pair(self, address: str, pin: str) -> None:
        args = ["--pair", denormalize_address(address)]
        if pin:
            args.append(pin)
        await self._run(*args)

    async def unpair(self, address: str) -> None:
        await self._run("--unpair", denormalize_address(address))

    async def inquiry(self, duration_seconds: int) -> list[Device]:
        if duration_seconds <= 0:
            duration_seconds = DEFAULT_INQUIRY_S
        return parse_device_list_json(await self._run("--inquiry", str(duration_seconds), "--format", "json"))

    async def wait_connect(self, address: str, timeout_seconds: int) -> None:
        args = ["--wait-connect", denormalize_address(address)]
        if timeout_seconds > 0:
            args.append(str(timeout_seconds))
        await self._run(*args)

    async def is_connected(self, address: str) -> bool:
        stdout = await self._run("--is-connected", denormalize_address(address))
        return stdout.decode(errors="replace").strip() == "1"

    async def connected_devices(self) -> list[Device]:
        return parse_device_list_json(await self._run("--connected", "--format", "json"))


def _describe_failure(result: CommandResult) -> str:
    message = f"blueutil: exit status {result.returncode}"
    stderr = result.stderr.decode(errors="replace").strip()
    if stderr:
        return f"{message}: {stderr}"
    return message
