"""Command runner interface and the asyncio subprocess implementation."""

from __future__ import annotations

import asyncio
import contextlib
import sys
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class CommandResult:
    returncode: int
    stdout: bytes
    stderr: bytes


class CommandRunner(Protocol):
    async def run(self, program: str, *args: str) -> CommandResult:
        """Run `program` with `args` and capture its output.

        Raises FileNotFoundError when `program` cannot be executed.
        """


class SubprocessRunner:
    async def run(self, program: str, *args: str) -> CommandResult:
        # Own process group on macOS so signals aimed at the child leave us alone.
        kwargs = {"start_new_session": True} if sys.platform == "darwin" else {}
        proc = await asyncio.create_subprocess_exec(
            program,
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            **kwargs,
        )
        try:
            stdout, stderr = await proc.communicate()
        except asyncio.CancelledError:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()
            raise
        return CommandResult(returncode=proc.returncode or 0, stdout=stdout, stderr=stderr)
