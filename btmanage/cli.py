"""Typer CLI entrypoint."""

from __future__ import annotations

import asyncio
import logging
import sys

import typer

from btmanage import __version__
from btmanage.core.errors import (
    AmbiguousDeviceError,
    BtManageError,
    DependencyMissingError,
    DeviceNotFoundError,
    PreconditionError,
    RepairError,
    SelectionCanceledError,
)
from btmanage.core.model import ConnectParams, DisconnectParams, PairParams, RepairParams
from btmanage.core.service import BtService
from btmanage.output import parse_format, write_devices, write_names
from btmanage.ui.picker import PromptPicker
from btmanage.ui.tty import is_interactive

app = typer.Typer(help="Switch Bluetooth device connections on macOS")

EXIT_GENERIC = 1
EXIT_USAGE = 2
EXIT_DEPENDENCY_MISSING = 3
EXIT_UNSUPPORTED = 4


def _progress(message: str) -> None:
    typer.echo(message, err=True)


def _build_service(*, picker: PromptPicker | None = None) -> BtService:
    service = BtService(picker=picker, progress=_progress)
    for warning in service.load_warnings:
        typer.echo(f"Warning: {warning}", err=True)
    return service


def user_facing_message(exc: BaseException) -> str:
    if isinstance(exc, RepairError):
        return f"repair of {exc.from_device.name} ({exc.from_device.address}) failed: {user_facing_message(exc.cause)}"
    if isinstance(exc, DeviceNotFoundError):
        if not exc.query:
            return "no device selected"
        return f'no device matched "{exc.query}"'
    if isinstance(exc, AmbiguousDeviceError):
        hint = "try --exact or use --interactive to choose"
        if not exc.query:
            return f"device selection is ambiguous ({hint})"
        return f'"{exc.query}" matched {exc.count} devices ({hint})'
    if isinstance(exc, SelectionCanceledError):
        return "canceled"
    if isinstance(exc, DependencyMissingError):
        if exc.dependency:
            return f"missing dependency: {exc.dependency} (install via Homebrew: brew install blueutil)"
        return "missing dependency"
    return str(exc)


def exit_code_for(exc: BaseException) -> int:
    if isinstance(exc, RepairError):
        return exit_code_for(exc.cause)
    if isinstance(exc, DependencyMissingError):
        return EXIT_DEPENDENCY_MISSING if sys.platform == "darwin" else EXIT_UNSUPPORTED
    if isinstance(exc, (DeviceNotFoundError, AmbiguousDeviceError, SelectionCanceledError, PreconditionError)):
        return EXIT_USAGE
    return EXIT_GENERIC


def _fail(exc: BtManageError) -> typer.Exit:
    typer.echo(f"Error: {user_facing_message(exc)}", err=True)
    return typer.Exit(code=exit_code_for(exc))


def _picker_for(interactive: bool) -> tuple[bool, PromptPicker | None]:
    is_tty = is_interactive()
    if interactive and not is_tty:
        raise PreconditionError("--interactive requires a TTY")
    return is_tty, PromptPicker() if interactive and is_tty else None


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging to stderr"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    if ctx.invoked_subcommand is None:
        list_devices(format_="tsv", no_header=False, connected=False, disconnected=False, names_only=False)


@app.command("list")
def list_devices(
    format_: str = typer.Option("tsv", "--format", "-f", help="Output format (tsv|json)"),
    no_header: bool = typer.Option(False, "--no-header", "-H", help="Do not print header (tsv only)"),
    connected: bool = typer.Option(False, "--connected", "-c", help="Show connected devices only"),
    disconnected: bool = typer.Option(False, "--disconnected", "-d", help="Show disconnected devices only"),
    names_only: bool = typer.Option(False, "--names-only", "-N", help="Print device names only (one per line)"),
) -> None:
    """List paired Bluetooth devices, most recently used first."""
    try:
        if connected and disconnected:
            raise PreconditionError("--connected and --disconnected are mutually exclusive")
        fmt = parse_format(format_)
        service = _build_service()
        state = True if connected else False if disconnected else None
        devices = asyncio.run(service.list_devices(connected=state))
        if names_only:
            write_names(sys.stdout, devices)
        else:
            write_devices(sys.stdout, devices, fmt, header=not no_header)
    except BtManageError as exc:
        raise _fail(exc) from None


@app.command("connect")
def connect(
    name: str | None = typer.Argument(None, help="Device name or name prefix"),
    exact: bool = typer.Option(False, "--exact", "-e", help="Match device name exactly"),
    interactive: bool = typer.Option(False, "--interactive", "-i", help="Always use interactive picker (TTY required)"),
    multi: bool = typer.Option(False, "--multi", "-m", help="Select multiple devices (implies --interactive)"),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Only resolve and print the target device"),
    format_: str = typer.Option("tsv", "--format", "-f", help="Output format (tsv|json)"),
    no_header: bool = typer.Option(False, "--no-header", "-H", help="Do not print header (tsv only)"),
) -> None:
    """Connect to a Bluetooth device.

    Without NAME an interactive picker is opened.
    """
    _run_selection("connect", name or "", exact, interactive, multi, dry_run, format_, no_header)


@app.command("disconnect")
def disconnect(
    name: str | None = typer.Argument(None, help="Device name or name prefix"),
    exact: bool = typer.Option(False, "--exact", "-e", help="Match device name exactly"),
    interactive: bool = typer.Option(False, "--interactive", "-i", help="Always use interactive picker (TTY required)"),
    multi: bool = typer.Option(False, "--multi", "-m", help="Select multiple devices (implies --interactive)"),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Only resolve and print the target device"),
    format_: str = typer.Option("tsv", "--format", "-f", help="Output format (tsv|json)"),
    no_header: bool = typer.Option(False, "--no-header", "-H", help="Do not print header (tsv only)"),
) -> None:
    """Disconnect a Bluetooth device.

    Without NAME an interactive picker is opened.
    """
    _run_selection("disconnect", name or "", exact, interactive, multi, dry_run, format_, no_header)


def _run_selection(
    action: str,
    name: str,
    exact: bool,
    interactive: bool,
    multi: bool,
    dry_run: bool,
    format_: str,
    no_header: bool,
) -> None:
    try:
        if multi and name:
            raise PreconditionError("--multi cannot be used with a name argument")
        # No name means pick interactively.
        interactive = interactive or multi or not name
        fmt = parse_format(format_)
        is_tty, picker = _picker_for(interactive)
        service = _build_service(picker=picker)

        params_cls = ConnectParams if action == "connect" else DisconnectParams
        params = params_cls(name=name, exact=exact, interactive=interactive, is_tty=is_tty, dry_run=dry_run)

        if multi:
            run_many = service.connect_many if action == "connect" else service.disconnect_many
            devices = asyncio.run(run_many(params))
        else:
            run_one = service.connect if action == "connect" else service.disconnect
            devices = [asyncio.run(run_one(params))]

        if not dry_run:
            for device in devices:
                typer.echo(f"- {action}ed {device.name} ({device.address})", err=True)
        write_devices(sys.stdout, devices, fmt, header=not no_header)
    except BtManageError as exc:
        raise _fail(exc) from None


@app.command("pair")
def pair(
    interactive: bool = typer.Option(True, "--interactive/--no-interactive", "-i", help="Use interactive picker (TTY required)"),
    inquiry: int | None = typer.Option(None, "--inquiry", help="Inquiry window in seconds (default 60)"),
    pin: str = typer.Option("", "--pin", help="Optional PIN (if required by pairing)"),
    wait_connect: int | None = typer.Option(None, "--wait-connect", help="Seconds to wait for the connection, shared across retries"),
    max_attempts: int | None = typer.Option(None, "--max-attempts", help="Connect retry count"),
) -> None:
    """Discover, pair, and connect a Bluetooth device."""
    try:
        is_tty, picker = _picker_for(interactive)
        service = _build_service(picker=picker)
        settings = service.settings
        device = asyncio.run(
            service.pair(
                PairParams(
                    interactive=interactive,
                    is_tty=is_tty,
                    inquiry_duration=inquiry if inquiry is not None else settings.inquiry_s,
                    pin=pin,
                    wait_connect=wait_connect if wait_connect is not None else settings.wait_connect_s,
                    max_attempts=max_attempts if max_attempts is not None else settings.max_attempts,
                )
            )
        )
        typer.echo(f"paired: {device.name} ({device.address})")
    except BtManageError as exc:
        raise _fail(exc) from None


@app.command("repair")
def repair(
    interactive: bool = typer.Option(True, "--interactive/--no-interactive", "-i", help="Use interactive picker (TTY required)"),
    inquiry: int | None = typer.Option(None, "--inquiry", help="Inquiry window in seconds (default 60)"),
    pin: str = typer.Option("", "--pin", help="Optional PIN (if required by pairing)"),
    skip_unpair: bool = typer.Option(False, "--skip-unpair", help="Skip the unpair step"),
    wait_connect: int | None = typer.Option(None, "--wait-connect", help="Seconds to wait for the connection, shared across retries"),
    max_attempts: int | None = typer.Option(None, "--max-attempts", help="Connect retry count"),
) -> None:
    """Unpair a paired device, then discover, pair, and connect again."""
    try:
        is_tty, picker = _picker_for(interactive)
        service = _build_service(picker=picker)
        settings = service.settings
        result = asyncio.run(
            service.repair(
                RepairParams(
                    interactive=interactive,
                    is_tty=is_tty,
                    inquiry_duration=inquiry if inquiry is not None else settings.inquiry_s,
                    pin=pin,
                    skip_unpair=skip_unpair,
                    wait_connect=wait_connect if wait_connect is not None else settings.wait_connect_s,
                    max_attempts=max_attempts if max_attempts is not None else settings.max_attempts,
                )
            )
        )
        typer.echo(
            f"repaired: {result.from_device.name} ({result.from_device.address}) -> "
            f"{result.to_device.name} ({result.to_device.address})"
        )
    except BtManageError as exc:
        raise _fail(exc) from None


@app.command("version")
def version() -> None:
    """Print version information."""
    typer.echo(__version__)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
