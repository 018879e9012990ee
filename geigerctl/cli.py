"""Typer CLI entrypoint."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar

import typer

from geigerctl.core.controller import DeviceController
from geigerctl.core.errors import GeigerctlError
from geigerctl.core.service import GeigerService

app = typer.Typer(help="Geiger counter control over the GQ serial protocol")
power_app = typer.Typer(help="Switch the device power on or off")
app.add_typer(power_app, name="power")

T = TypeVar("T")

PortOption = typer.Option(None, "--port", help="Serial port to use instead of scanning")
ProfileOption = typer.Option(None, "--profile", help="Profile ID")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log probe and I/O details"),
) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


def _build_service() -> GeigerService:
    service = GeigerService()
    for warning in getattr(service, "load_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    return service


def _with_device(
    action: Callable[[DeviceController], T],
    *,
    port: str | None,
    profile: str | None,
) -> T:
    try:
        service = _build_service()
        with service.connect(profile_id=profile, port=port) as controller:
            return action(controller)
    except GeigerctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("ports")
def list_ports() -> None:
    """List serial ports visible to this host."""
    try:
        service = _build_service()
        ports = service.list_ports()
    except GeigerctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    if not ports:
        typer.echo("No serial ports found")
        return
    for port in ports:
        typer.echo(port)


@app.command("profiles")
def list_profiles() -> None:
    """List device profiles and their commands."""
    try:
        service = _build_service()
        profiles = service.list_profiles()
        if not profiles:
            typer.echo("No profiles loaded")
            raise typer.Exit(code=1)

        for item in profiles:
            typer.echo(f"{item.id}: {item.name} (signature '{item.signature}')")
            typer.echo(f"  commands: {', '.join(sorted(item.commands))}")
    except GeigerctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("probe")
def probe_ports(
    port: str | None = PortOption,
    profile: str | None = ProfileOption,
) -> None:
    """Scan serial ports and report where a supported device answers."""
    try:
        service = _build_service()
        result = service.probe(profile_id=profile, port=port)
    except GeigerctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    for attempt in result.attempts:
        detail = f": {attempt.detail}" if attempt.detail else ""
        typer.echo(f"{attempt.port} [{attempt.profile_id}] {attempt.outcome.value}{detail}")

    if result.controller is None or result.identity is None:
        tried = " ".join(result.attempted_ports) or "<no ports>"
        typer.echo(f"Error: No supported device found. Tried: {tried}", err=True)
        raise typer.Exit(code=1)

    result.controller.close()
    typer.echo(f"Found {result.identity.profile_id} on {result.identity.port}")


@app.command("info")
def show_info(
    port: str | None = PortOption,
    profile: str | None = ProfileOption,
) -> None:
    """Print version, serial number, voltage and CPM."""

    def _info(controller: DeviceController) -> None:
        typer.echo(f"Device Version: {controller.get_device_version()}")
        typer.echo(f"Serial Number: {controller.get_serial_number()}")
        typer.echo(f"Voltage: {controller.get_voltage()}V")
        typer.echo(f"CPM: {controller.get_cpm()}")

    _with_device(_info, port=port, profile=profile)


@app.command("cpm")
def show_cpm(
    port: str | None = PortOption,
    profile: str | None = ProfileOption,
) -> None:
    """Print the current count rate in counts per minute."""
    typer.echo(_with_device(lambda c: c.get_cpm(), port=port, profile=profile))


@app.command("voltage")
def show_voltage(
    port: str | None = PortOption,
    profile: str | None = ProfileOption,
) -> None:
    """Print the battery voltage."""
    volts = _with_device(lambda c: c.get_voltage(), port=port, profile=profile)
    typer.echo(f"{volts}V")


@power_app.command("on")
def power_on(
    port: str | None = PortOption,
    profile: str | None = ProfileOption,
) -> None:
    """Power the device on."""
    _with_device(lambda c: c.power_on(), port=port, profile=profile)
    typer.echo("Sent power on")


@power_app.command("off")
def power_off(
    port: str | None = PortOption,
    profile: str | None = ProfileOption,
) -> None:
    """Power the device off."""
    _with_device(lambda c: c.power_off(), port=port, profile=profile)
    typer.echo("Sent power off")


@app.command("reboot")
def reboot(
    port: str | None = PortOption,
    profile: str | None = ProfileOption,
) -> None:
    """Reboot the device."""
    _with_device(lambda c: c.reboot(), port=port, profile=profile)
    typer.echo("Sent reboot")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
