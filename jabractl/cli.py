"""Typer CLI entrypoint."""

from __future__ import annotations

import logging
import queue
import time
from dataclasses import replace
from pathlib import Path

import typer

from jabractl.core.config import SIMULATION_WARNING, load_config
from jabractl.core.errors import JabraError
from jabractl.core.model import (
    BatteryEvent,
    ButtonEvent,
    DeviceAttached,
    DeviceDetached,
    DeviceEvent,
    RawHidEvent,
)
from jabractl.core.service import HeadsetService

app = typer.Typer(help="Jabra headset control through the native Jabra SDK")

_SWITCHES = {"on": True, "off": False}
_CONTROLS = {
    "ringer": "set_ringer",
    "hook": "set_hook_state",
    "hold": "set_hold",
    "busylight": "set_busylight",
}


def _build_service(
    simulate: bool,
    config_path: Path | None,
    verbose: bool = False,
    battery_drain: float | None = None,
) -> HeadsetService:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    loaded = load_config(config_path)
    config, warnings = loaded.config, loaded.warnings
    if simulate and not config.simulate:
        config = replace(config, simulate=True)
        warnings += (SIMULATION_WARNING,)
    if battery_drain is not None:
        config = replace(config, simulate_drain_s=battery_drain)
    service = HeadsetService(config=config, warnings=warnings)
    for warning in service.warnings:
        typer.echo(f"Warning: {warning}", err=True)
    return service


def _switch(value: str) -> bool:
    try:
        return _SWITCHES[value.lower()]
    except KeyError:
        raise typer.BadParameter(f"expected 'on' or 'off', got '{value}'") from None


def _describe_event(event: DeviceEvent) -> str:
    if isinstance(event, DeviceAttached):
        return f"attached {event.handle}: {event.info.name} serial={event.info.serial_number or '-'}"
    if isinstance(event, DeviceDetached):
        return f"detached {event.handle}"
    if isinstance(event, ButtonEvent):
        action = "pressed" if event.pressed else "released"
        return f"button {event.handle}: {event.button.name} {action}"
    if isinstance(event, RawHidEvent):
        return (
            f"hid {event.handle}: page=0x{event.usage_page:04x} "
            f"usage=0x{event.usage:04x} value={event.value}"
        )
    if isinstance(event, BatteryEvent):
        status = event.status
        flags = "".join(
            [" charging" if status.charging else "", " low" if status.low else ""]
        )
        return f"battery {event.handle}: {status.level_percent}%{flags}"
    return f"{event.kind.value} {event.handle}"


@app.command("devices")
def list_devices(
    simulate: bool = typer.Option(False, "--simulate", help="Use the simulated SDK"),
    config: Path | None = typer.Option(None, "--config", help="Config file path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """List attached Jabra devices."""
    try:
        service = _build_service(simulate, config, verbose)
        service.initialize()
        try:
            devices = service.list_devices()
        finally:
            service.close()
        if not devices:
            typer.echo("No Jabra devices attached")
            return
        for device in devices:
            kind = "dongle" if device.is_dongle else "headset"
            typer.echo(
                f"{device.handle} {device.name} ({kind}) serial={device.serial_number or '-'} "
                f"vid=0x{device.vendor_id:04x} pid=0x{device.product_id:04x}"
            )
    except JabraError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("battery")
def battery(
    device: int = typer.Argument(..., help="Device id as shown by 'devices'"),
    simulate: bool = typer.Option(False, "--simulate", help="Use the simulated SDK"),
    config: Path | None = typer.Option(None, "--config", help="Config file path"),
) -> None:
    """Show the battery status of a device."""
    try:
        service = _build_service(simulate, config)
        service.initialize()
        try:
            status = service.controls.get_battery_status(device)
        finally:
            service.close()
        flags = [name for name, on in (("charging", status.charging), ("low", status.low)) if on]
        suffix = f" ({', '.join(flags)})" if flags else ""
        typer.echo(f"Battery {device}: {status.level_percent}%{suffix}")
    except JabraError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("mute")
def mute(
    device: int = typer.Argument(..., help="Device id as shown by 'devices'"),
    value: str | None = typer.Argument(None, help="on or off"),
    simulate: bool = typer.Option(False, "--simulate", help="Use the simulated SDK"),
    config: Path | None = typer.Option(None, "--config", help="Config file path"),
) -> None:
    """Set the mute state of a device.

    If VALUE is omitted, prints the current mute state.
    """
    try:
        service = _build_service(simulate, config)
        service.initialize()
        try:
            if value is not None:
                service.controls.set_mute(device, _switch(value))
            muted = service.controls.get_mute(device)
        finally:
            service.close()
        typer.echo(f"Mute {device}: {'on' if muted else 'off'}")
    except JabraError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("volume")
def volume(
    device: int = typer.Argument(..., help="Device id as shown by 'devices'"),
    level: int | None = typer.Argument(None, help="Volume 0-100"),
    simulate: bool = typer.Option(False, "--simulate", help="Use the simulated SDK"),
    config: Path | None = typer.Option(None, "--config", help="Config file path"),
) -> None:
    """Set the volume of a device.

    If LEVEL is omitted, prints the current volume.
    """
    try:
        service = _build_service(simulate, config)
        service.initialize()
        try:
            if level is not None:
                service.controls.set_volume(device, level)
            current = service.controls.get_volume(device)
        finally:
            service.close()
        typer.echo(f"Volume {device}: {current}")
    except JabraError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("set")
def set_control(
    device: int = typer.Argument(..., help="Device id as shown by 'devices'"),
    control: str = typer.Argument(..., help="ringer, hook, hold or busylight"),
    value: str = typer.Argument(..., help="on or off"),
    simulate: bool = typer.Option(False, "--simulate", help="Use the simulated SDK"),
    config: Path | None = typer.Option(None, "--config", help="Config file path"),
) -> None:
    """Switch a call-control feature of a device on or off."""
    operation = _CONTROLS.get(control.lower())
    if operation is None:
        allowed = ", ".join(sorted(_CONTROLS))
        typer.echo(f"Error: unknown control '{control}'. Allowed: {allowed}", err=True)
        raise typer.Exit(code=1)
    switch = _switch(value)
    try:
        service = _build_service(simulate, config)
        service.initialize()
        try:
            getattr(service.controls, operation)(device, switch)
        finally:
            service.close()
        typer.echo(f"Set {control}={'on' if switch else 'off'} on device {device}")
    except JabraError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("watch")
def watch(
    seconds: float | None = typer.Option(None, "--seconds", help="Stop after N seconds"),
    battery_drain: float | None = typer.Option(
        None, "--battery-drain", min=0.01, help="Simulated battery drops 1% every N seconds"
    ),
    simulate: bool = typer.Option(False, "--simulate", help="Use the simulated SDK"),
    config: Path | None = typer.Option(None, "--config", help="Config file path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Print device events as they arrive."""
    try:
        service = _build_service(simulate, config, verbose, battery_drain)
        subscription = service.stream.subscribe()
        service.initialize()
        deadline = time.monotonic() + seconds if seconds is not None else None
        try:
            while True:
                timeout = None if deadline is None else deadline - time.monotonic()
                if timeout is not None and timeout <= 0:
                    break
                try:
                    event = subscription.get(timeout=timeout)
                except queue.Empty:
                    break
                if event is None:
                    break
                typer.echo(_describe_event(event))
        except KeyboardInterrupt:
            pass
        finally:
            service.close()
    except JabraError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
