"""Typer CLI entrypoint."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import typer

from mobdevctl.channel.base import ControlChannel
from mobdevctl.channel.unix_socket import ControlServer, UnixSocketClient
from mobdevctl.core.args import encode_args
from mobdevctl.core.classifier import find_mtp_device, find_phone, is_mtp_capable, is_phone_like
from mobdevctl.core.config import load_config
from mobdevctl.core.dispatcher import Dispatcher
from mobdevctl.core.errors import MobdevError
from mobdevctl.core.model import ControlArgs, ControlCommand, MobdevConfig
from mobdevctl.core.netif import InterfaceController
from mobdevctl.core.usb_enum import enumerate_devices

app = typer.Typer(help="Phone detection and control via a privileged dispatcher")


def _load(config_path: Path | None) -> MobdevConfig:
    loaded = load_config(config_path)
    for warning in loaded.warnings:
        typer.echo(f"Warning: {warning}", err=True)
    return loaded.config


def _build_channel(ctx: typer.Context) -> ControlChannel:
    config = _load(ctx.obj["config_path"])
    if ctx.obj["direct"]:
        return Dispatcher(config)
    return UnixSocketClient(config.socket_path)


def _usage_error(message: str) -> None:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(code=1)


def _parse_choice(value: str, choices: dict[str, bool], what: str) -> bool:
    if value not in choices:
        _usage_error(f"{what} must be one of: {', '.join(choices)}")
    return choices[value]


def _run(ctx: typer.Context, command: ControlCommand, args: ControlArgs | None = None) -> None:
    try:
        channel = _build_channel(ctx)
        block = encode_args(args) if args is not None else None
        status = channel.dispatch(int(command), block)
    except MobdevError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    if status < 0:
        typer.echo(f"Error: {command.name.lower()} failed: {os.strerror(-status)}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"mobdevctl returned: {status}")


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(None, "--config", help="Path to a config YAML file"),
    direct: bool = typer.Option(
        False, "--direct", help="Dispatch in-process instead of through the service socket"
    ),
) -> None:
    ctx.obj = {"config_path": config, "direct": direct}


@app.command("detect")
def detect(ctx: typer.Context) -> None:
    """Report whether a phone-like USB device is attached (1) or not (0)."""
    _run(ctx, ControlCommand.DETECT)


@app.command("transfer")
def transfer(
    ctx: typer.Context,
    path: str | None = typer.Argument(None),
    pull: bool = typer.Option(False, "--pull", help="Copy PATH from the phone instead of to it"),
) -> None:
    """Push a file to the attached phone, or pull one with --pull."""
    if not path:
        _usage_error("Please specify a path.")
    _run(ctx, ControlCommand.FILE_TRANSFER, ControlArgs(enable=not pull, path=path))


@app.command("tether")
def tether(
    ctx: typer.Context,
    state: str = typer.Argument("off"),
    ifname: str = typer.Option("usb0", "--ifname", help="Tethering network interface"),
) -> None:
    """Bring the tethering interface up (on) or down (off), or show its state."""
    if state == "status":
        try:
            up = InterfaceController().is_interface_up(ifname)
        except MobdevError as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(code=1) from None
        typer.echo(f"{ifname} is {'up' if up else 'down'}")
        return
    enable = _parse_choice(state, {"on": True, "off": False}, "State")
    _run(ctx, ControlCommand.TETHERING, ControlArgs(enable=enable, ifname=ifname))


@app.command("notify")
def notify(ctx: typer.Context, state: str = typer.Argument("off")) -> None:
    """Enable (on) or disable (off) phone notifications."""
    enable = _parse_choice(state, {"on": True, "off": False}, "State")
    _run(ctx, ControlCommand.NOTIFICATIONS, ControlArgs(enable=enable))


@app.command("call")
def call(ctx: typer.Context, action: str = typer.Argument(...)) -> None:
    """Answer or reject the current call."""
    answer = _parse_choice(action, {"answer": True, "reject": False}, "Action")
    _run(ctx, ControlCommand.CALL_CONTROL, ControlArgs(action=answer))


@app.command("volume")
def volume(ctx: typer.Context, direction: str = typer.Argument(...)) -> None:
    """Step the phone's media volume up or down."""
    up = _parse_choice(direction, {"up": True, "down": False}, "Direction")
    _run(ctx, ControlCommand.MEDIA_CONTROL, ControlArgs(action=up))


@app.command("devices")
def list_devices() -> None:
    """List attached USB devices and how they classify."""
    devices = list(enumerate_devices())
    if not devices:
        typer.echo("No USB devices found")
        return
    for device in devices:
        labels = []
        if is_phone_like(device):
            labels.append("phone-like")
        if is_mtp_capable(device):
            labels.append("mtp")
        classes = ", ".join(f"{intf.interface_class:02x}" for intf in device.interfaces)
        typer.echo(f"{device.usb_id} [{classes}] -> {', '.join(labels) or '<no-match>'}")
    phone = find_phone(devices)
    mtp = find_mtp_device(devices)
    typer.echo(f"Phone: {phone.usb_id if phone else '<none>'}")
    typer.echo(f"Transfer target: {mtp.usb_id if mtp else '<none>'}")


@app.command("serve")
def serve(
    ctx: typer.Context,
    log_level: str = typer.Option("INFO", "--log-level", help="Python logging level"),
) -> None:
    """Run the privileged dispatcher service on its Unix socket."""
    level = log_level.upper()
    if level not in logging.getLevelNamesMapping():
        _usage_error(f"Unknown log level '{log_level}'")
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config = _load(ctx.obj["config_path"])
        server = ControlServer(config.socket_path, Dispatcher(config), mode=config.socket_mode)
    except (MobdevError, OSError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    with server:
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            logging.getLogger(__name__).info("Shutting down")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
