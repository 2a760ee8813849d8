"""Stable public API for building tooling on top of mobdevctl.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

import os

from mobdevctl.channel.base import ControlChannel
from mobdevctl.channel.unix_socket import UnixSocketClient
from mobdevctl.core.args import encode_args
from mobdevctl.core.config import load_config
from mobdevctl.core.dispatcher import Dispatcher
from mobdevctl.core.errors import (
    AccessFaultError,
    ChannelError,
    ConfigLoadError,
    ConfigValidationError,
    DeviceIOError,
    DeviceNotFoundError,
    HelperIOError,
    HelperTimeoutError,
    InvalidArgumentError,
    MobdevError,
    error_for_status,
)
from mobdevctl.core.model import ControlArgs, ControlCommand, MobdevConfig, UsbDeviceView

__all__ = [
    "MobdevError",
    "AccessFaultError",
    "ChannelError",
    "ConfigLoadError",
    "ConfigValidationError",
    "DeviceIOError",
    "DeviceNotFoundError",
    "HelperIOError",
    "HelperTimeoutError",
    "InvalidArgumentError",
    "ControlArgs",
    "ControlCommand",
    "MobdevConfig",
    "UsbDeviceView",
    "Dispatcher",
    "Client",
]


class Client:
    """Public client for issuing control commands.

    By default commands go to the running service over its Unix socket. Pass
    ``channel`` to use anything with a ``dispatch(command, block)`` method,
    such as an in-process :class:`Dispatcher`.
    """

    def __init__(
        self,
        *,
        channel: ControlChannel | None = None,
        config: MobdevConfig | None = None,
    ) -> None:
        if channel is None:
            config = config or load_config().config
            channel = UnixSocketClient(config.socket_path)
        self._channel = channel

    def _call(self, command: ControlCommand, args: ControlArgs | None = None) -> int:
        block = encode_args(args) if args is not None else None
        status = self._channel.dispatch(int(command), block)
        if status < 0:
            raise error_for_status(status, f"{command.name} failed: {os.strerror(-status)}")
        return status

    def detect(self) -> bool:
        return self._call(ControlCommand.DETECT) == 1

    def transfer(self, path: str, *, push: bool = True) -> None:
        self._call(ControlCommand.FILE_TRANSFER, ControlArgs(enable=push, path=path))

    def set_tethering(self, ifname: str, enable: bool) -> None:
        self._call(ControlCommand.TETHERING, ControlArgs(enable=enable, ifname=ifname))

    def set_notifications(self, enable: bool) -> None:
        self._call(ControlCommand.NOTIFICATIONS, ControlArgs(enable=enable))

    def answer_call(self) -> None:
        self._call(ControlCommand.CALL_CONTROL, ControlArgs(action=True))

    def reject_call(self) -> None:
        self._call(ControlCommand.CALL_CONTROL, ControlArgs(action=False))

    def volume_up(self) -> None:
        self._call(ControlCommand.MEDIA_CONTROL, ControlArgs(action=True))

    def volume_down(self) -> None:
        self._call(ControlCommand.MEDIA_CONTROL, ControlArgs(action=False))
