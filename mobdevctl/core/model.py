"""Core data models used across the dispatcher, channel, and CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Union


class ControlCommand(IntEnum):
    DETECT = 0
    FILE_TRANSFER = 1
    TETHERING = 2
    NOTIFICATIONS = 3
    CALL_CONTROL = 4
    MEDIA_CONTROL = 5


@dataclass(frozen=True)
class ControlArgs:
    """Decoded, bounded contents of a caller's argument block."""

    enable: bool = False
    path: str = ""
    ifname: str = ""
    action: bool = False


@dataclass(frozen=True)
class DetectRequest:
    pass


@dataclass(frozen=True)
class FileTransferRequest:
    path: str
    push: bool


@dataclass(frozen=True)
class TetheringRequest:
    ifname: str
    enable: bool


@dataclass(frozen=True)
class NotificationsRequest:
    enable: bool


@dataclass(frozen=True)
class CallControlRequest:
    answer: bool


@dataclass(frozen=True)
class MediaControlRequest:
    volume_up: bool


CommandRequest = Union[
    DetectRequest,
    FileTransferRequest,
    TetheringRequest,
    NotificationsRequest,
    CallControlRequest,
    MediaControlRequest,
]


@dataclass(frozen=True)
class UsbInterfaceDescriptor:
    number: int
    alternate: int
    interface_class: int
    subclass: int
    protocol: int


@dataclass(frozen=True)
class UsbDeviceView:
    vendor_id: int
    product_id: int
    bus: int | None = None
    address: int | None = None
    interfaces: tuple[UsbInterfaceDescriptor, ...] = ()

    @property
    def usb_id(self) -> str:
        return f"{self.vendor_id:04x}:{self.product_id:04x}"


@dataclass(frozen=True)
class HelperResult:
    argv: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""


@dataclass(frozen=True)
class MobdevConfig:
    helper_path: str
    helper_timeout_s: float = 30.0
    helper_env: dict[str, str] = field(default_factory=dict)
    remote_dir: str = "/sdcard/"
    local_dir: str = "/var/lib/mobdevctl/inbox"
    call_state_probe: bool = False
    socket_path: str = "/run/mobdevctl.sock"
    socket_mode: int = 0o660
