from __future__ import annotations

import socket
import threading

import pytest

from mobdevctl.core.errors import DeviceIOError, DeviceNotFoundError
from mobdevctl.core.netif import IFF_UP, InterfaceController, InterfaceHandle, IoctlInterfaceRegistry

IFF_BROADCAST = 0x2
IFF_MULTICAST = 0x1000


class FakeRegistry:
    def __init__(self, interfaces: dict[str, int], *, fail_write: bool = False) -> None:
        self.flags = dict(interfaces)
        self.writes = 0
        self.acquired = 0
        self.released = 0
        self.fail_write = fail_write

    def acquire(self, name: str) -> InterfaceHandle:
        if name not in self.flags:
            raise DeviceNotFoundError(f"Network interface '{name}' not found")
        self.acquired += 1
        return InterfaceHandle(name=name, index=1)

    def release(self, handle: InterfaceHandle) -> None:
        self.released += 1

    def get_flags(self, handle: InterfaceHandle) -> int:
        return self.flags[handle.name]

    def set_flags(self, handle: InterfaceHandle, flags: int) -> None:
        if self.fail_write:
            raise PermissionError(1, "Operation not permitted")
        self.writes += 1
        self.flags[handle.name] = flags


def test_set_up_preserves_other_flags() -> None:
    registry = FakeRegistry({"usb0": IFF_BROADCAST | IFF_MULTICAST})
    controller = InterfaceController(registry, lock=threading.Lock())

    assert controller.set_interface_up("usb0", True) is True
    assert registry.flags["usb0"] == IFF_BROADCAST | IFF_MULTICAST | IFF_UP

    assert controller.set_interface_up("usb0", False) is True
    assert registry.flags["usb0"] == IFF_BROADCAST | IFF_MULTICAST
    assert registry.writes == 2


def test_matching_state_is_noop() -> None:
    registry = FakeRegistry({"usb0": IFF_UP})
    controller = InterfaceController(registry, lock=threading.Lock())

    assert controller.set_interface_up("usb0", True) is False
    assert registry.writes == 0
    assert registry.acquired == registry.released == 1


def test_unknown_interface_raises_not_found() -> None:
    registry = FakeRegistry({"usb0": 0})
    controller = InterfaceController(registry, lock=threading.Lock())

    with pytest.raises(DeviceNotFoundError):
        controller.set_interface_up("nope0", True)
    assert registry.flags == {"usb0": 0}


def test_write_failure_is_io_error_and_releases_handle() -> None:
    registry = FakeRegistry({"usb0": 0}, fail_write=True)
    lock = threading.Lock()
    controller = InterfaceController(registry, lock=lock)

    with pytest.raises(DeviceIOError):
        controller.set_interface_up("usb0", True)
    assert registry.released == 1
    assert not lock.locked()


def test_is_interface_up() -> None:
    controller = InterfaceController(FakeRegistry({"usb0": IFF_UP, "usb1": 0}), lock=threading.Lock())
    assert controller.is_interface_up("usb0") is True
    assert controller.is_interface_up("usb1") is False


def test_ioctl_registry_missing_interface(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_nametoindex(name: str) -> int:
        raise OSError(19, "No such device")

    monkeypatch.setattr(socket, "if_nametoindex", fake_nametoindex)

    with pytest.raises(DeviceNotFoundError):
        IoctlInterfaceRegistry().acquire("ghost0")


def test_ioctl_registry_reads_loopback_flags_and_releases() -> None:
    registry = IoctlInterfaceRegistry()
    try:
        handle = registry.acquire("lo")
    except DeviceNotFoundError:
        pytest.skip("no loopback interface in this environment")
    try:
        assert isinstance(registry.get_flags(handle), int)
    finally:
        registry.release(handle)
    assert handle.sock is None
