from __future__ import annotations

import pytest
import usb.core

from mobdevctl.core import usb_enum
from mobdevctl.core.model import UsbInterfaceDescriptor


class FakeInterface:
    def __init__(self, number: int, alternate: int, cls: int, subclass: int = 0, protocol: int = 0) -> None:
        self.bInterfaceNumber = number
        self.bAlternateSetting = alternate
        self.bInterfaceClass = cls
        self.bInterfaceSubClass = subclass
        self.bInterfaceProtocol = protocol


class FakeDevice:
    def __init__(self, vid: int, pid: int, configurations: list[list[FakeInterface]], *, broken: bool = False) -> None:
        self.idVendor = vid
        self.idProduct = pid
        self.bus = 1
        self.address = 7
        self._configurations = configurations
        self._broken = broken

    def __iter__(self):
        if self._broken:
            raise usb.core.USBError("Access denied (insufficient permissions)")
        return iter(self._configurations)


def test_enumerates_every_configuration_and_alternate_setting(monkeypatch: pytest.MonkeyPatch) -> None:
    phone = FakeDevice(
        0x18D1,
        0x4EE2,
        [
            [FakeInterface(0, 0, 0x06, 1, 1), FakeInterface(1, 0, 0xFF, 0x42, 1)],
            [FakeInterface(0, 0, 0x0A), FakeInterface(0, 1, 0xE0, 1, 3)],
        ],
    )
    monkeypatch.setattr(usb.core, "find", lambda find_all: iter([phone]))

    devices = list(usb_enum.enumerate_devices())

    assert len(devices) == 1
    view = devices[0]
    assert view.usb_id == "18d1:4ee2"
    assert view.bus == 1 and view.address == 7
    assert len(view.interfaces) == 4
    assert view.interfaces[3] == UsbInterfaceDescriptor(
        number=0, alternate=1, interface_class=0xE0, subclass=1, protocol=3
    )


def test_enumeration_is_lazy(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[bool] = []

    def fake_find(find_all):
        calls.append(find_all)
        return iter([])

    monkeypatch.setattr(usb.core, "find", fake_find)

    devices = usb_enum.enumerate_devices()
    assert calls == []
    assert list(devices) == []
    assert calls == [True]


def test_unreadable_device_is_skipped(monkeypatch: pytest.MonkeyPatch) -> None:
    locked = FakeDevice(0x05AC, 0x12A8, [], broken=True)
    hub = FakeDevice(0x1D6B, 0x0002, [[FakeInterface(0, 0, 0x09)]])
    monkeypatch.setattr(usb.core, "find", lambda find_all: iter([locked, hub]))

    devices = list(usb_enum.enumerate_devices())
    assert [d.usb_id for d in devices] == ["1d6b:0002"]


def test_missing_backend_yields_nothing(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_find(find_all):
        raise usb.core.NoBackendError("No backend available")

    monkeypatch.setattr(usb.core, "find", fake_find)

    assert list(usb_enum.enumerate_devices()) == []


def test_bus_error_mid_walk_ends_sequence(monkeypatch: pytest.MonkeyPatch) -> None:
    hub = FakeDevice(0x1D6B, 0x0002, [[FakeInterface(0, 0, 0x09)]])

    def _walk():
        yield hub
        raise usb.core.USBError("Pipe error")

    monkeypatch.setattr(usb.core, "find", lambda find_all: _walk())

    assert [d.usb_id for d in usb_enum.enumerate_devices()] == ["1d6b:0002"]
