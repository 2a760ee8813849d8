"""Phone-likeness heuristics over USB interface descriptors.

Matching is by interface class rather than vendor/product id: a class-based
test covers Android and iOS variants without an id database, at the cost of
also accepting some non-phone peripherals.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from itertools import chain

from mobdevctl.core.model import UsbDeviceView, UsbInterfaceDescriptor

USB_CLASS_STILL_IMAGE = 0x06
USB_CLASS_WIRELESS_CONTROLLER = 0xE0
USB_CLASS_VENDOR_SPEC = 0xFF
USB_SUBCLASS_VENDOR_SPEC = 0xFF

_PHONE_CLASSES = frozenset(
    {USB_CLASS_STILL_IMAGE, USB_CLASS_WIRELESS_CONTROLLER, USB_CLASS_VENDOR_SPEC}
)


def _phone_interface(intf: UsbInterfaceDescriptor) -> bool:
    return intf.interface_class in _PHONE_CLASSES


def _mtp_interface(intf: UsbInterfaceDescriptor) -> bool:
    if intf.interface_class == USB_CLASS_STILL_IMAGE:
        return True
    return (
        intf.interface_class == USB_CLASS_VENDOR_SPEC
        and intf.subclass == USB_SUBCLASS_VENDOR_SPEC
        and intf.protocol == 0
    )


def _interfaces(devices: Iterable[UsbDeviceView]) -> Iterator[UsbInterfaceDescriptor]:
    return chain.from_iterable(device.interfaces for device in devices)


def is_phone_like(device: UsbDeviceView) -> bool:
    return any(_phone_interface(intf) for intf in device.interfaces)


def is_mtp_capable(device: UsbDeviceView) -> bool:
    return any(_mtp_interface(intf) for intf in device.interfaces)


def classify(devices: Iterable[UsbDeviceView]) -> bool:
    """Return True as soon as any device exposes a phone-like interface."""
    return any(_phone_interface(intf) for intf in _interfaces(devices))


def classify_mtp(devices: Iterable[UsbDeviceView]) -> bool:
    """Stricter check gating file transfer: an MTP/PTP-style interface."""
    return any(_mtp_interface(intf) for intf in _interfaces(devices))


def find_phone(devices: Iterable[UsbDeviceView]) -> UsbDeviceView | None:
    return next((device for device in devices if is_phone_like(device)), None)


def find_mtp_device(devices: Iterable[UsbDeviceView]) -> UsbDeviceView | None:
    return next((device for device in devices if is_mtp_capable(device)), None)
