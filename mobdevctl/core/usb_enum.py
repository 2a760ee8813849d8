"""USB device enumeration through pyusb."""

from __future__ import annotations

import logging
from collections.abc import Iterator

import usb.core

from mobdevctl.core.model import UsbDeviceView, UsbInterfaceDescriptor

LOGGER = logging.getLogger(__name__)


def _read_interfaces(device: usb.core.Device) -> tuple[UsbInterfaceDescriptor, ...]:
    # Iterating a pyusb configuration yields one entry per alternate setting.
    return tuple(
        UsbInterfaceDescriptor(
            number=intf.bInterfaceNumber,
            alternate=intf.bAlternateSetting,
            interface_class=intf.bInterfaceClass,
            subclass=intf.bInterfaceSubClass,
            protocol=intf.bInterfaceProtocol,
        )
        for cfg in device
        for intf in cfg
    )


def enumerate_devices() -> Iterator[UsbDeviceView]:
    """Yield a fresh snapshot of every attached USB device.

    An unavailable USB backend yields nothing rather than raising, so callers
    see an empty bus.
    """
    try:
        # The backend is looked up eagerly; the bus itself is walked lazily.
        devices = usb.core.find(find_all=True)
        for device in devices:
            view = _snapshot(device)
            if view is not None:
                yield view
    except usb.core.NoBackendError:
        LOGGER.warning("No libusb backend available; reporting an empty USB bus")
    except usb.core.USBError as exc:
        LOGGER.warning("USB enumeration failed: %s", exc)


def _snapshot(device: usb.core.Device) -> UsbDeviceView | None:
    try:
        interfaces = _read_interfaces(device)
    except (usb.core.USBError, NotImplementedError, ValueError) as exc:
        LOGGER.debug(
            "Skipping %04x:%04x, descriptors unreadable: %s",
            device.idVendor,
            device.idProduct,
            exc,
        )
        return None
    return UsbDeviceView(
        vendor_id=device.idVendor,
        product_id=device.idProduct,
        bus=getattr(device, "bus", None),
        address=getattr(device, "address", None),
        interfaces=interfaces,
    )
