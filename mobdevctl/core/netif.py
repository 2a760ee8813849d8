"""Administrative up/down control of network interfaces."""

from __future__ import annotations

import fcntl
import logging
import socket
import struct
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Protocol

from mobdevctl.core.errors import DeviceIOError, DeviceNotFoundError

LOGGER = logging.getLogger(__name__)

IFF_UP = 0x1
IFNAMSIZ = 16
SIOCGIFFLAGS = 0x8913
SIOCSIFFLAGS = 0x8914
# struct ifreq: name followed by a union padded to 24 bytes; flags is a short.
_IFREQ_FLAGS = struct.Struct(f"{IFNAMSIZ}sH22x")

# Single writer for interface configuration across the whole process.
_NETCONFIG_LOCK = threading.Lock()


@dataclass
class InterfaceHandle:
    name: str
    index: int
    sock: socket.socket | None = None


class InterfaceRegistry(Protocol):
    def acquire(self, name: str) -> InterfaceHandle:
        """Resolve ``name``, raising DeviceNotFoundError if it does not exist."""

    def release(self, handle: InterfaceHandle) -> None:
        ...

    def get_flags(self, handle: InterfaceHandle) -> int:
        ...

    def set_flags(self, handle: InterfaceHandle, flags: int) -> None:
        ...


class IoctlInterfaceRegistry:
    """Kernel interface table accessed with SIOCGIFFLAGS/SIOCSIFFLAGS."""

    def acquire(self, name: str) -> InterfaceHandle:
        try:
            index = socket.if_nametoindex(name)
        except (OSError, ValueError) as exc:
            raise DeviceNotFoundError(f"Network interface '{name}' not found") from exc
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        except OSError as exc:
            raise DeviceIOError(f"Could not open control socket for '{name}': {exc}") from exc
        return InterfaceHandle(name=name, index=index, sock=sock)

    def release(self, handle: InterfaceHandle) -> None:
        if handle.sock is not None:
            handle.sock.close()
            handle.sock = None

    def _ioctl(self, handle: InterfaceHandle, request: int, flags: int) -> int:
        if handle.sock is None:
            raise DeviceIOError(f"Interface handle for '{handle.name}' was released")
        ifreq = _IFREQ_FLAGS.pack(handle.name.encode("utf-8"), flags)
        result = fcntl.ioctl(handle.sock.fileno(), request, ifreq)
        return _IFREQ_FLAGS.unpack(result)[1]

    def get_flags(self, handle: InterfaceHandle) -> int:
        return self._ioctl(handle, SIOCGIFFLAGS, 0)

    def set_flags(self, handle: InterfaceHandle, flags: int) -> None:
        self._ioctl(handle, SIOCSIFFLAGS, flags)


class InterfaceController:
    def __init__(
        self,
        registry: InterfaceRegistry | None = None,
        *,
        lock: threading.Lock | None = None,
    ) -> None:
        self.registry = registry or IoctlInterfaceRegistry()
        self._lock = lock or _NETCONFIG_LOCK

    @contextmanager
    def _resolved(self, name: str) -> Iterator[InterfaceHandle]:
        handle = self.registry.acquire(name)
        try:
            yield handle
        finally:
            self.registry.release(handle)

    def is_interface_up(self, name: str) -> bool:
        with self._lock, self._resolved(name) as handle:
            try:
                return bool(self.registry.get_flags(handle) & IFF_UP)
            except OSError as exc:
                raise DeviceIOError(f"Could not read flags of '{name}': {exc}") from exc

    def set_interface_up(self, name: str, up: bool) -> bool:
        """Set the administrative state of ``name``; return whether it changed."""
        with self._lock, self._resolved(name) as handle:
            try:
                flags = self.registry.get_flags(handle)
                if bool(flags & IFF_UP) == up:
                    return False
                new_flags = flags | IFF_UP if up else flags & ~IFF_UP
                self.registry.set_flags(handle, new_flags)
            except OSError as exc:
                raise DeviceIOError(
                    f"Could not set '{name}' {'up' if up else 'down'}: {exc}"
                ) from exc
        LOGGER.info("Interface %s set %s", name, "up" if up else "down")
        return True
