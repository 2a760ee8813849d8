"""Unix domain socket control channel.

Request: ``uint32 command | uint8 has_args | block`` where ``block`` is the
fixed-size argument block, present only when ``has_args`` is non-zero.
Response: ``int32 status``. All fields are little-endian.
"""

from __future__ import annotations

import errno
import logging
import os
import socket
import socketserver
import struct
from pathlib import Path

from mobdevctl.core.args import BLOCK_SIZE
from mobdevctl.core.dispatcher import Dispatcher
from mobdevctl.core.errors import ChannelError

LOGGER = logging.getLogger(__name__)

REQUEST_HEADER = struct.Struct("<IB")
RESPONSE = struct.Struct("<i")


def encode_request(command: int, block: bytes | None) -> bytes:
    if block is None:
        return REQUEST_HEADER.pack(command, 0)
    return REQUEST_HEADER.pack(command, 1) + block


class _ControlRequestHandler(socketserver.StreamRequestHandler):
    server: ControlServer

    def handle(self) -> None:
        header = self.rfile.read(REQUEST_HEADER.size)
        if len(header) != REQUEST_HEADER.size:
            LOGGER.warning("Truncated request header (%d bytes)", len(header))
            self._reply(-errno.EFAULT)
            return
        command, has_args = REQUEST_HEADER.unpack(header)

        block: bytes | None = None
        if has_args:
            block = self.rfile.read(BLOCK_SIZE)
            if len(block) != BLOCK_SIZE:
                LOGGER.warning("Truncated argument block (%d of %d bytes)", len(block), BLOCK_SIZE)
                self._reply(-errno.EFAULT)
                return

        self._reply(self.server.dispatcher.dispatch(command, block))

    def _reply(self, status: int) -> None:
        try:
            self.wfile.write(RESPONSE.pack(status))
        except OSError as exc:
            LOGGER.debug("Client went away before status %d was sent: %s", status, exc)


class ControlServer(socketserver.ThreadingMixIn, socketserver.UnixStreamServer):
    """Serves a Dispatcher on a Unix socket, one thread per connection."""

    daemon_threads = True

    def __init__(self, socket_path: str, dispatcher: Dispatcher, *, mode: int = 0o660) -> None:
        self.dispatcher = dispatcher
        self.socket_path = socket_path
        path = Path(socket_path)
        if path.is_socket():
            path.unlink()
        path.parent.mkdir(parents=True, exist_ok=True)
        super().__init__(socket_path, _ControlRequestHandler)
        os.chmod(socket_path, mode)
        LOGGER.info("Listening on %s", socket_path)

    def server_close(self) -> None:
        super().server_close()
        try:
            os.unlink(self.socket_path)
        except FileNotFoundError:
            pass


class UnixSocketClient:
    def __init__(self, socket_path: str, *, timeout_s: float | None = None) -> None:
        self.socket_path = socket_path
        self.timeout_s = timeout_s

    def dispatch(self, command: int, block: bytes | None = None) -> int:
        try:
            sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        except OSError as exc:
            raise ChannelError(f"Could not create control socket: {exc}") from exc
        sock.settimeout(self.timeout_s)
        try:
            try:
                sock.connect(self.socket_path)
            except OSError as exc:
                raise ChannelError(
                    f"Could not connect to mobdevctl service at {self.socket_path}: {exc}"
                ) from exc

            try:
                sock.sendall(encode_request(command, block))
                response = b""
                while len(response) < RESPONSE.size:
                    chunk = sock.recv(RESPONSE.size - len(response))
                    if not chunk:
                        break
                    response += chunk
            except TimeoutError as exc:
                raise ChannelError("Timed out waiting for the mobdevctl service") from exc
            except OSError as exc:
                raise ChannelError(f"Control channel failed: {exc}") from exc

            if len(response) != RESPONSE.size:
                raise ChannelError("Service closed the connection without a status")
            return RESPONSE.unpack(response)[0]
        finally:
            sock.close()
