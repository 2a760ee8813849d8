"""Decoding and validation of the fixed-layout control argument block.

The block is the only caller-controlled input that crosses into the
dispatcher. It is copied in full, unpacked once, and turned into a typed
request; nothing downstream ever sees the raw bytes.

Layout (little-endian)::

    int32 enable | char path[128] | char ifname[32] | int32 action
"""

from __future__ import annotations

import struct
from dataclasses import replace

from mobdevctl.core.errors import AccessFaultError, InvalidArgumentError
from mobdevctl.core.model import (
    CallControlRequest,
    CommandRequest,
    ControlArgs,
    ControlCommand,
    DetectRequest,
    FileTransferRequest,
    MediaControlRequest,
    NotificationsRequest,
    TetheringRequest,
)

PATH_FIELD_SIZE = 128
IFNAME_FIELD_SIZE = 32
_BLOCK = struct.Struct(f"<i{PATH_FIELD_SIZE}s{IFNAME_FIELD_SIZE}si")
BLOCK_SIZE = _BLOCK.size


def parse_command(code: int) -> ControlCommand:
    try:
        return ControlCommand(code)
    except ValueError:
        raise InvalidArgumentError(f"Unknown command {code}") from None


def _bounded_string(raw: bytes, *, field_name: str) -> str:
    # Anything past the first NUL is ignored; a field with no NUL at all
    # has no room for its terminator.
    terminator = raw.find(b"\0")
    if terminator < 0:
        raise InvalidArgumentError(
            f"{field_name} exceeds {len(raw) - 1} bytes or is not NUL-terminated"
        )
    try:
        value = raw[:terminator].decode("utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidArgumentError(f"{field_name} is not valid UTF-8") from exc
    if any(ord(ch) < 0x20 or ord(ch) == 0x7F for ch in value):
        raise InvalidArgumentError(f"{field_name} contains control characters")
    if value.startswith("-"):
        raise InvalidArgumentError(f"{field_name} must not start with '-'")
    return value


def _unpack(block: bytes | bytearray | memoryview) -> tuple[int, bytes, bytes, int]:
    try:
        data = bytes(block)
    except (TypeError, ValueError) as exc:
        raise AccessFaultError(f"Argument block is not a byte buffer: {exc}") from exc
    if len(data) != BLOCK_SIZE:
        raise AccessFaultError(
            f"Argument block must be {BLOCK_SIZE} bytes, got {len(data)}"
        )
    return _BLOCK.unpack(data)


def decode_args(block: bytes | bytearray | memoryview) -> ControlArgs:
    """Decode a block with both string fields validated."""
    enable, raw_path, raw_ifname, action = _unpack(block)
    return ControlArgs(
        enable=enable != 0,
        path=_bounded_string(raw_path, field_name="path"),
        ifname=_bounded_string(raw_ifname, field_name="ifname"),
        action=action != 0,
    )


def encode_args(args: ControlArgs) -> bytes:
    """Pack ``args`` into a block, as a front end would before a call."""
    path = args.path.encode("utf-8")
    ifname = args.ifname.encode("utf-8")
    if len(path) >= PATH_FIELD_SIZE:
        raise InvalidArgumentError(f"path exceeds {PATH_FIELD_SIZE - 1} bytes")
    if len(ifname) >= IFNAME_FIELD_SIZE:
        raise InvalidArgumentError(f"ifname exceeds {IFNAME_FIELD_SIZE - 1} bytes")
    return _BLOCK.pack(int(args.enable), path, ifname, int(args.action))


def build_request(command: ControlCommand, args: ControlArgs | None) -> CommandRequest:
    if command is ControlCommand.DETECT:
        return DetectRequest()
    if args is None:
        raise InvalidArgumentError(f"Command {command.name} requires an argument block")

    if command is ControlCommand.FILE_TRANSFER:
        if not args.path:
            raise InvalidArgumentError("File transfer requires a non-empty path")
        return FileTransferRequest(path=args.path, push=args.enable)
    if command is ControlCommand.TETHERING:
        return TetheringRequest(ifname=args.ifname, enable=args.enable)
    if command is ControlCommand.NOTIFICATIONS:
        return NotificationsRequest(enable=args.enable)
    if command is ControlCommand.CALL_CONTROL:
        return CallControlRequest(answer=args.action)
    if command is ControlCommand.MEDIA_CONTROL:
        return MediaControlRequest(volume_up=args.action)
    raise InvalidArgumentError(f"Unsupported command {command!r}")


def decode_request(code: int, block: bytes | None) -> CommandRequest:
    """Validate a raw command code and argument block into a typed request.

    Only the string field the command reads is validated. Whatever the
    caller left in the other one is dropped unread.
    """
    command = parse_command(code)
    if command is ControlCommand.DETECT:
        return DetectRequest()
    if block is None:
        return build_request(command, None)

    enable, raw_path, raw_ifname, action = _unpack(block)
    args = ControlArgs(enable=enable != 0, action=action != 0)
    if command is ControlCommand.FILE_TRANSFER:
        args = replace(args, path=_bounded_string(raw_path, field_name="path"))
    elif command is ControlCommand.TETHERING:
        args = replace(args, ifname=_bounded_string(raw_ifname, field_name="ifname"))
    return build_request(command, args)
