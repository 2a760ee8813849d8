"""Domain-specific errors for mobdevctl.

Every error raised below the dispatcher carries the negative errno the
dispatcher reports for it.
"""

import errno


class MobdevError(Exception):
    """Base error for mobdevctl."""

    code: int = errno.EIO

    @property
    def status(self) -> int:
        return -self.code


class ConfigLoadError(MobdevError):
    """Raised when reading a configuration source fails."""


class ConfigValidationError(MobdevError):
    """Raised when a configuration file does not conform to schema or semantics."""


class InvalidArgumentError(MobdevError):
    """Raised for unknown commands and malformed or empty required fields."""

    code = errno.EINVAL


class AccessFaultError(MobdevError):
    """Raised when the argument block could not be read from the caller."""

    code = errno.EFAULT


class DeviceNotFoundError(MobdevError):
    """Raised when no matching USB device or network interface exists."""

    code = errno.ENODEV


class DeviceIOError(MobdevError):
    """Raised when acting on a device or interface fails."""

    code = errno.EIO


class HelperIOError(DeviceIOError):
    """Raised when the helper fails to launch or exits unsuccessfully."""


class HelperTimeoutError(HelperIOError):
    """Raised when the helper outlives its timeout and is killed."""


class ChannelError(MobdevError):
    """Raised when the control channel cannot be reached."""


_ERRORS_BY_CODE: dict[int, type[MobdevError]] = {
    errno.EINVAL: InvalidArgumentError,
    errno.EFAULT: AccessFaultError,
    errno.ENODEV: DeviceNotFoundError,
    errno.EIO: DeviceIOError,
}


def error_for_status(status: int, message: str) -> MobdevError:
    """Rebuild the error a dispatcher status code stands for."""
    error_cls = _ERRORS_BY_CODE.get(-status, MobdevError)
    error = error_cls(message)
    error.code = -status
    return error
