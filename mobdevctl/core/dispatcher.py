"""Command dispatcher: the single entry point for control commands."""

from __future__ import annotations

import errno
import logging
from collections.abc import Callable, Iterable

from mobdevctl.core.args import decode_request
from mobdevctl.core.classifier import classify, classify_mtp
from mobdevctl.core.errors import DeviceNotFoundError, InvalidArgumentError, MobdevError
from mobdevctl.core.helper import (
    KEYCODE_CALL,
    KEYCODE_ENDCALL,
    KEYCODE_VOLUME_DOWN,
    KEYCODE_VOLUME_UP,
    HelperInvoker,
    HelperRunner,
    call_state_probe_args,
    keyevent_args,
    parse_call_state,
    pull_args,
    push_args,
)
from mobdevctl.core.model import (
    CallControlRequest,
    CommandRequest,
    DetectRequest,
    FileTransferRequest,
    MediaControlRequest,
    MobdevConfig,
    NotificationsRequest,
    TetheringRequest,
    UsbDeviceView,
)
from mobdevctl.core.netif import InterfaceController
from mobdevctl.core.notifications import NotificationState, get_notification_state
from mobdevctl.core.usb_enum import enumerate_devices

LOGGER = logging.getLogger(__name__)

UsbEnumerator = Callable[[], Iterable[UsbDeviceView]]


class Dispatcher:
    """Routes control commands and reduces every outcome to one status code.

    ``dispatch`` never raises: ``0`` is success (``Detect`` returns ``1`` when
    a phone-like device is attached), negative values are ``-errno``.
    """

    def __init__(
        self,
        config: MobdevConfig,
        *,
        helper: HelperRunner | None = None,
        interfaces: InterfaceController | None = None,
        notifications: NotificationState | None = None,
        enumerate_usb: UsbEnumerator = enumerate_devices,
    ) -> None:
        self.config = config
        self.helper = helper or HelperInvoker(
            config.helper_path,
            env=config.helper_env,
            timeout_s=config.helper_timeout_s,
        )
        self.interfaces = interfaces or InterfaceController()
        self.notifications = notifications or get_notification_state()
        self.enumerate_usb = enumerate_usb

    def dispatch(self, command: int, block: bytes | None = None) -> int:
        try:
            request = decode_request(command, block)
        except MobdevError as exc:
            LOGGER.warning("Rejected command %s: %s", command, exc)
            return exc.status
        return self.execute(request)

    def execute(self, request: CommandRequest) -> int:
        LOGGER.info("Dispatching %s", request)
        try:
            return self._route(request)
        except MobdevError as exc:
            LOGGER.warning("%s failed: %s", type(request).__name__, exc)
            return exc.status
        except Exception:
            LOGGER.exception("Unexpected failure handling %s", request)
            return -errno.EIO

    def _route(self, request: CommandRequest) -> int:
        if isinstance(request, DetectRequest):
            return self._detect()
        if isinstance(request, FileTransferRequest):
            return self._file_transfer(request)
        if isinstance(request, TetheringRequest):
            return self._tethering(request)
        if isinstance(request, NotificationsRequest):
            return self._notifications(request)
        if isinstance(request, CallControlRequest):
            return self._call_control(request)
        if isinstance(request, MediaControlRequest):
            return self._media_control(request)
        raise InvalidArgumentError(f"Unsupported request {request!r}")

    def _detect(self) -> int:
        return 1 if classify(self.enumerate_usb()) else 0

    def _file_transfer(self, request: FileTransferRequest) -> int:
        if not request.path:
            raise InvalidArgumentError("File transfer requires a non-empty path")
        if not classify_mtp(self.enumerate_usb()):
            raise DeviceNotFoundError("No MTP-capable phone connected")
        if request.push:
            self.helper.run(push_args(request.path, self.config.remote_dir))
        else:
            self.helper.run(pull_args(request.path, self.config.local_dir))
        return 0

    def _tethering(self, request: TetheringRequest) -> int:
        self.interfaces.set_interface_up(request.ifname, request.enable)
        return 0

    def _notifications(self, request: NotificationsRequest) -> int:
        self.notifications.set(request.enable)
        return 0

    def _call_control(self, request: CallControlRequest) -> int:
        if self.config.call_state_probe:
            probe = self.helper.run(call_state_probe_args())
            LOGGER.info("Call state before keyevent: %s", parse_call_state(probe.stdout) or "unknown")
        self.helper.run(keyevent_args(KEYCODE_CALL if request.answer else KEYCODE_ENDCALL))
        return 0

    def _media_control(self, request: MediaControlRequest) -> int:
        self.helper.run(keyevent_args(KEYCODE_VOLUME_UP if request.volume_up else KEYCODE_VOLUME_DOWN))
        return 0
