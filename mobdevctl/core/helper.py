"""Synchronous invocation of the external bridge helper."""

from __future__ import annotations

import logging
import re
import subprocess
from collections.abc import Mapping, Sequence
from typing import Protocol

from mobdevctl.core.errors import HelperIOError, HelperTimeoutError
from mobdevctl.core.model import HelperResult

LOGGER = logging.getLogger(__name__)

KEYCODE_CALL = "KEYCODE_CALL"
KEYCODE_ENDCALL = "KEYCODE_ENDCALL"
KEYCODE_VOLUME_UP = "KEYCODE_VOLUME_UP"
KEYCODE_VOLUME_DOWN = "KEYCODE_VOLUME_DOWN"

_CALL_STATE_RE = re.compile(r"mCallState=(\d+)")
CALL_STATE_NAMES = {0: "idle", 1: "ringing", 2: "offhook"}


class HelperRunner(Protocol):
    def run(self, args: Sequence[str]) -> HelperResult:
        """Run the helper with ``args`` and return its result, raising on failure."""


def run_helper(
    executable: str,
    args: Sequence[str],
    *,
    env: Mapping[str, str],
    timeout_s: float,
) -> HelperResult:
    argv = (executable, *args)
    LOGGER.debug("Running helper: %s", " ".join(argv))
    try:
        completed = subprocess.run(
            argv,
            check=False,
            capture_output=True,
            text=True,
            env=dict(env),
            stdin=subprocess.DEVNULL,
            timeout=timeout_s,
        )
    except subprocess.TimeoutExpired as exc:
        # subprocess.run kills and reaps the child before re-raising.
        raise HelperTimeoutError(
            f"Helper {executable} timed out after {timeout_s:g}s and was killed"
        ) from exc
    except OSError as exc:
        raise HelperIOError(f"Could not launch helper {executable}: {exc}") from exc

    result = HelperResult(
        argv=argv,
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )
    if completed.returncode < 0:
        raise HelperIOError(
            f"Helper {executable} was terminated by signal {-completed.returncode}"
        )
    if completed.returncode != 0:
        stderr = result.stderr.strip()
        detail = f": {stderr}" if stderr else ""
        raise HelperIOError(
            f"Helper {executable} exited with status {completed.returncode}{detail}"
        )
    return result


class HelperInvoker:
    """Runs the fixed helper executable with a minimal, non-inherited environment."""

    def __init__(
        self,
        helper_path: str,
        *,
        env: Mapping[str, str] | None = None,
        timeout_s: float = 30.0,
    ) -> None:
        self.helper_path = helper_path
        self.env = dict(env or {})
        self.timeout_s = timeout_s

    def run(self, args: Sequence[str]) -> HelperResult:
        return run_helper(self.helper_path, args, env=self.env, timeout_s=self.timeout_s)


def push_args(local_path: str, remote_dir: str) -> list[str]:
    return ["push", local_path, remote_dir]


def pull_args(remote_path: str, local_dir: str) -> list[str]:
    return ["pull", remote_path, local_dir]


def keyevent_args(keycode: str) -> list[str]:
    return ["shell", "input", "keyevent", keycode]


def call_state_probe_args() -> list[str]:
    return ["shell", "dumpsys", "telephony.registry"]


def parse_call_state(output: str) -> str | None:
    match = _CALL_STATE_RE.search(output)
    if match is None:
        return None
    return CALL_STATE_NAMES.get(int(match.group(1)), "unknown")
