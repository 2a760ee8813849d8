from __future__ import annotations

import subprocess

import pytest

from mobdevctl.core.errors import HelperIOError, HelperTimeoutError
from mobdevctl.core.helper import HelperInvoker, parse_call_state, run_helper

MINIMAL_ENV = {"HOME": "/", "PATH": "/sbin:/bin:/usr/sbin:/usr/bin"}


def _cp(cmd, rc: int, stdout: str = "", stderr: str = "") -> subprocess.CompletedProcess[str]:
    return subprocess.CompletedProcess(cmd, rc, stdout=stdout, stderr=stderr)


def test_invoker_runs_fixed_helper_with_minimal_env(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[dict] = []

    def fake_run(argv, **kwargs):
        calls.append({"argv": argv, **kwargs})
        return _cp(argv, 0, stdout="ok\n")

    monkeypatch.setenv("SECRET_TOKEN", "do-not-leak")
    monkeypatch.setattr(subprocess, "run", fake_run)

    invoker = HelperInvoker("/opt/mobdev-helper", env=MINIMAL_ENV, timeout_s=5)
    result = invoker.run(["shell", "input", "keyevent", "KEYCODE_CALL"])

    assert result.returncode == 0
    assert result.stdout == "ok\n"
    assert len(calls) == 1
    call = calls[0]
    assert call["argv"] == ("/opt/mobdev-helper", "shell", "input", "keyevent", "KEYCODE_CALL")
    assert call["env"] == MINIMAL_ENV
    assert "SECRET_TOKEN" not in call["env"]
    assert call["timeout"] == 5
    assert call["check"] is False


def test_nonzero_exit_is_io_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(subprocess, "run", lambda argv, **kwargs: _cp(argv, 1, stderr="error: no devices/emulators found"))

    with pytest.raises(HelperIOError) as exc:
        run_helper("/opt/mobdev-helper", ["push", "/a", "/sdcard/"], env=MINIMAL_ENV, timeout_s=5)
    assert "no devices/emulators found" in str(exc.value)
    assert exc.value.status < 0


def test_killed_by_signal_is_io_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(subprocess, "run", lambda argv, **kwargs: _cp(argv, -9))

    with pytest.raises(HelperIOError, match="signal 9"):
        run_helper("/opt/mobdev-helper", ["shell"], env=MINIMAL_ENV, timeout_s=5)


def test_launch_failure_is_io_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_run(argv, **kwargs):
        raise FileNotFoundError(2, "No such file or directory", argv[0])

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(HelperIOError, match="Could not launch"):
        run_helper("/missing/helper", ["shell"], env=MINIMAL_ENV, timeout_s=5)


def test_timeout_is_reported_as_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_run(argv, **kwargs):
        raise subprocess.TimeoutExpired(argv, kwargs["timeout"])

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(HelperTimeoutError):
        run_helper("/opt/mobdev-helper", ["shell"], env=MINIMAL_ENV, timeout_s=0.5)


def test_real_process_timeout_kills_child(tmp_path) -> None:
    script = tmp_path / "slow-helper"
    script.write_text("#!/bin/sh\nexec sleep 30\n", encoding="utf-8")
    script.chmod(0o755)

    with pytest.raises(HelperTimeoutError):
        run_helper(str(script), [], env=MINIMAL_ENV, timeout_s=0.2)


def test_parse_call_state() -> None:
    assert parse_call_state("mCallState=0\nmCallIncomingNumber=") == "idle"
    assert parse_call_state("  mCallState=1") == "ringing"
    assert parse_call_state("mCallState=7") == "unknown"
    assert parse_call_state("no state here") is None
