"""Control channel interfaces."""

from __future__ import annotations

from typing import Protocol


class ControlChannel(Protocol):
    def dispatch(self, command: int, block: bytes | None = None) -> int:
        """Deliver one command and its raw argument block, returning the status code."""
