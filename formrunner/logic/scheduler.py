"""Debounce schedulers for autosave.

A scheduler holds at most one pending callback. Arming it again replaces the
pending callback and restarts the delay, so a burst of edits produces a
single save carrying the latest state.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class DebounceScheduler(Protocol):
    def arm(self, delay: float, callback: Callable[[], None]) -> None: ...

    def cancel(self) -> None: ...

    @property
    def pending(self) -> bool: ...


class ManualDebounceScheduler:
    """Clock-driven scheduler for tests and synchronous hosts.

    Time only moves when `advance` is called; `fire` runs the pending callback
    immediately regardless of the remaining delay.
    """

    def __init__(self) -> None:
        self._callback: Optional[Callable[[], None]] = None
        self._remaining = 0.0
        self.fired = 0

    @property
    def pending(self) -> bool:
        return self._callback is not None

    @property
    def remaining(self) -> float:
        return self._remaining if self._callback is not None else 0.0

    def arm(self, delay: float, callback: Callable[[], None]) -> None:
        self._callback = callback
        self._remaining = max(0.0, float(delay))

    def cancel(self) -> None:
        self._callback = None
        self._remaining = 0.0

    def advance(self, seconds: float) -> bool:
        """Move the clock forward; returns True when the callback ran."""
        if self._callback is None:
            return False
        self._remaining -= seconds
        if self._remaining > 0:
            return False
        return self.fire()

    def fire(self) -> bool:
        callback, self._callback = self._callback, None
        self._remaining = 0.0
        if callback is None:
            return False
        self.fired += 1
        callback()
        return True


class LoopDebounceScheduler:
    """Scheduler backed by an asyncio event loop's `call_later`."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    @property
    def pending(self) -> bool:
        return self._handle is not None and not self._handle.cancelled()

    def arm(self, delay: float, callback: Callable[[], None]) -> None:
        self.cancel()

        def _run() -> None:
            self._handle = None
            callback()

        self._handle = self._get_loop().call_later(max(0.0, float(delay)), _run)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


__all__ = ["DebounceScheduler", "ManualDebounceScheduler", "LoopDebounceScheduler"]
