"""Cancellable timer handles on the running event loop."""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class CancellableTimer:
    """A one-shot or repeating loop.call_later handle. Callbacks run on the loop thread."""

    def __init__(self, delay: float, callback: Callable[[], None], repeat: bool = False):
        self.delay = delay
        self.callback = callback
        self.repeat = repeat
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def active(self) -> bool:
        return self._handle is not None

    def start(self) -> "CancellableTimer":
        self.cancel()
        self._handle = asyncio.get_running_loop().call_later(self.delay, self._fire)
        return self

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        if self.repeat:
            self._handle = asyncio.get_running_loop().call_later(self.delay, self._fire)
        self.callback()


class Debouncer:
    """Runs callback once, delay seconds after the last trigger()."""

    def __init__(self, delay: float, callback: Callable[[], None]):
        self._timer = CancellableTimer(delay, callback)

    @property
    def pending(self) -> bool:
        return self._timer.active

    def trigger(self) -> None:
        self._timer.start()

    def cancel(self) -> None:
        self._timer.cancel()

    def flush(self) -> None:
        """Run a pending callback now instead of waiting for the delay."""
        if self._timer.active:
            self._timer.cancel()
            self._timer.callback()
