"""
Push channel carrying "submission changed" notifications to sync controllers.

The controller only depends on the PushChannel protocol; SSEPushChannel is the implementation that
reads GET /api/submissions/events and reconnects on its own when the stream drops.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Protocol

import httpx

from config import settings
from schemas.events import SubmissionChanged, UndecodableMessage, decode_push_message

logger = logging.getLogger(__name__)

MessageHandler = Callable[[SubmissionChanged], None]
ConnectionListener = Callable[[bool], None]
Unsubscribe = Callable[[], None]

EVENTS_PATH = "/api/submissions/events"


class PushChannel(Protocol):
    @property
    def connected(self) -> bool: ...

    def subscribe(self, submission_id: str, handler: MessageHandler) -> Unsubscribe: ...

    def subscribe_connection(self, listener: ConnectionListener) -> Unsubscribe: ...


class SubscriberRegistry:
    """Handler bookkeeping shared by push channel implementations."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[MessageHandler]] = {}
        self._listeners: list[ConnectionListener] = []
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    def subscribe(self, submission_id: str, handler: MessageHandler) -> Unsubscribe:
        key = str(submission_id)
        self._handlers.setdefault(key, []).append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(key, [])
            if handler in handlers:
                handlers.remove(handler)
            if not handlers:
                self._handlers.pop(key, None)

        return unsubscribe

    def subscribe_connection(self, listener: ConnectionListener) -> Unsubscribe:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_connected(self, connected: bool) -> None:
        if connected == self._connected:
            return
        self._connected = connected
        for listener in list(self._listeners):
            listener(connected)

    def dispatch(self, raw) -> None:
        message = decode_push_message(raw)
        if isinstance(message, UndecodableMessage):
            logger.warning("Ignoring push message (%s): %r", message.reason, message.raw)
            return
        for handler in list(self._handlers.get(message.submission_id, [])):
            handler(message)


class SSEPushChannel(SubscriberRegistry):
    def __init__(self, http: httpx.AsyncClient, reconnect_seconds: Optional[float] = None):
        super().__init__()
        self.http = http
        self.reconnect_seconds = settings.push_reconnect_seconds if reconnect_seconds is None else reconnect_seconds
        self._task: Optional[asyncio.Task] = None

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._run())

    async def aclose(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self.set_connected(False)

    async def _run(self) -> None:
        while True:
            try:
                await self._consume()
            except httpx.HTTPError as e:
                logger.warning("Push channel dropped: %s", e)
            self.set_connected(False)
            await asyncio.sleep(self.reconnect_seconds)

    async def _consume(self) -> None:
        async with self.http.stream("GET", EVENTS_PATH, timeout=None) as resp:
            if resp.status_code != 200:
                logger.warning("Push channel HTTP %d", resp.status_code)
                return
            self.set_connected(True)
            data_lines: list[str] = []
            async for line in resp.aiter_lines():
                if line.startswith("data:"):
                    data_lines.append(line[5:].lstrip())
                elif not line and data_lines:
                    self.dispatch("\n".join(data_lines))
                    data_lines = []
