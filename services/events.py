"""
In-process fan-out of submission change events to server-sent-event listeners.
Messages only say *which* submission changed; listeners refetch to see how.
"""
from __future__ import annotations

import asyncio
import json
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional

logger = logging.getLogger(__name__)

QUEUE_SIZE = 100


class EventBroker:
    def __init__(self) -> None:
        self._listeners: set[asyncio.Queue] = set()

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    @contextmanager
    def listen(self) -> Iterator[asyncio.Queue]:
        queue: asyncio.Queue = asyncio.Queue(maxsize=QUEUE_SIZE)
        self._listeners.add(queue)
        try:
            yield queue
        finally:
            self._listeners.discard(queue)

    def publish(self, submission_id: str, event: str) -> dict:
        message = {
            "type": "submission:updated",
            "data": {"submission_id": submission_id, "event": event},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        for queue in list(self._listeners):
            try:
                queue.put_nowait(message)
            except asyncio.QueueFull:
                # a stalled listener loses messages; it will catch up on its next poll or refetch
                logger.warning("Dropping %s event for a stalled listener", event)
        return message


def matches(message: dict, submission_id: Optional[str]) -> bool:
    if submission_id is None:
        return True
    return str(message.get("data", {}).get("submission_id")) == str(submission_id)


def format_sse(message: dict) -> str:
    return f"data: {json.dumps(message)}\n\n"


broker = EventBroker()
