"""What the client layer needs from the surrounding UI: somewhere to notify, a view to close."""
from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def error(self, title: str, message: str) -> None: ...

    def success(self, title: str, message: str) -> None: ...

    def warning(self, title: str, message: str) -> None: ...


class ViewHost(Protocol):
    def close(self) -> None: ...

    def reload(self) -> None: ...


class LoggingNotifier:
    """Notifier for headless use (scripts, services): user-facing messages go to the log."""

    def error(self, title: str, message: str) -> None:
        logger.error("%s: %s", title, message)

    def success(self, title: str, message: str) -> None:
        logger.info("%s: %s", title, message)

    def warning(self, title: str, message: str) -> None:
        logger.warning("%s: %s", title, message)
