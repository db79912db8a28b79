"""Fire-and-forget user notifications (toasts)."""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import asdict, dataclass
from typing import Literal, Protocol

logger = logging.getLogger(__name__)

Severity = Literal["info", "success", "warning", "error"]

_LEVELS = {"info": logging.INFO, "success": logging.INFO, "warning": logging.WARNING, "error": logging.ERROR}


@dataclass(frozen=True, slots=True)
class Notification:
    title: str
    description: str = ""
    severity: Severity = "info"

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


class NotificationSink(Protocol):
    def notify(self, notification: Notification) -> None: ...


class LoggingNotificationSink:
    """Default sink: writes every notification to the application log."""

    def notify(self, notification: Notification) -> None:
        logger.log(
            _LEVELS.get(notification.severity, logging.INFO),
            "%s: %s",
            notification.title,
            notification.description,
        )


class InMemoryNotificationSink(LoggingNotificationSink):
    """Keeps the most recent notifications so they can be shown again."""

    def __init__(self, maxlen: int = 50) -> None:
        self._items: deque[Notification] = deque(maxlen=maxlen)

    def notify(self, notification: Notification) -> None:
        super().notify(notification)
        self._items.append(notification)

    def recent(self) -> list[Notification]:
        return list(self._items)

    def clear(self) -> None:
        self._items.clear()


def emit(sink: NotificationSink | None, title: str, description: str = "", severity: Severity = "info") -> None:
    """Deliver a notification; sink failures are logged and swallowed."""

    if sink is None:
        return
    try:
        sink.notify(Notification(title=title, description=description, severity=severity))
    except Exception:
        logger.exception("Notification sink failed for %r", title)


__all__ = [
    "InMemoryNotificationSink",
    "LoggingNotificationSink",
    "Notification",
    "NotificationSink",
    "Severity",
    "emit",
]
