import logging
from collections import deque
from dataclasses import dataclass
from typing import Literal

logger = logging.getLogger(__name__)

Level = Literal["info", "success", "error"]

# oldest entries are dropped once the page has this many
MAX_NOTIFICATIONS = 50


@dataclass(frozen=True)
class Notification:
    level: Level
    message: str
    description: str | None = None


class Notifier:
    """Collects user-visible notifications for the calendar page."""

    def __init__(self, max_notifications: int = MAX_NOTIFICATIONS):
        self._notifications: deque[Notification] = deque(maxlen=max_notifications)

    @property
    def notifications(self) -> tuple[Notification, ...]:
        return tuple(self._notifications)

    def errors(self) -> list[Notification]:
        return [n for n in self._notifications if n.level == "error"]

    def clear(self) -> None:
        self._notifications.clear()

    def info(self, message: str, description: str | None = None) -> None:
        self._push(Notification("info", message, description))

    def success(self, message: str, description: str | None = None) -> None:
        self._push(Notification("success", message, description))

    def error(self, message: str, description: str | None = None) -> None:
        self._push(Notification("error", message, description))

    def _push(self, notification: Notification) -> None:
        log = logger.warning if notification.level == "error" else logger.debug
        log("notify level=%s message=%s", notification.level, notification.message)
        self._notifications.append(notification)
