"""Transient, dismissible notifications shown to the user (toasts)."""
import itertools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Tuple

logger = logging.getLogger(__name__)


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    id: int
    level: NotificationLevel
    message: str


class NotificationCenter:
    """
    Holds the notifications that have not been dismissed yet.

    Listeners are called with every new notification so the presentation layer
    can show it as it arrives.
    """

    def __init__(self):
        self._ids = itertools.count(1)
        self._active: List[Notification] = []
        self._listeners: List[Callable[[Notification], None]] = []

    @property
    def active(self) -> Tuple[Notification, ...]:
        return tuple(self._active)

    def success(self, message: str) -> Notification:
        logger.info(message)
        return self._push(NotificationLevel.SUCCESS, message)

    def error(self, message: str) -> Notification:
        logger.warning(message)
        return self._push(NotificationLevel.ERROR, message)

    def _push(self, level: NotificationLevel, message: str) -> Notification:
        notification = Notification(id=next(self._ids), level=level, message=message)
        self._active.append(notification)
        for listener in list(self._listeners):
            listener(notification)
        return notification

    def dismiss(self, notification_id: int) -> bool:
        """Dismiss a notification. Returns False if it was not active."""
        for i, notification in enumerate(self._active):
            if notification.id == notification_id:
                del self._active[i]
                return True
        return False

    def clear(self) -> None:
        self._active.clear()

    def subscribe(self, listener: Callable[[Notification], None]) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
