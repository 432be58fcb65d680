# /app/services/notification_service.py

"""
Transient, auto-dismissing messages that tell the user how an operation went.

Only one notification is ever visible: showing a new one removes the previous
one first. Visibility is computed from a monotonic clock rather than a timer,
so the presentation layer can ask "what is on screen now?" at any moment and
tests can move time forward explicitly.
"""

import logging
import time
from collections import deque
from typing import Callable, Deque, Optional

from ..models.dashboard_model import Notification, NotificationLevel

logger = logging.getLogger(__name__)

HISTORY_SIZE = 20


class NotificationCenter:
    def __init__(self, timeout: float, clock: Callable[[], float] = time.monotonic):
        self.timeout = timeout
        self._clock = clock
        self._current: Optional[Notification] = None
        self._shown_at: float = 0.0
        self.history: Deque[Notification] = deque(maxlen=HISTORY_SIZE)

    def show(self, message: str, level: NotificationLevel = NotificationLevel.INFO) -> Notification:
        # Remove the existing message before mounting the new one.
        self.dismiss()
        notification = Notification(message=message, level=level, timeout=self.timeout)
        self._current = notification
        self._shown_at = self._clock()
        self.history.append(notification)
        logger.debug(f"Notification [{level.value}]: {message}")
        return notification

    def success(self, message: str) -> Notification:
        return self.show(message, NotificationLevel.SUCCESS)

    def error(self, message: str) -> Notification:
        return self.show(message, NotificationLevel.ERROR)

    def info(self, message: str) -> Notification:
        return self.show(message, NotificationLevel.INFO)

    def current(self) -> Optional[Notification]:
        """The visible notification, or None once it has auto-dismissed."""
        if self._current is not None and self._clock() - self._shown_at >= self.timeout:
            self._current = None
        return self._current

    def dismiss(self) -> None:
        self._current = None
