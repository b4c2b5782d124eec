from collections import deque
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Deque, List
import logging

from pydantic import BaseModel, Field

from greengrid.config import settings

logger = logging.getLogger(__name__)


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    ERROR = "error"


class Notification(BaseModel):
    level: NotificationLevel
    message: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Notifier:
    """
    Canal des notifications utilisateur (toasts du terminal et du dashboard)

    Garde un historique borné et relaie chaque notification aux handlers enregistrés.
    """

    def __init__(self, history_size: int = settings.NOTIFICATION_HISTORY):
        self.history: Deque[Notification] = deque(maxlen=history_size)
        self.handlers: List[Callable[[Notification], None]] = []

    def add_handler(self, handler: Callable[[Notification], None]):
        self.handlers.append(handler)

    def success(self, message: str) -> Notification:
        return self.notify(NotificationLevel.SUCCESS, message)

    def info(self, message: str) -> Notification:
        return self.notify(NotificationLevel.INFO, message)

    def error(self, message: str) -> Notification:
        return self.notify(NotificationLevel.ERROR, message)

    def notify(self, level: NotificationLevel, message: str) -> Notification:
        notification = Notification(level=level, message=message)
        self.history.append(notification)

        if level == NotificationLevel.ERROR:
            logger.warning(f"[notify] {message}")
        else:
            logger.info(f"[notify] {message}")

        for handler in self.handlers:
            try:
                handler(notification)
            except Exception as e:
                logger.error(f"Notification handler failed: {e}", exc_info=True)

        return notification

    @property
    def last(self):
        return self.history[-1] if self.history else None

    def messages(self) -> List[str]:
        return [n.message for n in self.history]
