import logging
from typing import List, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class Notification(BaseModel):
    title: str
    description: Optional[str] = None
    variant: str = "default"  # default | destructive


class Notifier:
    """Collects user-facing notifications for one session until they are delivered"""

    def __init__(self):
        self._pending: List[Notification] = []

    def notify(self, title: str, description: Optional[str] = None, variant: str = "default") -> Notification:
        notification = Notification(title=title, description=description, variant=variant)
        self._pending.append(notification)
        logger.info(f"Notification [{variant}]: {title}" + (f" - {description}" if description else ""))
        return notification

    @property
    def pending(self) -> List[Notification]:
        return list(self._pending)

    def drain(self) -> List[Notification]:
        """Return and clear undelivered notifications"""
        delivered, self._pending = self._pending, []
        return delivered
