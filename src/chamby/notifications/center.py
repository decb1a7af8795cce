"""In-memory queue of transient notifications."""

from __future__ import annotations

import logging

from chamby.core.types import NotificationVariant
from chamby.notifications.models import Notification

logger = logging.getLogger(__name__)


class NotificationCenter:
    """Collects notifications until the UI drains or dismisses them."""

    def __init__(self) -> None:
        self._pending: list[Notification] = []

    def notify(
        self,
        title: str,
        description: str = "",
        variant: NotificationVariant = NotificationVariant.DEFAULT,
    ) -> Notification:
        notification = Notification(title=title, description=description, variant=variant)
        self._pending.append(notification)
        return notification

    def error(self, title: str, description: str = "") -> Notification:
        logger.info("User-facing error: %s (%s)", title, description)
        return self.notify(title, description, NotificationVariant.DESTRUCTIVE)

    @property
    def pending(self) -> list[Notification]:
        return list(self._pending)

    def dismiss(self, notification_id: str) -> bool:
        for i, n in enumerate(self._pending):
            if n.id == notification_id:
                del self._pending[i]
                return True
        return False

    def drain(self) -> list[Notification]:
        drained, self._pending = self._pending, []
        return drained
