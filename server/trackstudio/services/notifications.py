"""In-memory notification center backing the UI's toast messages."""

import logging
import threading
import time
import uuid
from datetime import datetime, timezone

from trackstudio.config import settings
from trackstudio.models.jobs import Notification, NotificationType

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    "success": logging.INFO,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class NotificationCenter:
    """Thread-safe store of recent notifications.

    Each notification expires ``ttl`` seconds after it was emitted, the way
    a toast disappears from the page.
    """

    def __init__(self, ttl: float | None = None) -> None:
        self.ttl = settings.notification_ttl_seconds if ttl is None else ttl
        self._items: dict[str, tuple[float, Notification]] = {}
        self._lock = threading.Lock()

    def notify(self, kind: NotificationType, message: str) -> Notification:
        notification = Notification(
            id=uuid.uuid4().hex,
            type=kind,
            message=message,
            created_at=datetime.now(timezone.utc),
        )
        logger.log(_LOG_LEVELS[kind], "[%s] %s", kind, message)
        with self._lock:
            self._items[notification.id] = (time.monotonic(), notification)
        return notification

    def success(self, message: str) -> Notification:
        return self.notify("success", message)

    def info(self, message: str) -> Notification:
        return self.notify("info", message)

    def warning(self, message: str) -> Notification:
        return self.notify("warning", message)

    def error(self, message: str) -> Notification:
        return self.notify("error", message)

    def active(self) -> list[Notification]:
        """Return unexpired notifications, oldest first, dropping expired ones."""
        now = time.monotonic()
        with self._lock:
            expired = [k for k, (ts, _) in self._items.items() if now - ts > self.ttl]
            for key in expired:
                del self._items[key]
            return [n for _, n in self._items.values()]

    def dismiss(self, notification_id: str) -> bool:
        with self._lock:
            return self._items.pop(notification_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._items.clear()


# Singleton instance
notification_center = NotificationCenter()
