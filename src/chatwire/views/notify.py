"""
Toast-style notifications shown under the current view.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Deque, List, Optional
import logging

from rich.console import Console
from rich.text import Text

from ..core.client.errors import classify_error, create_user_friendly_message

logger = logging.getLogger(__name__)


class NotificationKind(Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class Notification:
    kind: NotificationKind
    message: str
    created_at: datetime = field(default_factory=datetime.now)


class Notifier:
    """Queues notifications until the shell shows them."""

    STYLES = {
        NotificationKind.POSITIVE: ("✓", "green"),
        NotificationKind.NEGATIVE: ("✗", "red"),
        NotificationKind.WARNING: ("!", "yellow"),
        NotificationKind.INFO: ("i", "blue"),
    }

    def __init__(self, max_pending: int = 50):
        self._pending: Deque[Notification] = deque(maxlen=max_pending)

    def notify(self, kind: NotificationKind, message: str) -> Notification:
        notification = Notification(kind, message)
        self._pending.append(notification)
        return notification

    def positive(self, message: str) -> Notification:
        return self.notify(NotificationKind.POSITIVE, message)

    def negative(self, message: str) -> Notification:
        return self.notify(NotificationKind.NEGATIVE, message)

    def warning(self, message: str) -> Notification:
        return self.notify(NotificationKind.WARNING, message)

    def info(self, message: str) -> Notification:
        return self.notify(NotificationKind.INFO, message)

    def error(self, error: Exception) -> Notification:
        """Show a failed operation as a negative toast."""
        chat_error = classify_error(error)
        logger.debug(f"Showing error notification: {chat_error}")
        return self.negative(create_user_friendly_message(chat_error))

    @property
    def pending(self) -> List[Notification]:
        return list(self._pending)

    def drain(self) -> List[Notification]:
        items = list(self._pending)
        self._pending.clear()
        return items

    def flush(self, console: Optional[Console] = None) -> int:
        """Print and clear pending notifications. Returns how many were shown."""
        console = console or Console()
        items = self.drain()
        for item in items:
            icon, style = self.STYLES[item.kind]
            console.print(Text(f" {icon} {item.message}", style=style))
        return len(items)
