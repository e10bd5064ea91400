"""In-process notifications for the UI layer."""

import asyncio
import logging
import uuid
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Notification event types."""

    # Toasts
    SUCCESS = "toast:success"
    ERROR = "toast:error"
    INFO = "toast:info"

    # Session
    SESSION_EXPIRED = "session:expired"

    # State changes
    THREAD_UPDATED = "thread:updated"
    FEED_UPDATED = "feed:updated"
    QUEUE_UPDATED = "queue:updated"
    DOCUMENTS_UPDATED = "documents:updated"
    NOTES_UPDATED = "notes:updated"
    COMPARISON_UPDATED = "comparison:updated"


@dataclass
class Notification:
    """A notification delivered to subscribers."""

    event: EventType
    message: str = ""
    data: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])


class NotificationBus:
    """Fire-and-forget notification fan-out.

    Publishing never blocks and never fails: each subscriber gets its own
    unbounded queue. The most recent notifications are also kept in
    ``recent`` for UIs that poll instead of subscribing.
    """

    def __init__(self, history: int = 50):
        self._queues: list[asyncio.Queue] = []
        self.recent: deque[Notification] = deque(maxlen=history)

    def subscribe(self) -> asyncio.Queue:
        """Subscribe to all notifications."""
        queue: asyncio.Queue = asyncio.Queue()
        self._queues.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        try:
            self._queues.remove(queue)
        except ValueError:
            pass

    def publish(self, event: EventType, message: str = "", **data: Any) -> Notification:
        """Publish a notification to every subscriber."""
        notification = Notification(event=event, message=message, data=data)
        self.recent.append(notification)
        for queue in self._queues:
            queue.put_nowait(notification)
        if event is EventType.ERROR:
            logger.debug(f"Error notification: {message}")
        return notification

    def success(self, message: str, **data: Any) -> Notification:
        return self.publish(EventType.SUCCESS, message, **data)

    def error(self, message: str, **data: Any) -> Notification:
        return self.publish(EventType.ERROR, message, **data)

    def info(self, message: str, **data: Any) -> Notification:
        return self.publish(EventType.INFO, message, **data)

    def messages(self, event: EventType) -> list[str]:
        """Messages of recent notifications of one type."""
        return [n.message for n in self.recent if n.event is event]
