"""Application-wide notification hub for model loading and embedding sync runs.

Updates:
  v0.2.0 - 2026-09-21 - Add in-progress updates for tracked tasks.
  v0.1.0 - 2026-09-14 - Introduce notification hub with task tracking helpers.
"""
from __future__ import annotations

import logging
import threading
import time
import uuid
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

logger = logging.getLogger("prompt_paster.notifications")


class NotificationLevel(str, Enum):
    """Severity levels communicated to listeners."""
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class NotificationStatus(str, Enum):
    """High-level lifecycle stage for a task notification."""
    STARTED = "started"
    IN_PROGRESS = "in_progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(slots=True)
class Notification:
    """Payload describing a notification event."""
    title: str
    message: str
    level: NotificationLevel
    status: NotificationStatus
    task_id: str
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    duration_ms: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class TaskHandle:
    """Handle yielded by :meth:`NotificationCenter.track_task` for progress updates."""
    def __init__(self, center: NotificationCenter, title: str, task_id: str) -> None:
        self._center = center
        self._title = title
        self.task_id = task_id

    def update(self, message: str, **metadata: Any) -> None:
        """Publish an in-progress notification for the tracked task."""
        self._center.publish(
            Notification(
                title=self._title,
                message=message,
                level=NotificationLevel.INFO,
                status=NotificationStatus.IN_PROGRESS,
                task_id=self.task_id,
                metadata=metadata,
            )
        )


class NotificationCenter:
    """Thread-safe publish/subscribe hub for sending notifications to listeners."""
    def __init__(self, history_limit: int = 200) -> None:
        """Initialise the subscriber registry and bounded history queue."""
        self._subscribers: list[Callable[[Notification], None]] = []
        self._lock = threading.RLock()
        self._history: deque[Notification] = deque(maxlen=history_limit)

    def subscribe(self, callback: Callable[[Notification], None]) -> Callable[[], None]:
        """Register *callback* and return a function that removes it again."""
        with self._lock:
            self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: Callable[[Notification], None]) -> None:
        """Remove a previously subscribed callback if present."""
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def publish(self, notification: Notification) -> None:
        """Deliver *notification* to all registered subscribers."""
        with self._lock:
            self._history.append(notification)
            subscribers = list(self._subscribers)

        logger.debug(
            "Notification event",
            extra={
                "title": notification.title,
                "status": notification.status.value,
                "task_id": notification.task_id,
            },
        )
        for callback in subscribers:
            try:
                callback(notification)
            except Exception:  # pragma: no cover - keep other subscribers running
                logger.exception("Notification subscriber raised an exception")

    def history(self) -> tuple[Notification, ...]:
        """Return a snapshot of stored notifications."""
        with self._lock:
            return tuple(self._history)

    @contextmanager
    def track_task(
        self,
        *,
        title: str,
        start_message: str,
        success_message: str,
        failure_message: str | None = None,
        task_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Iterator[TaskHandle]:
        """Emit start/success/failure events around the managed block."""
        resolved_task_id = task_id or f"task:{uuid.uuid4()}"
        base_metadata = dict(metadata or {})
        started_at = time.perf_counter()
        self.publish(
            Notification(
                title=title,
                message=start_message,
                level=NotificationLevel.INFO,
                status=NotificationStatus.STARTED,
                task_id=resolved_task_id,
                metadata=dict(base_metadata),
            )
        )
        try:
            yield TaskHandle(self, title, resolved_task_id)
        except BaseException as exc:
            self.publish(
                Notification(
                    title=title,
                    message=f"{failure_message or f'{title} failed'}: {exc}",
                    level=NotificationLevel.ERROR,
                    status=NotificationStatus.FAILED,
                    task_id=resolved_task_id,
                    duration_ms=int((time.perf_counter() - started_at) * 1000),
                    metadata=dict(base_metadata),
                )
            )
            raise
        self.publish(
            Notification(
                title=title,
                message=success_message,
                level=NotificationLevel.SUCCESS,
                status=NotificationStatus.SUCCEEDED,
                task_id=resolved_task_id,
                duration_ms=int((time.perf_counter() - started_at) * 1000),
                metadata=dict(base_metadata),
            )
        )


notification_center = NotificationCenter()


__all__ = [
    "Notification",
    "NotificationCenter",
    "NotificationLevel",
    "NotificationStatus",
    "TaskHandle",
    "notification_center",
]
