"""
Outbound notification queue.

Notifications produced by engine operations are queued as tasks and
dispatched separately from the mutation that produced them. A failed
dispatch is recorded on the task and can be retried until the attempt
limit is reached; it never propagates to the caller.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence
from uuid import uuid4

from library_desk.core.logging import get_struct_logger
from library_desk.schemas.common.enums import NotificationStatus, NotificationType
from library_desk.schemas.notification import NotificationLogEntry
from library_desk.services.communication.whatsapp_dispatcher import WhatsAppDispatcher

logger = get_struct_logger(__name__)


@dataclass
class NotificationTask:
    """One message waiting for (or done with) dispatch."""

    student_id: str
    student_name: str
    mobile: str
    type: NotificationType
    message: str
    id: str = field(default_factory=lambda: f"ntf-{uuid4().hex[:12]}")
    status: NotificationStatus = NotificationStatus.PENDING
    attempts: int = 0
    link: Optional[str] = None
    last_error: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_log_entry(self) -> NotificationLogEntry:
        return NotificationLogEntry(
            id=self.id,
            student_id=self.student_id,
            student_name=self.student_name,
            mobile=self.mobile,
            type=self.type,
            message=self.message,
            sent_at=datetime.now(timezone.utc),
            status=self.status,
            attempts=self.attempts,
            link=self.link,
            error=self.last_error,
        )


class OutboundNotificationQueue:
    """In-process queue of notification tasks"""

    def __init__(self, dispatcher: WhatsAppDispatcher, max_attempts: int = 3):
        self.dispatcher = dispatcher
        self.max_attempts = max_attempts
        self._tasks: Dict[str, NotificationTask] = {}

    @property
    def tasks(self) -> List[NotificationTask]:
        return list(self._tasks.values())

    def pending(self) -> List[NotificationTask]:
        return [t for t in self._tasks.values() if t.status == NotificationStatus.PENDING]

    def enqueue(self, task: NotificationTask) -> NotificationTask:
        self._tasks[task.id] = task
        logger.debug("notification_enqueued", task_id=task.id, notification_type=task.type.value)
        return task

    def dispatch(self, task: NotificationTask) -> NotificationLogEntry:
        """
        Attempt delivery of one task.

        The outcome is recorded on the task and returned as a log entry.
        Delivered tasks leave the queue; failed ones stay pending until
        ``max_attempts`` is used up and are then marked failed.
        """
        task.attempts += 1
        try:
            task.link = self.dispatcher.send(task.mobile, task.message)
        except Exception as e:
            task.last_error = str(e)
            task.status = (
                NotificationStatus.FAILED
                if task.attempts >= self.max_attempts
                else NotificationStatus.PENDING
            )
            logger.warning(
                "notification_dispatch_failed",
                task_id=task.id,
                attempt=task.attempts,
                status=task.status.value,
                error=task.last_error,
            )
            if task.status == NotificationStatus.FAILED:
                self._tasks.pop(task.id, None)
        else:
            task.status = NotificationStatus.SENT
            task.last_error = None
            self._tasks.pop(task.id, None)
            logger.info("notification_sent", task_id=task.id, attempt=task.attempts)

        return task.to_log_entry()

    def retry_pending(self) -> List[NotificationLogEntry]:
        return [self.dispatch(task) for task in self.pending()]

    async def dispatch_bulk(
        self,
        tasks: Sequence[NotificationTask],
        delay_seconds: float,
    ) -> List[NotificationLogEntry]:
        """Enqueue and dispatch ``tasks`` sequentially with a delay between them."""
        entries: List[NotificationLogEntry] = []
        for index, task in enumerate(tasks):
            if index and delay_seconds:
                await asyncio.sleep(delay_seconds)
            entries.append(self.dispatch(self.enqueue(task)))
        return entries


__all__ = ["NotificationTask", "OutboundNotificationQueue"]
