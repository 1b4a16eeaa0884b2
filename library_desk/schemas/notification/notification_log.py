# --- File: library_desk/schemas/notification/notification_log.py ---
"""
Notification history schemas.

Every message handed to the messaging app (or that failed to be) is
recorded here, newest first.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from library_desk.schemas.common.base import BaseSchema
from library_desk.schemas.common.enums import (
    NotificationMethod,
    NotificationStatus,
    NotificationType,
)

__all__ = ["NotificationLogEntry"]


class NotificationLogEntry(BaseSchema):
    """Outcome of one outbound notification."""

    id: str
    student_id: str
    student_name: str
    mobile: str
    type: NotificationType
    message: str
    sent_at: datetime
    method: NotificationMethod = NotificationMethod.WHATSAPP_REDIRECT
    status: NotificationStatus = NotificationStatus.SENT
    attempts: int = Field(default=1, ge=0)
    link: Optional[str] = None
    error: Optional[str] = None
