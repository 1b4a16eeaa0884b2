# --- File: library_desk/schemas/activity/activity_log.py ---
"""
Activity feed schemas.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from library_desk.schemas.common.base import BaseResponseSchema, BaseSchema
from library_desk.schemas.common.enums import ActivityType

__all__ = ["ActivityLogEntry", "ActivityView"]


class ActivityLogEntry(BaseSchema):
    """One pre-rendered activity feed entry."""

    id: str
    type: ActivityType
    message: str
    timestamp: datetime
    student_name: Optional[str] = None


class ActivityView(BaseResponseSchema):
    """Activity entry with its timestamp rendered for display."""

    id: str
    type: ActivityType
    message: str
    timestamp: str
    student_name: Optional[str] = None
