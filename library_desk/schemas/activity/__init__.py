"""
Activity schemas package.
"""

from library_desk.schemas.activity.activity_log import ActivityLogEntry, ActivityView

__all__ = ["ActivityLogEntry", "ActivityView"]
