"""
Common schema building blocks.
"""

from library_desk.schemas.common.base import (
    BaseCreateSchema,
    BaseResponseSchema,
    BaseSchema,
    BaseUpdateSchema,
)
from library_desk.schemas.common.enums import (
    ActivityType,
    NotificationMethod,
    NotificationStatus,
    NotificationType,
    PaymentMode,
    StudentStatus,
)

__all__ = [
    "BaseSchema",
    "BaseCreateSchema",
    "BaseUpdateSchema",
    "BaseResponseSchema",
    "ActivityType",
    "NotificationMethod",
    "NotificationStatus",
    "NotificationType",
    "PaymentMode",
    "StudentStatus",
]
