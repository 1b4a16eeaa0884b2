# --- File: library_desk/schemas/common/enums.py ---
"""
All enumeration types used across the library desk.
"""

from enum import Enum

__all__ = [
    "StudentStatus",
    "PaymentMode",
    "ActivityType",
    "NotificationType",
    "NotificationStatus",
    "NotificationMethod",
]


class StudentStatus(str, Enum):
    """Student membership status."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    EXPIRED = "expired"


class PaymentMode(str, Enum):
    """How a fee was paid."""

    ONLINE = "online"
    OFFLINE = "offline"


class ActivityType(str, Enum):
    """Kinds of activity feed entries."""

    REGISTRATION = "registration"
    PAYMENT = "payment"
    SEAT_ASSIGNMENT = "seat_assignment"
    REMINDER = "reminder"


class NotificationType(str, Enum):
    """Message templates available for outbound notifications."""

    WELCOME = "welcome"
    FEE_CONFIRMATION = "fee_confirmation"
    FEE_REMINDER = "fee_reminder"
    GOODBYE = "goodbye"
    CUSTOM = "custom"


class NotificationStatus(str, Enum):
    """Outbound notification status."""

    SENT = "sent"
    PENDING = "pending"
    FAILED = "failed"


class NotificationMethod(str, Enum):
    """Delivery method; only deep-link redirects are supported."""

    WHATSAPP_REDIRECT = "whatsapp_redirect"
