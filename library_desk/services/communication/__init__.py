"""
Outbound communication: message templates, WhatsApp redirect dispatch
and the notification queue.
"""

from library_desk.services.communication.message_templates import (
    MessageTemplates,
    format_amount,
)
from library_desk.services.communication.outbound_queue import (
    NotificationTask,
    OutboundNotificationQueue,
)
from library_desk.services.communication.whatsapp_dispatcher import WhatsAppDispatcher

__all__ = [
    "MessageTemplates",
    "NotificationTask",
    "OutboundNotificationQueue",
    "WhatsAppDispatcher",
    "format_amount",
]
