"""
WhatsApp message templates.

Single-recipient templates are rendered with the student's details; bulk
templates keep a ``{name}`` placeholder that is filled per recipient.
"""

from datetime import date
from decimal import Decimal
from typing import Optional, Union

from library_desk.schemas.common.enums import NotificationType
from library_desk.utils.datetime_utils import DateTimeHelper

NAME_PLACEHOLDER = "{name}"

# Bulk fallbacks where the single-recipient template needs per-student data
BULK_FEE_CONFIRMATION = "Dear {name}, your fee payment has been received successfully. Thank you!"
BULK_FEE_REMINDER = "Dear {name}, please renew your library membership. Thank you!"
BULK_CUSTOM_DEFAULT = "Hello {name}!"


def format_amount(amount: Union[Decimal, int, float]) -> str:
    """Render an amount without trailing zeros: 500, 499.5"""
    value = Decimal(str(amount))
    if value == value.to_integral_value():
        return str(value.quantize(Decimal(1)))
    return format(value.normalize(), "f")


class MessageTemplates:
    """Renders notification text"""

    def __init__(self, currency_symbol: str = "₹"):
        self.currency_symbol = currency_symbol

    def welcome(self, student_name: str, seat_number: Optional[int] = None) -> str:
        seat_text = f"Your seat number is {seat_number}." if seat_number else ""
        return (
            f"Welcome to our library, {student_name}! {seat_text} "
            "We're excited to have you with us. For any queries, contact us."
        )

    def fee_confirmation(self, student_name: str, amount, expiry_date: date) -> str:
        return (
            f"Dear {student_name}, your fee payment of {self.currency_symbol}{format_amount(amount)} "
            f"has been received successfully. Your membership is valid till "
            f"{DateTimeHelper.format_short_date(expiry_date)}. Thank you!"
        )

    def fee_reminder(self, student_name: str, expiry_date: date) -> str:
        return (
            f"Dear {student_name}, your library membership expires on "
            f"{DateTimeHelper.format_short_date(expiry_date)}. Please renew your fees "
            "to continue using our services. Thank you!"
        )

    def goodbye(self, student_name: str) -> str:
        return (
            f"Dear {student_name}, thank you for being part of our library family. "
            "We hope to see you again soon. Best wishes for your future endeavors!"
        )

    @staticmethod
    def custom(template: str, student_name: str) -> str:
        return template.replace(NAME_PLACEHOLDER, student_name)

    def render_for_student(self, kind: NotificationType, student, custom_message: Optional[str] = None) -> str:
        """Full message for one student; a custom text overrides ``kind``."""
        if custom_message:
            return self.custom(custom_message, student.name)
        if kind == NotificationType.WELCOME:
            return self.welcome(student.name, student.seat_number)
        if kind == NotificationType.FEE_CONFIRMATION:
            return self.fee_confirmation(student.name, student.total_fees_paid, student.fee_expiry_date)
        if kind == NotificationType.FEE_REMINDER:
            return self.fee_reminder(student.name, student.fee_expiry_date)
        if kind == NotificationType.GOODBYE:
            return self.goodbye(student.name)
        return self.custom(BULK_CUSTOM_DEFAULT, student.name)

    def bulk_template(self, kind: NotificationType, custom_message: Optional[str] = None) -> str:
        """Template with a ``{name}`` placeholder for bulk sends."""
        if custom_message:
            return custom_message
        if kind == NotificationType.WELCOME:
            return self.welcome(NAME_PLACEHOLDER)
        if kind == NotificationType.FEE_CONFIRMATION:
            return BULK_FEE_CONFIRMATION
        if kind == NotificationType.FEE_REMINDER:
            return BULK_FEE_REMINDER
        if kind == NotificationType.GOODBYE:
            return self.goodbye(NAME_PLACEHOLDER)
        return BULK_CUSTOM_DEFAULT


__all__ = [
    "NAME_PLACEHOLDER",
    "MessageTemplates",
    "format_amount",
]
