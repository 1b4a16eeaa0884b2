# --- File: library_desk/schemas/payment/fee_transaction.py ---
"""
Fee transaction schemas.

Transactions are append-only: once recorded they are never edited,
renumbered or removed.
"""

from __future__ import annotations

from datetime import date as Date
from typing import Optional

from pydantic import Field

from library_desk.schemas.common.base import BaseCreateSchema, BaseSchema
from library_desk.schemas.common.enums import PaymentMode
from library_desk.schemas.student.student_base import MoneyAmount

__all__ = [
    "FeeTransactionCreate",
    "FeeTransaction",
]


class FeeTransactionCreate(BaseCreateSchema):
    """
    A fee payment to record.

    ``student_name`` is optional; when omitted the engine captures the
    referenced student's current name.
    """

    student_id: str = Field(..., min_length=1)
    student_name: Optional[str] = None
    amount: MoneyAmount
    payment_mode: PaymentMode
    payment_method: str = Field(
        ...,
        min_length=1,
        max_length=50,
        examples=["UPI", "Cash", "Card"],
    )
    transaction_date: Date
    expiry_date: Date = Field(..., description="Fee expiry the payment buys")


class FeeTransaction(FeeTransactionCreate):
    """A recorded fee payment with its receipt number."""

    student_name: str
    id: str
    receipt_number: str = Field(..., examples=["RCP001"])
