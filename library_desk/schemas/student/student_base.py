# --- File: library_desk/schemas/student/student_base.py ---
"""
Student schemas.

``Student`` is the stored entity. ``StudentCreate`` and ``StudentUpdate``
are the caller-facing input schemas; they carry the form-level format
rules (10-digit mobile numbers, non-empty names) so the consistency
engine can trust what it receives.
"""

from __future__ import annotations

from datetime import date as Date
from decimal import Decimal
from typing import Annotated, Optional

from pydantic import ConfigDict, Field, field_validator

from library_desk.schemas.common.base import (
    BaseCreateSchema,
    BaseSchema,
    BaseUpdateSchema,
)
from library_desk.schemas.common.enums import PaymentMode, StudentStatus

__all__ = [
    "MoneyAmount",
    "MOBILE_PATTERN",
    "Student",
    "StudentCreate",
    "StudentUpdate",
]

MoneyAmount = Annotated[Decimal, Field(ge=0, decimal_places=2)]

MOBILE_PATTERN = r"^\d{10}$"


class Student(BaseSchema):
    """
    A registered library member.

    ``seat_number`` is a back-reference to the seat the student occupies;
    the seat itself is owned by the entity store and is only changed
    through the seat assignment procedure.
    """

    id: str = Field(..., min_length=1, description="Stable student identifier")

    # Contact
    name: str = Field(..., min_length=1)
    mobile: str = Field(..., description="Student mobile number")
    email: Optional[str] = None

    # Guardian
    parent_name: str
    parent_mobile: str

    # Free-form
    address: Optional[str] = None
    vehicle_number: Optional[str] = None
    photo: Optional[str] = None

    # Lifecycle
    seat_number: Optional[int] = Field(default=None, ge=1)
    registration_date: Date
    fee_expiry_date: Date
    last_fee_payment: Optional[Date] = None
    status: StudentStatus = StudentStatus.ACTIVE
    payment_mode: Optional[PaymentMode] = None
    total_fees_paid: MoneyAmount = Field(default=Decimal("0"))

    @field_validator("total_fees_paid", mode="before")
    @classmethod
    def default_missing_total(cls, v):
        """Treat a missing accumulated total as zero."""
        return Decimal("0") if v is None else v

    @property
    def is_seated(self) -> bool:
        return self.seat_number is not None


class StudentCreate(BaseCreateSchema):
    """
    Registration data for a new student.

    Registration date defaults to today and fee expiry to the configured
    validity period after registration when omitted. Seat numbers are not
    accepted here; seats are assigned separately.
    """

    name: str = Field(..., min_length=1, max_length=255)
    mobile: str = Field(..., pattern=MOBILE_PATTERN, examples=["9876543210"])
    email: Optional[str] = None
    parent_name: str = Field(..., min_length=1, max_length=255)
    parent_mobile: str = Field(..., pattern=MOBILE_PATTERN)
    address: Optional[str] = Field(default=None, max_length=500)
    vehicle_number: Optional[str] = Field(default=None, max_length=20)
    photo: Optional[str] = None
    registration_date: Optional[Date] = None
    fee_expiry_date: Optional[Date] = None
    last_fee_payment: Optional[Date] = None
    status: StudentStatus = StudentStatus.ACTIVE
    payment_mode: Optional[PaymentMode] = None
    total_fees_paid: MoneyAmount = Field(default=Decimal("0"))

    @field_validator("email")
    @classmethod
    def blank_email_to_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class StudentUpdate(BaseUpdateSchema):
    """
    Partial student update. Only explicitly provided fields are applied.

    ``seat_number`` is routed through the seat procedure by the engine:
    ``None`` releases the held seat, a number assigns that seat.
    ``total_fees_paid`` is not accepted: it only grows through recorded
    payments.
    """

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    mobile: Optional[str] = Field(default=None, pattern=MOBILE_PATTERN)
    email: Optional[str] = None
    parent_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    parent_mobile: Optional[str] = Field(default=None, pattern=MOBILE_PATTERN)
    address: Optional[str] = Field(default=None, max_length=500)
    vehicle_number: Optional[str] = Field(default=None, max_length=20)
    photo: Optional[str] = None
    seat_number: Optional[int] = Field(default=None, ge=1)
    registration_date: Optional[Date] = None
    fee_expiry_date: Optional[Date] = None
    last_fee_payment: Optional[Date] = None
    status: Optional[StudentStatus] = None
    payment_mode: Optional[PaymentMode] = None
