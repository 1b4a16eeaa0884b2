# --- File: library_desk/schemas/analytics/dashboard.py ---
"""
Read-only dashboard and report views derived from the entity snapshot.
"""

from __future__ import annotations

from datetime import date as Date
from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from library_desk.schemas.common.base import BaseResponseSchema
from library_desk.schemas.common.enums import StudentStatus
from library_desk.schemas.payment.fee_transaction import FeeTransaction

__all__ = [
    "DashboardStats",
    "MonthlyReport",
    "StudentReport",
    "StudentReportRow",
    "SeatReport",
    "SeatReportRow",
    "RevenueMonth",
    "RevenueReport",
    "TransactionSummary",
    "ConsistencyIssue",
]


class DashboardStats(BaseResponseSchema):
    """Headline numbers for the dashboard."""

    total_students: int
    active_students: int
    occupied_seats: int
    available_seats: int
    monthly_revenue: Decimal
    pending_fees: int = Field(..., description="Students whose fee expired before today")
    expiring_today: int
    expiring_this_week: int


class MonthlyReport(BaseResponseSchema):
    """Collections for one calendar month."""

    month: str = Field(..., examples=["2025-02"])
    total_collection: Decimal
    online_collection: Decimal
    offline_collection: Decimal
    total_transactions: int
    online_transactions: int
    offline_transactions: int
    transactions: List[FeeTransaction] = Field(default_factory=list)


class StudentReportRow(BaseResponseSchema):
    name: str
    mobile: str
    registration_date: Date
    status: StudentStatus
    seat_number: Optional[int] = None
    total_fees_paid: Decimal


class StudentReport(BaseResponseSchema):
    """Registrations for one year plus current status counts."""

    year: int
    total_registrations: int
    active_students: int
    inactive_students: int
    expired_students: int
    students_with_seats: int
    rows: List[StudentReportRow] = Field(default_factory=list)


class SeatReportRow(BaseResponseSchema):
    seat_number: int
    is_occupied: bool
    student_name: Optional[str] = None
    assigned_date: Optional[Date] = None


class SeatReport(BaseResponseSchema):
    """Occupancy across the whole seat universe."""

    total_seats: int
    occupied_seats: int
    available_seats: int
    utilization_rate: int = Field(..., description="Whole-number percentage")
    rows: List[SeatReportRow] = Field(default_factory=list)


class RevenueMonth(BaseResponseSchema):
    month: str
    revenue: Decimal
    transactions: int
    average_transaction: Decimal


class RevenueReport(BaseResponseSchema):
    """Twelve-month revenue breakdown for a year."""

    year: int
    yearly_revenue: Decimal
    average_monthly_revenue: Decimal
    average_transaction_value: Decimal
    months: List[RevenueMonth] = Field(default_factory=list)


class TransactionSummary(BaseResponseSchema):
    """Totals for a filtered set of transactions."""

    total: Decimal
    online: Decimal
    offline: Decimal
    count: int


class ConsistencyIssue(BaseResponseSchema):
    """A violated seat/student invariant."""

    seat_number: Optional[int] = None
    student_id: Optional[str] = None
    problem: str
