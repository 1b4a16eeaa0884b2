"""
Dashboard and report views.

Everything here is a pure function of an ``EntitySnapshot`` and a
reference date; nothing is cached and nothing is mutated.
"""

from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional

from library_desk.config.settings import Settings, get_settings
from library_desk.repositories.library.entity_store import EntitySnapshot, seat_index
from library_desk.schemas.activity import ActivityView
from library_desk.schemas.analytics import (
    ConsistencyIssue,
    DashboardStats,
    MonthlyReport,
    RevenueMonth,
    RevenueReport,
    SeatReport,
    SeatReportRow,
    StudentReport,
    StudentReportRow,
    TransactionSummary,
)
from library_desk.schemas.common.enums import PaymentMode, StudentStatus
from library_desk.schemas.payment import FeeTransaction
from library_desk.schemas.student import Student
from library_desk.utils.datetime_utils import DateTimeHelper

ZERO = Decimal("0")


def _total(transactions: Iterable[FeeTransaction]) -> Decimal:
    return sum((t.amount for t in transactions), ZERO)


def _rounded(value: Decimal) -> Decimal:
    """Round half up to a whole amount."""
    return value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def check_consistency(snapshot: EntitySnapshot) -> List[ConsistencyIssue]:
    """
    List every broken seat/student link.

    A seat is occupied iff exactly one student points at it, that
    student's id and name match the seat's cache, and no student points
    at a seat outside the universe or at more than one seat.
    """
    issues: List[ConsistencyIssue] = []
    holders = {}
    for student in snapshot.students.values():
        if student.seat_number is None:
            continue
        if not 1 <= student.seat_number <= snapshot.seat_count:
            issues.append(ConsistencyIssue(
                seat_number=student.seat_number,
                student_id=student.id,
                problem="student references a seat outside the seat universe",
            ))
            continue
        holders.setdefault(student.seat_number, []).append(student)

    for seat in snapshot.seats:
        students = holders.get(seat.number, [])
        if len(students) > 1:
            issues.append(ConsistencyIssue(
                seat_number=seat.number,
                problem=f"{len(students)} students reference the same seat",
            ))
        if seat.is_occupied and not students:
            issues.append(ConsistencyIssue(
                seat_number=seat.number,
                student_id=seat.student_id,
                problem="seat is occupied but no student references it",
            ))
        elif not seat.is_occupied and students:
            issues.append(ConsistencyIssue(
                seat_number=seat.number,
                student_id=students[0].id,
                problem="seat is free but a student references it",
            ))
        elif seat.is_occupied and len(students) == 1:
            holder = students[0]
            if holder.id != seat.student_id:
                issues.append(ConsistencyIssue(
                    seat_number=seat.number,
                    student_id=holder.id,
                    problem="seat caches a different student id",
                ))
            elif holder.name != seat.student_name:
                issues.append(ConsistencyIssue(
                    seat_number=seat.number,
                    student_id=holder.id,
                    problem="seat caches a stale student name",
                ))

    return issues


class DashboardAnalyticsService:
    """Derived views over the library snapshot"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    def dashboard_stats(self, snapshot: EntitySnapshot, today: date) -> DashboardStats:
        students = list(snapshot.students.values())
        occupied = sum(1 for seat in snapshot.seats if seat.is_occupied)
        current_month = DateTimeHelper.month_key(today)
        week_end = today + timedelta(days=self.settings.EXPIRY_WINDOW_DAYS)

        return DashboardStats(
            total_students=len(students),
            active_students=sum(1 for s in students if s.status == StudentStatus.ACTIVE),
            occupied_seats=occupied,
            available_seats=snapshot.seat_count - occupied,
            monthly_revenue=_total(
                t for t in snapshot.transactions
                if DateTimeHelper.month_key(t.transaction_date) == current_month
            ),
            pending_fees=sum(1 for s in students if s.fee_expiry_date < today),
            expiring_today=sum(1 for s in students if s.fee_expiry_date == today),
            expiring_this_week=sum(1 for s in students if today <= s.fee_expiry_date <= week_end),
        )

    def recent_activity(self, snapshot: EntitySnapshot, limit: int = 10) -> List[ActivityView]:
        """Newest entries first, timestamps rendered for display."""
        ordered = sorted(snapshot.activity, key=lambda entry: entry.timestamp, reverse=True)
        return [
            ActivityView(
                id=entry.id,
                type=entry.type,
                message=entry.message,
                timestamp=DateTimeHelper.format_display(
                    entry.timestamp,
                    self.settings.TIMEZONE,
                    self.settings.DISPLAY_DATETIME_FORMAT,
                ),
                student_name=entry.student_name,
            )
            for entry in ordered[:max(limit, 0)]
        ]

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def monthly_report(self, snapshot: EntitySnapshot, month: str) -> MonthlyReport:
        """Collections for ``month`` (``YYYY-MM``)."""
        transactions = [
            t for t in snapshot.transactions
            if DateTimeHelper.month_key(t.transaction_date) == month
        ]
        online = [t for t in transactions if t.payment_mode == PaymentMode.ONLINE]
        offline = [t for t in transactions if t.payment_mode == PaymentMode.OFFLINE]

        return MonthlyReport(
            month=month,
            total_collection=_total(transactions),
            online_collection=_total(online),
            offline_collection=_total(offline),
            total_transactions=len(transactions),
            online_transactions=len(online),
            offline_transactions=len(offline),
            transactions=transactions,
        )

    def student_report(self, snapshot: EntitySnapshot, year: int) -> StudentReport:
        students = list(snapshot.students.values())
        registered = [s for s in students if s.registration_date.year == year]

        return StudentReport(
            year=year,
            total_registrations=len(registered),
            active_students=sum(1 for s in students if s.status == StudentStatus.ACTIVE),
            inactive_students=sum(1 for s in students if s.status == StudentStatus.INACTIVE),
            expired_students=sum(1 for s in students if s.status == StudentStatus.EXPIRED),
            students_with_seats=sum(1 for s in students if s.seat_number is not None),
            rows=[
                StudentReportRow(
                    name=s.name,
                    mobile=s.mobile,
                    registration_date=s.registration_date,
                    status=s.status,
                    seat_number=s.seat_number,
                    total_fees_paid=s.total_fees_paid,
                )
                for s in registered
            ],
        )

    def seat_report(self, snapshot: EntitySnapshot) -> SeatReport:
        """Occupancy as seen from the students' side."""
        holders = seat_index(snapshot)
        total = snapshot.seat_count
        rows = []
        for seat in snapshot.seats:
            student = snapshot.students.get(holders.get(seat.number, ""))
            rows.append(SeatReportRow(
                seat_number=seat.number,
                is_occupied=student is not None,
                student_name=student.name if student else None,
                assigned_date=seat.assigned_date if student else None,
            ))
        occupied = sum(1 for row in rows if row.is_occupied)

        return SeatReport(
            total_seats=total,
            occupied_seats=occupied,
            available_seats=total - occupied,
            utilization_rate=int(_rounded(Decimal(occupied * 100) / total)) if total else 0,
            rows=rows,
        )

    def revenue_report(self, snapshot: EntitySnapshot, year: int) -> RevenueReport:
        yearly = [t for t in snapshot.transactions if t.transaction_date.year == year]
        yearly_revenue = _total(yearly)

        months = []
        for month_number in range(1, 13):
            month_transactions = [t for t in yearly if t.transaction_date.month == month_number]
            revenue = _total(month_transactions)
            months.append(RevenueMonth(
                month=f"{year:04d}-{month_number:02d}",
                revenue=revenue,
                transactions=len(month_transactions),
                average_transaction=(
                    _rounded(revenue / len(month_transactions)) if month_transactions else ZERO
                ),
            ))

        return RevenueReport(
            year=year,
            yearly_revenue=yearly_revenue,
            average_monthly_revenue=_rounded(yearly_revenue / 12),
            average_transaction_value=_rounded(yearly_revenue / len(yearly)) if yearly else ZERO,
            months=months,
        )

    def transaction_summary(
        self,
        snapshot: EntitySnapshot,
        mode: Optional[PaymentMode] = None,
        month: Optional[str] = None,
    ) -> TransactionSummary:
        """Totals over transactions, optionally filtered by payment mode and month."""
        transactions = [
            t for t in snapshot.transactions
            if (mode is None or t.payment_mode == mode)
            and (month is None or DateTimeHelper.month_key(t.transaction_date) == month)
        ]
        return TransactionSummary(
            total=_total(transactions),
            online=_total(t for t in transactions if t.payment_mode == PaymentMode.ONLINE),
            offline=_total(t for t in transactions if t.payment_mode == PaymentMode.OFFLINE),
            count=len(transactions),
        )

    def unseated_students(self, snapshot: EntitySnapshot, search: str = "") -> List[Student]:
        """Active students without a seat whose name contains ``search``."""
        needle = search.strip().lower()
        return [
            s for s in snapshot.students.values()
            if s.status == StudentStatus.ACTIVE
            and s.seat_number is None
            and needle in s.name.lower()
        ]

    def expiring_students(
        self,
        snapshot: EntitySnapshot,
        today: date,
        days: Optional[int] = None,
    ) -> List[Student]:
        """Students whose fee lapses within ``days`` of ``today`` (reminder candidates)."""
        window_end = today + timedelta(days=self.settings.EXPIRY_WINDOW_DAYS if days is None else days)
        return sorted(
            (s for s in snapshot.students.values() if today <= s.fee_expiry_date <= window_end),
            key=lambda s: s.fee_expiry_date,
        )


__all__ = ["DashboardAnalyticsService", "check_consistency"]
