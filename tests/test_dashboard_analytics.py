"""
Unit Tests for dashboard statistics, reports and CSV export
"""
from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest
import pytz

from conftest import FIXED_NOW, make_student
from library_desk.repositories.library.entity_store import EntitySnapshot, EntityStore
from library_desk.schemas.activity import ActivityLogEntry
from library_desk.schemas.common.enums import ActivityType, PaymentMode, StudentStatus
from library_desk.schemas.payment import FeeTransaction
from library_desk.schemas.seat import Seat
from library_desk.services.analytics import (
    DashboardAnalyticsService,
    ReportExportService,
    check_consistency,
)
from library_desk.services.base.service_result import ErrorCode

TODAY = date(2025, 2, 10)


def _transaction(number, amount, mode, on, student_id="s1", student_name="Asha Rao"):
    return FeeTransaction(
        id=f"txn-{number}",
        receipt_number=f"RCP{number:03d}",
        student_id=student_id,
        student_name=student_name,
        amount=Decimal(str(amount)),
        payment_mode=mode,
        payment_method="UPI" if mode == PaymentMode.ONLINE else "Cash",
        transaction_date=on,
        expiry_date=on + timedelta(days=30),
    )


@pytest.fixture
def snapshot() -> EntitySnapshot:
    """Four students, four seats (one taken), three payments"""
    students = [
        make_student("s1", "Asha Rao", fee_expiry_date=date(2025, 2, 9), seat_number=2,
                     total_fees_paid=Decimal("800")),
        make_student("s2", "Ravi Kumar", fee_expiry_date=TODAY),
        make_student("s3", "Meera Das", fee_expiry_date=date(2025, 2, 17)),
        make_student("s4", "Kiran Rao", fee_expiry_date=date(2025, 3, 1), status=StudentStatus.INACTIVE,
                     registration_date=date(2024, 12, 1)),
    ]
    seats = list(EntityStore.initial_seats(4))
    seats[1] = Seat(number=2, is_occupied=True, student_id="s1", student_name="Asha Rao",
                    assigned_date=date(2025, 2, 1))
    return EntitySnapshot(
        students={s.id: s for s in students},
        seats=tuple(seats),
        transactions=(
            _transaction(1, 300, PaymentMode.OFFLINE, date(2025, 1, 20)),
            _transaction(2, 500, PaymentMode.ONLINE, date(2025, 2, 1)),
            _transaction(3, 250, PaymentMode.OFFLINE, date(2025, 2, 5), "s2", "Ravi Kumar"),
        ),
    )


@pytest.fixture
def analytics(settings) -> DashboardAnalyticsService:
    return DashboardAnalyticsService(settings)


# =============================================================================
# DASHBOARD
# =============================================================================
class TestDashboard:
    """Test dashboard counters and the activity feed"""

    def test_dashboard_stats(self, analytics, snapshot):
        stats = analytics.dashboard_stats(snapshot, TODAY)

        assert stats.total_students == 4
        assert stats.active_students == 3
        assert stats.occupied_seats == 1
        assert stats.available_seats == 3
        assert stats.monthly_revenue == Decimal("750")
        assert stats.pending_fees == 1
        assert stats.expiring_today == 1
        assert stats.expiring_this_week == 2

    def test_empty_snapshot(self, analytics):
        stats = analytics.dashboard_stats(EntitySnapshot(seats=EntityStore.initial_seats(3)), TODAY)

        assert stats.total_students == 0
        assert stats.available_seats == 3
        assert stats.monthly_revenue == 0

    def test_recent_activity_is_newest_first_with_display_time(self, analytics):
        older = ActivityLogEntry(id="act-1", type=ActivityType.REGISTRATION, message="first",
                                 timestamp=FIXED_NOW - timedelta(hours=1))
        newer = ActivityLogEntry(id="act-2", type=ActivityType.PAYMENT, message="second",
                                 timestamp=FIXED_NOW.astimezone(pytz.UTC))
        snapshot = EntitySnapshot(activity=(older, newer))

        views = analytics.recent_activity(snapshot, limit=1)

        assert [v.id for v in views] == ["act-2"]
        assert views[0].timestamp == "10/02/2025, 03:04:05 pm"

    def test_naive_timestamps_are_treated_as_utc(self, analytics):
        entry = ActivityLogEntry(id="act-1", type=ActivityType.REMINDER, message="m",
                                 timestamp=datetime(2025, 2, 10, 0, 0, 0))

        view = analytics.recent_activity(EntitySnapshot(activity=(entry,)))[0]

        assert view.timestamp == "10/02/2025, 05:30:00 am"


# =============================================================================
# REPORTS
# =============================================================================
class TestReports:
    """Test report views"""

    def test_monthly_report(self, analytics, snapshot):
        report = analytics.monthly_report(snapshot, "2025-02")

        assert report.total_collection == Decimal("750")
        assert report.online_collection == Decimal("500")
        assert report.offline_collection == Decimal("250")
        assert (report.total_transactions, report.online_transactions, report.offline_transactions) == (2, 1, 1)
        assert [t.receipt_number for t in report.transactions] == ["RCP002", "RCP003"]

    def test_student_report(self, analytics, snapshot):
        report = analytics.student_report(snapshot, 2025)

        assert report.total_registrations == 3
        assert report.active_students == 3
        assert report.inactive_students == 1
        assert report.students_with_seats == 1
        assert [row.name for row in report.rows] == ["Asha Rao", "Ravi Kumar", "Meera Das"]

    def test_seat_report_follows_students(self, analytics, snapshot):
        report = analytics.seat_report(snapshot)

        assert report.total_seats == 4
        assert report.occupied_seats == 1
        assert report.utilization_rate == 25
        assert report.rows[1].student_name == "Asha Rao"
        assert report.rows[1].assigned_date == date(2025, 2, 1)
        assert report.rows[0].is_occupied is False

    def test_revenue_report_rounds_half_up(self, analytics, snapshot):
        report = analytics.revenue_report(snapshot, 2025)

        assert report.yearly_revenue == Decimal("1050")
        assert report.average_monthly_revenue == Decimal("88")
        assert report.average_transaction_value == Decimal("350")
        assert len(report.months) == 12
        february = report.months[1]
        assert (february.month, february.revenue, february.transactions) == ("2025-02", Decimal("750"), 2)
        assert february.average_transaction == Decimal("375")
        assert report.months[11].average_transaction == 0

    def test_revenue_report_for_year_without_payments(self, analytics, snapshot):
        report = analytics.revenue_report(snapshot, 2023)

        assert report.yearly_revenue == 0
        assert report.average_transaction_value == 0

    @pytest.mark.parametrize(
        "mode,month,total,count",
        [
            (None, None, Decimal("1050"), 3),
            (PaymentMode.OFFLINE, None, Decimal("550"), 2),
            (PaymentMode.ONLINE, "2025-01", Decimal("0"), 0),
            (None, "2025-02", Decimal("750"), 2),
        ],
    )
    def test_transaction_summary(self, analytics, snapshot, mode, month, total, count):
        summary = analytics.transaction_summary(snapshot, mode=mode, month=month)

        assert summary.total == total
        assert summary.count == count
        assert summary.online + summary.offline == summary.total

    def test_unseated_students_search(self, analytics, snapshot):
        assert [s.id for s in analytics.unseated_students(snapshot)] == ["s2", "s3"]
        assert [s.id for s in analytics.unseated_students(snapshot, " MEE ")] == ["s3"]

    def test_expiring_students(self, analytics, snapshot):
        assert [s.id for s in analytics.expiring_students(snapshot, TODAY)] == ["s2", "s3"]
        assert [s.id for s in analytics.expiring_students(snapshot, TODAY, days=0)] == ["s2"]


# =============================================================================
# CONSISTENCY CHECK
# =============================================================================
class TestConsistencyCheck:
    """Test detection of broken seat/student links"""

    def test_consistent_snapshot(self, snapshot):
        assert check_consistency(snapshot) == []

    def test_orphaned_seat(self, snapshot):
        seats = list(snapshot.seats)
        seats[0] = Seat(number=1, is_occupied=True, student_id="ghost", student_name="Ghost")

        issues = check_consistency(snapshot.evolve(seats=seats))

        assert [(i.seat_number, i.problem) for i in issues] == [
            (1, "seat is occupied but no student references it"),
        ]

    def test_double_booking(self, snapshot):
        students = dict(snapshot.students)
        students["s3"] = students["s3"].model_copy(update={"seat_number": 2})

        problems = {i.problem for i in check_consistency(snapshot.evolve(students=students))}

        assert "2 students reference the same seat" in problems

    def test_stale_name(self, snapshot):
        students = dict(snapshot.students)
        students["s1"] = students["s1"].model_copy(update={"name": "Asha R."})

        issues = check_consistency(snapshot.evolve(students=students))

        assert [i.problem for i in issues] == ["seat caches a stale student name"]


# =============================================================================
# EXPORT
# =============================================================================
class TestReportExport:
    """Test CSV rendering of the reports"""

    @pytest.fixture
    def exporter(self, settings, analytics) -> ReportExportService:
        return ReportExportService(analytics, settings)

    def test_monthly_csv(self, exporter, snapshot):
        lines = exporter.monthly_csv(snapshot, "2025-02").splitlines()

        assert lines[0] == "Date,Student,Amount,Payment Mode,Method,Receipt"
        assert lines[1:] == [
            "2025-02-01,Asha Rao,500,online,UPI,RCP002",
            "2025-02-05,Ravi Kumar,250,offline,Cash,RCP003",
        ]

    def test_student_csv_marks_unseated(self, exporter, snapshot):
        lines = exporter.student_csv(snapshot, 2025).splitlines()

        assert lines[0] == "Name,Mobile,Registration Date,Status,Seat,Total Fees Paid"
        assert lines[1] == "Asha Rao,9876543210,2025-01-15,active,2,800"
        assert lines[2] == "Ravi Kumar,9876543210,2025-01-15,active,Not Assigned,0"

    def test_seat_csv(self, exporter, snapshot):
        lines = exporter.seat_csv(snapshot).splitlines()

        assert lines[:3] == [
            "Seat Number,Status,Student Name,Assigned Date",
            "1,Available,-,-",
            "2,Occupied,Asha Rao,2025-02-01",
        ]

    def test_revenue_csv(self, exporter, snapshot):
        lines = exporter.revenue_csv(snapshot, 2025).splitlines()

        assert lines[0] == "Month,Revenue,Transactions,Average Transaction"
        assert lines[2] == "2025-02,750,2,375"
        assert len(lines) == 13

    def test_export_names_the_file(self, exporter, snapshot):
        result = exporter.export("monthly", snapshot, month="2025-02")

        assert result.is_success
        assert result.metadata["filename"] == "monthly-report-2025-02.csv"
        assert result.data.startswith("Date,Student")

    @pytest.mark.parametrize(
        "report_type,kwargs",
        [("weekly", {}), ("monthly", {}), ("student", {}), ("revenue", {"month": "2025-02"})],
    )
    def test_export_rejects_incomplete_requests(self, exporter, snapshot, report_type, kwargs):
        result = exporter.export(report_type, snapshot, **kwargs)

        assert not result.is_success
        assert result.error.code == ErrorCode.VALIDATION_ERROR
