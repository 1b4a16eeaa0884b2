"""
CSV export of the report screens.

Column headings and cell conventions ("Not Assigned", "-") are those of
the downloadable reports the front desk already uses.
"""

import csv
import io
from typing import Iterable, Optional, Sequence

from library_desk.config.settings import Settings
from library_desk.repositories.library.entity_store import EntitySnapshot
from library_desk.services.analytics.dashboard_analytics_service import DashboardAnalyticsService
from library_desk.services.base.base_service import BaseService
from library_desk.services.base.service_result import ServiceResult
from library_desk.services.communication.message_templates import format_amount

MONTHLY_HEADERS = ["Date", "Student", "Amount", "Payment Mode", "Method", "Receipt"]
STUDENT_HEADERS = ["Name", "Mobile", "Registration Date", "Status", "Seat", "Total Fees Paid"]
SEAT_HEADERS = ["Seat Number", "Status", "Student Name", "Assigned Date"]
REVENUE_HEADERS = ["Month", "Revenue", "Transactions", "Average Transaction"]

REPORT_TYPES = ("monthly", "student", "seat", "revenue")


def _render(headers: Sequence[str], rows: Iterable[Sequence]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows(rows)
    return buffer.getvalue()


class ReportExportService(BaseService):
    """Renders report views as CSV text"""

    def __init__(
        self,
        analytics: Optional[DashboardAnalyticsService] = None,
        settings: Optional[Settings] = None,
    ):
        super().__init__(settings)
        self.analytics = analytics or DashboardAnalyticsService(self.settings)

    def monthly_csv(self, snapshot: EntitySnapshot, month: str) -> str:
        report = self.analytics.monthly_report(snapshot, month)
        return _render(MONTHLY_HEADERS, (
            [
                t.transaction_date.isoformat(),
                t.student_name,
                format_amount(t.amount),
                t.payment_mode.value,
                t.payment_method,
                t.receipt_number,
            ]
            for t in report.transactions
        ))

    def student_csv(self, snapshot: EntitySnapshot, year: int) -> str:
        report = self.analytics.student_report(snapshot, year)
        return _render(STUDENT_HEADERS, (
            [
                row.name,
                row.mobile,
                row.registration_date.isoformat(),
                row.status.value,
                row.seat_number or "Not Assigned",
                format_amount(row.total_fees_paid),
            ]
            for row in report.rows
        ))

    def seat_csv(self, snapshot: EntitySnapshot) -> str:
        report = self.analytics.seat_report(snapshot)
        return _render(SEAT_HEADERS, (
            [
                row.seat_number,
                "Occupied" if row.is_occupied else "Available",
                row.student_name or "-",
                row.assigned_date.isoformat() if row.assigned_date else "-",
            ]
            for row in report.rows
        ))

    def revenue_csv(self, snapshot: EntitySnapshot, year: int) -> str:
        report = self.analytics.revenue_report(snapshot, year)
        return _render(REVENUE_HEADERS, (
            [m.month, format_amount(m.revenue), m.transactions, format_amount(m.average_transaction)]
            for m in report.months
        ))

    def export(
        self,
        report_type: str,
        snapshot: EntitySnapshot,
        month: Optional[str] = None,
        year: Optional[int] = None,
    ) -> ServiceResult[str]:
        """
        Render one report by name.

        ``month`` (``YYYY-MM``) is required for the monthly report and
        ``year`` for the student and revenue reports.
        """
        if report_type not in REPORT_TYPES:
            return ServiceResult.validation_failure(
                f"Unknown report type: {report_type}",
                field="report_type",
                details={"allowed": list(REPORT_TYPES)},
            )
        if report_type == "monthly" and not month:
            return ServiceResult.validation_failure("Month is required", field="month")
        if report_type in ("student", "revenue") and year is None:
            return ServiceResult.validation_failure("Year is required", field="year")

        try:
            if report_type == "monthly":
                content = self.monthly_csv(snapshot, month)
            elif report_type == "student":
                content = self.student_csv(snapshot, year)
            elif report_type == "seat":
                content = self.seat_csv(snapshot)
            else:
                content = self.revenue_csv(snapshot, year)
        except Exception as e:
            return self._handle_exception(e, f"export {report_type} report")

        filename = f"{report_type}-report-{month or year or 'all'}.csv"
        self._log_operation("export_report", extra={"report_type": report_type, "export_filename": filename})
        return ServiceResult.success(content, metadata={"filename": filename})


__all__ = [
    "MONTHLY_HEADERS",
    "REPORT_TYPES",
    "REVENUE_HEADERS",
    "ReportExportService",
    "SEAT_HEADERS",
    "STUDENT_HEADERS",
]
