"""
Analytics view schemas package.
"""

from library_desk.schemas.analytics.dashboard import (
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

__all__ = [
    "ConsistencyIssue",
    "DashboardStats",
    "MonthlyReport",
    "RevenueMonth",
    "RevenueReport",
    "SeatReport",
    "SeatReportRow",
    "StudentReport",
    "StudentReportRow",
    "TransactionSummary",
]
