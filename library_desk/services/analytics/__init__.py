"""
Derived views: dashboard numbers, reports and CSV export.
"""

from library_desk.services.analytics.dashboard_analytics_service import (
    DashboardAnalyticsService,
    check_consistency,
)
from library_desk.services.analytics.report_export_service import ReportExportService

__all__ = [
    "DashboardAnalyticsService",
    "ReportExportService",
    "check_consistency",
]
