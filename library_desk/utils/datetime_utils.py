"""
Date and time utilities for the library desk
"""

from datetime import datetime, date, timedelta
from typing import Optional, Union
import pytz
from dateutil import parser


class DateTimeHelper:
    """Date and time helpers used by the engine, importer and reports"""

    @staticmethod
    def now(timezone: str = 'UTC') -> datetime:
        """Get current datetime in specified timezone"""
        tz_obj = pytz.timezone(timezone)
        return datetime.now(tz_obj)

    @staticmethod
    def today(timezone: str = 'UTC') -> date:
        """Get current date in specified timezone"""
        tz_obj = pytz.timezone(timezone)
        return datetime.now(tz_obj).date()

    @staticmethod
    def parse_datetime(dt_string: str) -> datetime:
        """Parse datetime string with flexible formats (month-first, as spreadsheet exports write them)"""
        try:
            return parser.parse(dt_string)
        except (ValueError, TypeError, OverflowError) as e:
            raise ValueError(f"Unable to parse datetime string: {dt_string}") from e

    @staticmethod
    def parse_date_or_default(value: Optional[str], default: date) -> date:
        """Parse a date, falling back to ``default`` when missing or unparsable"""
        if not value:
            return default
        try:
            return DateTimeHelper.parse_datetime(value).date()
        except ValueError:
            return default

    @staticmethod
    def format_display(dt: datetime, timezone: str, format_str: str) -> str:
        """Format an instant for display in the given timezone (lower-case meridiem)"""
        if dt.tzinfo is None:
            # Assume UTC if no timezone info
            dt = pytz.UTC.localize(dt)
        dt = dt.astimezone(pytz.timezone(timezone))
        return dt.strftime(format_str).replace("AM", "am").replace("PM", "pm")

    @staticmethod
    def format_short_date(value: Union[date, datetime]) -> str:
        """Day/month/year without zero padding, e.g. 1/3/2025"""
        return f"{value.day}/{value.month}/{value.year}"

    @staticmethod
    def month_key(value: Union[date, datetime]) -> str:
        """Calendar month key in YYYY-MM form"""
        return f"{value.year:04d}-{value.month:02d}"

    @staticmethod
    def add_days(value: date, days: int) -> date:
        return value + timedelta(days=days)
