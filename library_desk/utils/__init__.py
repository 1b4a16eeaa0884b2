"""
Shared utilities.
"""

from library_desk.utils.datetime_utils import DateTimeHelper

__all__ = ["DateTimeHelper"]
