# --- File: library_desk/schemas/student/__init__.py ---
"""
Student schemas package.
"""

from __future__ import annotations

from library_desk.schemas.student.student_base import (
    MOBILE_PATTERN,
    MoneyAmount,
    Student,
    StudentCreate,
    StudentUpdate,
)

__all__ = [
    "MOBILE_PATTERN",
    "MoneyAmount",
    "Student",
    "StudentCreate",
    "StudentUpdate",
]
