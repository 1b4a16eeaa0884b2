# --- File: library_desk/schemas/seat/seat_base.py ---
"""
Seat schema.

The seat universe is fixed at initialisation. Occupancy fields are a
cache of the owning student and are only present while occupied.
"""

from __future__ import annotations

from datetime import date as Date
from typing import Optional

from pydantic import Field, model_validator

from library_desk.schemas.common.base import BaseSchema

__all__ = ["Seat"]


class Seat(BaseSchema):
    """A numbered physical seat."""

    number: int = Field(..., ge=1, description="Seat number (identity)")
    is_occupied: bool = False
    student_id: Optional[str] = None
    student_name: Optional[str] = None
    assigned_date: Optional[Date] = None

    @model_validator(mode="after")
    def check_occupancy_fields(self) -> "Seat":
        """An occupied seat names its student; a free seat carries no occupant."""
        if self.is_occupied and not self.student_id:
            raise ValueError(f"Seat {self.number} is occupied without a student")
        if not self.is_occupied and (self.student_id or self.student_name or self.assigned_date):
            raise ValueError(f"Seat {self.number} is free but has occupant fields")
        return self

    @classmethod
    def vacant(cls, number: int) -> "Seat":
        return cls(number=number)
