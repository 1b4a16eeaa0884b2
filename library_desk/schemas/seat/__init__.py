"""
Seat schemas package.
"""

from library_desk.schemas.seat.seat_base import Seat

__all__ = ["Seat"]
