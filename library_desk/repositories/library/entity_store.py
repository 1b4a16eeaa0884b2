"""
In-memory entity store for the library.

The store holds one immutable ``EntitySnapshot``. Callers compute the next
snapshot in full and hand it to ``commit``; nothing mutates a snapshot in
place, so a failed operation simply never commits.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, Mapping, Optional, Tuple, TypeVar

from library_desk.schemas.activity import ActivityLogEntry
from library_desk.schemas.notification import NotificationLogEntry
from library_desk.schemas.payment import FeeTransaction
from library_desk.schemas.seat import Seat
from library_desk.schemas.student import Student

T = TypeVar("T")


@dataclass(frozen=True)
class EntitySnapshot:
    """
    Canonical library state.

    ``students`` keeps insertion order. ``seats`` is ordered by number, so
    seat ``n`` lives at index ``n - 1``. ``activity`` and
    ``notifications`` are most-recent-first.
    """

    students: Mapping[str, Student] = field(default_factory=dict)
    seats: Tuple[Seat, ...] = ()
    transactions: Tuple[FeeTransaction, ...] = ()
    activity: Tuple[ActivityLogEntry, ...] = ()
    notifications: Tuple[NotificationLogEntry, ...] = ()

    @property
    def seat_count(self) -> int:
        return len(self.seats)

    def evolve(self, **changes) -> "EntitySnapshot":
        """Return a copy with the given collections replaced."""
        if "students" in changes:
            changes["students"] = dict(changes["students"])
        for name in ("seats", "transactions", "activity", "notifications"):
            if name in changes:
                changes[name] = tuple(changes[name])
        return replace(self, **changes)


class EntityStore:
    """Owner of the current snapshot"""

    def __init__(self, snapshot: Optional[EntitySnapshot] = None):
        self._snapshot = snapshot or EntitySnapshot()

    @property
    def snapshot(self) -> EntitySnapshot:
        return self._snapshot

    def commit(self, snapshot: EntitySnapshot) -> EntitySnapshot:
        """Replace the whole snapshot; returns the previous one."""
        previous = self._snapshot
        self._snapshot = snapshot
        return previous

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    def get_student(self, student_id: str) -> Optional[Student]:
        return self._snapshot.students.get(student_id)

    def get_seat(self, number: int) -> Optional[Seat]:
        if 1 <= number <= len(self._snapshot.seats):
            return self._snapshot.seats[number - 1]
        return None

    def seat_index(self) -> Dict[int, str]:
        """Seat number -> student id, derived from the students' side."""
        return seat_index(self._snapshot)

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @staticmethod
    def initial_seats(count: int) -> Tuple[Seat, ...]:
        """The all-unoccupied seat universe ``1..count``."""
        return tuple(Seat.vacant(number) for number in range(1, count + 1))

    @staticmethod
    def prepend_bounded(items: Iterable[T], new_item: T, limit: int) -> Tuple[T, ...]:
        """Put ``new_item`` first and drop the oldest entries beyond ``limit``."""
        return ((new_item,) + tuple(items))[:limit]


def seat_index(snapshot: EntitySnapshot) -> Dict[int, str]:
    return {
        student.seat_number: student.id
        for student in snapshot.students.values()
        if student.seat_number is not None
    }


__all__ = ["EntitySnapshot", "EntityStore", "seat_index"]
