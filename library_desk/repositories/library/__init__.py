"""
Library state repositories.
"""

from library_desk.repositories.library.entity_store import (
    EntitySnapshot,
    EntityStore,
    seat_index,
)
from library_desk.repositories.library.snapshot_repository import (
    COLLECTIONS,
    SnapshotRepository,
)

__all__ = [
    "COLLECTIONS",
    "EntitySnapshot",
    "EntityStore",
    "SnapshotRepository",
    "seat_index",
]
