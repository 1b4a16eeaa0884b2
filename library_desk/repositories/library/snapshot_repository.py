"""
Snapshot persistence.

Each collection of the entity snapshot is stored independently as a JSON
array under ``{collection}_{session_id}``. Without a session identity
nothing is read or written. Storage problems never reach the engine: a
failed read is reported as "absent" and a failed write is dropped after
logging.
"""

from typing import Any, Callable, Dict, List, Optional, Sequence, Type

from pydantic import BaseModel, ValidationError as PydanticValidationError

from library_desk.core.exceptions import PersistenceError
from library_desk.core.logging import get_logger
from library_desk.repositories.base.key_value_store import KeyValueStore
from library_desk.repositories.library.entity_store import EntitySnapshot
from library_desk.schemas.activity import ActivityLogEntry
from library_desk.schemas.notification import NotificationLogEntry
from library_desk.schemas.payment import FeeTransaction
from library_desk.schemas.seat import Seat
from library_desk.schemas.student import Student

logger = get_logger(__name__)

# Collection name -> (storage key prefix, item schema)
COLLECTIONS: Dict[str, tuple] = {
    "students": ("library_students", Student),
    "seats": ("library_seats", Seat),
    "transactions": ("library_transactions", FeeTransaction),
    "activity": ("library_activity", ActivityLogEntry),
    "notifications": ("library_notifications", NotificationLogEntry),
}


class SnapshotRepository:
    """Loads and saves snapshot collections for the current session"""

    def __init__(self, store: KeyValueStore, session_id_getter: Callable[[], Optional[str]]):
        self.store = store
        self._session_id_getter = session_id_getter

    def storage_key(self, collection: str) -> Optional[str]:
        session_id = self._session_id_getter()
        if not session_id:
            return None
        prefix, _ = COLLECTIONS[collection]
        return f"{prefix}_{session_id}"

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def load_collection(self, collection: str) -> Optional[List[BaseModel]]:
        """
        Load one collection.

        Returns:
            The parsed items, or ``None`` when the collection is absent,
            unreadable, or there is no session.
        """
        key = self.storage_key(collection)
        if key is None:
            return None

        _, schema = COLLECTIONS[collection]
        try:
            raw = self.store.get_json(key)
        except PersistenceError as e:
            logger.warning(
                "Failed to read stored collection",
                extra={"collection": collection, "storage_key": key, "error": e.message},
            )
            return None

        if raw is None:
            return None
        if not isinstance(raw, list):
            logger.warning(
                "Stored collection is not a list",
                extra={"collection": collection, "storage_key": key},
            )
            return None

        try:
            return [schema.model_validate(item) for item in raw]
        except PydanticValidationError as e:
            logger.warning(
                "Stored collection failed validation",
                extra={"collection": collection, "storage_key": key, "error_count": e.error_count()},
            )
            return None

    def load(self) -> Dict[str, Optional[List[BaseModel]]]:
        """Load every collection; absent ones map to ``None``."""
        return {name: self.load_collection(name) for name in COLLECTIONS}

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save_collection(self, collection: str, items: Sequence[BaseModel]) -> bool:
        key = self.storage_key(collection)
        if key is None:
            logger.debug("No session; skipping save", extra={"collection": collection})
            return False

        payload: List[Dict[str, Any]] = [item.to_storage() for item in items]
        try:
            self.store.set_json(key, payload)
        except PersistenceError as e:
            logger.error(
                "Failed to save collection",
                extra={"collection": collection, "storage_key": key, "error": e.message},
            )
            return False
        return True

    def save(self, snapshot: EntitySnapshot, collections: Optional[Sequence[str]] = None) -> None:
        """Persist the named collections of ``snapshot`` (all by default)."""
        for name in collections or COLLECTIONS:
            items = getattr(snapshot, name)
            if name == "students":
                items = list(items.values())
            self.save_collection(name, items)


__all__ = ["COLLECTIONS", "SnapshotRepository"]
