"""
Session identity providers.

The engine only needs "who owns the data right now" to namespace its
storage keys. Authentication itself happens elsewhere.
"""

from typing import Optional

from library_desk.core.exceptions import PersistenceError
from library_desk.core.logging import get_logger, session_id as session_id_var
from library_desk.repositories.base.key_value_store import KeyValueStore

logger = get_logger(__name__)

CURRENT_OWNER_KEY = "current_library_owner"


class SessionProvider:
    """Abstract source of the current session identity"""

    def current_session_id(self) -> Optional[str]:
        raise NotImplementedError

    def __call__(self) -> Optional[str]:
        sid = self.current_session_id()
        session_id_var.set(sid)
        return sid


class StaticSessionProvider(SessionProvider):
    """A fixed identity, or none"""

    def __init__(self, session_id: Optional[str] = None):
        self._session_id = session_id

    def current_session_id(self) -> Optional[str]:
        return self._session_id


class StoredSessionProvider(SessionProvider):
    """Reads the logged-in owner record written by the login flow"""

    def __init__(self, store: KeyValueStore, key: str = CURRENT_OWNER_KEY):
        self.store = store
        self.key = key

    def current_session_id(self) -> Optional[str]:
        try:
            owner = self.store.get_json(self.key)
        except PersistenceError as e:
            logger.warning("Could not read current owner", extra={"error": e.message})
            return None

        if not isinstance(owner, dict):
            return None
        owner_id = owner.get("id")
        return str(owner_id) if owner_id else None


__all__ = [
    "CURRENT_OWNER_KEY",
    "SessionProvider",
    "StaticSessionProvider",
    "StoredSessionProvider",
]
