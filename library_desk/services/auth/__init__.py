"""
Session identity services.
"""

from library_desk.services.auth.session_service import (
    CURRENT_OWNER_KEY,
    SessionProvider,
    StaticSessionProvider,
    StoredSessionProvider,
)

__all__ = [
    "CURRENT_OWNER_KEY",
    "SessionProvider",
    "StaticSessionProvider",
    "StoredSessionProvider",
]
