"""
Library consistency engine.
"""

from library_desk.services.library.library_service import LibraryService, build_library_service

__all__ = ["LibraryService", "build_library_service"]
