"""
Configuration package for the library desk.

This package contains the environment settings and the Redis connection
helpers used by the redis storage backend.
"""

from library_desk.config.settings import Settings, get_settings, settings

__all__ = ['Settings', 'get_settings', 'settings']
