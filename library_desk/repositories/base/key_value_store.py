"""
Key-value storage backends.

The library snapshot is persisted as a handful of JSON strings under
session-scoped keys, so the storage contract is a plain string
key-value store. Backends raise ``PersistenceError`` on failure; callers
decide whether a failure is fatal.
"""

import json
import os
import threading
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import quote

from redis import Redis
from redis.exceptions import RedisError

from library_desk.config.redis import check_redis_connection, get_redis_client
from library_desk.config.settings import Settings, get_settings
from library_desk.core.exceptions import ConfigurationError, PersistenceError
from library_desk.core.logging import get_logger

logger = get_logger(__name__)


class KeyValueStore:
    """Abstract string key-value store interface"""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> bool:
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        return self.get(key) is not None

    def get_json(self, key: str):
        """Read and decode a JSON value; ``None`` when the key is absent."""
        raw = self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            raise PersistenceError(
                f"Stored value is not valid JSON: {e}", operation="get", key=key
            ) from e

    def set_json(self, key: str, value) -> None:
        self.set(key, json.dumps(value, ensure_ascii=False, default=str))


class MemoryKeyValueStore(KeyValueStore):
    """In-process store, used for tests and ephemeral sessions"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def keys(self):
        with self._lock:
            return list(self._data)


class FileKeyValueStore(KeyValueStore):
    """One file per key under a directory; writes are atomic replaces"""

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{quote(key, safe='')}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise PersistenceError(str(e), operation="get", key=key) from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp_path = path.with_suffix(".tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(value, encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            raise PersistenceError(str(e), operation="set", key=key) from e

    def delete(self, key: str) -> bool:
        try:
            self._path(key).unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise PersistenceError(str(e), operation="delete", key=key) from e


class RedisKeyValueStore(KeyValueStore):
    """Redis-backed store sharing the pooled client from ``config.redis``"""

    def __init__(self, client: Optional[Redis] = None, settings: Optional[Settings] = None):
        self.client = client or get_redis_client(settings)

    def get(self, key: str) -> Optional[str]:
        try:
            return self.client.get(key)
        except RedisError as e:
            raise PersistenceError(str(e), operation="get", key=key) from e

    def set(self, key: str, value: str) -> None:
        try:
            self.client.set(key, value)
        except RedisError as e:
            raise PersistenceError(str(e), operation="set", key=key) from e

    def delete(self, key: str) -> bool:
        try:
            return self.client.delete(key) > 0
        except RedisError as e:
            raise PersistenceError(str(e), operation="delete", key=key) from e

    def exists(self, key: str) -> bool:
        try:
            return bool(self.client.exists(key))
        except RedisError as e:
            raise PersistenceError(str(e), operation="exists", key=key) from e

    def health(self) -> Dict:
        return check_redis_connection(self.client)


def create_key_value_store(settings: Optional[Settings] = None) -> KeyValueStore:
    """Build the store selected by ``STORAGE_BACKEND``"""
    settings = settings or get_settings()
    backend = settings.STORAGE_BACKEND

    if backend == "memory":
        store: KeyValueStore = MemoryKeyValueStore()
    elif backend == "file":
        store = FileKeyValueStore(settings.STORAGE_DIR)
    elif backend == "redis":
        store = RedisKeyValueStore(settings=settings)
    else:
        raise ConfigurationError(
            "Unsupported storage backend",
            config_key="STORAGE_BACKEND",
            config_value=backend,
        )

    logger.info("Key-value store created", extra={"backend": backend})
    return store


__all__ = [
    "KeyValueStore",
    "MemoryKeyValueStore",
    "FileKeyValueStore",
    "RedisKeyValueStore",
    "create_key_value_store",
]
