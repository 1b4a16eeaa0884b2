"""
Unit Tests for storage backends, session identity and snapshot persistence
"""
import asyncio
import json
from unittest.mock import MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from conftest import SESSION_ID, make_student
from library_desk.core.exceptions import ConfigurationError, PersistenceError
from library_desk.repositories.base.key_value_store import (
    FileKeyValueStore,
    MemoryKeyValueStore,
    RedisKeyValueStore,
    create_key_value_store,
)
from library_desk.repositories.library.entity_store import EntitySnapshot, EntityStore
from library_desk.repositories.library.snapshot_repository import SnapshotRepository
from library_desk.services.auth.session_service import (
    CURRENT_OWNER_KEY,
    StaticSessionProvider,
    StoredSessionProvider,
)


# =============================================================================
# KEY-VALUE STORES
# =============================================================================
class TestKeyValueStores:
    """Test the storage backends"""

    def test_memory_store_roundtrip(self):
        store = MemoryKeyValueStore()
        store.set("k", "v")
        assert store.get("k") == "v"
        assert store.exists("k")
        assert store.delete("k") is True
        assert store.get("k") is None
        assert store.delete("k") is False

    def test_file_store_writes_one_file_per_key(self, tmp_path):
        store = FileKeyValueStore(str(tmp_path / "data"))

        store.set_json("library_seats_owner/1", [{"number": 1}])

        files = list((tmp_path / "data").iterdir())
        assert len(files) == 1
        assert store.get_json("library_seats_owner/1") == [{"number": 1}]
        assert store.get("absent") is None

    def test_corrupt_json_raises_persistence_error(self):
        store = MemoryKeyValueStore({"k": "{not json"})
        with pytest.raises(PersistenceError):
            store.get_json("k")

    def test_redis_store_wraps_client_errors(self):
        client = MagicMock()
        client.get.side_effect = RedisConnectionError("down")

        store = RedisKeyValueStore(client=client)

        with pytest.raises(PersistenceError) as exc_info:
            store.get("k")
        assert exc_info.value.details["operation"] == "get"

    def test_redis_store_delegates_to_client(self):
        client = MagicMock()
        client.get.return_value = "[]"
        client.delete.return_value = 1

        store = RedisKeyValueStore(client=client)
        store.set("k", "[]")

        client.set.assert_called_once_with("k", "[]")
        assert store.get_json("k") == []
        assert store.delete("k") is True

    def test_factory_selects_backend(self, settings, tmp_path):
        assert isinstance(create_key_value_store(settings), MemoryKeyValueStore)

        file_settings = settings.model_copy(update={"STORAGE_BACKEND": "file", "STORAGE_DIR": str(tmp_path)})
        assert isinstance(create_key_value_store(file_settings), FileKeyValueStore)

    def test_factory_rejects_unknown_backend(self, settings):
        bogus = settings.model_copy(update={"STORAGE_BACKEND": "sqlite"})
        with pytest.raises(ConfigurationError):
            create_key_value_store(bogus)


# =============================================================================
# SESSION IDENTITY
# =============================================================================
class TestSessionProviders:
    """Test session identity providers"""

    def test_static_provider(self):
        assert StaticSessionProvider("abc")() == "abc"
        assert StaticSessionProvider()() is None

    def test_stored_provider_reads_current_owner(self, memory_store):
        memory_store.set_json(CURRENT_OWNER_KEY, {"id": "admin-default", "username": "admin"})
        assert StoredSessionProvider(memory_store).current_session_id() == "admin-default"

    @pytest.mark.parametrize("raw", [None, "not json", json.dumps(["x"]), json.dumps({"username": "a"})])
    def test_stored_provider_without_owner(self, memory_store, raw):
        if raw is not None:
            memory_store.set(CURRENT_OWNER_KEY, raw)
        assert StoredSessionProvider(memory_store).current_session_id() is None


# =============================================================================
# SNAPSHOT REPOSITORY
# =============================================================================
class TestSnapshotRepository:
    """Test per-session snapshot persistence"""

    def test_keys_are_namespaced_by_session(self, repository):
        assert repository.storage_key("students") == f"library_students_{SESSION_ID}"
        assert repository.storage_key("notifications") == f"library_notifications_{SESSION_ID}"

    def test_saved_collections_use_camel_case(self, repository, memory_store):
        snapshot = EntitySnapshot(
            students={"csv-1": make_student("csv-1")},
            seats=EntityStore.initial_seats(2),
        )

        repository.save(snapshot)

        stored = json.loads(memory_store.get(f"library_students_{SESSION_ID}"))
        assert stored[0]["parentName"] == "Ravi Rao"
        assert stored[0]["feeExpiryDate"] == "2025-02-14"
        seats = json.loads(memory_store.get(f"library_seats_{SESSION_ID}"))
        assert seats == [{"number": 1, "isOccupied": False}, {"number": 2, "isOccupied": False}]

    def test_roundtrip_restores_models(self, repository):
        snapshot = EntitySnapshot(students={"csv-1": make_student("csv-1")}, seats=EntityStore.initial_seats(3))
        repository.save(snapshot)

        loaded = repository.load()

        assert loaded["students"][0] == snapshot.students["csv-1"]
        assert len(loaded["seats"]) == 3
        assert loaded["transactions"] == []

    def test_no_session_skips_reads_and_writes(self, memory_store):
        repository = SnapshotRepository(memory_store, StaticSessionProvider(None))

        repository.save(EntitySnapshot(seats=EntityStore.initial_seats(1)))

        assert memory_store.keys() == []
        assert repository.load_collection("seats") is None

    @pytest.mark.parametrize("raw", ["{broken", json.dumps({"a": 1}), json.dumps([{"number": 0}])])
    def test_unreadable_collection_is_absent(self, repository, memory_store, raw):
        memory_store.set(f"library_seats_{SESSION_ID}", raw)
        assert repository.load_collection("seats") is None

    def test_write_failures_are_dropped(self, session_provider):
        store = MagicMock()
        store.set_json.side_effect = PersistenceError("disk full", operation="set")
        repository = SnapshotRepository(store, session_provider)

        assert repository.save_collection("seats", EntityStore.initial_seats(1)) is False

    def test_engine_without_session_works_in_memory(self, make_service, memory_store, student_data):
        service = make_service(repository=SnapshotRepository(memory_store, StaticSessionProvider(None)))
        asyncio.run(service.initialize())

        result = service.add_student(student_data)

        assert result.is_success
        assert len(service.students) == 1
        assert memory_store.keys() == []

    def test_corrupt_students_trigger_reimport(self, make_service, importer, memory_store):
        memory_store.set(f"library_students_{SESSION_ID}", "garbage")
        importer.students = [make_student("csv-1")]

        service = make_service()
        asyncio.run(service.initialize())

        assert importer.calls == 1
        assert [s.id for s in service.students] == ["csv-1"]
