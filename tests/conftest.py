"""
Library Desk - Test Configuration and Fixtures
"""
import asyncio
import os
from datetime import date, datetime
from typing import List, Optional

import pytest
import pytz

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("LOG_FORMAT", "text")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from library_desk.config.settings import Settings
from library_desk.core.exceptions import ImportSourceError
from library_desk.repositories.base.key_value_store import MemoryKeyValueStore
from library_desk.repositories.library.snapshot_repository import SnapshotRepository
from library_desk.schemas.student import Student
from library_desk.services.auth.session_service import StaticSessionProvider
from library_desk.services.communication.outbound_queue import OutboundNotificationQueue
from library_desk.services.communication.whatsapp_dispatcher import WhatsAppDispatcher
from library_desk.services.integrations.csv_import_service import StudentImporter
from library_desk.services.library.library_service import LibraryService

TIMEZONE = "Asia/Kolkata"
FIXED_NOW = pytz.timezone(TIMEZONE).localize(datetime(2025, 2, 10, 15, 4, 5))

SESSION_ID = "owner-1"


class FakeImporter(StudentImporter):
    """Import source returning canned students, or failing"""

    def __init__(self, students: Optional[List[Student]] = None, error: Optional[Exception] = None):
        self.students = list(students or [])
        self.error = error
        self.calls = 0

    async def fetch_students(self) -> List[Student]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.students)


class RecordingOpener:
    """Stands in for the web browser; remembers every opened link"""

    def __init__(self, fail_times: int = 0):
        self.links: List[str] = []
        self.fail_times = fail_times

    def __call__(self, link: str) -> bool:
        if self.fail_times > 0:
            self.fail_times -= 1
            raise RuntimeError("browser unavailable")
        self.links.append(link)
        return True


class FixedClock:
    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def make_student(student_id: str = "csv-1", name: str = "Asha Rao", **overrides) -> Student:
    data = dict(
        id=student_id,
        name=name,
        mobile="9876543210",
        parent_name="Ravi Rao",
        parent_mobile="9876500000",
        registration_date=date(2025, 1, 15),
        fee_expiry_date=date(2025, 2, 14),
    )
    data.update(overrides)
    return Student(**data)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        TIMEZONE=TIMEZONE,
        STORAGE_BACKEND="memory",
        BULK_DISPATCH_DELAY_SECONDS=0,
        LOG_FORMAT="text",
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def memory_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def session_provider() -> StaticSessionProvider:
    return StaticSessionProvider(SESSION_ID)


@pytest.fixture
def repository(memory_store, session_provider) -> SnapshotRepository:
    return SnapshotRepository(memory_store, session_provider)


@pytest.fixture
def importer() -> FakeImporter:
    return FakeImporter()


@pytest.fixture
def failing_importer() -> FakeImporter:
    return FakeImporter(error=ImportSourceError("Failed to fetch student data: HTTP error status 500", status=500))


@pytest.fixture
def opener() -> RecordingOpener:
    return RecordingOpener()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def dispatcher(settings, opener) -> WhatsAppDispatcher:
    return WhatsAppDispatcher(settings, opener)


@pytest.fixture
def outbound(dispatcher, settings) -> OutboundNotificationQueue:
    return OutboundNotificationQueue(dispatcher, max_attempts=settings.NOTIFICATION_MAX_ATTEMPTS)


@pytest.fixture
def make_service(repository, importer, outbound, settings, clock):
    """Factory for an engine wired to in-memory collaborators"""

    def _make(**overrides) -> LibraryService:
        kwargs = dict(
            repository=repository,
            importer=importer,
            outbound=outbound,
            settings=settings,
            clock=clock,
        )
        kwargs.update(overrides)
        return LibraryService(**kwargs)

    return _make


@pytest.fixture
def service(make_service) -> LibraryService:
    """Initialised engine for a fresh session: no students, all seats free"""
    engine = make_service()
    asyncio.run(engine.initialize())
    return engine


@pytest.fixture
def student_data() -> dict:
    return {
        "name": "Asha Rao",
        "mobile": "9000000001",
        "parentName": "Ravi Rao",
        "parentMobile": "9000000002",
        "email": "asha@example.com",
    }
