"""
Property Tests for the seat/student invariant and the bounded logs.

Random sequences of engine operations must always leave every seat
occupied iff exactly one student points back at it, and the activity
feed within its limit.
"""
import asyncio

from hypothesis import given, settings as hypothesis_settings, strategies as st
from hypothesis.strategies import composite

from conftest import FakeImporter, FixedClock, RecordingOpener, make_student
from library_desk.config.settings import Settings
from library_desk.repositories.base.key_value_store import MemoryKeyValueStore
from library_desk.repositories.library.snapshot_repository import SnapshotRepository
from library_desk.services.analytics import check_consistency
from library_desk.services.auth.session_service import StaticSessionProvider
from library_desk.services.communication.outbound_queue import OutboundNotificationQueue
from library_desk.services.communication.whatsapp_dispatcher import WhatsAppDispatcher
from library_desk.services.library.library_service import LibraryService

SEAT_COUNT = 6
STUDENT_IDS = [f"csv-{n}" for n in range(1, 6)]


def build_service(seat_count: int = SEAT_COUNT, activity_limit: int = 50) -> LibraryService:
    config = Settings(
        LIBRARY_SEAT_COUNT=seat_count,
        ACTIVITY_LOG_LIMIT=activity_limit,
        BULK_DISPATCH_DELAY_SECONDS=0,
    )
    service = LibraryService(
        repository=SnapshotRepository(MemoryKeyValueStore(), StaticSessionProvider("prop")),
        importer=FakeImporter([make_student(sid, name=f"Student {sid}") for sid in STUDENT_IDS]),
        outbound=OutboundNotificationQueue(WhatsAppDispatcher(config, RecordingOpener())),
        settings=config,
        clock=FixedClock(),
    )
    asyncio.run(service.initialize())
    return service


# =============================================================================
# STRATEGIES
# =============================================================================

seat_numbers = st.integers(min_value=-1, max_value=SEAT_COUNT + 1)
student_ids = st.sampled_from(STUDENT_IDS + ["missing"])


@composite
def operations(draw):
    kind = draw(st.sampled_from(["assign", "release", "delete", "update_seat", "rename", "pay"]))
    if kind == "assign":
        return ("assign", draw(seat_numbers), draw(student_ids))
    if kind == "release":
        return ("release", draw(seat_numbers))
    if kind == "delete":
        return ("delete", draw(student_ids))
    if kind == "update_seat":
        return ("update_seat", draw(student_ids), draw(st.one_of(st.none(), st.integers(1, SEAT_COUNT))))
    if kind == "rename":
        return ("rename", draw(student_ids), draw(st.text(alphabet="abcxyz", min_size=1, max_size=8)))
    return ("pay", draw(student_ids), draw(st.integers(min_value=0, max_value=5000)))


def apply(service: LibraryService, op) -> None:
    kind = op[0]
    if kind == "assign":
        service.assign_seat(op[1], op[2])
    elif kind == "release":
        service.release_seat(op[1])
    elif kind == "delete":
        service.delete_student(op[1])
    elif kind == "update_seat":
        service.update_student(op[1], {"seatNumber": op[2]})
    elif kind == "rename":
        service.update_student(op[1], {"name": op[2]})
    else:
        service.add_transaction({
            "studentId": op[1],
            "amount": op[2],
            "paymentMode": "online",
            "paymentMethod": "UPI",
            "transactionDate": "2025-02-01",
            "expiryDate": "2025-03-01",
        })


# =============================================================================
# PROPERTIES
# =============================================================================

@hypothesis_settings(max_examples=60, deadline=None)
@given(st.lists(operations(), max_size=25))
def test_seat_student_links_stay_consistent(ops):
    service = build_service()

    for op in ops:
        apply(service, op)
        assert check_consistency(service.snapshot) == []

    occupied = [seat for seat in service.seats if seat.is_occupied]
    seated = [s for s in service.students if s.seat_number is not None]
    assert len(occupied) == len(seated)
    assert len(service.seats) == SEAT_COUNT


@hypothesis_settings(max_examples=40, deadline=None)
@given(st.lists(operations(), max_size=25))
def test_receipts_are_never_reused(ops):
    service = build_service()

    for op in ops:
        apply(service, op)

    receipts = [t.receipt_number for t in service.transactions]
    assert len(receipts) == len(set(receipts))
    assert receipts == [f"RCP{n:03d}" for n in range(1, len(receipts) + 1)]


@hypothesis_settings(max_examples=30, deadline=None)
@given(st.integers(min_value=1, max_value=8), st.integers(min_value=0, max_value=30))
def test_activity_log_is_bounded_most_recent_first(limit, operations_count):
    service = build_service(activity_limit=limit)

    for n in range(operations_count):
        service.update_student("csv-1", {"status": "inactive" if n % 2 == 0 else "active"})

    log = service.activity_log
    assert len(log) == min(limit, operations_count)
    if log:
        expected_status = "inactive" if (operations_count - 1) % 2 == 0 else "active"
        assert log[0].message == f"Student Student csv-1 status changed to {expected_status}"
