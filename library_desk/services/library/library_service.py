"""
Library consistency engine.

Owns every state transition of the library: registrations, seat
assignment and release, fee payments and CSV refreshes. Each operation
builds the complete next snapshot, commits it to the entity store,
persists the touched collections and only then logs. Expected failures
leave the store untouched and come back as a failed ``ServiceResult``.

Seat occupancy is stored on both sides (``Seat.student_id`` and
``Student.seat_number``); both sides are only ever written together by
``_occupy`` and ``_vacate``.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from library_desk.config.settings import Settings, get_settings
from library_desk.core.exceptions import (
    ImportSourceError,
    ResourceNotFoundError,
    ValidationError,
)
from library_desk.repositories.base.key_value_store import KeyValueStore, create_key_value_store
from library_desk.repositories.library.entity_store import EntitySnapshot, EntityStore
from library_desk.repositories.library.snapshot_repository import COLLECTIONS, SnapshotRepository
from library_desk.schemas.activity import ActivityLogEntry, ActivityView
from library_desk.schemas.analytics import DashboardStats
from library_desk.schemas.common.enums import ActivityType, NotificationType
from library_desk.schemas.notification import NotificationLogEntry
from library_desk.schemas.payment import FeeTransaction, FeeTransactionCreate
from library_desk.schemas.seat import Seat
from library_desk.schemas.student import Student, StudentCreate, StudentUpdate
from library_desk.services.analytics.dashboard_analytics_service import (
    DashboardAnalyticsService,
    check_consistency,
)
from library_desk.services.auth.session_service import SessionProvider, StoredSessionProvider
from library_desk.services.base.base_service import BaseService
from library_desk.services.base.service_result import ServiceResult
from library_desk.services.communication.message_templates import MessageTemplates, format_amount
from library_desk.services.communication.outbound_queue import (
    NotificationTask,
    OutboundNotificationQueue,
)
from library_desk.services.communication.whatsapp_dispatcher import Opener, WhatsAppDispatcher
from library_desk.services.integrations.csv_import_service import CsvStudentImporter, StudentImporter
from library_desk.utils.datetime_utils import DateTimeHelper

NOTIFICATION_LABELS: Dict[NotificationType, str] = {
    NotificationType.WELCOME: "Welcome message",
    NotificationType.FEE_CONFIRMATION: "Fee confirmation",
    NotificationType.FEE_REMINDER: "Fee reminder",
    NotificationType.GOODBYE: "Goodbye message",
    NotificationType.CUSTOM: "Custom message",
}

_UNSET = object()


class LibraryService(BaseService):
    """
    Consistency engine for students, seats, fees and the activity feed.

    Mutations are refused with INVALID_STATE while an import is in
    flight (``is_loading``).
    """

    def __init__(
        self,
        repository: SnapshotRepository,
        importer: StudentImporter,
        outbound: OutboundNotificationQueue,
        settings: Optional[Settings] = None,
        store: Optional[EntityStore] = None,
        templates: Optional[MessageTemplates] = None,
        analytics: Optional[DashboardAnalyticsService] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(settings)
        self.repository = repository
        self.importer = importer
        self.outbound = outbound
        self.store = store or EntityStore()
        self.templates = templates or MessageTemplates(self.settings.CURRENCY_SYMBOL)
        self.analytics = analytics or DashboardAnalyticsService(self.settings)
        self._clock = clock or (lambda: DateTimeHelper.now(self.settings.TIMEZONE))

        self.is_loading = False
        self.error: Optional[str] = None

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def snapshot(self) -> EntitySnapshot:
        return self.store.snapshot

    @property
    def students(self) -> List[Student]:
        return list(self.store.snapshot.students.values())

    @property
    def seats(self) -> List[Seat]:
        return list(self.store.snapshot.seats)

    @property
    def transactions(self) -> List[FeeTransaction]:
        return list(self.store.snapshot.transactions)

    @property
    def activity_log(self) -> List[ActivityLogEntry]:
        return list(self.store.snapshot.activity)

    @property
    def notification_log(self) -> List[NotificationLogEntry]:
        return list(self.store.snapshot.notifications)

    def today(self) -> date:
        return self._clock().date()

    def dashboard_stats(self) -> DashboardStats:
        return self.analytics.dashboard_stats(self.store.snapshot, self.today())

    def recent_activity(self, limit: int = 10) -> List[ActivityView]:
        return self.analytics.recent_activity(self.store.snapshot, limit)

    # -------------------------------------------------------------------------
    # Initialisation and import
    # -------------------------------------------------------------------------

    async def initialize(self) -> ServiceResult[EntitySnapshot]:
        """
        Restore the persisted snapshot, seeding whatever is missing.

        Students are only fetched from the import source when no student
        collection has ever been stored for the session. An import failure
        leaves the engine usable with no students and is reported on
        ``error``.
        """
        self.is_loading = True
        self.error = None
        failure: Optional[ServiceResult] = None
        try:
            loaded = self.repository.load()
            seeded: List[str] = []

            students = loaded["students"]
            if students is None:
                try:
                    students = await self.importer.fetch_students()
                    seeded.append("students")
                except ImportSourceError as e:
                    # Not persisted, so the next start tries the import again
                    self.error = e.message
                    students = []
                    failure = self._handle_exception(e, "load students from import source")

            seats = loaded["seats"]
            if seats is None:
                seeded.append("seats")
                seats = EntityStore.initial_seats(self.settings.LIBRARY_SEAT_COUNT)

            for name in ("transactions", "activity", "notifications"):
                if loaded[name] is None:
                    seeded.append(name)

            snapshot = EntitySnapshot(
                students={student.id: student for student in students},
                seats=tuple(seats),
                transactions=tuple(loaded["transactions"] or ()),
                activity=tuple(loaded["activity"] or ()),
                notifications=tuple(loaded["notifications"] or ()),
            )
            if "seats" in seeded:
                reseated = self._reseat_students(snapshot)
                if reseated.students != snapshot.students and "students" not in seeded:
                    seeded.append("students")
                snapshot = reseated

            self.store.commit(snapshot)
            if seeded:
                self.repository.save(snapshot, seeded)

            self._log_operation(
                "initialize",
                extra={
                    "student_count": len(snapshot.students),
                    "seat_count": snapshot.seat_count,
                    "seeded": seeded,
                },
            )
            self._warn_on_inconsistency(snapshot)
        except Exception as e:
            self.error = str(e)
            return self._handle_exception(e, "initialize library data")
        finally:
            self.is_loading = False

        if failure is not None:
            return failure
        return ServiceResult.success(self.store.snapshot, message="Library data loaded")

    async def refresh_from_import_source(self) -> ServiceResult[int]:
        """
        Append students from the import source that are not present yet.

        Raises:
            ImportSourceError: If the source cannot be fetched or parsed;
                the store is left unchanged.
        """
        if self.is_loading:
            return ServiceResult.invalid_state("Library data is still loading")

        self.is_loading = True
        self.error = None
        try:
            imported = await self.importer.fetch_students()
        except ImportSourceError as e:
            self.error = e.message
            self._logger.error("Refresh from import source failed", extra={"error": e.message})
            raise
        finally:
            self.is_loading = False

        # Diff against the snapshot current after the fetch
        snapshot = self.store.snapshot
        new_students = [s for s in imported if s.id not in snapshot.students]
        if new_students:
            students = dict(snapshot.students)
            for student in new_students:
                students.setdefault(student.id, student)
            snapshot = snapshot.evolve(students=students)
            message = f"Refreshed data: {len(new_students)} new student(s) added from CSV"
        else:
            message = "Refreshed data: No new students found"

        snapshot = self._with_activity(snapshot, ActivityType.REGISTRATION, message)
        self._commit(snapshot, ("students", "activity") if new_students else ("activity",))

        self._log_operation("refresh_from_import_source", extra={"added_count": len(new_students)})
        return ServiceResult.success(len(new_students), message=message)

    # -------------------------------------------------------------------------
    # Students
    # -------------------------------------------------------------------------

    def add_student(self, data: Union[StudentCreate, Mapping]) -> ServiceResult[Student]:
        def build() -> ServiceResult[Student]:
            payload = data if isinstance(data, StudentCreate) else StudentCreate.model_validate(data)
            today = self.today()
            registration_date = payload.registration_date or today
            student = Student(
                **payload.model_dump(exclude={"registration_date", "fee_expiry_date"}),
                id=f"student-{uuid4().hex[:12]}",
                registration_date=registration_date,
                fee_expiry_date=payload.fee_expiry_date
                or DateTimeHelper.add_days(registration_date, self.settings.FEE_VALIDITY_DAYS),
            )

            snapshot = self.store.snapshot
            students = dict(snapshot.students)
            students[student.id] = student
            snapshot = self._with_activity(
                snapshot.evolve(students=students),
                ActivityType.REGISTRATION,
                f"New student {student.name} registered successfully",
                student.name,
            )
            self._commit(snapshot, ("students", "activity"))

            self._log_operation("add_student", student.id)
            return ServiceResult.success(student, message="Student registered")

        return self._mutate("add student", None, build)

    def update_student(
        self,
        student_id: str,
        fields: Union[StudentUpdate, Mapping],
    ) -> ServiceResult[Student]:
        """
        Merge ``fields`` into the student.

        A ``seat_number`` in ``fields`` goes through the seat procedure:
        ``None`` releases the held seat, a number assigns that seat.
        """
        def build() -> ServiceResult[Student]:
            update = fields if isinstance(fields, StudentUpdate) else StudentUpdate.model_validate(fields)
            changes = update.model_dump(exclude_unset=True)
            seat_change = changes.pop("seat_number", _UNSET)

            snapshot = self.store.snapshot
            current = self._require_student(snapshot, student_id)
            merged = Student.model_validate({**current.model_dump(), **changes})

            students = dict(snapshot.students)
            students[student_id] = merged
            snapshot = snapshot.evolve(students=students)

            if merged.name != current.name and merged.seat_number is not None:
                snapshot = self._occupy(
                    snapshot,
                    merged.seat_number,
                    merged,
                    snapshot.seats[merged.seat_number - 1].assigned_date or self.today(),
                )

            if "status" in changes and merged.status != current.status:
                snapshot = self._with_activity(
                    snapshot,
                    ActivityType.REGISTRATION,
                    f"Student {current.name} status changed to {merged.status.value}",
                    current.name,
                )

            if seat_change is None:
                if merged.seat_number is not None:
                    snapshot = self._draft_release(snapshot, merged.seat_number)
            elif seat_change is not _UNSET:
                drafted = self._draft_assign(snapshot, seat_change, student_id)
                if not drafted:
                    return drafted
                snapshot = drafted.data

            self._commit(snapshot, ("students", "seats", "activity"))
            self._log_operation("update_student", student_id, extra={"fields": sorted(changes)})
            return ServiceResult.success(snapshot.students[student_id], message="Student updated")

        return self._mutate("update student", student_id, build)

    def delete_student(self, student_id: str) -> ServiceResult[Student]:
        """Remove a student, releasing their seat first."""
        def build() -> ServiceResult[Student]:
            snapshot = self.store.snapshot
            student = self._require_student(snapshot, student_id)

            if student.seat_number is not None:
                snapshot = self._draft_release(snapshot, student.seat_number)

            students = dict(snapshot.students)
            del students[student_id]
            snapshot = self._with_activity(
                snapshot.evolve(students=students),
                ActivityType.REGISTRATION,
                f"Student {student.name} removed from system",
                student.name,
            )
            self._commit(snapshot, ("students", "seats", "activity"))

            self._log_operation("delete_student", student_id)
            return ServiceResult.success(student, message="Student removed")

        return self._mutate("delete student", student_id, build)

    # -------------------------------------------------------------------------
    # Seats
    # -------------------------------------------------------------------------

    def assign_seat(self, seat_number: int, student_id: str) -> ServiceResult[Seat]:
        """
        Give ``seat_number`` to the student.

        A seat held by someone else is not taken over (CONFLICT). A student
        who already holds another seat is moved: the old seat is released
        first.
        """
        def build() -> ServiceResult[Seat]:
            drafted = self._draft_assign(self.store.snapshot, seat_number, student_id)
            if not drafted:
                return drafted

            snapshot = drafted.data
            if snapshot is not self.store.snapshot:
                self._commit(snapshot, ("students", "seats", "activity"))
                self._log_operation("assign_seat", student_id, extra={"seat_number": seat_number})
            return ServiceResult.success(snapshot.seats[seat_number - 1], message="Seat assigned")

        return self._mutate("assign seat", student_id, build)

    def release_seat(self, seat_number: int) -> ServiceResult[Seat]:
        def build() -> ServiceResult[Seat]:
            snapshot = self.store.snapshot
            seat = self._require_seat(snapshot, seat_number)
            if not seat.is_occupied:
                self._logger.warning("Release of a free seat ignored", extra={"seat_number": seat_number})
                return ServiceResult.invalid_state(f"Seat {seat_number} is not occupied")

            snapshot = self._draft_release(snapshot, seat_number)
            self._commit(snapshot, ("students", "seats", "activity"))

            self._log_operation("release_seat", seat.student_id, extra={"seat_number": seat_number})
            return ServiceResult.success(snapshot.seats[seat_number - 1], message="Seat released")

        return self._mutate("release seat", seat_number, build)

    # -------------------------------------------------------------------------
    # Fees
    # -------------------------------------------------------------------------

    def add_transaction(self, data: Union[FeeTransactionCreate, Mapping]) -> ServiceResult[FeeTransaction]:
        """
        Record a fee payment and bring the student's fee fields up to date.

        The fee confirmation message is sent afterwards through the
        outbound queue; its outcome never affects the recorded payment.
        """
        def build() -> ServiceResult[FeeTransaction]:
            payload = (
                data if isinstance(data, FeeTransactionCreate)
                else FeeTransactionCreate.model_validate(data)
            )
            snapshot = self.store.snapshot
            student = snapshot.students.get(payload.student_id)
            student_name = payload.student_name or (student.name if student else payload.student_id)

            transaction = FeeTransaction(
                **payload.model_dump(exclude={"student_name"}),
                student_name=student_name,
                id=f"txn-{uuid4().hex[:12]}",
                receipt_number=f"{self.settings.RECEIPT_PREFIX}{len(snapshot.transactions) + 1:03d}",
            )

            changes: Dict[str, Sequence] = {"transactions": snapshot.transactions + (transaction,)}
            updated_student: Optional[Student] = None
            if student is not None:
                updated_student = student.model_copy(update={
                    "fee_expiry_date": payload.expiry_date,
                    "last_fee_payment": payload.transaction_date,
                    "payment_mode": payload.payment_mode,
                    "total_fees_paid": (student.total_fees_paid or Decimal("0")) + payload.amount,
                })
                students = dict(snapshot.students)
                students[student.id] = updated_student
                changes["students"] = students
            else:
                self._logger.warning(
                    "Payment recorded for unknown student",
                    extra={"student_id": payload.student_id},
                )

            snapshot = self._with_activity(
                snapshot.evolve(**changes),
                ActivityType.PAYMENT,
                f"Fee payment of {self.settings.CURRENCY_SYMBOL}{format_amount(payload.amount)} "
                f"received from {student_name}",
                student_name,
            )
            self._commit(snapshot, ("students", "transactions", "activity"))
            self._log_operation(
                "add_transaction",
                payload.student_id,
                extra={"receipt_number": transaction.receipt_number, "amount": str(payload.amount)},
            )

            if updated_student is not None:
                self._send_fee_confirmation(updated_student, payload)
            return ServiceResult.success(transaction, message="Payment recorded")

        return self._mutate("record fee payment", None, build)

    def _send_fee_confirmation(self, student: Student, payload: FeeTransactionCreate) -> None:
        try:
            message = self.templates.fee_confirmation(student.name, payload.amount, payload.expiry_date)
            self._notify(student, NotificationType.FEE_CONFIRMATION, message)
        except Exception as e:
            self._logger.error(
                f"Error sending fee confirmation: {e}",
                exc_info=True,
                extra={"student_id": student.id},
            )

    # -------------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------------

    def send_notification(
        self,
        student_id: str,
        kind: NotificationType,
        custom_message: Optional[str] = None,
    ) -> ServiceResult[NotificationLogEntry]:
        def build() -> ServiceResult[NotificationLogEntry]:
            notification_type = NotificationType(kind)
            student = self._require_student(self.store.snapshot, student_id)
            message = self.templates.render_for_student(notification_type, student, custom_message)

            entry = self._notify(student, notification_type, message)
            snapshot = self._with_activity(
                self.store.snapshot,
                ActivityType.REMINDER,
                f"{NOTIFICATION_LABELS[notification_type]} sent to {student.name}",
                student.name,
            )
            self._commit(snapshot, ("activity",))
            return ServiceResult.success(entry, message=f"Notification {entry.status.value}")

        return self._mutate("send notification", student_id, build)

    async def send_bulk_notification(
        self,
        student_ids: Sequence[str],
        kind: NotificationType,
        custom_message: Optional[str] = None,
    ) -> ServiceResult[List[NotificationLogEntry]]:
        """
        Send one template to several students, one chat at a time.

        Unknown ids are skipped. ``{name}`` in the template is replaced per
        student.
        """
        if self.is_loading:
            return ServiceResult.invalid_state("Library data is still loading")

        notification_type = NotificationType(kind)
        snapshot = self.store.snapshot
        recipients = [snapshot.students[sid] for sid in student_ids if sid in snapshot.students]
        if not recipients:
            return ServiceResult.validation_failure("Please select at least one student", field="student_ids")

        template = self.templates.bulk_template(notification_type, custom_message)
        tasks = [
            NotificationTask(
                student_id=student.id,
                student_name=student.name,
                mobile=student.mobile,
                type=notification_type,
                message=MessageTemplates.custom(template, student.name),
            )
            for student in recipients
        ]
        entries = await self.outbound.dispatch_bulk(tasks, self.settings.BULK_DISPATCH_DELAY_SECONDS)

        snapshot = self._with_notifications(self.store.snapshot, entries)
        snapshot = self._with_activity(
            snapshot,
            ActivityType.REMINDER,
            f"{NOTIFICATION_LABELS[notification_type]} sent to {len(recipients)} student(s)",
        )
        self._commit(snapshot, ("notifications", "activity"))

        self._log_operation("send_bulk_notification", extra={"recipient_count": len(recipients)})
        return ServiceResult.success(entries, message=f"{len(entries)} notification(s) dispatched")

    def retry_pending_notifications(self) -> ServiceResult[List[NotificationLogEntry]]:
        entries = self.outbound.retry_pending()
        if entries:
            self._commit(self._with_notifications(self.store.snapshot, entries), ("notifications",))
        return ServiceResult.success(entries, message=f"{len(entries)} notification(s) retried")

    def _notify(self, student: Student, kind: NotificationType, message: str) -> NotificationLogEntry:
        task = self.outbound.enqueue(
            NotificationTask(
                student_id=student.id,
                student_name=student.name,
                mobile=student.mobile,
                type=kind,
                message=message,
            )
        )
        entry = self.outbound.dispatch(task)
        self._commit(self._with_notifications(self.store.snapshot, [entry]), ("notifications",))
        return entry

    # -------------------------------------------------------------------------
    # Snapshot drafting
    # -------------------------------------------------------------------------

    def _draft_assign(
        self,
        snapshot: EntitySnapshot,
        seat_number: int,
        student_id: str,
    ) -> ServiceResult[EntitySnapshot]:
        student = self._require_student(snapshot, student_id)
        seat = self._require_seat(snapshot, seat_number)

        if seat.is_occupied and seat.student_id != student_id:
            self._logger.warning(
                "Seat already occupied",
                extra={"seat_number": seat_number, "student_id": student_id, "occupant_id": seat.student_id},
            )
            return ServiceResult.conflict(
                f"Seat {seat_number} is already assigned to {seat.student_name}",
                details={"seat_number": seat_number, "occupant_id": seat.student_id},
            )
        if seat.is_occupied and student.seat_number == seat_number:
            return ServiceResult.success(snapshot)

        if student.seat_number is not None:
            snapshot = self._draft_release(snapshot, student.seat_number)
            student = snapshot.students[student_id]

        snapshot = self._occupy(snapshot, seat_number, student, self.today())
        snapshot = self._with_activity(
            snapshot,
            ActivityType.SEAT_ASSIGNMENT,
            f"Seat {seat_number} assigned to {student.name}",
            student.name,
        )
        return ServiceResult.success(snapshot)

    def _draft_release(self, snapshot: EntitySnapshot, seat_number: int) -> EntitySnapshot:
        snapshot, occupant = self._vacate(snapshot, seat_number)
        if occupant is not None:
            snapshot = self._with_activity(
                snapshot,
                ActivityType.SEAT_ASSIGNMENT,
                f"Seat {seat_number} released from {occupant.name}",
                occupant.name,
            )
        return snapshot

    @staticmethod
    def _occupy(snapshot: EntitySnapshot, seat_number: int, student: Student, assigned_on: date) -> EntitySnapshot:
        seats = list(snapshot.seats)
        seats[seat_number - 1] = Seat(
            number=seat_number,
            is_occupied=True,
            student_id=student.id,
            student_name=student.name,
            assigned_date=assigned_on,
        )
        students = dict(snapshot.students)
        students[student.id] = student.model_copy(update={"seat_number": seat_number})
        return snapshot.evolve(seats=seats, students=students)

    def _reseat_students(self, snapshot: EntitySnapshot) -> EntitySnapshot:
        """
        Rebuild occupancy of freshly seeded seats from the students' seat numbers.

        A seat number that is out of range or already claimed by an earlier
        student is cleared.
        """
        today = self.today()
        for student in list(snapshot.students.values()):
            number = student.seat_number
            if number is None:
                continue
            if number <= snapshot.seat_count and not snapshot.seats[number - 1].is_occupied:
                snapshot = self._occupy(snapshot, number, student, today)
                continue

            self._logger.warning(
                "Cleared unrecoverable seat reference",
                extra={"student_id": student.id, "seat_number": number},
            )
            students = dict(snapshot.students)
            students[student.id] = student.model_copy(update={"seat_number": None})
            snapshot = snapshot.evolve(students=students)
        return snapshot

    @staticmethod
    def _vacate(snapshot: EntitySnapshot, seat_number: int) -> Tuple[EntitySnapshot, Optional[Student]]:
        """Free the seat on both sides; returns the occupant if they still exist."""
        seat = snapshot.seats[seat_number - 1]
        seats = list(snapshot.seats)
        seats[seat_number - 1] = Seat.vacant(seat_number)

        students = dict(snapshot.students)
        occupant = students.get(seat.student_id) if seat.student_id else None
        if occupant is None:
            # Fall back to the student side for seats whose cache was lost
            occupant = next((s for s in students.values() if s.seat_number == seat_number), None)
        if occupant is not None:
            students[occupant.id] = occupant.model_copy(update={"seat_number": None})

        return snapshot.evolve(seats=seats, students=students), occupant

    def _with_activity(
        self,
        snapshot: EntitySnapshot,
        activity_type: ActivityType,
        message: str,
        student_name: Optional[str] = None,
    ) -> EntitySnapshot:
        entry = ActivityLogEntry(
            id=f"act-{uuid4().hex[:12]}",
            type=activity_type,
            message=message,
            timestamp=self._clock(),
            student_name=student_name,
        )
        return snapshot.evolve(
            activity=EntityStore.prepend_bounded(snapshot.activity, entry, self.settings.ACTIVITY_LOG_LIMIT)
        )

    def _with_notifications(
        self,
        snapshot: EntitySnapshot,
        entries: Sequence[NotificationLogEntry],
    ) -> EntitySnapshot:
        """Record outcomes; a retried task replaces its earlier entry."""
        notifications = snapshot.notifications
        for entry in entries:
            remaining = tuple(n for n in notifications if n.id != entry.id)
            notifications = EntityStore.prepend_bounded(
                remaining, entry, self.settings.NOTIFICATION_LOG_LIMIT
            )
        return snapshot.evolve(notifications=notifications)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _require_student(snapshot: EntitySnapshot, student_id: str) -> Student:
        student = snapshot.students.get(student_id)
        if student is None:
            raise ResourceNotFoundError("Student", student_id)
        return student

    @staticmethod
    def _require_seat(snapshot: EntitySnapshot, seat_number: int) -> Seat:
        if not isinstance(seat_number, int) or not 1 <= seat_number <= snapshot.seat_count:
            raise ValidationError(
                f"Seat number must be between 1 and {snapshot.seat_count}",
                field="seat_number",
                value=seat_number,
            )
        return snapshot.seats[seat_number - 1]

    def _commit(self, snapshot: EntitySnapshot, collections: Sequence[str]) -> None:
        self.store.commit(snapshot)
        self.repository.save(snapshot, [name for name in COLLECTIONS if name in collections])
        self._warn_on_inconsistency(snapshot)

    def _warn_on_inconsistency(self, snapshot: EntitySnapshot) -> None:
        if not self.settings.DEBUG:
            return
        issues = check_consistency(snapshot)
        if issues:
            self._logger.warning(
                "Seat/student inconsistency detected",
                extra={"issues": [issue.problem for issue in issues]},
            )

    def _mutate(self, operation: str, entity_ref, build: Callable[[], ServiceResult]) -> ServiceResult:
        """Run a mutation, turning expected failures into failed results."""
        if self.is_loading:
            self._logger.warning(f"Refused to {operation} while loading")
            return ServiceResult.invalid_state("Library data is still loading")

        try:
            return build()
        except ResourceNotFoundError as e:
            self._logger.warning(f"Cannot {operation}: {e.message}", extra={"entity_ref": str(entity_ref)})
            return ServiceResult.not_found(e.details["resource_type"], e.details["resource_id"])
        except ValidationError as e:
            self._logger.warning(f"Cannot {operation}: {e.message}", extra={"entity_ref": str(entity_ref)})
            return ServiceResult.validation_failure(e.message, field=e.details.get("field"))
        except PydanticValidationError as e:
            self._logger.warning(
                f"Invalid data to {operation}",
                extra={"entity_ref": str(entity_ref), "error_count": e.error_count()},
            )
            return ServiceResult.validation_failure(
                f"Invalid data to {operation}",
                details={"errors": e.errors(include_url=False, include_context=False, include_input=False)},
            )
        except Exception as e:
            return self._handle_exception(e, operation, entity_ref)


def build_library_service(
    settings: Optional[Settings] = None,
    store: Optional[KeyValueStore] = None,
    session_provider: Optional[SessionProvider] = None,
    importer: Optional[StudentImporter] = None,
    opener: Optional[Opener] = None,
) -> LibraryService:
    """
    Wire a ``LibraryService`` from settings.

    Defaults: the configured key-value backend, the logged-in owner
    stored in it as session identity, the published CSV as import source
    and the system browser for WhatsApp links.
    """
    settings = settings or get_settings()
    store = store or create_key_value_store(settings)
    session_provider = session_provider or StoredSessionProvider(store)

    return LibraryService(
        repository=SnapshotRepository(store, session_provider),
        importer=importer or CsvStudentImporter(settings),
        outbound=OutboundNotificationQueue(
            WhatsAppDispatcher(settings, opener),
            max_attempts=settings.NOTIFICATION_MAX_ATTEMPTS,
        ),
        settings=settings,
    )


__all__ = ["LibraryService", "NOTIFICATION_LABELS", "build_library_service"]
