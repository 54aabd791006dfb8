"""Queue state store: entry creation, status transitions and reference reads."""

from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import and_, func, insert, select, update
from sqlalchemy.engine import Row
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mediqueue.core.exceptions import (
    AppException,
    ConflictException,
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
)
from mediqueue.models.doctors import doctors
from mediqueue.models.patients import patients
from mediqueue.models.queue_items import queue_items
from mediqueue.models.queues import queues
from mediqueue.schemas.doctors import DoctorResponse
from mediqueue.schemas.patients import PatientCreate, PatientResponse
from mediqueue.schemas.queue_items import (
    AppointmentType,
    PriorityLevel,
    QueueItemResponse,
    QueueItemStatus,
    QueueItemWithPatient,
)
from mediqueue.schemas.queues import QueueResponse
from mediqueue.services.queue_ordering import sort_entries

logger = structlog.get_logger(__name__)

# Legal lifecycle moves; anything else is rejected
ALLOWED_TRANSITIONS: dict[QueueItemStatus, frozenset[QueueItemStatus]] = {
    QueueItemStatus.WAITING: frozenset(
        {
            QueueItemStatus.IN_PROGRESS,
            QueueItemStatus.CANCELLED,
            QueueItemStatus.NO_SHOW,
        }
    ),
    QueueItemStatus.IN_PROGRESS: frozenset(
        {
            QueueItemStatus.COMPLETED,
            QueueItemStatus.CANCELLED,
        }
    ),
    QueueItemStatus.COMPLETED: frozenset(),
    QueueItemStatus.NO_SHOW: frozenset(),
    QueueItemStatus.CANCELLED: frozenset(),
}


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def _item(row: Row) -> QueueItemResponse:
    return QueueItemResponse.model_validate(dict(row._mapping))


class QueueStore:
    """Persistence operations over queues, doctors, patients and queue items."""

    def __init__(self, db: AsyncSession):
        """Initialize store with database session."""
        self.db = db

    async def commit(self) -> None:
        """Commit pending writes."""
        await self.db.commit()

    async def rollback(self) -> None:
        """Discard pending writes."""
        await self.db.rollback()

    # ------------------------------------------------------------------
    # Reference data
    # ------------------------------------------------------------------

    async def get_queue(self, queue_id: UUID) -> QueueResponse | None:
        """Get queue by ID."""
        result = await self.db.execute(select(queues).where(queues.c.id == queue_id))
        row = result.fetchone()
        return QueueResponse.model_validate(dict(row._mapping)) if row else None

    async def get_queue_by_doctor(self, doctor_id: UUID) -> QueueResponse | None:
        """Get the (oldest) queue assigned to a doctor."""
        stmt = (
            select(queues)
            .where(queues.c.doctor_id == doctor_id)
            .order_by(queues.c.created_at.asc())
            .limit(1)
        )
        result = await self.db.execute(stmt)
        row = result.fetchone()
        return QueueResponse.model_validate(dict(row._mapping)) if row else None

    async def list_queues(self) -> list[QueueResponse]:
        """List all queues."""
        result = await self.db.execute(select(queues).order_by(queues.c.name.asc()))
        return [QueueResponse.model_validate(dict(row._mapping)) for row in result.fetchall()]

    async def create_queue(self, name: str, doctor_id: UUID | None = None) -> QueueResponse:
        """Create a queue, optionally bound to a doctor."""
        stmt = insert(queues).values(name=name, doctor_id=doctor_id).returning(queues)
        result = await self.db.execute(stmt)
        await self.db.commit()
        return QueueResponse.model_validate(dict(result.fetchone()._mapping))

    async def get_doctor(self, doctor_id: UUID) -> DoctorResponse | None:
        """Get doctor by ID."""
        result = await self.db.execute(select(doctors).where(doctors.c.id == doctor_id))
        row = result.fetchone()
        return DoctorResponse.model_validate(dict(row._mapping)) if row else None

    async def list_doctors(self) -> list[DoctorResponse]:
        """List all doctors."""
        result = await self.db.execute(select(doctors).order_by(doctors.c.name.asc()))
        return [DoctorResponse.model_validate(dict(row._mapping)) for row in result.fetchall()]

    async def create_doctor(
        self,
        name: str,
        specialization: str | None = None,
        room_number: str | None = None,
        is_available: bool = True,
    ) -> DoctorResponse:
        """Create a doctor record."""
        stmt = (
            insert(doctors)
            .values(
                name=name,
                specialization=specialization,
                room_number=room_number,
                is_available=is_available,
            )
            .returning(doctors)
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        return DoctorResponse.model_validate(dict(result.fetchone()._mapping))

    async def set_doctor_availability(self, doctor_id: UUID, is_available: bool) -> DoctorResponse:
        """Update a doctor's availability flag."""
        stmt = (
            update(doctors)
            .where(doctors.c.id == doctor_id)
            .values(is_available=is_available, updated_at=utcnow())
            .returning(doctors)
        )
        result = await self.db.execute(stmt)
        row = result.fetchone()
        if not row:
            await self.db.rollback()
            raise NotFoundException("Doctor not found")
        await self.db.commit()
        return DoctorResponse.model_validate(dict(row._mapping))

    async def get_patient(self, patient_id: UUID) -> PatientResponse | None:
        """Get patient by ID."""
        result = await self.db.execute(select(patients).where(patients.c.id == patient_id))
        row = result.fetchone()
        return PatientResponse.model_validate(dict(row._mapping)) if row else None

    async def get_patient_by_phone(self, phone_number: str) -> PatientResponse | None:
        """Get the first patient registered with a phone number."""
        stmt = (
            select(patients)
            .where(patients.c.phone_number == phone_number)
            .order_by(patients.c.created_at.asc())
            .limit(1)
        )
        result = await self.db.execute(stmt)
        row = result.fetchone()
        return PatientResponse.model_validate(dict(row._mapping)) if row else None

    async def create_patient(self, data: PatientCreate) -> PatientResponse:
        """Create a patient record."""
        stmt = insert(patients).values(**data.model_dump()).returning(patients)
        result = await self.db.execute(stmt)
        await self.db.commit()
        return PatientResponse.model_validate(dict(result.fetchone()._mapping))

    async def attach_patients(
        self,
        items: Sequence[QueueItemResponse],
    ) -> list[QueueItemWithPatient]:
        """Decorate entries with their patient records using a single query."""
        patient_ids = {item.patient_id for item in items}
        found: dict[UUID, PatientResponse] = {}
        if patient_ids:
            stmt = select(patients).where(patients.c.id.in_(list(patient_ids)))
            result = await self.db.execute(stmt)
            for row in result.fetchall():
                patient = PatientResponse.model_validate(dict(row._mapping))
                found[patient.id] = patient

        return [
            QueueItemWithPatient(**item.model_dump(), patient=found.get(item.patient_id))
            for item in items
        ]

    # ------------------------------------------------------------------
    # Queue entries
    # ------------------------------------------------------------------

    async def create_entry(
        self,
        queue_id: UUID,
        patient_id: UUID,
        priority_level: PriorityLevel = PriorityLevel.NORMAL,
        appointment_type: AppointmentType = AppointmentType.NEW,
        notes: str | None = None,
    ) -> QueueItemResponse:
        """
        Add a waiting entry to a queue.

        Args:
            queue_id: Owning queue
            patient_id: Patient joining the queue
            priority_level: Priority class
            appointment_type: Visit type
            notes: Free-text notes

        Returns:
            Created entry

        Raises:
            NotFoundException: If the queue or the patient does not exist
            ValidationException: If the priority or visit type is not recognised
        """
        try:
            priority = PriorityLevel(priority_level)
            visit_type = AppointmentType(appointment_type)
        except ValueError as e:
            raise ValidationException(str(e)) from e

        if await self.get_queue(queue_id) is None:
            raise NotFoundException("Queue not found")
        if await self.get_patient(patient_id) is None:
            raise NotFoundException("Patient not found")

        stmt = select(func.coalesce(func.max(queue_items.c.sequence_number), 0)).where(
            queue_items.c.queue_id == queue_id
        )
        sequence_number = (await self.db.execute(stmt)).scalar_one() + 1

        values = {
            "queue_id": queue_id,
            "patient_id": patient_id,
            "priority_level": priority.value,
            "appointment_type": visit_type.value,
            "status": QueueItemStatus.WAITING.value,
            "notes": notes or "",
            "time_added": utcnow(),
            "sequence_number": sequence_number,
            "start_time": None,
            "end_time": None,
        }

        stmt = insert(queue_items).values(**values).returning(queue_items)
        result = await self.db.execute(stmt)
        await self.db.commit()

        return _item(result.fetchone())

    async def find_entry(self, entry_id: UUID) -> QueueItemResponse | None:
        """Get queue item by ID, or None."""
        result = await self.db.execute(select(queue_items).where(queue_items.c.id == entry_id))
        row = result.fetchone()
        return _item(row) if row else None

    async def get_entry(self, entry_id: UUID) -> QueueItemResponse:
        """
        Get queue item by ID.

        Raises:
            NotFoundException: If the entry does not exist
        """
        entry = await self.find_entry(entry_id)
        if entry is None:
            raise NotFoundException("Queue item not found")
        return entry

    async def list_by_queue_and_status(
        self,
        queue_id: UUID,
        status: QueueItemStatus | str,
    ) -> list[QueueItemResponse]:
        """Entries of a queue in one status, in service order."""
        stmt = (
            select(queue_items)
            .where(
                and_(
                    queue_items.c.queue_id == queue_id,
                    queue_items.c.status == QueueItemStatus(status).value,
                )
            )
            .order_by(queue_items.c.time_added.asc())
        )
        result = await self.db.execute(stmt)
        return sort_entries(_item(row) for row in result.fetchall())

    async def list_by_queue(self, queue_id: UUID) -> list[QueueItemResponse]:
        """Every entry of a queue regardless of status, in service order."""
        stmt = (
            select(queue_items)
            .where(queue_items.c.queue_id == queue_id)
            .order_by(queue_items.c.time_added.asc())
        )
        result = await self.db.execute(stmt)
        return sort_entries(_item(row) for row in result.fetchall())

    async def get_in_progress(self, queue_id: UUID) -> QueueItemResponse | None:
        """The entry currently in consultation for a queue, if any."""
        stmt = select(queue_items).where(
            and_(
                queue_items.c.queue_id == queue_id,
                queue_items.c.status == QueueItemStatus.IN_PROGRESS.value,
            )
        )
        result = await self.db.execute(stmt)
        row = result.fetchone()
        return _item(row) if row else None

    async def transition(
        self,
        entry_id: UUID,
        new_status: QueueItemStatus | str,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
    ) -> QueueItemResponse:
        """
        Move an entry to a new lifecycle state.

        ``start_time`` is written only when entering in-progress and
        ``end_time`` only when entering completed; both default to now and
        are never overwritten once set.

        Args:
            entry_id: Entry to update
            new_status: Target status
            start_time: Consultation start (in-progress only)
            end_time: Consultation end (completed only)

        Returns:
            Updated entry

        Raises:
            NotFoundException: If the entry does not exist
            InvalidTransitionException: If the move is not allowed or the target
                status is not recognised
            ConflictException: If another entry of the queue is in progress
        """
        try:
            stmt = select(queue_items).where(queue_items.c.id == entry_id).with_for_update()
            result = await self.db.execute(stmt)
            row = result.fetchone()
            if not row:
                raise NotFoundException("Queue item not found")

            current = _item(row)
            try:
                target = QueueItemStatus(new_status)
            except ValueError as e:
                raise InvalidTransitionException(current.status.value, str(new_status)) from e

            if target not in ALLOWED_TRANSITIONS[current.status]:
                raise InvalidTransitionException(current.status.value, target.value)

            values: dict[str, Any] = {"status": target.value}

            if target == QueueItemStatus.IN_PROGRESS:
                active = await self.get_in_progress(current.queue_id)
                if active is not None and active.id != current.id:
                    raise self._already_in_progress(active)
                if current.start_time is None:
                    values["start_time"] = start_time or utcnow()

            if target == QueueItemStatus.COMPLETED and current.end_time is None:
                values["end_time"] = end_time or utcnow()

            stmt = (
                update(queue_items)
                .where(queue_items.c.id == entry_id)
                .values(**values)
                .returning(queue_items)
            )
            result = await self.db.execute(stmt)
            updated = _item(result.fetchone())
            await self.db.commit()
        except AppException:
            await self.db.rollback()
            raise
        except IntegrityError:
            # Unique index caught a concurrent in-progress writer
            await self.db.rollback()
            active = await self.get_in_progress(current.queue_id)
            logger.warning(
                "in_progress_constraint_violation",
                queue_id=str(current.queue_id),
                queue_item_id=str(entry_id),
            )
            raise self._already_in_progress(active)

        logger.info(
            "queue_item_transitioned",
            queue_item_id=str(entry_id),
            queue_id=str(updated.queue_id),
            from_status=current.status.value,
            to_status=target.value,
        )
        return updated

    @staticmethod
    def _already_in_progress(active: QueueItemResponse | None) -> ConflictException:
        details = {"current_item": active.model_dump(mode="json")} if active else None
        return ConflictException(
            "Cannot start a consultation while another patient is in progress",
            details=details,
        )

    async def set_estimated_wait_time(
        self,
        entry_id: UUID,
        minutes: int,
        commit: bool = True,
    ) -> None:
        """
        Store an entry's wait estimate.

        Args:
            entry_id: Entry to update
            minutes: Estimated wait in minutes
            commit: Commit immediately; the recompute pass batches instead
        """
        stmt = (
            update(queue_items)
            .where(queue_items.c.id == entry_id)
            .values(estimated_wait_time=minutes)
        )
        await self.db.execute(stmt)
        if commit:
            await self.db.commit()

    # ------------------------------------------------------------------
    # History reads for estimation
    # ------------------------------------------------------------------

    async def list_completed_for_doctor(
        self,
        doctor_id: UUID,
        start: datetime,
        end: datetime,
    ) -> list[QueueItemResponse]:
        """Completed entries of the doctor's queues whose end_time is in [start, end]."""
        stmt = (
            select(queue_items)
            .join(queues, queues.c.id == queue_items.c.queue_id)
            .where(
                and_(
                    queues.c.doctor_id == doctor_id,
                    queue_items.c.status == QueueItemStatus.COMPLETED.value,
                    queue_items.c.end_time.is_not(None),
                    queue_items.c.end_time >= start,
                    queue_items.c.end_time <= end,
                )
            )
        )
        result = await self.db.execute(stmt)
        return [_item(row) for row in result.fetchall()]

    async def list_added_for_doctor(
        self,
        doctor_id: UUID,
        start: datetime,
        end: datetime,
    ) -> list[QueueItemResponse]:
        """Entries of the doctor's queues added in [start, end)."""
        stmt = (
            select(queue_items)
            .join(queues, queues.c.id == queue_items.c.queue_id)
            .where(
                and_(
                    queues.c.doctor_id == doctor_id,
                    queue_items.c.time_added >= start,
                    queue_items.c.time_added < end,
                )
            )
        )
        result = await self.db.execute(stmt)
        return [_item(row) for row in result.fetchall()]

