"""Queue service coordinating entries, estimates and realtime updates."""

from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from mediqueue.config import Settings, settings
from mediqueue.core.exceptions import (
    ConflictException,
    DoctorUnavailableException,
    NotFoundException,
)
from mediqueue.core.locks import QueueLockRegistry, queue_locks
from mediqueue.core.redis_client import CacheManager
from mediqueue.schemas.doctors import DoctorResponse, DoctorStats
from mediqueue.schemas.events import RealtimeEvent
from mediqueue.schemas.patients import PatientCreate, PatientResponse
from mediqueue.schemas.queue_items import (
    AddPatientRequest,
    QueueItemResponse,
    QueueItemStatus,
    QueueItemWithPatient,
    QueueItemWithPosition,
    QueuePosition,
)
from mediqueue.schemas.queues import QueueResponse, QueueWithItems
from mediqueue.services.broadcaster import Broadcaster
from mediqueue.services.estimation_service import EstimationService
from mediqueue.services.queue_ordering import head_of, position_of
from mediqueue.services.queue_store import QueueStore

logger = structlog.get_logger(__name__)


class QueueService:
    """
    Service for running doctor queues.

    Each write holds the queue's lock while it commits, refreshes wait
    estimates, drops cached stats and publishes its event, so observers of a
    queue see events in commit order.
    """

    def __init__(
        self,
        db: AsyncSession,
        broadcaster: Broadcaster | None = None,
        cache: CacheManager | None = None,
        config: Settings = settings,
        locks: QueueLockRegistry = queue_locks,
    ):
        """Initialize service with database session and collaborators."""
        self.db = db
        self.store = QueueStore(db)
        self.estimation = EstimationService(self.store, cache=cache, config=config)
        self.broadcaster = broadcaster
        self.locks = locks
        self.enforce_availability = config.enforce_doctor_availability

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def add_patient(self, queue_id: UUID, data: AddPatientRequest) -> QueueItemWithPosition:
        """
        Put a patient at the back of their priority class.

        Args:
            queue_id: Target queue
            data: Patient, priority, visit type and notes

        Returns:
            Created entry with its position, estimate and patient

        Raises:
            NotFoundException: If the queue, its doctor or the patient is missing
        """
        async with self.locks.hold(queue_id):
            queue = await self._require_queue(queue_id)
            await self._require_doctor(queue)

            entry = await self.store.create_entry(
                queue_id=queue_id,
                patient_id=data.patient_id,
                priority_level=data.priority_level,
                appointment_type=data.appointment_type,
                notes=data.notes,
            )
            waiting = await self.estimation.recompute_wait_times(queue_id)
            position = position_of(waiting, entry.id)
            refreshed = next(item for item in waiting if item.id == entry.id)
            self.estimation.invalidate_stats(queue.doctor_id)

            self._publish(
                RealtimeEvent(
                    queue_id=queue_id,
                    action="patient_added",
                    patient_id=entry.patient_id,
                    queue_item_id=entry.id,
                )
            )

        logger.info(
            "patient_added",
            queue_id=str(queue_id),
            queue_item_id=str(entry.id),
            priority_level=entry.priority_level,
            position=position,
        )

        [with_patient] = await self.store.attach_patients([refreshed])
        return QueueItemWithPosition(**with_patient.model_dump(), position=position)

    async def call_next(self, queue_id: UUID) -> QueueItemWithPatient:
        """
        Start the consultation of whoever is at the head of the queue.

        Args:
            queue_id: Queue to advance

        Returns:
            The entry now in progress, with its patient

        Raises:
            NotFoundException: If the queue is missing or nobody is waiting
            ConflictException: If a consultation is already in progress
            DoctorUnavailableException: If availability is enforced and the
                doctor is marked unavailable
        """
        async with self.locks.hold(queue_id):
            queue = await self._require_queue(queue_id)

            active = await self.store.get_in_progress(queue_id)
            if active is not None:
                [current] = await self.store.attach_patients([active])
                raise ConflictException(
                    "Cannot call next patient while another patient is in progress",
                    details={"current_item": current.model_dump(mode="json")},
                )

            if self.enforce_availability and queue.doctor_id is not None:
                doctor = await self.store.get_doctor(queue.doctor_id)
                if doctor is not None and not doctor.is_available:
                    raise DoctorUnavailableException("Doctor is not available")

            waiting = await self.store.list_by_queue_and_status(queue_id, QueueItemStatus.WAITING)
            head = head_of(waiting)
            if head is None:
                raise NotFoundException("No patients waiting in queue")

            entry = await self.store.transition(head.id, QueueItemStatus.IN_PROGRESS)
            await self.estimation.recompute_wait_times(queue_id)
            self.estimation.invalidate_stats(queue.doctor_id)

            self._publish(
                RealtimeEvent(
                    queue_id=queue_id,
                    action="next_patient_called",
                    patient_id=entry.patient_id,
                    queue_item_id=entry.id,
                )
            )

        logger.info("next_patient_called", queue_id=str(queue_id), queue_item_id=str(entry.id))

        [called] = await self.store.attach_patients([entry])
        return called

    async def complete_consultation(self, entry_id: UUID) -> QueueItemResponse:
        """
        Finish an in-progress consultation.

        Raises:
            NotFoundException: If the entry does not exist
            InvalidTransitionException: If the entry is not in progress
        """
        return await self._finish(entry_id, QueueItemStatus.COMPLETED, "consultation_completed")

    async def cancel_consultation(self, entry_id: UUID) -> QueueItemResponse:
        """
        Cancel a waiting or in-progress entry. ``end_time`` is left unset.

        Raises:
            NotFoundException: If the entry does not exist
            InvalidTransitionException: If the entry is already terminal
        """
        return await self._finish(entry_id, QueueItemStatus.CANCELLED, "consultation_cancelled")

    async def mark_no_show(self, entry_id: UUID) -> QueueItemResponse:
        """
        Record that a waiting patient did not turn up.

        Raises:
            NotFoundException: If the entry does not exist
            InvalidTransitionException: If the entry is not waiting
        """
        return await self._finish(entry_id, QueueItemStatus.NO_SHOW, "patient_no_show")

    async def _finish(
        self,
        entry_id: UUID,
        status: QueueItemStatus,
        action: str,
    ) -> QueueItemResponse:
        entry = await self.store.get_entry(entry_id)

        async with self.locks.hold(entry.queue_id):
            updated = await self.store.transition(entry_id, status)
            await self.estimation.recompute_wait_times(updated.queue_id)

            queue = await self.store.get_queue(updated.queue_id)
            self.estimation.invalidate_stats(queue.doctor_id if queue else None)

            self._publish(
                RealtimeEvent(
                    queue_id=updated.queue_id,
                    action=action,
                    patient_id=updated.patient_id,
                    queue_item_id=updated.id,
                )
            )

        logger.info(action, queue_id=str(updated.queue_id), queue_item_id=str(entry_id))
        return updated

    async def toggle_doctor_availability(self, doctor_id: UUID) -> DoctorResponse:
        """
        Flip a doctor's availability flag and tell every observer.

        Raises:
            NotFoundException: If the doctor does not exist
        """
        doctor = await self.store.get_doctor(doctor_id)
        if doctor is None:
            raise NotFoundException("Doctor not found")

        updated = await self.store.set_doctor_availability(doctor_id, not doctor.is_available)

        self._publish(
            RealtimeEvent(
                type="doctor_status_changed",
                doctor_id=doctor_id,
                is_available=updated.is_available,
            )
        )
        logger.info(
            "doctor_availability_changed",
            doctor_id=str(doctor_id),
            is_available=updated.is_available,
        )
        return updated

    async def register_patient(self, data: PatientCreate) -> PatientResponse:
        """
        Return the patient with this phone number, creating them if needed.

        Args:
            data: Patient details from the front desk or kiosk

        Returns:
            Existing or newly created patient
        """
        existing = await self.store.get_patient_by_phone(data.phone_number)
        if existing is not None:
            logger.debug("patient_found_by_phone", patient_id=str(existing.id))
            return existing

        patient = await self.store.create_patient(data)
        logger.info("patient_registered", patient_id=str(patient.id))
        return patient

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_position(self, entry_id: UUID) -> QueuePosition:
        """
        Current place in line of a waiting entry.

        Raises:
            NotFoundException: If the entry does not exist or is not waiting
        """
        entry = await self.store.get_entry(entry_id)
        waiting = await self.store.list_by_queue_and_status(entry.queue_id, QueueItemStatus.WAITING)
        position = position_of(waiting, entry_id)

        return QueuePosition(
            queue_item_id=entry_id,
            queue_id=entry.queue_id,
            position=position,
            estimated_wait_time=entry.estimated_wait_time,
        )

    async def get_queue_with_items(self, queue_id: UUID) -> QueueWithItems:
        """
        Queue snapshot: doctor, every entry with its patient, current consultation.

        Raises:
            NotFoundException: If the queue does not exist
        """
        queue = await self._require_queue(queue_id)
        return await self._snapshot(queue)

    async def get_doctor_queue(self, doctor_id: UUID) -> QueueWithItems:
        """
        Snapshot of the queue assigned to a doctor.

        Raises:
            NotFoundException: If the doctor or their queue does not exist
        """
        if await self.store.get_doctor(doctor_id) is None:
            raise NotFoundException("Doctor not found")

        queue = await self.store.get_queue_by_doctor(doctor_id)
        if queue is None:
            raise NotFoundException("No queue found for this doctor")
        return await self._snapshot(queue)

    async def list_queues(self) -> list[QueueResponse]:
        return await self.store.list_queues()

    async def list_doctors(self) -> list[DoctorResponse]:
        return await self.store.list_doctors()

    async def get_doctor(self, doctor_id: UUID) -> DoctorResponse:
        doctor = await self.store.get_doctor(doctor_id)
        if doctor is None:
            raise NotFoundException("Doctor not found")
        return doctor

    async def get_patient(self, patient_id: UUID) -> PatientResponse:
        patient = await self.store.get_patient(patient_id)
        if patient is None:
            raise NotFoundException("Patient not found")
        return patient

    async def get_doctor_stats(self, doctor_id: UUID) -> DoctorStats:
        """
        Today's counts and averages for a doctor.

        Raises:
            NotFoundException: If the doctor does not exist
        """
        await self.get_doctor(doctor_id)
        return await self.estimation.doctor_stats(doctor_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _require_queue(self, queue_id: UUID) -> QueueResponse:
        queue = await self.store.get_queue(queue_id)
        if queue is None:
            raise NotFoundException("Queue not found")
        return queue

    async def _require_doctor(self, queue: QueueResponse) -> DoctorResponse:
        doctor = await self.store.get_doctor(queue.doctor_id) if queue.doctor_id else None
        if doctor is None:
            raise NotFoundException("Doctor not found for this queue")
        return doctor

    async def _snapshot(self, queue: QueueResponse) -> QueueWithItems:
        doctor = await self.store.get_doctor(queue.doctor_id) if queue.doctor_id else None
        items = await self.store.attach_patients(await self.store.list_by_queue(queue.id))
        current = next(
            (item for item in items if item.status == QueueItemStatus.IN_PROGRESS),
            None,
        )
        return QueueWithItems(
            **queue.model_dump(),
            doctor=doctor,
            items=items,
            current_item=current,
        )

    def _publish(self, event: RealtimeEvent) -> None:
        if self.broadcaster is None:
            return
        try:
            self.broadcaster.publish(event)
        except Exception as e:
            # Log error but don't fail the request
            logger.warning("failed_to_publish_queue_event", action=event.action, error=str(e))
