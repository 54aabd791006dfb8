"""Queue endpoints: snapshots, check-in and calling the next patient."""

from uuid import UUID

from fastapi import APIRouter, status

from mediqueue.dependencies import QueueServiceDep
from mediqueue.schemas.queue_items import (
    AddPatientRequest,
    QueueItemWithPatient,
    QueueItemWithPosition,
)
from mediqueue.schemas.queues import QueueResponse, QueueWithItems

router = APIRouter()


@router.get("", response_model=list[QueueResponse])
async def list_queues(
    queue_service: QueueServiceDep,
):
    """List every queue."""
    return await queue_service.list_queues()


@router.get("/{queue_id}", response_model=QueueWithItems)
async def get_queue(
    queue_id: UUID,
    queue_service: QueueServiceDep,
):
    """
    Get a queue with its doctor, entries and current consultation.

    Entries are returned in service order: urgent, then priority, then
    normal, earliest arrival first within each class.
    """
    return await queue_service.get_queue_with_items(queue_id)


@router.post(
    "/{queue_id}/add-patient",
    response_model=QueueItemWithPosition,
    status_code=status.HTTP_201_CREATED,
)
async def add_patient(
    queue_id: UUID,
    request: AddPatientRequest,
    queue_service: QueueServiceDep,
):
    """
    Add a patient to the queue.

    - **patient_id**: Registered patient
    - **priority_level**: urgent, priority or normal (default normal)
    - **appointment_type**: new, followup or urgent (default new)
    - **notes**: Optional front-desk notes

    The response carries the entry's position and estimated wait.
    """
    return await queue_service.add_patient(queue_id, request)


@router.post("/{queue_id}/call-next", response_model=QueueItemWithPatient)
async def call_next(
    queue_id: UUID,
    queue_service: QueueServiceDep,
):
    """
    Start the consultation of the patient at the head of the queue.

    Returns 409 with the in-progress entry under ``details.current_item``
    when a consultation is already running, and 404 when nobody is waiting.
    """
    return await queue_service.call_next(queue_id)
