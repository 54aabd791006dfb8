"""Doctor endpoints: roster, availability, queue view and daily stats."""

from uuid import UUID

from fastapi import APIRouter, status

from mediqueue.dependencies import QueueServiceDep
from mediqueue.schemas.doctors import DoctorResponse, DoctorStats
from mediqueue.schemas.queues import QueueWithItems

router = APIRouter()


@router.get("", response_model=list[DoctorResponse])
async def list_doctors(
    queue_service: QueueServiceDep,
):
    """List every doctor with their current availability."""
    return await queue_service.list_doctors()


@router.get("/{doctor_id}", response_model=DoctorResponse)
async def get_doctor(
    doctor_id: UUID,
    queue_service: QueueServiceDep,
):
    """
    Get doctor details by ID.

    Raises 404 if the doctor does not exist.
    """
    return await queue_service.get_doctor(doctor_id)


@router.post(
    "/{doctor_id}/toggle-availability",
    response_model=DoctorResponse,
    status_code=status.HTTP_200_OK,
)
async def toggle_availability(
    doctor_id: UUID,
    queue_service: QueueServiceDep,
):
    """
    Flip the doctor's availability.

    Every connected display receives a ``doctor_status_changed`` event.
    """
    return await queue_service.toggle_doctor_availability(doctor_id)


@router.get("/{doctor_id}/queue", response_model=QueueWithItems)
async def get_doctor_queue(
    doctor_id: UUID,
    queue_service: QueueServiceDep,
):
    """
    Get the queue assigned to a doctor.

    - **items**: Every entry in service order, with patient details
    - **current_item**: The consultation in progress, if any
    """
    return await queue_service.get_doctor_queue(doctor_id)


@router.get("/{doctor_id}/stats", response_model=DoctorStats)
async def get_doctor_stats(
    doctor_id: UUID,
    queue_service: QueueServiceDep,
):
    """
    Today's figures for the doctor's queues.

    - **patients_seen**: Consultations completed today
    - **total_patients**: Entries added today
    - **average_wait_time**: Minutes from joining to being called
    - **average_consult_time**: Rolling consultation average in minutes
    """
    return await queue_service.get_doctor_stats(doctor_id)
