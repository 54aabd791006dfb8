"""Patient registration endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from mediqueue.dependencies import QueueServiceDep
from mediqueue.schemas.patients import PatientCreate, PatientResponse

router = APIRouter()


@router.post("", response_model=PatientResponse, status_code=status.HTTP_201_CREATED)
async def register_patient(
    patient_data: PatientCreate,
    queue_service: QueueServiceDep,
):
    """
    Register a patient, or return the existing record for the phone number.

    - **name**: Patient name
    - **phone_number**: Contact number used to recognise returning patients
    - **age**, **gender**, **email**: Optional details
    """
    return await queue_service.register_patient(patient_data)


@router.get("/{patient_id}", response_model=PatientResponse)
async def get_patient(
    patient_id: UUID,
    queue_service: QueueServiceDep,
):
    """Get patient details by ID."""
    return await queue_service.get_patient(patient_id)
