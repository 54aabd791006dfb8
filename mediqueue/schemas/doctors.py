"""Doctor schemas for request/response validation."""

from uuid import UUID

from pydantic import BaseModel, Field

from mediqueue.schemas.common import UTCDateTime


class DoctorResponse(BaseModel):
    """Doctor response schema."""

    id: UUID
    name: str
    specialization: str | None = None
    room_number: str | None = None
    is_available: bool = True
    created_at: UTCDateTime
    updated_at: UTCDateTime

    model_config = {"from_attributes": True}


class DoctorStats(BaseModel):
    """Daily queue statistics for a doctor."""

    patients_seen: int = Field(0, ge=0, description="Consultations completed today")
    total_patients: int = Field(0, ge=0, description="Entries added to the queue today")
    average_wait_time: int = Field(0, ge=0, description="Minutes from joining to being called")
    average_consult_time: int = Field(..., ge=0, description="Rolling consultation average")
