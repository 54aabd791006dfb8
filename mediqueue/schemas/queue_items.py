"""Queue item schemas and enumerations."""

from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from mediqueue.schemas.common import UTCDateTime
from mediqueue.schemas.patients import PatientResponse


class PriorityLevel(str, Enum):
    """Priority class of a queue entry."""

    URGENT = "urgent"
    PRIORITY = "priority"
    NORMAL = "normal"

    @classmethod
    def parse(cls, value: Any) -> "PriorityLevel":
        """
        Map any stored value onto the closed enum.

        Unrecognized values (including None) fall back to NORMAL instead of
        raising, so a bad row can never break ordering.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                return cls.NORMAL
        return cls.NORMAL


class QueueItemStatus(str, Enum):
    """Lifecycle state of a queue entry."""

    WAITING = "waiting"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    NO_SHOW = "no-show"
    CANCELLED = "cancelled"


class AppointmentType(str, Enum):
    """Visit type, informational only."""

    NEW = "new"
    FOLLOWUP = "followup"
    URGENT = "urgent"


class AddPatientRequest(BaseModel):
    """Schema for adding a patient to a queue."""

    patient_id: UUID
    priority_level: PriorityLevel = PriorityLevel.NORMAL
    appointment_type: AppointmentType = AppointmentType.NEW
    notes: str | None = Field(None, max_length=1000)


class QueueItemResponse(BaseModel):
    """Schema for queue item response."""

    id: UUID
    queue_id: UUID
    patient_id: UUID
    # Kept as stored text; ordering maps unknown values via PriorityLevel.parse
    priority_level: str
    status: QueueItemStatus
    appointment_type: str
    estimated_wait_time: int | None = None
    time_added: UTCDateTime
    sequence_number: int = 0
    start_time: UTCDateTime | None = None
    end_time: UTCDateTime | None = None
    notes: str | None = None

    model_config = {"from_attributes": True}


class QueueItemWithPatient(QueueItemResponse):
    """Queue item with the patient's display data."""

    patient: PatientResponse | None = None


class QueueItemWithPosition(QueueItemWithPatient):
    """Response for a freshly added queue item."""

    position: int = Field(..., ge=1)


class QueuePosition(BaseModel):
    """Current place of a waiting entry."""

    queue_item_id: UUID
    queue_id: UUID
    position: int = Field(..., ge=1)
    estimated_wait_time: int | None = None
