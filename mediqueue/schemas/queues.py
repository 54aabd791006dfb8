"""Queue schemas."""

from uuid import UUID

from pydantic import BaseModel

from mediqueue.schemas.common import UTCDateTime
from mediqueue.schemas.doctors import DoctorResponse
from mediqueue.schemas.queue_items import QueueItemWithPatient


class QueueResponse(BaseModel):
    """Schema for queue response."""

    id: UUID
    name: str
    doctor_id: UUID | None = None
    created_at: UTCDateTime

    model_config = {"from_attributes": True}


class QueueWithItems(QueueResponse):
    """Queue with its doctor, every entry and the current consultation."""

    doctor: DoctorResponse | None = None
    items: list[QueueItemWithPatient] = []
    current_item: QueueItemWithPatient | None = None
