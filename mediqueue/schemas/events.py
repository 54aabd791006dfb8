"""Realtime event and socket message schemas."""

from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class RealtimeEvent(BaseModel):
    """
    Notification pushed to socket observers.

    Serialized in camelCase (``queueId``, ``patientId``, ...) to match what
    browser clients filter on.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    type: str = "queue_updated"
    queue_id: UUID | None = None
    action: str | None = None
    patient_id: UUID | None = None
    queue_item_id: UUID | None = None
    doctor_id: UUID | None = None
    is_available: bool | None = None

    def to_message(self) -> dict:
        """Render the wire payload."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SubscriptionMessage(BaseModel):
    """Inbound socket message managing a connection's queue interest."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: Literal["subscribe", "unsubscribe"]
    queue_id: UUID | None = None
