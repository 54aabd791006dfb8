"""Patient schemas for request/response validation."""

from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from mediqueue.schemas.common import UTCDateTime


class PatientBase(BaseModel):
    """Base patient schema with common fields."""

    name: str = Field(..., min_length=1, max_length=200)
    age: int | None = Field(None, ge=0, le=150)
    gender: str | None = Field(None, max_length=20)
    phone_number: str = Field(..., min_length=7, max_length=20)
    email: str | None = Field(None, max_length=320)


class PatientCreate(PatientBase):
    """Schema for registering a patient at the kiosk or front desk."""

    @field_validator("phone_number")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        """Validate phone number format."""
        cleaned = (
            v.replace("-", "").replace(" ", "").replace("(", "").replace(")", "").replace("+", "")
        )
        if not cleaned.isdigit():
            raise ValueError("Phone number must contain only digits and separators")
        if len(cleaned) < 7:
            raise ValueError("Phone number must have at least 7 digits")
        return v


class PatientResponse(PatientBase):
    """Schema for patient response."""

    id: UUID
    created_at: UTCDateTime

    model_config = {"from_attributes": True}
