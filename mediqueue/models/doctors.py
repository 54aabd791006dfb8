"""Doctor model definition using SQLAlchemy Core."""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, String, Table, Text, Uuid

from mediqueue.models.metadata import metadata


def _utcnow() -> datetime:
    return datetime.now(UTC)


doctors = Table(
    "doctors",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("name", Text, nullable=False),
    Column("specialization", String(200)),
    Column("room_number", String(20)),
    # Read by the orchestrator only; ordering never consults it
    Column("is_available", Boolean, nullable=False, default=True),
    # Metadata
    Column("created_at", DateTime(timezone=True), nullable=False, default=_utcnow),
    Column(
        "updated_at",
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    ),
)
