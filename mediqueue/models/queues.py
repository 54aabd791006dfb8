"""Queue model definition using SQLAlchemy Core."""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Table, Text, Uuid

from mediqueue.models.metadata import metadata

queues = Table(
    "queues",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("name", Text, nullable=False),
    # A queue may exist before a doctor is assigned
    Column(
        "doctor_id",
        Uuid,
        ForeignKey("doctors.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    ),
    Column(
        "created_at",
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    ),
)
