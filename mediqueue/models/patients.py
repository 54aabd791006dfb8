"""Patient model definition using SQLAlchemy Core."""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import Column, DateTime, Integer, String, Table, Text, Uuid

from mediqueue.models.metadata import metadata

patients = Table(
    "patients",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("name", Text, nullable=False),
    Column("age", Integer),
    Column("gender", String(20)),
    # Contact
    Column("phone_number", String(20), nullable=False, index=True),
    Column("email", Text),
    Column(
        "created_at",
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    ),
)
