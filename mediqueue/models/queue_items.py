"""Queue item (queue entry) table using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    Uuid,
    text,
)

from mediqueue.models.metadata import metadata

queue_items = Table(
    "queue_items",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Ownership / references (immutable after insert)
    Column(
        "queue_id",
        Uuid,
        ForeignKey("queues.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("patient_id", Uuid, ForeignKey("patients.id"), nullable=False),
    # Scheduling
    Column("priority_level", String(20), nullable=False, default="normal"),
    Column("status", String(20), nullable=False, default="waiting"),
    Column("appointment_type", String(20), nullable=False, default="new"),
    Column("estimated_wait_time", Integer, nullable=True),
    # Lifecycle timestamps
    Column("time_added", DateTime(timezone=True), nullable=False),
    # Per-queue insertion order; breaks ties between equal time_added values
    Column("sequence_number", Integer, nullable=False, default=0),
    Column("start_time", DateTime(timezone=True), nullable=True),
    Column("end_time", DateTime(timezone=True), nullable=True),
    Column("notes", Text, nullable=True),
    # Constraints
    CheckConstraint(
        "status IN ('waiting', 'in-progress', 'completed', 'no-show', 'cancelled')",
        name="queue_items_status_check",
    ),
    CheckConstraint(
        "appointment_type IN ('new', 'followup', 'urgent')",
        name="queue_items_appointment_type_check",
    ),
    Index("idx_queue_items_queue_status", "queue_id", "status"),
    Index("idx_queue_items_end_time", "end_time"),
    # At most one consultation in progress per queue
    Index(
        "uq_queue_items_one_in_progress",
        "queue_id",
        unique=True,
        postgresql_where=text("status = 'in-progress'"),
        sqlite_where=text("status = 'in-progress'"),
    ),
)
