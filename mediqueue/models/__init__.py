"""Database models."""

from mediqueue.models.doctors import doctors
from mediqueue.models.metadata import metadata
from mediqueue.models.patients import patients
from mediqueue.models.queue_items import queue_items
from mediqueue.models.queues import queues

__all__ = [
    "doctors",
    "metadata",
    "patients",
    "queue_items",
    "queues",
]
