"""Tests for the queue state store."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from mediqueue.core.exceptions import (
    ConflictException,
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
)
from mediqueue.schemas.queue_items import PriorityLevel, QueueItemStatus


@pytest.mark.asyncio
async def test_create_entry_defaults(store, test_queue, make_patient):
    """Test a new entry starts waiting with only time_added set."""
    patient = await make_patient()

    entry = await store.create_entry(test_queue.id, patient.id)

    assert entry.status == QueueItemStatus.WAITING
    assert entry.priority_level == "normal"
    assert entry.appointment_type == "new"
    assert entry.time_added is not None
    assert entry.time_added.tzinfo is not None
    assert entry.start_time is None
    assert entry.end_time is None


@pytest.mark.asyncio
async def test_create_entry_unknown_queue(store, make_patient):
    """Test adding to a missing queue raises NotFoundException."""
    patient = await make_patient()

    with pytest.raises(NotFoundException):
        await store.create_entry(uuid4(), patient.id)


@pytest.mark.asyncio
async def test_create_entry_unknown_patient(store, test_queue):
    """Test adding a missing patient raises NotFoundException."""
    with pytest.raises(NotFoundException):
        await store.create_entry(test_queue.id, uuid4())


@pytest.mark.asyncio
async def test_consultation_timestamps(store, test_queue, make_patient):
    """Test start_time is set on in-progress and end_time on completed."""
    patient = await make_patient()
    entry = await store.create_entry(test_queue.id, patient.id)

    started = await store.transition(entry.id, QueueItemStatus.IN_PROGRESS)
    assert started.status == QueueItemStatus.IN_PROGRESS
    assert started.start_time is not None
    assert started.end_time is None

    finished = await store.transition(entry.id, QueueItemStatus.COMPLETED)
    assert finished.status == QueueItemStatus.COMPLETED
    assert finished.start_time == started.start_time
    assert finished.end_time is not None
    assert finished.end_time >= finished.start_time


@pytest.mark.asyncio
async def test_explicit_timestamps(store, test_queue, make_patient):
    """Test callers can supply the consultation timestamps."""
    patient = await make_patient()
    entry = await store.create_entry(test_queue.id, patient.id)
    start = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)

    await store.transition(entry.id, QueueItemStatus.IN_PROGRESS, start_time=start)
    finished = await store.transition(
        entry.id, QueueItemStatus.COMPLETED, end_time=start + timedelta(minutes=12)
    )

    assert finished.start_time == start
    assert finished.end_time == start + timedelta(minutes=12)


@pytest.mark.asyncio
async def test_cancel_leaves_end_time_unset(store, test_queue, make_patient):
    """Test cancelling a waiting entry does not set end_time."""
    patient = await make_patient()
    entry = await store.create_entry(test_queue.id, patient.id)

    cancelled = await store.transition(entry.id, QueueItemStatus.CANCELLED)

    assert cancelled.status == QueueItemStatus.CANCELLED
    assert cancelled.end_time is None
    assert cancelled.start_time is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "path,rejected",
    [
        ([], QueueItemStatus.COMPLETED),
        ([QueueItemStatus.IN_PROGRESS], QueueItemStatus.NO_SHOW),
        ([QueueItemStatus.IN_PROGRESS], QueueItemStatus.WAITING),
        ([QueueItemStatus.IN_PROGRESS, QueueItemStatus.COMPLETED], QueueItemStatus.WAITING),
        ([QueueItemStatus.CANCELLED], QueueItemStatus.IN_PROGRESS),
        ([QueueItemStatus.NO_SHOW], QueueItemStatus.CANCELLED),
    ],
)
async def test_illegal_transitions(store, test_queue, make_patient, path, rejected):
    """Test moves outside the lifecycle are rejected and leave the entry unchanged."""
    patient = await make_patient()
    entry = await store.create_entry(test_queue.id, patient.id)
    for status in path:
        await store.transition(entry.id, status)

    with pytest.raises(InvalidTransitionException) as exc_info:
        await store.transition(entry.id, rejected)

    assert exc_info.value.status_code == 400
    assert exc_info.value.details["requested_status"] == rejected.value
    unchanged = await store.get_entry(entry.id)
    assert unchanged.status == (path[-1] if path else QueueItemStatus.WAITING)


@pytest.mark.asyncio
async def test_transition_unknown_entry(store):
    """Test transitioning a missing entry raises NotFoundException."""
    with pytest.raises(NotFoundException):
        await store.transition(uuid4(), QueueItemStatus.IN_PROGRESS)


@pytest.mark.asyncio
async def test_single_in_progress_per_queue(store, test_queue, make_patient):
    """Test a second in-progress entry is rejected with the current one attached."""
    first = await store.create_entry(test_queue.id, (await make_patient("A")).id)
    second = await store.create_entry(test_queue.id, (await make_patient("B")).id)
    await store.transition(first.id, QueueItemStatus.IN_PROGRESS)

    with pytest.raises(ConflictException) as exc_info:
        await store.transition(second.id, QueueItemStatus.IN_PROGRESS)

    assert exc_info.value.status_code == 409
    assert exc_info.value.details["current_item"]["id"] == str(first.id)
    assert (await store.get_entry(second.id)).status == QueueItemStatus.WAITING


@pytest.mark.asyncio
async def test_queues_are_independent(store, test_doctor, make_patient):
    """Test each queue may have its own consultation in progress."""
    queue_a = await store.create_queue("A", doctor_id=test_doctor.id)
    queue_b = await store.create_queue("B", doctor_id=test_doctor.id)
    entry_a = await store.create_entry(queue_a.id, (await make_patient("A")).id)
    entry_b = await store.create_entry(queue_b.id, (await make_patient("B")).id)

    await store.transition(entry_a.id, QueueItemStatus.IN_PROGRESS)
    started = await store.transition(entry_b.id, QueueItemStatus.IN_PROGRESS)

    assert started.status == QueueItemStatus.IN_PROGRESS


@pytest.mark.asyncio
async def test_waiting_list_is_in_service_order(store, test_queue, make_patient):
    """Test waiting entries come back sorted by priority then arrival."""
    normal = await store.create_entry(test_queue.id, (await make_patient("N")).id)
    urgent = await store.create_entry(
        test_queue.id, (await make_patient("U")).id, priority_level=PriorityLevel.URGENT
    )
    priority = await store.create_entry(
        test_queue.id, (await make_patient("P")).id, priority_level=PriorityLevel.PRIORITY
    )
    done = await store.create_entry(test_queue.id, (await make_patient("D")).id)
    await store.transition(done.id, QueueItemStatus.CANCELLED)

    waiting = await store.list_by_queue_and_status(test_queue.id, QueueItemStatus.WAITING)

    assert [item.id for item in waiting] == [urgent.id, priority.id, normal.id]


@pytest.mark.asyncio
async def test_patient_lookup_by_phone(store, make_patient):
    """Test patients can be found by phone number."""
    patient = await make_patient("Phone Lookup")

    found = await store.get_patient_by_phone(patient.phone_number)

    assert found.id == patient.id
    assert await store.get_patient_by_phone("+19999999999") is None


@pytest.mark.asyncio
async def test_set_availability_unknown_doctor(store):
    """Test toggling a missing doctor raises NotFoundException."""
    with pytest.raises(NotFoundException):
        await store.set_doctor_availability(uuid4(), False)


@pytest.mark.asyncio
async def test_create_entry_rejects_unknown_priority(store, test_queue, make_patient):
    """Test an unrecognised priority is a validation error at write time."""
    patient = await make_patient()

    with pytest.raises(ValidationException) as exc_info:
        await store.create_entry(test_queue.id, patient.id, priority_level="vip")

    assert exc_info.value.status_code == 422


@pytest.mark.asyncio
async def test_same_arrival_time_keeps_insertion_order(
    store, test_queue, make_patient, monkeypatch
):
    """Test entries sharing a time_added are served in the order they were added."""
    joined_at = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)
    monkeypatch.setattr("mediqueue.services.queue_store.utcnow", lambda: joined_at)

    added = [
        await store.create_entry(test_queue.id, (await make_patient(f"Same {i}")).id)
        for i in range(5)
    ]

    waiting = await store.list_by_queue_and_status(test_queue.id, QueueItemStatus.WAITING)

    assert [item.sequence_number for item in added] == [1, 2, 3, 4, 5]
    assert [item.id for item in waiting] == [item.id for item in added]


@pytest.mark.asyncio
async def test_transition_to_unknown_status(store, test_queue, make_patient):
    """Test an unrecognised target status is rejected as an invalid move."""
    entry = await store.create_entry(test_queue.id, (await make_patient()).id)

    with pytest.raises(InvalidTransitionException) as exc_info:
        await store.transition(entry.id, "teleported")

    assert exc_info.value.status_code == 400
    assert exc_info.value.details["requested_status"] == "teleported"
    unchanged = await store.get_entry(entry.id)
    assert unchanged.status == QueueItemStatus.WAITING
