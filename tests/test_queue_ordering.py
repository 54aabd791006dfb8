"""Tests for queue ordering rules."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from mediqueue.core.exceptions import NotFoundException
from mediqueue.schemas.queue_items import PriorityLevel
from mediqueue.services.queue_ordering import (
    compare,
    head_of,
    position_of,
    priority_weight,
    sort_entries,
)

BASE = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


@dataclass
class Entry:
    priority_level: str
    time_added: datetime
    id: UUID
    sequence_number: int = 0


def entry(
    priority: str, minutes: int, entry_id: UUID | None = None, sequence: int = 0
) -> Entry:
    return Entry(priority, BASE + timedelta(minutes=minutes), entry_id or uuid4(), sequence)


def test_priority_classes_beat_arrival_time():
    """Test urgent, then priority, then normal regardless of arrival."""
    normal = entry("normal", 0)
    priority = entry("priority", 5)
    urgent = entry("urgent", 10)

    assert sort_entries([normal, priority, urgent]) == [urgent, priority, normal]


def test_same_priority_is_first_come_first_served():
    """Test arrival order within a priority class."""
    first = entry("normal", 0)
    second = entry("normal", 1)
    third = entry("normal", 2)

    assert sort_entries([third, first, second]) == [first, second, third]


def test_unknown_priority_orders_as_normal():
    """Test that unrecognised priorities sort with normal entries."""
    odd = entry("vip", 0)
    normal = entry("normal", 1)
    priority = entry("priority", 2)

    assert priority_weight("vip") == priority_weight(PriorityLevel.NORMAL)
    assert sort_entries([normal, odd, priority]) == [priority, odd, normal]


def test_compare_is_three_way():
    """Test compare returns -1, 0 and 1."""
    urgent = entry("urgent", 3)
    normal = entry("normal", 0)

    assert compare(urgent, normal) == -1
    assert compare(normal, urgent) == 1
    assert compare(normal, normal) == 0


def test_same_arrival_falls_back_to_insertion_order():
    """Test entries added at the same instant keep the order they were added in."""
    first = entry("normal", 0, UUID(int=9), sequence=1)
    second = entry("normal", 0, UUID(int=1), sequence=2)

    assert sort_entries([second, first]) == [first, second]
    assert compare(first, second) == -1


def test_identical_keys_are_broken_by_id():
    """Test entries with the same priority and arrival still get a stable order."""
    low = entry("normal", 0, UUID(int=1))
    high = entry("normal", 0, UUID(int=2))

    assert sort_entries([high, low]) == [low, high]
    assert sort_entries([low, high]) == [low, high]


def test_position_is_one_based():
    """Test positions count from the head of the queue."""
    normal = entry("normal", 0)
    urgent = entry("urgent", 1)
    priority = entry("priority", 2)
    entries = [normal, urgent, priority]

    assert position_of(entries, urgent.id) == 1
    assert position_of(entries, priority.id) == 2
    assert position_of(entries, normal.id) == 3


def test_position_of_missing_entry():
    """Test that a missing entry raises NotFoundException."""
    with pytest.raises(NotFoundException):
        position_of([entry("normal", 0)], uuid4())


def test_head_of_queue():
    """Test the head is the first entry in service order."""
    normal = entry("normal", 0)
    urgent = entry("urgent", 9)

    assert head_of([normal, urgent]) is urgent
    assert head_of([]) is None


def test_priority_level_parse():
    """Test PriorityLevel.parse never raises."""
    assert PriorityLevel.parse("URGENT") == PriorityLevel.URGENT
    assert PriorityLevel.parse(" priority ") == PriorityLevel.PRIORITY
    assert PriorityLevel.parse(None) == PriorityLevel.NORMAL
    assert PriorityLevel.parse(42) == PriorityLevel.NORMAL
