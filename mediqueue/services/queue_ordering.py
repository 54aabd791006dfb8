"""
Ordering rules for waiting queue entries.

Entries are ranked by priority class (urgent, then priority, then normal)
and, within a class, by the time they joined the queue. Everything here is
pure: no I/O, no shared state, safe to call from any task.
"""

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Protocol, TypeVar
from uuid import UUID

from mediqueue.core.exceptions import NotFoundException
from mediqueue.schemas.queue_items import PriorityLevel

PRIORITY_WEIGHTS: dict[PriorityLevel, int] = {
    PriorityLevel.URGENT: 0,
    PriorityLevel.PRIORITY: 1,
    PriorityLevel.NORMAL: 2,
}


class Orderable(Protocol):
    """Anything carrying the fields the ordering looks at."""

    id: UUID
    priority_level: str
    time_added: datetime
    sequence_number: int


EntryT = TypeVar("EntryT", bound=Orderable)


def priority_weight(priority_level: object) -> int:
    """Weight of a priority value; unknown values weigh as normal."""
    return PRIORITY_WEIGHTS[PriorityLevel.parse(priority_level)]


def sort_key(entry: Orderable) -> tuple[int, datetime, int, str]:
    """Total-order key: weight, join time, insertion sequence, then id."""
    return (
        priority_weight(entry.priority_level),
        entry.time_added,
        entry.sequence_number,
        str(entry.id),
    )


def compare(a: Orderable, b: Orderable) -> int:
    """
    Three-way comparison of two entries.

    Returns:
        Negative if ``a`` is served first, positive if ``b`` is, 0 if equal
    """
    key_a, key_b = sort_key(a), sort_key(b)
    if key_a < key_b:
        return -1
    if key_a > key_b:
        return 1
    return 0


def sort_entries(entries: Iterable[EntryT]) -> list[EntryT]:
    """Return entries in service order."""
    return sorted(entries, key=sort_key)


def position_of(entries: Sequence[Orderable], entry_id: UUID) -> int:
    """
    1-based position of ``entry_id`` among ``entries``.

    Args:
        entries: Waiting entries of one queue (caller filters by status)
        entry_id: Entry to locate

    Returns:
        Position, where 1 is the next patient to be called

    Raises:
        NotFoundException: If the entry is not among ``entries``
    """
    for index, entry in enumerate(sort_entries(entries)):
        if entry.id == entry_id:
            return index + 1
    raise NotFoundException("Queue item not found in waiting list")


def head_of(entries: Iterable[EntryT]) -> EntryT | None:
    """The entry to be served next, or None for an empty queue."""
    return min(entries, key=sort_key, default=None)
