"""Queue item endpoints: position lookups and consultation outcomes."""

from uuid import UUID

from fastapi import APIRouter

from mediqueue.dependencies import QueueServiceDep
from mediqueue.schemas.queue_items import QueueItemResponse, QueuePosition

router = APIRouter()


@router.get("/{queue_item_id}/position", response_model=QueuePosition)
async def get_position(
    queue_item_id: UUID,
    queue_service: QueueServiceDep,
):
    """Current place in line and estimated wait of a waiting entry."""
    return await queue_service.get_position(queue_item_id)


@router.post("/{queue_item_id}/complete", response_model=QueueItemResponse)
async def complete_consultation(
    queue_item_id: UUID,
    queue_service: QueueServiceDep,
):
    """Mark an in-progress consultation as completed."""
    return await queue_service.complete_consultation(queue_item_id)


@router.post("/{queue_item_id}/cancel", response_model=QueueItemResponse)
async def cancel_consultation(
    queue_item_id: UUID,
    queue_service: QueueServiceDep,
):
    """Cancel a waiting or in-progress entry."""
    return await queue_service.cancel_consultation(queue_item_id)


@router.post("/{queue_item_id}/no-show", response_model=QueueItemResponse)
async def mark_no_show(
    queue_item_id: UUID,
    queue_service: QueueServiceDep,
):
    """Record that a waiting patient did not turn up."""
    return await queue_service.mark_no_show(queue_item_id)
