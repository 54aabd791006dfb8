"""WebSocket endpoint streaming queue events to displays and dashboards."""

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from mediqueue.dependencies import BroadcasterDep
from mediqueue.schemas.events import SubscriptionMessage

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.websocket("/ws")
async def queue_events(
    websocket: WebSocket,
    broadcaster: BroadcasterDep,
):
    """
    Stream ``queue_updated`` and ``doctor_status_changed`` events.

    A new connection receives every event. Sending
    ``{"type": "subscribe", "queueId": "..."}`` narrows it to one queue
    (plus events that carry no queue); ``{"type": "unsubscribe"}`` widens it
    again. Malformed messages are ignored.
    """
    await websocket.accept()
    connection_id = broadcaster.connect(websocket)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = SubscriptionMessage.model_validate_json(raw)
            except ValidationError as e:
                logger.info("socket_message_rejected", connection_id=connection_id, error=str(e))
                continue

            if message.type == "subscribe" and message.queue_id is not None:
                broadcaster.subscribe(connection_id, message.queue_id)
            else:
                broadcaster.unsubscribe(connection_id)
    except WebSocketDisconnect:
        pass
    finally:
        broadcaster.disconnect(connection_id)
