"""FastAPI dependencies."""

from typing import Annotated

import structlog
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mediqueue.core.redis_client import CacheManager, get_redis_client
from mediqueue.database import get_db
from mediqueue.services.broadcaster import Broadcaster, get_broadcaster
from mediqueue.services.queue_service import QueueService

logger = structlog.get_logger(__name__)

DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
BroadcasterDep = Annotated[Broadcaster, Depends(get_broadcaster)]


def get_cache_manager() -> CacheManager | None:
    """
    Get the stats cache.

    Returns:
        Cache manager, or None when a Redis client cannot be built
    """
    try:
        return CacheManager(get_redis_client())
    except Exception as e:
        logger.warning("cache_unavailable", error=str(e))
        return None


CacheManagerDep = Annotated[CacheManager | None, Depends(get_cache_manager)]


def get_queue_service(
    db: DatabaseSession,
    broadcaster: BroadcasterDep,
    cache: CacheManagerDep,
) -> QueueService:
    """Get queue service instance bound to the request's session."""
    return QueueService(db, broadcaster=broadcaster, cache=cache)


QueueServiceDep = Annotated[QueueService, Depends(get_queue_service)]
