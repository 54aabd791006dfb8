"""Schema creation and sample data for local setups."""

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine

from mediqueue.database import AsyncSessionLocal, engine
from mediqueue.models import metadata
from mediqueue.services.queue_store import QueueStore

logger = structlog.get_logger(__name__)

SAMPLE_DOCTOR = {
    "name": "Dr. Sarah Johnson",
    "specialization": "General Practice",
    "room_number": "204",
}


async def create_tables(bind: AsyncEngine = engine) -> None:
    """Create every table that does not exist yet."""
    async with bind.begin() as conn:
        await conn.run_sync(metadata.create_all)
    logger.info("database_tables_created")


async def seed_sample_data() -> bool:
    """
    Insert a sample doctor and their queue into an empty database.

    Returns:
        True if data was inserted, False if doctors already exist
    """
    async with AsyncSessionLocal() as session:
        store = QueueStore(session)
        if await store.list_doctors():
            logger.info("sample_data_skipped", reason="doctors_exist")
            return False

        doctor = await store.create_doctor(**SAMPLE_DOCTOR)
        queue = await store.create_queue(f"{doctor.name}'s Queue", doctor_id=doctor.id)

    logger.info("sample_data_seeded", doctor_id=str(doctor.id), queue_id=str(queue.id))
    return True
