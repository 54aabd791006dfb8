"""Consultation-time averages, wait-time estimates and daily doctor stats."""

import math
from datetime import UTC, datetime, time, timedelta
from uuid import UUID
from zoneinfo import ZoneInfo

import structlog
from sqlalchemy.exc import SQLAlchemyError

from mediqueue.config import Settings, settings
from mediqueue.core.redis_client import CacheManager, doctor_stats_key
from mediqueue.schemas.doctors import DoctorStats
from mediqueue.schemas.queue_items import QueueItemResponse, QueueItemStatus
from mediqueue.services.queue_store import QueueStore, utcnow

logger = structlog.get_logger(__name__)


def _minutes(delta: timedelta) -> float:
    return delta.total_seconds() / 60


def day_window(now: datetime, tz_name: str) -> tuple[datetime, datetime]:
    """Local midnight-to-midnight window containing ``now``, in UTC-aware datetimes."""
    tz = ZoneInfo(tz_name)
    local_day = now.astimezone(tz).date()
    start = datetime.combine(local_day, time.min, tzinfo=tz)
    end = datetime.combine(local_day + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(UTC), end.astimezone(UTC)


class EstimationService:
    """Derives wait estimates from consultation history."""

    def __init__(
        self,
        store: QueueStore,
        cache: CacheManager | None = None,
        config: Settings = settings,
    ):
        """Initialize with a store, an optional stats cache and settings."""
        self.store = store
        self.cache = cache
        self.default_minutes = config.default_consult_minutes
        self.history_days = config.consult_history_days
        self.clinic_timezone = config.clinic_timezone
        self.stats_ttl = config.stats_cache_ttl_seconds

    async def average_consultation_minutes(
        self,
        doctor_id: UUID | None,
        now: datetime | None = None,
    ) -> int:
        """
        Rolling average consultation length for a doctor.

        Uses completed entries that ended within the history window and carry
        both timestamps. The mean is rounded up to whole minutes.

        Args:
            doctor_id: Doctor whose queues are sampled
            now: End of the window (defaults to the current time)

        Returns:
            Minutes; the configured default when there is no usable history
            or the history could not be read
        """
        if doctor_id is None:
            return self.default_minutes

        now = (now or utcnow()).astimezone(UTC)
        start = now - timedelta(days=self.history_days)

        try:
            completed = await self.store.list_completed_for_doctor(doctor_id, start, now)
        except SQLAlchemyError as e:
            logger.warning(
                "consultation_history_unavailable",
                doctor_id=str(doctor_id),
                error=str(e),
            )
            await self.store.rollback()
            return self.default_minutes

        durations = [
            _minutes(item.end_time - item.start_time)
            for item in completed
            if item.start_time is not None and item.end_time is not None
        ]
        if not durations:
            return self.default_minutes

        return math.ceil(sum(durations) / len(durations))

    async def recompute_wait_times(self, queue_id: UUID) -> list[QueueItemResponse]:
        """
        Reassign every waiting entry's estimate from its place in line.

        The head gets 0 and each later entry gets ``index * average``. All
        updates are committed together.

        Returns:
            Waiting entries in service order with refreshed estimates
        """
        waiting = await self.store.list_by_queue_and_status(queue_id, QueueItemStatus.WAITING)
        if not waiting:
            return []

        queue = await self.store.get_queue(queue_id)
        doctor_id = queue.doctor_id if queue else None
        average = await self.average_consultation_minutes(doctor_id)

        refreshed = []
        for index, entry in enumerate(waiting):
            minutes = index * average
            if entry.estimated_wait_time != minutes:
                await self.store.set_estimated_wait_time(entry.id, minutes, commit=False)
            refreshed.append(entry.model_copy(update={"estimated_wait_time": minutes}))
        await self.store.commit()

        logger.debug(
            "wait_times_recomputed",
            queue_id=str(queue_id),
            waiting=len(refreshed),
            average_consult_minutes=average,
        )
        return refreshed

    async def doctor_stats(self, doctor_id: UUID, now: datetime | None = None) -> DoctorStats:
        """
        Today's figures for a doctor's queues.

        Reads are advisory: a storage failure yields zero counts and the
        default consultation time instead of an error.
        """
        if self.cache and now is None:
            cached = self.cache.get_json(doctor_stats_key(doctor_id))
            if cached:
                return DoctorStats.model_validate(cached)

        current = now or utcnow()
        start, end = day_window(current, self.clinic_timezone)

        try:
            completed = await self.store.list_completed_for_doctor(doctor_id, start, end)
            added = await self.store.list_added_for_doctor(doctor_id, start, end)
        except SQLAlchemyError as e:
            logger.warning("doctor_stats_unavailable", doctor_id=str(doctor_id), error=str(e))
            await self.store.rollback()
            return DoctorStats(average_consult_time=self.default_minutes)

        # end_time <= end is inclusive in the store query; midnight belongs to tomorrow
        completed = [item for item in completed if item.end_time < end]

        waits = [
            _minutes(item.start_time - item.time_added)
            for item in completed
            if item.start_time is not None
        ]
        stats = DoctorStats(
            patients_seen=len(completed),
            total_patients=len(added),
            average_wait_time=max(0, math.ceil(sum(waits) / len(waits))) if waits else 0,
            average_consult_time=await self.average_consultation_minutes(doctor_id, current),
        )

        if self.cache and now is None:
            self.cache.set_json(
                doctor_stats_key(doctor_id),
                stats.model_dump(),
                ttl=self.stats_ttl or None,
            )
        return stats

    def invalidate_stats(self, doctor_id: UUID | None) -> None:
        """Drop cached stats after a queue mutation."""
        if self.cache and doctor_id is not None:
            self.cache.delete(doctor_stats_key(doctor_id))
