"""Shared schema helpers."""

from datetime import UTC, datetime
from typing import Annotated

from pydantic import AfterValidator


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps read back from the database."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


# Timestamp normalized to an aware UTC value
UTCDateTime = Annotated[datetime, AfterValidator(ensure_utc)]
