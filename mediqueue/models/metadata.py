"""Shared metadata for all queue tables."""

from sqlalchemy import MetaData

# One MetaData so foreign keys between tables resolve
metadata = MetaData()
