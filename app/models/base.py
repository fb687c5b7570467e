"""Shared metadata for all tables."""

from datetime import UTC, datetime

from sqlalchemy import MetaData

# Single metadata so foreign keys resolve across modules
metadata = MetaData()


def utc_now() -> datetime:
    """Timestamp default for audit columns."""
    return datetime.now(UTC)
