"""Column building blocks shared by agora tables.

Everything here has to render on both PostgreSQL (production) and SQLite
(the test suite), so dialect-specific types are declared as variants.
"""

from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func

# JSONB on PostgreSQL, plain JSON elsewhere
JSONVariant = JSON().with_variant(JSONB(), "postgresql")


def utc_timestamp(**kwargs) -> Column:
    return Column(DateTime(timezone=True), nullable=False, server_default=func.now(), **kwargs)


class UUIDMixin:
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)


class TimestampMixin:
    """Row creation time plus a last-modified stamp bumped by the ORM."""

    created_at = utc_timestamp()
    updated_at = utc_timestamp(onupdate=func.now())
