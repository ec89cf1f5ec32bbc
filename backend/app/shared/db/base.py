"""
Base class for all SQLAlchemy ORM models.
All table models should inherit from Base.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import Column, DateTime, String
from sqlalchemy.types import TypeDecorator


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_uuid() -> str:
    return str(uuid.uuid4())


class UTCDateTime(TypeDecorator):
    """
    DateTime that always comes back timezone-aware (UTC).

    PostgreSQL keeps the offset natively; SQLite drops it, so naive values
    read back are tagged as UTC and aware values are converted before write.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    """
    Base class for all ORM models.
    This is used by Alembic to detect schema changes.
    """
    pass


class UUIDPrimaryKeyMixin:
    """Opaque string primary key (UUID4), generated client side."""
    id = Column(String(36), primary_key=True, default=new_uuid)


class TimestampMixin:
    """
    Mixin to add created_at and updated_at columns to any model.
    Usage: class MyModel(Base, TimestampMixin):
    """
    created_at = Column(
        UTCDateTime(),
        default=utc_now,
        nullable=False
    )
    updated_at = Column(
        UTCDateTime(),
        default=utc_now,
        onupdate=utc_now,
        nullable=False
    )
