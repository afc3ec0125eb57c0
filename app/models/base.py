"""
Base model classes and mixins for the booking API.
"""
from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.database import Base

# Identifying columns shown in reprs; form and quote snapshots are left out
_REPR_KEYS = ("id", "order_code", "user_id", "role")


class TimestampMixin:
    """Mixin for created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.current_timestamp(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.current_timestamp(),
        onupdate=func.current_timestamp(),
        nullable=False,
    )


class UUIDPrimaryKeyMixin:
    """Mixin for UUID primary key."""

    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )


class BaseModel(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """
    Abstract base model with UUID primary key and timestamps.

    All domain models except the append-only event log inherit from this class.
    """
    __abstract__ = True

    # Load server-generated timestamps on flush; async sessions cannot lazy-load
    __mapper_args__ = {"eager_defaults": True}

    def __repr__(self) -> str:
        shown = [
            f"{key}={getattr(self, key)!r}"
            for key in _REPR_KEYS
            if key in self.__table__.columns
        ]
        return f"<{type(self).__name__}({', '.join(shown)})>"
