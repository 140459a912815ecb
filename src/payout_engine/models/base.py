"""Base model class for SQLAlchemy ORM."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, DateTime, Numeric, String, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    type_annotation_map = {
        UUID: Uuid(as_uuid=True),
        datetime: DateTime(timezone=True),
        Decimal: Numeric(14, 2),
    }


class TimestampMixin:
    """Mixin for models with created_at timestamp."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )


class BankSnapshotMixin:
    """Columns holding a worker's identity and bank details as of creation.

    Mapped classes expose them together as a ``bank_snapshot`` composite;
    they are never updated after insert.
    """

    snapshot_pan: Mapped[str] = mapped_column(String(10), nullable=False)
    snapshot_aadhaar: Mapped[str | None] = mapped_column(String(12), nullable=True)
    snapshot_bank_account: Mapped[str] = mapped_column(String, nullable=False)
    snapshot_ifsc_code: Mapped[str] = mapped_column(String(11), nullable=False)
    snapshot_bank_name: Mapped[str] = mapped_column(String, nullable=False)
    snapshot_is_axis_bank: Mapped[bool] = mapped_column(Boolean, nullable=False)


SNAPSHOT_COLUMNS = (
    "snapshot_pan",
    "snapshot_aadhaar",
    "snapshot_bank_account",
    "snapshot_ifsc_code",
    "snapshot_bank_name",
    "snapshot_is_axis_bank",
)
