"""
Declarative bases for the supply ledger's tables.

``Base``
    A uuid4 ``id`` primary key and nothing else.  Used directly by the
    sequence counters and by the inventory log, whose rows carry their own
    actor and timestamp and are keyed by an autoincrement ``seq``.

``TrackedBase``
    ``Base`` plus who/when columns, for every stock row, document and
    catalog entry.  ``created_by_id`` is required, so every stock
    row and document traces back to the party that created it.  Services
    set ``updated_by_id`` on each change; ``updated_at`` follows by
    itself.

Ids are stored as 36-character strings so one schema serves SQLite in
tests and PostgreSQL in production.  This module imports nothing else
from the kernel.
"""

from datetime import datetime
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID in Python, String(36) in the database."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        UUID: UUIDString(),
        datetime: DateTime(timezone=True),
    }

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)


class TrackedBase(Base):
    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), onupdate=func.now())

    # Party that created the row; the ledgers record the acting party here
    created_by_id: Mapped[UUID]
    updated_by_id: Mapped[UUID | None]
