"""
Module: booking_kernel.db.base
Responsibility: Declarative base for the two booking tables (settled split
    payments and wizard drafts) and the column conventions they share.
Architecture position: Kernel > DB.  Imported by models/ only; imports
    nothing from domain/, engines, services or config.

Invariants enforced:
    - Every row has a uuid4 primary key.
    - Decimal columns are Numeric(38, 9); money never touches a float column.
    - Datetime columns are timezone-aware.
    - TrackedBase rows record who created them and when; created_by_id is
      NOT NULL.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, DateTime, Numeric, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        UUID: Uuid(as_uuid=True),
        int: BigInteger,
    }

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"


class TrackedBase(Base):
    """Adds creation/update stamps and the acting operator."""

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now()
    )
    created_by_id: Mapped[UUID]
    updated_by_id: Mapped[UUID | None]
