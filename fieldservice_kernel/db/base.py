"""
Module: fieldservice_kernel.db.base
Responsibility: Declarative base for the quote, inventory, equipment and
    work-order tables: UUID primary keys, the column type map and the
    TrackedBase audit mixin.
Architecture position: Kernel > DB.  Every model module imports from here;
    this module imports nothing from the kernel.

Invariants enforced:
    - Every row has a uuid4 primary key, stored as a 36-character string so
      the same schema runs on PostgreSQL and SQLite.
    - Prices, discounts and material costs are Numeric(38, 9), never float.
    - Timestamps are timezone-aware.
    - TrackedBase rows always record who created them (created_by_id is
      NOT NULL).
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """``uuid.UUID`` in Python, ``VARCHAR(36)`` in the database."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else PyUUID(value)


class Base(DeclarativeBase):
    """
    Declarative base for all kernel models.

    Annotation map:
        Decimal  -> Numeric(38, 9)
        datetime -> DateTime(timezone=True)
        UUID     -> UUIDString
        int      -> BigInteger (stock counts, quantities, BTU capacities)
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        PyUUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Adds who/when audit columns.

    ``created_at`` is stamped by the database on INSERT; ``updated_at`` is
    refreshed on every UPDATE.  Services set ``updated_by_id`` to the acting
    user when they change a row (stock movements, approvals, rejections).
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    created_by_id: Mapped[PyUUID] = mapped_column(UUIDString(), nullable=False)

    updated_by_id: Mapped[PyUUID | None] = mapped_column(UUIDString(), nullable=True)


UUID = PyUUID
