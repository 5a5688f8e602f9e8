"""
Module: fieldservice_kernel.models.work_order
Responsibility: ORM persistence for scheduled technician tasks.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/values.py only.

Invariants enforced:
    - At most one work order per quote: UNIQUE(quote_id)
      (uq_work_order_quote).  NULL quote_id (ad-hoc orders) is not
      constrained.  This is the database-level guard against a double
      approval; the orchestrator maps its violation to
      DuplicateWorkOrderError.
    - material_cost >= 0.

Failure modes:
    - IntegrityError on a second work order for the same quote.
"""

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fieldservice_kernel.db.base import UUID, TrackedBase, UUIDString
from fieldservice_kernel.domain.values import WorkOrderStatus, WorkOrderType

if TYPE_CHECKING:
    from fieldservice_kernel.models.client import Client
    from fieldservice_kernel.models.equipment import Equipment


class WorkOrder(TrackedBase):
    """A technician visit: installation, maintenance or repair."""

    __tablename__ = "work_orders"

    __table_args__ = (
        UniqueConstraint("quote_id", name="uq_work_order_quote"),
        CheckConstraint(
            "material_cost >= 0",
            name="ck_work_orders_material_cost_non_negative",
        ),
        Index("idx_work_order_status_date", "status", "scheduled_date"),
    )

    work_type: Mapped[WorkOrderType] = mapped_column(String(20), nullable=False)

    status: Mapped[WorkOrderStatus] = mapped_column(
        String(20),
        nullable=False,
        default=WorkOrderStatus.PENDING,
    )

    scheduled_date: Mapped[date] = mapped_column(Date, nullable=False)

    client_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("clients.id"),
        nullable=False,
    )

    equipment_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("equipment.id"),
        nullable=True,
    )

    quote_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("quotes.id"),
        nullable=True,
    )

    technician: Mapped[str] = mapped_column(String(100), nullable=False)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    material_cost: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=Decimal("0"),
    )

    client: Mapped["Client"] = relationship("Client")

    equipment: Mapped["Equipment | None"] = relationship("Equipment")

    def __repr__(self) -> str:
        return f"<WorkOrder {self.work_type} {self.scheduled_date} quote={self.quote_id}>"
