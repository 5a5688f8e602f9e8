"""
Module: fieldservice_kernel.models.equipment
Responsibility: ORM persistence for client-owned physical units.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/values.py only.

Invariants enforced:
    - serial_number is unique (uq_equipment_serial_number).
    - state is one of active / in_maintenance / decommissioned
      (ck_equipment_valid_state).
    - Units created by an installation approval keep a trace link to the
      quote and the inventory item they came from.

Failure modes:
    - IntegrityError on a duplicate serial number.
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fieldservice_kernel.db.base import UUID, TrackedBase, UUIDString
from fieldservice_kernel.domain.values import EquipmentState

if TYPE_CHECKING:
    from fieldservice_kernel.models.client import Client


class Equipment(TrackedBase):
    """
    A physical unit installed at a client site.

    Contract:
        Created ACTIVE by the provisioner; maintenance and repair approvals
        move it to IN_MAINTENANCE.  Decommissioning happens outside the
        approval workflow.
    """

    __tablename__ = "equipment"

    __table_args__ = (
        UniqueConstraint("serial_number", name="uq_equipment_serial_number"),
        CheckConstraint(
            "state IN ('active', 'in_maintenance', 'decommissioned')",
            name="ck_equipment_valid_state",
        ),
        Index("idx_equipment_client_state", "client_id", "state"),
    )

    client_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("clients.id"),
        nullable=False,
    )

    # Trace links, null for units registered by hand
    inventory_item_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("inventory_items.id"),
        nullable=True,
    )

    quote_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("quotes.id"),
        nullable=True,
    )

    equipment_type: Mapped[str] = mapped_column(String(50), nullable=False)

    brand: Mapped[str] = mapped_column(String(100), nullable=False)

    model: Mapped[str] = mapped_column(String(100), nullable=False)

    # Display capacity, e.g. "12000 BTU"
    capacity: Mapped[str | None] = mapped_column(String(50), nullable=True)

    gas_type: Mapped[str | None] = mapped_column(String(20), nullable=True)

    serial_number: Mapped[str] = mapped_column(String(100), nullable=False)

    state: Mapped[EquipmentState] = mapped_column(
        String(20),
        nullable=False,
        default=EquipmentState.ACTIVE,
    )

    installed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    purchased_at: Mapped[datetime | None] = mapped_column(nullable=True)

    client: Mapped["Client"] = relationship("Client")

    def __repr__(self) -> str:
        return f"<Equipment {self.serial_number} ({self.state})>"
