"""
DTOs -- Immutable data transfer objects returned across the kernel boundary.

Responsibility:
    Defines the frozen dataclasses the workflow hands back to callers:
    QuoteInfo, InventoryItemInfo, EquipmentInfo, WorkOrderInfo (entity
    snapshots), AvailabilityInfo and StockMovement (stock ledger results),
    ProvisioningResult and ApprovalResult (approval outcome), and the
    statistics DTOs of the read side.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  ``from_model()`` class methods are
    boundary converters invoked from services and selectors only; the ORM
    classes are imported for type checking, never at runtime.

Invariants enforced:
    - No DTO holds a reference to an ORM instance, so nothing returned by
      the workflow can lazy-load after its session is closed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from fieldservice_kernel.domain.values import (
    EquipmentState,
    InventoryStatus,
    QuoteState,
    QuoteType,
    WorkOrderStatus,
    WorkOrderType,
)

if TYPE_CHECKING:
    from fieldservice_kernel.models.equipment import Equipment
    from fieldservice_kernel.models.inventory import InventoryItem
    from fieldservice_kernel.models.quote import Quote
    from fieldservice_kernel.models.work_order import WorkOrder


# =========================================================================
# Entity snapshots
# =========================================================================


@dataclass(frozen=True)
class QuoteInfo:
    """Snapshot of a quote."""

    id: UUID
    quote_type: QuoteType
    state: QuoteState
    client_id: UUID | None
    final_price: Decimal | None
    material_cost: Decimal | None
    approved_at: datetime | None = None
    approved_by_id: UUID | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    deleted_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.state == QuoteState.PENDING

    @classmethod
    def from_model(cls, quote: Quote) -> QuoteInfo:
        return cls(
            id=quote.id,
            quote_type=QuoteType(quote.quote_type),
            state=QuoteState(quote.state),
            client_id=quote.client_id,
            final_price=quote.final_price,
            material_cost=quote.material_cost,
            approved_at=quote.approved_at,
            approved_by_id=quote.approved_by_id,
            rejected_at=quote.rejected_at,
            rejection_reason=quote.rejection_reason,
            deleted_at=quote.deleted_at,
        )


@dataclass(frozen=True)
class InventoryItemInfo:
    """Snapshot of a catalog inventory item."""

    id: UUID
    item_type: str
    brand: str
    model: str
    capacity_btu: int | None
    unit_price: Decimal | None
    stock: int
    status: InventoryStatus
    label: str

    @classmethod
    def from_model(cls, item: InventoryItem) -> InventoryItemInfo:
        return cls(
            id=item.id,
            item_type=item.item_type,
            brand=item.brand,
            model=item.model,
            capacity_btu=item.capacity_btu,
            unit_price=item.unit_price,
            stock=item.stock,
            status=InventoryStatus(item.status),
            label=item.label,
        )


@dataclass(frozen=True)
class EquipmentInfo:
    """Snapshot of a client-owned unit."""

    id: UUID
    client_id: UUID
    inventory_item_id: UUID | None
    quote_id: UUID | None
    brand: str
    model: str
    capacity: str | None
    serial_number: str
    state: EquipmentState
    installed_at: datetime | None
    purchased_at: datetime | None

    @classmethod
    def from_model(cls, equipment: Equipment) -> EquipmentInfo:
        return cls(
            id=equipment.id,
            client_id=equipment.client_id,
            inventory_item_id=equipment.inventory_item_id,
            quote_id=equipment.quote_id,
            brand=equipment.brand,
            model=equipment.model,
            capacity=equipment.capacity,
            serial_number=equipment.serial_number,
            state=EquipmentState(equipment.state),
            installed_at=equipment.installed_at,
            purchased_at=equipment.purchased_at,
        )


@dataclass(frozen=True)
class WorkOrderInfo:
    """Snapshot of a work order."""

    id: UUID
    work_type: WorkOrderType
    status: WorkOrderStatus
    scheduled_date: date
    client_id: UUID
    equipment_id: UUID | None
    quote_id: UUID | None
    technician: str
    notes: str | None
    material_cost: Decimal

    @classmethod
    def from_model(cls, work_order: WorkOrder) -> WorkOrderInfo:
        return cls(
            id=work_order.id,
            work_type=WorkOrderType(work_order.work_type),
            status=WorkOrderStatus(work_order.status),
            scheduled_date=work_order.scheduled_date,
            client_id=work_order.client_id,
            equipment_id=work_order.equipment_id,
            quote_id=work_order.quote_id,
            technician=work_order.technician,
            notes=work_order.notes,
            material_cost=work_order.material_cost,
        )


# =========================================================================
# Stock ledger results
# =========================================================================


@dataclass(frozen=True)
class AvailabilityInfo:
    """Answer to "can ``requested`` units of this item be taken now?"."""

    item_id: UUID
    available: bool
    stock: int
    requested: int
    status: InventoryStatus
    reason: str | None = None


@dataclass(frozen=True)
class StockMovement:
    """One applied stock change."""

    item_id: UUID
    previous_stock: int
    new_stock: int
    status: InventoryStatus

    @property
    def delta(self) -> int:
        return self.new_stock - self.previous_stock


# =========================================================================
# Approval results
# =========================================================================


@dataclass(frozen=True)
class ProvisioningResult:
    """Units created (installation) or selected (maintenance / repair)."""

    equipment: tuple[EquipmentInfo, ...]
    movements: tuple[StockMovement, ...] = ()

    @property
    def total_units(self) -> int:
        return len(self.equipment)


@dataclass(frozen=True)
class ApprovalResult:
    """Everything an approval committed."""

    quote: QuoteInfo
    equipment: tuple[EquipmentInfo, ...]
    work_order: WorkOrderInfo
    units_provisioned: int
    movements: tuple[StockMovement, ...] = ()


# =========================================================================
# Read side
# =========================================================================


@dataclass(frozen=True)
class QuoteStatistics:
    """Counts by state plus the approved revenue."""

    total: int
    pending: int
    approved: int
    rejected: int
    deleted: int
    approved_revenue: Decimal

    @property
    def approval_rate(self) -> Decimal:
        """Approved share of all quotes, as a percentage with 2 decimals."""
        if self.total == 0:
            return Decimal("0.00")
        return (Decimal(self.approved) * 100 / Decimal(self.total)).quantize(Decimal("0.01"))


@dataclass(frozen=True)
class InventoryStatistics:
    """Catalog-wide stock summary."""

    total_items: int
    available_items: int
    exhausted_items: int
    low_stock_items: int
    total_units: int
    stock_value: Decimal
