"""
Module: fieldservice_kernel.models.inventory
Responsibility: ORM persistence for catalog inventory items -- sellable unit
    types (brand / model / capacity) with an integer stock count.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/values.py only.

Invariants enforced:
    - stock >= 0 (ck_inventory_items_stock_non_negative).  The Stock Ledger
      refuses oversell before the write; the CHECK constraint is the
      database-level backstop.
    - status is a projection of stock == 0, written only by the Stock Ledger
      (decrement derives it, restock resets it).

Failure modes:
    - IntegrityError if a write would drive stock below zero.
"""

from decimal import Decimal

from sqlalchemy import CheckConstraint, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from fieldservice_kernel.db.base import TrackedBase
from fieldservice_kernel.domain.values import InventoryStatus


class InventoryItem(TrackedBase):
    """
    A catalog entry with a countable quantity on hand.

    Contract:
        Business logic never writes ``stock`` or ``status`` directly; all
        movements go through StockLedger so the two stay consistent.
    """

    __tablename__ = "inventory_items"

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_inventory_items_stock_non_negative"),
        CheckConstraint(
            "status IN ('available', 'exhausted')",
            name="ck_inventory_items_valid_status",
        ),
        Index("idx_inventory_status_stock", "status", "stock"),
    )

    # Equipment family, e.g. "Split Wall"
    item_type: Mapped[str] = mapped_column(String(50), nullable=False)

    brand: Mapped[str] = mapped_column(String(100), nullable=False)

    model: Mapped[str] = mapped_column(String(100), nullable=False)

    capacity_btu: Mapped[int | None] = mapped_column(nullable=True)

    # Refrigerant, e.g. "R410A"
    gas_type: Mapped[str | None] = mapped_column(String(20), nullable=True)

    unit_price: Mapped[Decimal | None] = mapped_column(nullable=True)

    stock: Mapped[int] = mapped_column(nullable=False, default=0)

    status: Mapped[InventoryStatus] = mapped_column(
        String(20),
        nullable=False,
        default=InventoryStatus.AVAILABLE,
    )

    @property
    def label(self) -> str:
        """Human-readable name used in error messages and work-order notes."""
        if self.capacity_btu:
            return f"{self.brand} {self.model} {self.capacity_btu} BTU"
        return f"{self.brand} {self.model}"

    @property
    def is_exhausted(self) -> bool:
        return self.status == InventoryStatus.EXHAUSTED

    def __repr__(self) -> str:
        return f"<InventoryItem {self.label} stock={self.stock} ({self.status})>"
