"""
Module: fieldservice_kernel.models.quote
Responsibility: ORM persistence for quotes and their equipment / material
    lines.
Architecture position: Kernel > Models.  May import from db/, domain/ and
    exceptions only.

Invariants enforced:
    - state is one of pending / approved / rejected / deleted
      (ck_quotes_valid_state).
    - Terminal states are final: the before_update listener refuses any
      change of ``state`` away from approved, rejected or deleted.
    - Quote lines are immutable after creation (before_update listeners).

Failure modes:
    - ImmutabilityViolationError on a state change out of a terminal state or
      on any UPDATE of a quote line.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text, event
from sqlalchemy.orm import Mapped, attributes, mapped_column, relationship

from fieldservice_kernel.db.base import Base, TrackedBase, UUIDString
from fieldservice_kernel.domain.quote_lifecycle import is_terminal
from fieldservice_kernel.domain.values import QuoteState, QuoteType
from fieldservice_kernel.exceptions import ImmutabilityViolationError

if TYPE_CHECKING:
    from fieldservice_kernel.models.client import Client
    from fieldservice_kernel.models.inventory import InventoryItem


class Quote(TrackedBase):
    """
    A priced proposal for installation, maintenance or repair work.

    Contract:
        Created externally as PENDING.  The approval orchestrator is the only
        writer of terminal state.  An installation quote names its equipment
        either through ``equipment_lines`` or, for older quotes, the single
        ``inventory_item_id`` reference.
    """

    __tablename__ = "quotes"

    __table_args__ = (
        CheckConstraint(
            "state IN ('pending', 'approved', 'rejected', 'deleted')",
            name="ck_quotes_valid_state",
        ),
        Index("idx_quote_state", "state"),
        Index("idx_quote_client", "client_id"),
    )

    quote_type: Mapped[QuoteType] = mapped_column(String(20), nullable=False)

    state: Mapped[QuoteState] = mapped_column(
        String(20),
        nullable=False,
        default=QuoteState.PENDING,
    )

    client_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("clients.id"),
        nullable=True,
    )

    # Legacy single-item reference (quotes created before equipment lines)
    inventory_item_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("inventory_items.id"),
        nullable=True,
    )

    install_address: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Pricing
    offered_price: Mapped[Decimal | None] = mapped_column(nullable=True)
    discount_pct: Mapped[Decimal | None] = mapped_column(nullable=True)
    final_price: Mapped[Decimal | None] = mapped_column(nullable=True)
    material_cost: Mapped[Decimal | None] = mapped_column(nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Terminal-state bookkeeping
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    approved_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    client: Mapped["Client | None"] = relationship("Client")

    inventory_item: Mapped["InventoryItem | None"] = relationship("InventoryItem")

    equipment_lines: Mapped[list["QuoteEquipmentLine"]] = relationship(
        "QuoteEquipmentLine",
        back_populates="quote",
        order_by="QuoteEquipmentLine.line_no",
        cascade="all, delete-orphan",
    )

    material_lines: Mapped[list["QuoteMaterialLine"]] = relationship(
        "QuoteMaterialLine",
        back_populates="quote",
        order_by="QuoteMaterialLine.line_no",
        cascade="all, delete-orphan",
    )

    @property
    def is_terminal(self) -> bool:
        return is_terminal(self.state)

    def __repr__(self) -> str:
        return f"<Quote {self.id} {self.quote_type} state={self.state}>"


class QuoteEquipmentLine(Base):
    """A quoted catalog item: how many units to install and at what price."""

    __tablename__ = "quote_equipment_lines"

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_quote_equipment_lines_quantity"),
        Index("idx_quote_equipment_line_quote", "quote_id"),
    )

    quote_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("quotes.id"),
        nullable=False,
    )

    line_no: Mapped[int] = mapped_column(nullable=False, default=1)

    inventory_item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("inventory_items.id"),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(nullable=False, default=1)

    unit_price: Mapped[Decimal | None] = mapped_column(nullable=True)

    quote: Mapped["Quote"] = relationship("Quote", back_populates="equipment_lines")

    inventory_item: Mapped["InventoryItem"] = relationship("InventoryItem")

    def __repr__(self) -> str:
        return f"<QuoteEquipmentLine {self.inventory_item_id} x{self.quantity}>"


class QuoteMaterialLine(Base):
    """A quoted consumable (pipe, gas, brackets...)."""

    __tablename__ = "quote_material_lines"

    __table_args__ = (
        Index("idx_quote_material_line_quote", "quote_id"),
    )

    quote_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("quotes.id"),
        nullable=False,
    )

    line_no: Mapped[int] = mapped_column(nullable=False, default=1)

    description: Mapped[str] = mapped_column(String(255), nullable=False)

    quantity: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("1"))

    unit_cost: Mapped[Decimal | None] = mapped_column(nullable=True)

    quote: Mapped["Quote"] = relationship("Quote", back_populates="material_lines")

    @property
    def line_cost(self) -> Decimal:
        return (self.unit_cost or Decimal("0")) * self.quantity

    def __repr__(self) -> str:
        return f"<QuoteMaterialLine {self.description} x{self.quantity}>"


# =============================================================================
# ORM-level immutability
# =============================================================================


@event.listens_for(Quote, "before_update")
def prevent_terminal_state_change(mapper, connection, target):
    """Refuse to move a quote out of a terminal state."""
    history = attributes.get_history(target, "state")
    if not history.deleted:
        return
    old_state = history.deleted[0]
    new_state = history.added[0] if history.added else target.state
    if old_state is not None and is_terminal(old_state) and new_state != old_state:
        raise ImmutabilityViolationError(
            entity_type="Quote",
            entity_id=str(target.id),
            reason=f"state {old_state} is terminal",
        )


@event.listens_for(QuoteEquipmentLine, "before_update")
def prevent_equipment_line_update(mapper, connection, target):
    """Quote equipment lines are immutable after creation."""
    raise ImmutabilityViolationError(
        entity_type="QuoteEquipmentLine",
        entity_id=str(target.id),
        reason="quote lines are immutable",
    )


@event.listens_for(QuoteMaterialLine, "before_update")
def prevent_material_line_update(mapper, connection, target):
    """Quote material lines are immutable after creation."""
    raise ImmutabilityViolationError(
        entity_type="QuoteMaterialLine",
        entity_id=str(target.id),
        reason="quote lines are immutable",
    )
