"""
StockLedger -- atomic stock movements on catalog inventory items.

Responsibility:
    Read-check-write of ``InventoryItem.stock`` under a row lock, keeping
    the derived ``status`` (available / exhausted) consistent with the count.

Architecture position:
    Kernel > Services -- imperative shell, flush-only.  Called by the
    EquipmentProvisioner during installation approvals and by the workflow
    facade for restocking and availability checks.

Invariants enforced:
    - stock never goes below zero: a decrement that cannot be covered raises
      InsufficientStockError before anything is written (the CHECK
      constraint on the table is the database-level backstop).
    - After a decrement, status is EXHAUSTED iff stock == 0.
    - Rows are locked with SELECT ... FOR UPDATE, and multi-row locks are
      taken in sorted id order so concurrent installations cannot deadlock.

Failure modes:
    - InventoryItemNotFoundError for an unknown item id.
    - InsufficientStockError when the item is exhausted or short.
    - InvalidQuantityError for quantity <= 0.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select

from fieldservice_kernel.domain.dtos import AvailabilityInfo, StockMovement
from fieldservice_kernel.domain.values import InventoryStatus
from fieldservice_kernel.exceptions import (
    InsufficientStockError,
    InvalidQuantityError,
    InventoryItemNotFoundError,
)
from fieldservice_kernel.logging_config import get_logger
from fieldservice_kernel.models.inventory import InventoryItem
from fieldservice_kernel.services.base import BaseService

logger = get_logger("services.stock_ledger")


def _require_positive(quantity: int) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidQuantityError(quantity)


class StockLedger(BaseService[InventoryItem]):
    """
    Stock counter operations.

    Contract:
        Every write happens inside the caller's transaction; the ledger
        flushes but never commits, so a decrement made during an approval
        is undone with the rest of the approval on rollback.
    """

    # ------------------------------------------------------------------
    # Locking
    # ------------------------------------------------------------------

    def lock_item(self, item_id: UUID) -> InventoryItem:
        """Load one item FOR UPDATE, refreshing any stale identity-map copy."""
        item = self.session.execute(
            select(InventoryItem)
            .where(InventoryItem.id == item_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if item is None:
            raise InventoryItemNotFoundError(str(item_id))
        return item

    def lock_items(self, item_ids: Iterable[UUID]) -> dict[UUID, InventoryItem]:
        """
        Lock several items in ascending id order.

        Unknown ids are simply absent from the returned mapping; the caller
        decides whether that is an error.
        """
        ordered = sorted(set(item_ids), key=str)
        if not ordered:
            return {}
        rows = self.session.execute(
            select(InventoryItem)
            .where(InventoryItem.id.in_(ordered))
            .order_by(InventoryItem.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalars().all()
        return {row.id: row for row in rows}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def check_availability(self, item_id: UUID, quantity: int) -> AvailabilityInfo:
        """
        Report whether ``quantity`` units can be taken right now.

        Advisory only: it takes no lock, so the answer can be stale by the
        time a decrement runs.  ``decrement`` re-checks under lock.
        """
        _require_positive(quantity)
        item = self.session.get(InventoryItem, item_id)
        if item is None:
            raise InventoryItemNotFoundError(str(item_id))

        reason = None
        if item.status == InventoryStatus.EXHAUSTED:
            reason = f"{item.label} is exhausted"
        elif item.stock < quantity:
            reason = (
                f"Insufficient stock for {item.label}. "
                f"Available: {item.stock}, Requested: {quantity}"
            )

        return AvailabilityInfo(
            item_id=item.id,
            available=reason is None,
            stock=item.stock,
            requested=quantity,
            status=InventoryStatus(item.status),
            reason=reason,
        )

    # ------------------------------------------------------------------
    # Movements
    # ------------------------------------------------------------------

    def decrement(
        self,
        item_id: UUID,
        quantity: int,
        actor_id: UUID | None = None,
    ) -> StockMovement:
        """
        Take ``quantity`` units out of stock.

        Raises:
            InsufficientStockError: Nothing is written.
        """
        _require_positive(quantity)
        item = self.lock_item(item_id)

        previous = item.stock
        if item.status == InventoryStatus.EXHAUSTED or previous < quantity:
            logger.warning(
                "stock_decrement_refused",
                extra={
                    "item_id": str(item_id),
                    "available": previous,
                    "requested": quantity,
                },
            )
            raise InsufficientStockError(
                item_id=str(item_id),
                available=previous,
                requested=quantity,
                item_label=item.label,
            )

        item.stock = previous - quantity
        item.status = (
            InventoryStatus.EXHAUSTED if item.stock == 0 else InventoryStatus.AVAILABLE
        )
        if actor_id is not None:
            item.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "stock_decremented",
            extra={
                "item_id": str(item_id),
                "quantity": quantity,
                "previous_stock": previous,
                "new_stock": item.stock,
                "status": item.status.value,
            },
        )
        return StockMovement(
            item_id=item.id,
            previous_stock=previous,
            new_stock=item.stock,
            status=InventoryStatus(item.status),
        )

    def increment(
        self,
        item_id: UUID,
        quantity: int,
        actor_id: UUID | None = None,
    ) -> StockMovement:
        """
        Put ``quantity`` units back into stock.

        The item is always marked AVAILABLE afterwards, whatever its status
        was before.
        """
        _require_positive(quantity)
        item = self.lock_item(item_id)

        previous = item.stock
        item.stock = previous + quantity
        item.status = InventoryStatus.AVAILABLE
        if actor_id is not None:
            item.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "stock_incremented",
            extra={
                "item_id": str(item_id),
                "quantity": quantity,
                "previous_stock": previous,
                "new_stock": item.stock,
            },
        )
        return StockMovement(
            item_id=item.id,
            previous_stock=previous,
            new_stock=item.stock,
            status=InventoryStatus.AVAILABLE,
        )
