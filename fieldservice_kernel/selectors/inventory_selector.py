"""
Module: fieldservice_kernel.selectors.inventory_selector
Responsibility: Read-only queries over catalog stock: low-stock alerts and
    the catalog-wide summary.
Architecture position: Kernel > Selectors.

Low stock means 0 < stock <= threshold on an AVAILABLE item; exhausted
items are reported separately.
"""

from decimal import Decimal

from sqlalchemy import and_, case, func, select

from fieldservice_kernel.domain.dtos import InventoryItemInfo, InventoryStatistics
from fieldservice_kernel.domain.policy import DEFAULT_LOW_STOCK_THRESHOLD
from fieldservice_kernel.domain.values import InventoryStatus
from fieldservice_kernel.models.inventory import InventoryItem
from fieldservice_kernel.selectors.base import BaseSelector


def _low_stock_condition(threshold: int):
    return and_(
        InventoryItem.status == InventoryStatus.AVAILABLE.value,
        InventoryItem.stock > 0,
        InventoryItem.stock <= threshold,
    )


class InventorySelector(BaseSelector[InventoryItem]):
    """Stock reporting."""

    def low_stock(self, threshold: int = DEFAULT_LOW_STOCK_THRESHOLD) -> list[InventoryItemInfo]:
        """
        Items running low, lowest stock first.

        Args:
            threshold: Inclusive upper bound on stock.

        Raises:
            ValueError: If threshold is negative.
        """
        if threshold < 0:
            raise ValueError(f"threshold must be >= 0, got {threshold}")
        items = self.session.execute(
            select(InventoryItem)
            .where(_low_stock_condition(threshold))
            .order_by(InventoryItem.stock.asc(), InventoryItem.brand, InventoryItem.model)
        ).scalars().all()
        return [InventoryItemInfo.from_model(item) for item in items]

    def statistics(self, threshold: int = DEFAULT_LOW_STOCK_THRESHOLD) -> InventoryStatistics:
        """Item counts by status, low-stock count, units and stock value."""
        def _count(condition):
            return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

        row = self.session.execute(
            select(
                func.count(InventoryItem.id),
                _count(InventoryItem.status == InventoryStatus.AVAILABLE.value),
                _count(InventoryItem.status == InventoryStatus.EXHAUSTED.value),
                _count(_low_stock_condition(threshold)),
                func.coalesce(func.sum(InventoryItem.stock), 0),
                func.coalesce(
                    func.sum(InventoryItem.stock * func.coalesce(InventoryItem.unit_price, 0)),
                    0,
                ),
            )
        ).one()

        total, available, exhausted, low, units, value = row
        return InventoryStatistics(
            total_items=int(total),
            available_items=int(available),
            exhausted_items=int(exhausted),
            low_stock_items=int(low),
            total_units=int(units),
            stock_value=Decimal(str(value)),
        )
