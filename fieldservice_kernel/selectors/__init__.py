"""Read-side selectors."""

from fieldservice_kernel.selectors.inventory_selector import InventorySelector
from fieldservice_kernel.selectors.quote_selector import QuoteSelector

__all__ = ["InventorySelector", "QuoteSelector"]
