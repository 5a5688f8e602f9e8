"""ORM models for the field service kernel."""

from fieldservice_kernel.models.client import Client
from fieldservice_kernel.models.equipment import Equipment
from fieldservice_kernel.models.inventory import InventoryItem
from fieldservice_kernel.models.quote import Quote, QuoteEquipmentLine, QuoteMaterialLine
from fieldservice_kernel.models.work_order import WorkOrder

__all__ = [
    "Client",
    "InventoryItem",
    "Quote",
    "QuoteEquipmentLine",
    "QuoteMaterialLine",
    "Equipment",
    "WorkOrder",
]
