"""Write-side services: stock ledger, equipment provisioning, quote approval."""

from fieldservice_kernel.services.equipment_provisioner import EquipmentProvisioner
from fieldservice_kernel.services.quote_approval import QuoteApprovalOrchestrator
from fieldservice_kernel.services.stock_ledger import StockLedger

__all__ = [
    "StockLedger",
    "EquipmentProvisioner",
    "QuoteApprovalOrchestrator",
]
