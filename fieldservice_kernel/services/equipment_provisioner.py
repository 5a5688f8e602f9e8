"""
EquipmentProvisioner -- materializes and selects client equipment for
approved quotes.

Responsibility:
    - Installation: create one Equipment row per quoted unit, each with a
      fresh serial, and book the stock through the StockLedger.
    - Maintenance / repair: pick the client's unit to service and move it
      to IN_MAINTENANCE.

Architecture position:
    Kernel > Services -- imperative shell, flush-only.  Invoked only by
    QuoteApprovalOrchestrator, inside the approval transaction.

Invariants enforced:
    - Every provisioned unit links back to its client, inventory item and
      quote.
    - Stock is decremented once per equipment line, by the line quantity,
      under the StockLedger's row lock.
    - An installation that yields zero units aborts the approval.

Failure modes:
    - InsufficientStockError from the StockLedger re-check.
    - NoEquipmentCreatedError when all lines have quantity 0.
    - NoEligibleEquipmentError when a service quote finds no candidate unit.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from fieldservice_kernel.domain.clock import Clock, SystemClock
from fieldservice_kernel.domain.dtos import EquipmentInfo, ProvisioningResult, StockMovement
from fieldservice_kernel.domain.eligibility import (
    MAINTENANCE_ELIGIBLE_STATES,
    REPAIR_ELIGIBLE_STATES,
    InstallationLines,
    LegacySingleItem,
)
from fieldservice_kernel.domain.serials import CatalogSerialGenerator, SerialGenerator
from fieldservice_kernel.domain.values import EquipmentState, ServiceMode
from fieldservice_kernel.exceptions import (
    InventoryItemNotFoundError,
    NoEligibleEquipmentError,
    NoEquipmentCreatedError,
)
from fieldservice_kernel.logging_config import get_logger
from fieldservice_kernel.models.client import Client
from fieldservice_kernel.models.equipment import Equipment
from fieldservice_kernel.models.inventory import InventoryItem
from fieldservice_kernel.models.quote import Quote
from fieldservice_kernel.services.base import BaseService
from fieldservice_kernel.services.stock_ledger import StockLedger

logger = get_logger("services.equipment_provisioner")


class EquipmentProvisioner(BaseService[Equipment]):
    """
    Creates and selects Equipment rows for quote approvals.

    Contract:
        Runs inside the orchestrator's transaction; flushes, never commits.
    """

    def __init__(
        self,
        session,
        clock: Clock | None = None,
        serial_generator: SerialGenerator | None = None,
        stock_ledger: StockLedger | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._serials = serial_generator or CatalogSerialGenerator(self._clock)
        self._ledger = stock_ledger or StockLedger(session)

    # ------------------------------------------------------------------
    # Installation
    # ------------------------------------------------------------------

    def provision_installation(
        self,
        quote: Quote,
        client: Client,
        lines: InstallationLines,
        actor_id: UUID,
    ) -> ProvisioningResult:
        """Create the quoted units and take them out of stock."""
        if isinstance(lines, LegacySingleItem):
            demand = [(lines.inventory_item_id, lines.quantity)]
        else:
            demand = [(line.inventory_item_id, line.quantity) for line in lines.lines]

        created: list[Equipment] = []
        movements: list[StockMovement] = []
        installed_at = self._clock.now()

        for item_id, quantity in demand:
            if quantity == 0:
                continue

            movements.append(self._ledger.decrement(item_id, quantity, actor_id=actor_id))

            item = self.session.get(InventoryItem, item_id)
            if item is None:
                raise InventoryItemNotFoundError(str(item_id))

            for _ in range(quantity):
                unit = Equipment(
                    client_id=client.id,
                    inventory_item_id=item.id,
                    quote_id=quote.id,
                    equipment_type=item.item_type,
                    brand=item.brand,
                    model=item.model,
                    capacity=f"{item.capacity_btu} BTU" if item.capacity_btu else None,
                    gas_type=item.gas_type,
                    serial_number=self._serials.next_serial(item),
                    state=EquipmentState.ACTIVE,
                    installed_at=installed_at,
                    purchased_at=installed_at,
                    created_by_id=actor_id,
                )
                self.session.add(unit)
                created.append(unit)

        if not created:
            raise NoEquipmentCreatedError(str(quote.id))

        self.session.flush()

        logger.info(
            "equipment_provisioned",
            extra={
                "quote_id": str(quote.id),
                "client_id": str(client.id),
                "units": len(created),
                "items": len(movements),
            },
        )
        return ProvisioningResult(
            equipment=tuple(EquipmentInfo.from_model(unit) for unit in created),
            movements=tuple(movements),
        )

    # ------------------------------------------------------------------
    # Maintenance / repair
    # ------------------------------------------------------------------

    def select_equipment_for_service(
        self,
        quote: Quote,
        client: Client,
        mode: ServiceMode,
        actor_id: UUID,
    ) -> Equipment:
        """
        Choose the unit a maintenance or repair visit is for.

        Maintenance takes the oldest-installed ACTIVE unit; repair takes the
        most recently installed unit that is ACTIVE or IN_MAINTENANCE.  The
        chosen unit moves to IN_MAINTENANCE and is linked to the quote.
        """
        mode = ServiceMode(mode)
        if mode == ServiceMode.MAINTENANCE:
            states = MAINTENANCE_ELIGIBLE_STATES
            ordering = (
                Equipment.installed_at.asc().nulls_last(),
                Equipment.created_at.asc(),
            )
        else:
            states = REPAIR_ELIGIBLE_STATES
            ordering = (
                Equipment.installed_at.desc().nulls_last(),
                Equipment.created_at.desc(),
            )

        unit = self.session.execute(
            select(Equipment)
            .where(
                Equipment.client_id == client.id,
                Equipment.state.in_([state.value for state in states]),
            )
            .order_by(*ordering, Equipment.id)
            .limit(1)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

        if unit is None:
            raise NoEligibleEquipmentError(str(client.id), mode.value)

        previous_state = unit.state
        unit.state = EquipmentState.IN_MAINTENANCE
        unit.quote_id = quote.id
        unit.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "equipment_selected_for_service",
            extra={
                "equipment_id": str(unit.id),
                "mode": mode.value,
                "previous_state": EquipmentState(previous_state).value,
            },
        )
        return unit
