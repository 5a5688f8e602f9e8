"""
QuoteApprovalOrchestrator -- drives a quote out of PENDING.

The orchestrator ties together:
- Eligibility validator (pure): may this quote be approved?
- StockLedger: row locks and stock movements
- EquipmentProvisioner: new units (installation) or the unit to service
- ScheduleCalculator (pure): when the technician goes out
- WorkOrder persistence and the quote's terminal state

Transaction boundary:
    Steps run in one transaction.  With ``auto_commit=True`` (default) the
    orchestrator commits on success and rolls back on any failure.  With
    ``auto_commit=False`` it only flushes and the caller owns
    commit/rollback.

Concurrency:
    The quote row is read with SELECT ... FOR UPDATE, so concurrent approvals
    of one quote serialize on PostgreSQL and the second sees a terminal state.
    Independently, UNIQUE(work_orders.quote_id) rejects a second work order;
    that IntegrityError surfaces as DuplicateWorkOrderError.  Inventory rows
    are locked in id order before the stock check.
"""

import time
from decimal import Decimal
from uuid import UUID
from uuid import uuid4 as _uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from fieldservice_kernel.domain.clock import Clock, SystemClock
from fieldservice_kernel.domain.dtos import (
    ApprovalResult,
    EquipmentInfo,
    QuoteInfo,
    StockMovement,
    WorkOrderInfo,
)
from fieldservice_kernel.domain.eligibility import (
    EligibilityFacts,
    EquipmentLine,
    InstallationLines,
    LegacySingleItem,
    StockFact,
    resolve_installation_lines,
    validate_quote,
)
from fieldservice_kernel.domain.policy import WorkflowPolicy
from fieldservice_kernel.domain.quote_lifecycle import can_transition
from fieldservice_kernel.domain.schedule import ScheduleCalculator
from fieldservice_kernel.domain.serials import SerialGenerator
from fieldservice_kernel.domain.values import (
    InventoryStatus,
    QuoteState,
    QuoteType,
    ServiceMode,
    WorkOrderStatus,
    WorkOrderType,
)
from fieldservice_kernel.exceptions import (
    DuplicateWorkOrderError,
    InsufficientStockError,
    InvalidQuoteTransitionError,
    QuoteAlreadyApprovedError,
    QuoteAlreadyDeletedError,
    QuoteAlreadyTerminalError,
    QuoteNotFoundError,
    SerialNumberConflictError,
    ValidationFailedError,
)
from fieldservice_kernel.logging_config import LogContext, get_logger
from fieldservice_kernel.models.equipment import Equipment
from fieldservice_kernel.models.inventory import InventoryItem
from fieldservice_kernel.models.quote import Quote
from fieldservice_kernel.models.work_order import WorkOrder
from fieldservice_kernel.services.equipment_provisioner import EquipmentProvisioner
from fieldservice_kernel.services.stock_ledger import StockLedger

logger = get_logger("services.quote_approval")

_WORK_ORDER_QUOTE_CONSTRAINT_MARKERS = ("uq_work_order_quote", "work_orders.quote_id")
_SERIAL_NUMBER_CONSTRAINT_MARKERS = ("uq_equipment_serial_number", "equipment.serial_number")

_SERVICE_MODES = {
    QuoteType.MAINTENANCE: ServiceMode.MAINTENANCE,
    QuoteType.REPAIR: ServiceMode.REPAIR,
}


def _violates(exc: IntegrityError, markers: tuple[str, ...]) -> bool:
    message = str(exc.orig) if exc.orig is not None else str(exc)
    return any(marker in message for marker in markers)


class QuoteApprovalOrchestrator:
    """
    Approves, rejects and deletes quotes.

    Approval sequence:
    1. Lock the quote (with lines and client)
    2. Refuse terminal quotes
    3. Refuse quotes that already have a work order
    4. Lock referenced stock, gather facts, run the eligibility rules
    5. Provision (installation) or select (maintenance / repair) equipment
    6. Create the work order
    7. Move the quote to APPROVED
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        serial_generator: SerialGenerator | None = None,
        policy: WorkflowPolicy | None = None,
        auto_commit: bool = True,
    ):
        """
        Initialize the orchestrator.

        Args:
            session: SQLAlchemy session.
            clock: Clock for timestamps and scheduling. Defaults to SystemClock.
            serial_generator: Serial scheme for new units. Defaults to
                CatalogSerialGenerator on the same clock.
            policy: Workflow defaults (lead days, technician, rejection reason).
            auto_commit: If True (default), commits on success and rolls back
                on failure. If False, the caller manages the transaction.
        """
        self._session = session
        self._clock = clock or SystemClock()
        self._policy = policy or WorkflowPolicy()
        self._auto_commit = auto_commit

        self._ledger = StockLedger(session)
        self._provisioner = EquipmentProvisioner(
            session,
            clock=self._clock,
            serial_generator=serial_generator,
            stock_ledger=self._ledger,
        )
        self._schedule = ScheduleCalculator(self._clock, self._policy.lead_days)

    # =========================================================================
    # Approve
    # =========================================================================

    def approve(self, quote_id: UUID, user_id: UUID) -> ApprovalResult:
        """
        Approve a pending quote.

        Raises:
            QuoteNotFoundError: Unknown quote.
            QuoteAlreadyApprovedError / QuoteAlreadyDeletedError /
                QuoteAlreadyTerminalError: Quote is not pending.
            DuplicateWorkOrderError: A work order already references the quote.
            InsufficientStockError: An installation line cannot be covered.
            ValidationFailedError: Any other eligibility failure.
            NoEligibleEquipmentError / NoEquipmentCreatedError: Provisioning
                found nothing to do.
            SerialNumberConflictError: A new unit's serial is already taken.
        """
        with LogContext.bind(
            correlation_id=str(_uuid4()),
            quote_id=str(quote_id),
            actor_id=str(user_id),
        ):
            logger.info("approval_started")
            t0 = time.monotonic()
            try:
                result = self._do_approve(quote_id, user_id)
                if self._auto_commit:
                    self._session.commit()
            except IntegrityError as exc:
                self._fail(t0)
                if _violates(exc, _WORK_ORDER_QUOTE_CONSTRAINT_MARKERS):
                    raise DuplicateWorkOrderError(str(quote_id)) from exc
                if _violates(exc, _SERIAL_NUMBER_CONSTRAINT_MARKERS):
                    raise SerialNumberConflictError(str(quote_id)) from exc
                raise
            except Exception:
                self._fail(t0)
                raise

            logger.info(
                "approval_completed",
                extra={
                    "quote_type": result.work_order.work_type.value,
                    "work_order_id": str(result.work_order.id),
                    "units": result.units_provisioned,
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                },
            )
            return result

    def _fail(self, t0: float) -> None:
        duration_ms = round((time.monotonic() - t0) * 1000, 2)
        if self._auto_commit:
            self._session.rollback()
        logger.error("approval_failed", extra={"duration_ms": duration_ms}, exc_info=True)

    def _do_approve(self, quote_id: UUID, user_id: UUID) -> ApprovalResult:
        """Internal approval logic (without transaction management)."""
        # 1-2. Lock and guard
        quote = self._lock_quote(quote_id)
        self._guard_approvable(quote)

        # 3. One work order per quote
        existing = self._existing_work_order(quote.id)
        if existing is not None:
            raise DuplicateWorkOrderError(str(quote.id), str(existing))

        # 4. Eligibility
        installation = self._installation_lines(quote)
        facts = self._gather_facts(quote, installation)
        validation = validate_quote(facts)
        if not validation.valid:
            logger.warning("approval_validation_failed", extra={"reason": validation.error})
            if validation.shortage is not None:
                shortage = validation.shortage
                raise InsufficientStockError(
                    item_id=str(shortage.item_id),
                    available=shortage.available,
                    requested=shortage.requested,
                    item_label=shortage.label,
                )
            raise ValidationFailedError(str(quote.id), validation.error or "not eligible")

        # 5-6. Dispatch per type
        quote_type = QuoteType(quote.quote_type)
        client = quote.client
        movements: tuple[StockMovement, ...] = ()

        if quote_type == QuoteType.INSTALLATION:
            provisioning = self._provisioner.provision_installation(
                quote, client, installation, actor_id=user_id,
            )
            equipment = provisioning.equipment
            movements = provisioning.movements
            work_order = self._create_work_order(
                quote,
                work_type=WorkOrderType.INSTALLATION,
                equipment_id=equipment[0].id,
                notes=self._installation_notes(quote, installation),
                actor_id=user_id,
            )
        else:
            unit = self._provisioner.select_equipment_for_service(
                quote, client, _SERVICE_MODES[quote_type], actor_id=user_id,
            )
            equipment = (EquipmentInfo.from_model(unit),)
            if quote_type == QuoteType.MAINTENANCE:
                work_order = self._create_work_order(
                    quote,
                    work_type=WorkOrderType.MAINTENANCE,
                    equipment_id=unit.id,
                    notes=f"Preventive maintenance of {unit.brand} {unit.model}",
                    actor_id=user_id,
                )
            else:
                work_order = self._create_work_order(
                    quote,
                    work_type=WorkOrderType.REPAIR,
                    equipment_id=unit.id,
                    notes=f"Repair of {unit.brand} {unit.model}",
                    actor_id=user_id,
                    material_cost=quote.material_cost,
                )

        # 7. Terminal state
        self._transition(quote, QuoteState.APPROVED)
        quote.approved_at = self._clock.now()
        quote.approved_by_id = user_id
        quote.updated_by_id = user_id
        self._session.flush()

        return ApprovalResult(
            quote=QuoteInfo.from_model(quote),
            equipment=equipment,
            work_order=WorkOrderInfo.from_model(work_order),
            units_provisioned=len(equipment) if quote_type == QuoteType.INSTALLATION else 0,
            movements=movements,
        )

    def _guard_approvable(self, quote: Quote) -> None:
        state = QuoteState(quote.state)
        if state == QuoteState.APPROVED:
            raise QuoteAlreadyApprovedError(str(quote.id))
        if state == QuoteState.DELETED:
            raise QuoteAlreadyDeletedError(str(quote.id))
        if state != QuoteState.PENDING:
            raise QuoteAlreadyTerminalError(str(quote.id), state.value)

    def _existing_work_order(self, quote_id: UUID) -> UUID | None:
        return self._session.execute(
            select(WorkOrder.id).where(WorkOrder.quote_id == quote_id)
        ).scalar_one_or_none()

    def _installation_lines(self, quote: Quote) -> InstallationLines | None:
        if quote.quote_type != QuoteType.INSTALLATION:
            return None
        lines = [
            EquipmentLine(
                inventory_item_id=line.inventory_item_id,
                quantity=line.quantity,
                unit_price=line.unit_price,
            )
            for line in quote.equipment_lines
        ]
        return resolve_installation_lines(lines, quote.inventory_item_id)

    def _gather_facts(
        self,
        quote: Quote,
        installation: InstallationLines | None,
    ) -> EligibilityFacts:
        has_client = quote.client is not None
        if installation is not None:
            locked = self._ledger.lock_items(installation.item_ids)
            stock = {
                item.id: StockFact(
                    item_id=item.id,
                    label=item.label,
                    stock=item.stock,
                    status=InventoryStatus(item.status),
                )
                for item in locked.values()
            }
            return EligibilityFacts(
                quote_type=quote.quote_type,
                has_client=has_client,
                installation=installation,
                stock=stock,
            )

        states: tuple[str, ...] = ()
        if has_client:
            states = tuple(
                self._session.execute(
                    select(Equipment.state).where(Equipment.client_id == quote.client_id)
                ).scalars().all()
            )
        return EligibilityFacts(
            quote_type=quote.quote_type,
            has_client=has_client,
            equipment_states=states,
        )

    def _installation_notes(self, quote: Quote, installation: InstallationLines) -> str:
        if isinstance(installation, LegacySingleItem):
            demand = [(installation.inventory_item_id, installation.quantity)]
        else:
            demand = [(line.inventory_item_id, line.quantity) for line in installation.lines]

        parts = []
        for item_id, quantity in demand:
            if quantity == 0:
                continue
            item = self._session.get(InventoryItem, item_id)
            label = item.label if item is not None else str(item_id)
            parts.append(f"{quantity} x {label}")

        notes = "Installation of " + ", ".join(parts)
        address = quote.install_address or (quote.client.address if quote.client else None)
        if address:
            notes += f". Address: {address}"
        return notes

    def _create_work_order(
        self,
        quote: Quote,
        work_type: WorkOrderType,
        equipment_id: UUID | None,
        notes: str,
        actor_id: UUID,
        material_cost: Decimal | None = None,
    ) -> WorkOrder:
        work_order = WorkOrder(
            work_type=work_type,
            status=WorkOrderStatus.PENDING,
            scheduled_date=self._schedule.next_work_date(),
            client_id=quote.client_id,
            equipment_id=equipment_id,
            quote_id=quote.id,
            technician=self._policy.unassigned_technician,
            notes=notes,
            material_cost=material_cost if material_cost is not None else Decimal("0"),
            created_by_id=actor_id,
        )
        self._session.add(work_order)
        self._session.flush()

        logger.info(
            "work_order_created",
            extra={
                "work_order_id": str(work_order.id),
                "work_type": work_type.value,
                "scheduled_date": work_order.scheduled_date,
                "equipment_id": str(equipment_id) if equipment_id else None,
            },
        )
        return work_order

    # =========================================================================
    # Reject / delete
    # =========================================================================

    def reject(
        self,
        quote_id: UUID,
        reason: str | None = None,
        actor_id: UUID | None = None,
    ) -> QuoteInfo:
        """
        Reject a pending quote.  No stock, equipment or work order changes.

        Raises:
            QuoteNotFoundError: Unknown quote.
            QuoteAlreadyApprovedError: Quote was approved.
            QuoteAlreadyTerminalError: Quote was rejected or deleted.
        """
        with LogContext.bind(
            correlation_id=str(_uuid4()),
            quote_id=str(quote_id),
            actor_id=str(actor_id) if actor_id else None,
        ):
            try:
                quote = self._lock_quote(quote_id, with_children=False)
                self._guard_pending(quote)
                self._transition(quote, QuoteState.REJECTED)
                quote.rejected_at = self._clock.now()
                quote.rejection_reason = reason or self._policy.default_rejection_reason
                if actor_id is not None:
                    quote.updated_by_id = actor_id
                self._session.flush()
                info = QuoteInfo.from_model(quote)
                if self._auto_commit:
                    self._session.commit()
            except Exception:
                if self._auto_commit:
                    self._session.rollback()
                logger.warning("quote_rejection_failed", exc_info=True)
                raise

            logger.info("quote_rejected", extra={"reason": info.rejection_reason})
            return info

    def delete(self, quote_id: UUID, actor_id: UUID | None = None) -> QuoteInfo:
        """
        Soft-delete a pending quote (state DELETED, row kept).

        Raises:
            QuoteNotFoundError: Unknown quote.
            QuoteAlreadyApprovedError: Quote was approved.
            QuoteAlreadyTerminalError: Quote was rejected or deleted.
        """
        with LogContext.bind(
            correlation_id=str(_uuid4()),
            quote_id=str(quote_id),
            actor_id=str(actor_id) if actor_id else None,
        ):
            try:
                quote = self._lock_quote(quote_id, with_children=False)
                self._guard_pending(quote)
                self._transition(quote, QuoteState.DELETED)
                quote.deleted_at = self._clock.now()
                if actor_id is not None:
                    quote.updated_by_id = actor_id
                self._session.flush()
                info = QuoteInfo.from_model(quote)
                if self._auto_commit:
                    self._session.commit()
            except Exception:
                if self._auto_commit:
                    self._session.rollback()
                logger.warning("quote_deletion_failed", exc_info=True)
                raise

            logger.info("quote_deleted")
            return info

    def _guard_pending(self, quote: Quote) -> None:
        state = QuoteState(quote.state)
        if state == QuoteState.APPROVED:
            raise QuoteAlreadyApprovedError(str(quote.id))
        if state != QuoteState.PENDING:
            raise QuoteAlreadyTerminalError(str(quote.id), state.value)

    # =========================================================================
    # Shared
    # =========================================================================

    def _lock_quote(self, quote_id: UUID, with_children: bool = True) -> Quote:
        stmt = (
            select(Quote)
            .where(Quote.id == quote_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        if with_children:
            stmt = stmt.options(
                selectinload(Quote.client),
                selectinload(Quote.equipment_lines),
            )
        quote = self._session.execute(stmt).scalar_one_or_none()
        if quote is None:
            raise QuoteNotFoundError(str(quote_id))
        return quote

    def _transition(self, quote: Quote, to_state: QuoteState) -> None:
        if not can_transition(quote.state, to_state):
            raise InvalidQuoteTransitionError(
                str(quote.id), QuoteState(quote.state).value, to_state.value,
            )
        quote.state = to_state
