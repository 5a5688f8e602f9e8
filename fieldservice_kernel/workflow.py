"""
QuoteWorkflow -- the kernel's public entry point.

Each call opens a session from the injected factory, runs in exactly one
transaction (``session_scope``: commit on success, rollback and re-raise on
failure) and returns frozen DTOs, so callers never hold ORM instances.

Usage:
    from fieldservice_config import get_active_config
    from fieldservice_config.bridges import build_workflow_policy, init_engine_from_settings

    settings = get_active_config()
    init_engine_from_settings(settings)
    workflow = QuoteWorkflow(get_session_factory(), policy=build_workflow_policy(settings))
    result = workflow.approve_quote(quote_id, user_id)
"""

from uuid import UUID

from sqlalchemy.orm import Session, sessionmaker

from fieldservice_kernel.db.engine import session_scope
from fieldservice_kernel.domain.clock import Clock, SystemClock
from fieldservice_kernel.domain.dtos import (
    ApprovalResult,
    AvailabilityInfo,
    InventoryItemInfo,
    InventoryStatistics,
    QuoteInfo,
    QuoteStatistics,
)
from fieldservice_kernel.domain.policy import WorkflowPolicy
from fieldservice_kernel.domain.serials import CatalogSerialGenerator, SerialGenerator
from fieldservice_kernel.models.inventory import InventoryItem
from fieldservice_kernel.selectors.inventory_selector import InventorySelector
from fieldservice_kernel.selectors.quote_selector import QuoteSelector
from fieldservice_kernel.services.quote_approval import QuoteApprovalOrchestrator
from fieldservice_kernel.services.stock_ledger import StockLedger


class QuoteWorkflow:
    """
    Quote approval, stock and reporting operations.

    Args:
        session_factory: Callable returning a new Session per call.
        clock: Clock for timestamps and scheduling. Defaults to SystemClock.
        policy: Workflow defaults. Defaults to ``WorkflowPolicy()``.
        serial_generator: Serial scheme for provisioned units. One instance is
            shared by all calls so its sequence keeps increasing.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        policy: WorkflowPolicy | None = None,
        serial_generator: SerialGenerator | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._policy = policy or WorkflowPolicy()
        self._serials = serial_generator or CatalogSerialGenerator(self._clock)

    def _orchestrator(self, session: Session) -> QuoteApprovalOrchestrator:
        # session_scope owns commit/rollback
        return QuoteApprovalOrchestrator(
            session,
            clock=self._clock,
            serial_generator=self._serials,
            policy=self._policy,
            auto_commit=False,
        )

    # Quote lifecycle

    def approve_quote(self, quote_id: UUID, user_id: UUID) -> ApprovalResult:
        with session_scope(self._session_factory) as session:
            return self._orchestrator(session).approve(quote_id, user_id)

    def reject_quote(
        self,
        quote_id: UUID,
        reason: str | None = None,
        actor_id: UUID | None = None,
    ) -> QuoteInfo:
        with session_scope(self._session_factory) as session:
            return self._orchestrator(session).reject(quote_id, reason, actor_id)

    def delete_quote(self, quote_id: UUID, actor_id: UUID | None = None) -> QuoteInfo:
        with session_scope(self._session_factory) as session:
            return self._orchestrator(session).delete(quote_id, actor_id)

    # Stock

    def check_stock(self, item_id: UUID, quantity: int) -> AvailabilityInfo:
        with session_scope(self._session_factory) as session:
            return StockLedger(session).check_availability(item_id, quantity)

    def restock(
        self,
        item_id: UUID,
        quantity: int,
        actor_id: UUID | None = None,
    ) -> InventoryItemInfo:
        with session_scope(self._session_factory) as session:
            StockLedger(session).increment(item_id, quantity, actor_id=actor_id)
            return InventoryItemInfo.from_model(session.get(InventoryItem, item_id))

    # Reporting

    def get_quote(self, quote_id: UUID) -> QuoteInfo:
        with session_scope(self._session_factory) as session:
            return QuoteSelector(session).get(quote_id)

    def quote_statistics(self) -> QuoteStatistics:
        with session_scope(self._session_factory) as session:
            return QuoteSelector(session).statistics()

    def inventory_statistics(self) -> InventoryStatistics:
        with session_scope(self._session_factory) as session:
            return InventorySelector(session).statistics(self._policy.low_stock_threshold)

    def low_stock(self, threshold: int | None = None) -> list[InventoryItemInfo]:
        if threshold is None:
            threshold = self._policy.low_stock_threshold
        with session_scope(self._session_factory) as session:
            return InventorySelector(session).low_stock(threshold)
