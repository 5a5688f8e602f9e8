"""
ORM-level guards on the quote workflow tables.

Tests: terminal quote states, immutable quote lines, and the database
constraints that back the services (stock >= 0, unique serials, one work
order per quote).

These are ORM-level tests only.  Service-layer behaviour is tested elsewhere.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from fieldservice_kernel.domain.values import (
    EquipmentState,
    QuoteState,
    WorkOrderStatus,
    WorkOrderType,
)
from fieldservice_kernel.exceptions import ImmutabilityViolationError
from fieldservice_kernel.models import Equipment, WorkOrder


class TestQuoteStateGuard:

    @pytest.mark.parametrize(
        "terminal", [QuoteState.APPROVED, QuoteState.REJECTED, QuoteState.DELETED],
    )
    def test_terminal_state_cannot_change(self, session, create_client, create_quote, terminal):
        quote = create_quote(client=create_client(), state=terminal)

        quote.state = QuoteState.PENDING
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()

        assert exc_info.value.entity_type == "Quote"
        session.rollback()

    def test_pending_quote_can_move(self, session, create_client, create_quote):
        quote = create_quote(client=create_client())

        quote.state = QuoteState.REJECTED
        session.flush()

        assert quote.is_terminal

    def test_terminal_quote_other_columns_writable(self, session, create_client, create_quote):
        quote = create_quote(client=create_client(), state=QuoteState.REJECTED)

        quote.notes = "Client asked for a new proposal"
        session.flush()

        assert quote.state == QuoteState.REJECTED


class TestQuoteLineGuard:

    def test_equipment_line_update_refused(
        self, session, create_client, create_inventory_item, create_quote,
    ):
        item = create_inventory_item()
        quote = create_quote(client=create_client(), lines=[(item, 1)])

        quote.equipment_lines[0].quantity = 5
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_material_line_update_refused(self, session, create_client, create_quote):
        quote = create_quote(
            client=create_client(), materials=[("R410A refill", "2", Decimal("35.00"))],
        )

        assert quote.material_lines[0].line_cost == Decimal("70.00")
        quote.material_lines[0].unit_cost = Decimal("1.00")
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()


class TestDatabaseConstraints:

    def test_negative_stock_rejected(self, session, create_inventory_item):
        item = create_inventory_item(stock=1)

        item.stock = -1
        with pytest.raises(IntegrityError):
            session.flush()
        session.rollback()

    def test_serial_numbers_unique(self, session, create_client, test_actor_id):
        client = create_client()
        for _ in range(2):
            session.add(
                Equipment(
                    client_id=client.id,
                    equipment_type="Split Wall",
                    brand="Coolmax",
                    model="CX-12",
                    serial_number="Coolmax-CX-12-12000BTU-1",
                    state=EquipmentState.ACTIVE,
                    created_by_id=test_actor_id,
                )
            )

        with pytest.raises(IntegrityError):
            session.flush()
        session.rollback()

    def test_one_work_order_per_quote(self, session, create_client, create_quote, test_actor_id):
        client = create_client()
        quote = create_quote(client=client)
        for _ in range(2):
            session.add(
                WorkOrder(
                    work_type=WorkOrderType.INSTALLATION,
                    status=WorkOrderStatus.PENDING,
                    scheduled_date=date(2024, 1, 3),
                    client_id=client.id,
                    quote_id=quote.id,
                    technician="unassigned",
                    created_by_id=test_actor_id,
                )
            )

        with pytest.raises(IntegrityError, match="quote_id|uq_work_order_quote"):
            session.flush()
        session.rollback()

    def test_work_orders_without_quote_allowed(self, session, create_client, test_actor_id):
        client = create_client()
        for _ in range(2):
            session.add(
                WorkOrder(
                    work_type=WorkOrderType.MAINTENANCE,
                    status=WorkOrderStatus.PENDING,
                    scheduled_date=date(2024, 1, 3),
                    client_id=client.id,
                    technician="unassigned",
                    created_by_id=test_actor_id,
                )
            )

        session.flush()

    def test_unknown_id_has_no_row(self, session):
        assert session.get(WorkOrder, uuid4()) is None
