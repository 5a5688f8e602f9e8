"""
Module: fieldservice_kernel.selectors.quote_selector
Responsibility: Read-only queries over quotes: single-quote lookup and the
    state breakdown with approved revenue.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Statistics are derived from the quotes table on every call; nothing
      is cached or stored.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import case, func, select

from fieldservice_kernel.domain.dtos import QuoteInfo, QuoteStatistics
from fieldservice_kernel.domain.values import QuoteState
from fieldservice_kernel.exceptions import QuoteNotFoundError
from fieldservice_kernel.models.quote import Quote
from fieldservice_kernel.selectors.base import BaseSelector


def _count_state(state: QuoteState):
    return func.coalesce(func.sum(case((Quote.state == state.value, 1), else_=0)), 0)


class QuoteSelector(BaseSelector[Quote]):
    """Quote lookups and statistics."""

    def get(self, quote_id: UUID) -> QuoteInfo:
        """
        Get a quote by ID.

        Raises:
            QuoteNotFoundError: If the quote doesn't exist.
        """
        quote = self.session.get(Quote, quote_id)
        if quote is None:
            raise QuoteNotFoundError(str(quote_id))
        return QuoteInfo.from_model(quote)

    def statistics(self) -> QuoteStatistics:
        """Counts per state and the summed final price of approved quotes."""
        approved_revenue = func.coalesce(
            func.sum(
                case(
                    (Quote.state == QuoteState.APPROVED.value, Quote.final_price),
                    else_=None,
                )
            ),
            0,
        )
        row = self.session.execute(
            select(
                func.count(Quote.id),
                _count_state(QuoteState.PENDING),
                _count_state(QuoteState.APPROVED),
                _count_state(QuoteState.REJECTED),
                _count_state(QuoteState.DELETED),
                approved_revenue,
            )
        ).one()

        total, pending, approved, rejected, deleted, revenue = row
        return QuoteStatistics(
            total=int(total),
            pending=int(pending),
            approved=int(approved),
            rejected=int(rejected),
            deleted=int(deleted),
            approved_revenue=Decimal(str(revenue)),
        )
