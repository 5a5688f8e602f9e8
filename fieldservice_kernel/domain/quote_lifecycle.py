"""
Quote lifecycle (``fieldservice_kernel.domain.quote_lifecycle``).

Responsibility
--------------
The quote state machine as data.  ``QUOTE_TRANSITIONS`` defines the only
valid state changes; terminal states have no outgoing edges, so a quote
that left ``pending`` never changes state again.

Architecture position
---------------------
**Kernel domain layer** -- pure.  Used by the approval orchestrator before
it writes a transition, and by the ORM listener on ``Quote`` that refuses
to move a terminal quote.
"""

from __future__ import annotations

from fieldservice_kernel.domain.values import QuoteState

QUOTE_TRANSITIONS: dict[QuoteState, frozenset[QuoteState]] = {
    QuoteState.PENDING: frozenset({
        QuoteState.APPROVED,
        QuoteState.REJECTED,
        QuoteState.DELETED,
    }),
    QuoteState.APPROVED: frozenset(),
    QuoteState.REJECTED: frozenset(),
    QuoteState.DELETED: frozenset(),
}

TERMINAL_QUOTE_STATES: frozenset[QuoteState] = frozenset(
    state for state, targets in QUOTE_TRANSITIONS.items() if not targets
)


def is_terminal(state: QuoteState | str) -> bool:
    """True when ``state`` has no outgoing transitions."""
    return QuoteState(state) in TERMINAL_QUOTE_STATES


def can_transition(from_state: QuoteState | str, to_state: QuoteState | str) -> bool:
    """True when ``from_state -> to_state`` is in the lifecycle table."""
    return QuoteState(to_state) in QUOTE_TRANSITIONS[QuoteState(from_state)]
