"""
Eligibility validator (``fieldservice_kernel.domain.eligibility``).

Responsibility
--------------
Decides whether a pending quote may be approved, per quote type:

* installation -- at least one equipment line with sufficient stock on
  every referenced item, or a legacy single-item reference with stock.
* maintenance  -- the client owns at least one ``active`` unit.
* repair       -- the client owns at least one ``active`` or
  ``in_maintenance`` unit.
* anything else -- unsupported.

Architecture position
---------------------
**Kernel domain layer** -- pure, zero I/O.  The orchestrator reads (and
locks) the rows, packs them into ``EligibilityFacts`` and calls
``validate_quote``.  The installation-line shape is resolved once, here,
into the ``InstallationLines`` tagged union and handed to provisioning
unchanged.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from fieldservice_kernel.domain.values import EquipmentState, InventoryStatus, QuoteType

MAINTENANCE_ELIGIBLE_STATES: frozenset[EquipmentState] = frozenset({
    EquipmentState.ACTIVE,
})

REPAIR_ELIGIBLE_STATES: frozenset[EquipmentState] = frozenset({
    EquipmentState.ACTIVE,
    EquipmentState.IN_MAINTENANCE,
})


# =========================================================================
# Installation lines -- tagged union
# =========================================================================


@dataclass(frozen=True)
class EquipmentLine:
    """One quoted catalog item and how many units of it to install."""

    inventory_item_id: UUID
    quantity: int
    unit_price: Decimal | None = None


@dataclass(frozen=True)
class EquipmentLineList:
    """Installation driven by explicit equipment lines."""

    lines: tuple[EquipmentLine, ...]

    @property
    def item_ids(self) -> tuple[UUID, ...]:
        return tuple(dict.fromkeys(line.inventory_item_id for line in self.lines))

    @property
    def total_units(self) -> int:
        return sum(line.quantity for line in self.lines)


@dataclass(frozen=True)
class LegacySingleItem:
    """Older quotes reference exactly one catalog item; one unit is installed."""

    inventory_item_id: UUID
    quantity: int = 1

    @property
    def item_ids(self) -> tuple[UUID, ...]:
        return (self.inventory_item_id,)

    @property
    def total_units(self) -> int:
        return self.quantity


InstallationLines = EquipmentLineList | LegacySingleItem


def resolve_installation_lines(
    lines: Sequence[EquipmentLine],
    legacy_item_id: UUID | None,
) -> InstallationLines | None:
    """
    Pick the installation shape of a quote.

    Equipment lines win over the legacy reference; ``None`` means the quote
    names no equipment at all.
    """
    if lines:
        return EquipmentLineList(tuple(lines))
    if legacy_item_id is not None:
        return LegacySingleItem(legacy_item_id)
    return None


# =========================================================================
# Facts and results
# =========================================================================


@dataclass(frozen=True)
class StockFact:
    """Stock snapshot of one inventory item, read under lock."""

    item_id: UUID
    label: str
    stock: int
    status: InventoryStatus


@dataclass(frozen=True)
class StockShortage:
    """The first line whose demand the stock cannot cover."""

    item_id: UUID
    label: str
    available: int
    requested: int


@dataclass(frozen=True)
class EligibilityFacts:
    """Everything the rules need about one quote, detached from the ORM."""

    quote_type: str
    has_client: bool
    installation: InstallationLines | None = None
    stock: Mapping[UUID, StockFact] = field(default_factory=dict)
    equipment_states: tuple[str, ...] = ()


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of ``validate_quote``."""

    valid: bool
    error: str | None = None
    shortage: StockShortage | None = None

    @classmethod
    def ok(cls) -> ValidationResult:
        return cls(valid=True)

    @classmethod
    def fail(cls, error: str, shortage: StockShortage | None = None) -> ValidationResult:
        return cls(valid=False, error=error, shortage=shortage)


# =========================================================================
# Rules
# =========================================================================


def validate_quote(facts: EligibilityFacts) -> ValidationResult:
    """Apply the rule for ``facts.quote_type``."""
    try:
        quote_type = QuoteType(facts.quote_type)
    except ValueError:
        return ValidationResult.fail(f"Unsupported quote type: {facts.quote_type}")

    if not facts.has_client:
        return ValidationResult.fail("Quote must have an associated client")

    if quote_type == QuoteType.INSTALLATION:
        return _validate_installation(facts)
    if quote_type == QuoteType.MAINTENANCE:
        return _validate_service(
            facts.equipment_states,
            MAINTENANCE_ELIGIBLE_STATES,
            "Client has no active equipment; maintenance requires an existing unit",
        )
    return _validate_service(
        facts.equipment_states,
        REPAIR_ELIGIBLE_STATES,
        "Client has no active or in-maintenance equipment; "
        "repair requires an existing unit",
    )


def _validate_installation(facts: EligibilityFacts) -> ValidationResult:
    installation = facts.installation
    if installation is None:
        return ValidationResult.fail(
            "Installation quote needs at least one equipment line or an inventory item"
        )

    if isinstance(installation, LegacySingleItem):
        demand: Iterable[tuple[UUID, int]] = [
            (installation.inventory_item_id, installation.quantity)
        ]
    else:
        demand = [(line.inventory_item_id, line.quantity) for line in installation.lines]

    # Lines naming the same item draw on one counter, so demand accumulates.
    requested_so_far: dict[UUID, int] = {}
    for item_id, quantity in demand:
        fact = facts.stock.get(item_id)
        if fact is None:
            return ValidationResult.fail(f"Inventory item not found: {item_id}")

        requested = requested_so_far.get(item_id, 0) + quantity
        requested_so_far[item_id] = requested

        if fact.status == InventoryStatus.EXHAUSTED or fact.stock < requested:
            shortage = StockShortage(
                item_id=item_id,
                label=fact.label,
                available=fact.stock,
                requested=requested,
            )
            return ValidationResult.fail(
                f"Insufficient stock for {fact.label}. "
                f"Available: {fact.stock}, Requested: {requested}",
                shortage=shortage,
            )

    return ValidationResult.ok()


def _validate_service(
    equipment_states: tuple[str, ...],
    eligible: frozenset[EquipmentState],
    error: str,
) -> ValidationResult:
    if any(EquipmentState(state) in eligible for state in equipment_states):
        return ValidationResult.ok()
    return ValidationResult.fail(error)
